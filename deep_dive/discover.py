"""DISCOVER stage: topic to a ranked, deduplicated candidate list."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

from config import DeepDiveSettings
from core import (
    Candidate,
    DeepDiveConfig,
    DiscoverState,
    DiscoveryProgress,
    FetchProgress,
    FetchState,
    Job,
    JobStatus,
    SynthesisProgress,
    SynthesisStrategy,
    SynthesizeState,
    dump_state,
)
from utils.logger import log_deep_dive
from utils.text import canonicalize_url, extract_domain
from utils.timing import TimeBudget

from .services import DeepDiveServices


logger = logging.getLogger(__name__)


def resolve_max_sources(config: Optional[DeepDiveConfig], settings: DeepDiveSettings) -> int:
    """User preference clamped to the allowed range, else the configured default."""
    if config is None or config.max_sources is None:
        return settings.max_sources
    return max(settings.min_sources_floor, min(int(config.max_sources), settings.max_sources_ceiling))


def select_candidates(
    candidates: Sequence[Candidate],
    *,
    max_sources: int,
    quality_tier: Callable[[str], int],
    blocked_patterns: Sequence[str],
) -> List[Candidate]:
    """Dedupe by canonical URL, drop blocked hosts, rank by tier (stable), truncate."""
    seen = set()
    deduped: List[Candidate] = []
    for candidate in candidates:
        canonical = canonicalize_url(candidate.url)
        if not canonical or canonical in seen:
            continue
        seen.add(canonical)
        deduped.append(candidate)

    patterns = [p.lower() for p in blocked_patterns if p]
    allowed = [c for c in deduped if not any(p in extract_domain(c.url) for p in patterns)]

    # sorted() is stable, so equal tiers keep recency order.
    ranked = sorted(allowed, key=lambda c: quality_tier(c.url))
    return ranked[: max(0, int(max_sources))]


class CandidateDiscovery:
    def __init__(self, services: DeepDiveServices):
        self.services = services

    async def run(self, job: Job, state: DiscoverState, budget: TimeBudget) -> None:
        services = self.services
        store = services.store

        topic = services.directory.get_topic(job.topic_id)
        if topic is None:
            failed = DiscoverState(partial=state.partial, error="Topic not found")
            store.update_job(job.id, status=JobStatus.FAILED, state=dump_state(failed))
            log_deep_dive(
                job_id=job.id,
                user_id=job.user_id,
                stage="DISCOVER",
                status="failed",
                level=logging.ERROR,
                error="Topic not found",
            )
            return

        max_sources = resolve_max_sources(services.directory.get_config(job.user_id), services.settings)
        candidates = services.corpus.recent_candidates(
            topic,
            user_id=job.user_id,
            lookback_days=services.settings.lookback_days,
            limit=max_sources * 2,
            now=services.now(),
        )
        selected = select_candidates(
            candidates,
            max_sources=max_sources,
            quality_tier=services.corpus.source_quality_tier,
            blocked_patterns=services.corpus.blocked_host_patterns(),
        )

        if not selected:
            minimal = SynthesizeState(
                partial=True,
                discovery=DiscoveryProgress(candidate_urls=[], selected_count=0),
                synthesis=SynthesisProgress(strategy=SynthesisStrategy.MAP_REDUCE),
            )
            store.update_job(job.id, status=JobStatus.PARTIAL, state=dump_state(minimal))
            log_deep_dive(
                job_id=job.id,
                user_id=job.user_id,
                stage="DISCOVER",
                status="no_candidates",
                topic=topic.label,
                candidates=len(candidates),
            )
            return

        created = store.add_sources(job.id, selected)
        urls = [canonicalize_url(c.url) for c in selected]
        next_state = FetchState(
            partial=state.partial,
            discovery=DiscoveryProgress(candidate_urls=urls, selected_count=len(urls)),
            fetch=FetchProgress(total_sources=store.count_sources(job.id)),
        )
        store.update_job(job.id, state=dump_state(next_state))

        log_deep_dive(
            job_id=job.id,
            user_id=job.user_id,
            stage="DISCOVER",
            status="complete",
            topic=topic.label,
            sources_total=len(urls),
            sources_created=created,
            elapsed=round(budget.elapsed(), 3),
        )
