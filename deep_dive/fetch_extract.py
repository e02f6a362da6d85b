"""
FETCH stage
Bounded, concurrent fetch batches with access classification and
readable-text extraction.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from bs4 import BeautifulSoup

from core import (
    AccessStatus,
    FetchOutcome,
    FetchProgress,
    FetchState,
    Job,
    JobStatus,
    Source,
    SynthesisProgress,
    SynthesisStrategy,
    SynthesizeState,
    dump_state,
)
from sources.fetcher import DocumentFetcher, FetchResponse
from utils.logger import log_deep_dive
from utils.text import normalize_whitespace, truncate_text
from utils.timing import TimeBudget

from .services import DeepDiveServices


logger = logging.getLogger(__name__)

PAYWALL_MARKERS = (
    "subscribe to continue",
    "sign in to read",
    "sign in to continue",
    "metered paywall",
    "create a free account",
    "start your free trial",
    "subscribe for full access",
    "premium content",
    "members only",
    "you have reached your limit",
)
PAYWALL_URL_FRAGMENTS = ("/subscribe", "/login", "/paywall", "/register", "/signin", "/sign-in")

NOISE_SELECTORS = (
    "script, style, nav, header, footer, aside, iframe, noscript, svg, "
    '[role="navigation"], [role="banner"], .sidebar, .nav, .menu, .ad, .advertisement, .social-share'
)
CONTENT_SELECTORS = (
    "article",
    '[role="main"]',
    "main",
    ".article-body",
    ".post-content",
    ".entry-content",
    ".story-body",
)


def _meta_content(soup: BeautifulSoup, prop: str) -> Optional[str]:
    tag = soup.find("meta", attrs={"property": prop})
    value = normalize_whitespace(tag.get("content", "")) if tag else ""
    return value or None


def extract_readable_text(soup: BeautifulSoup, *, min_chars: int) -> str:
    """Main-content text by ordered selectors, whole body when too short."""
    for node in soup.select(NOISE_SELECTORS):
        node.decompose()

    text = ""
    for selector in CONTENT_SELECTORS:
        nodes = soup.select(selector)
        if nodes:
            text = normalize_whitespace(" ".join(node.get_text(" ") for node in nodes))
            break

    if len(text) < min_chars:
        body = soup.body or soup
        text = normalize_whitespace(body.get_text(" "))
    return text


def classify_document(response: FetchResponse, *, min_readable_chars: int, max_chars: int) -> FetchOutcome:
    """Access status, title, site name and truncated text for one fetched document."""
    if response.status in (401, 403):
        return FetchOutcome(status=AccessStatus.PAYWALLED)
    if not response.ok:
        return FetchOutcome(status=AccessStatus.BLOCKED)

    final_url = str(response.final_url or "").lower()
    if any(fragment in final_url for fragment in PAYWALL_URL_FRAGMENTS):
        return FetchOutcome(status=AccessStatus.PAYWALLED)

    body_lower = response.body.lower()
    if any(marker in body_lower for marker in PAYWALL_MARKERS):
        return FetchOutcome(status=AccessStatus.PAYWALLED)

    soup = BeautifulSoup(response.body, "lxml")
    title = _meta_content(soup, "og:title")
    if not title and soup.title is not None:
        title = normalize_whitespace(soup.title.get_text()) or None
    source_name = _meta_content(soup, "og:site_name")

    text = extract_readable_text(soup, min_chars=min_readable_chars)
    if len(text) < min_readable_chars:
        return FetchOutcome(status=AccessStatus.BLOCKED, title=title)

    return FetchOutcome(
        status=AccessStatus.OK,
        title=title,
        source_name=source_name,
        text=truncate_text(text, max_chars),
    )


async def fetch_source(
    fetcher: DocumentFetcher,
    url: str,
    *,
    timeout: float,
    min_readable_chars: int,
    max_chars: int,
) -> FetchOutcome:
    """Fetch and classify; any network or parse failure is recorded as blocked."""
    try:
        response = await asyncio.wait_for(fetcher.get(url), timeout=timeout)
        # lxml parse runs off the event loop.
        return await asyncio.to_thread(
            classify_document,
            response,
            min_readable_chars=min_readable_chars,
            max_chars=max_chars,
        )
    except asyncio.TimeoutError:
        logger.info(f"Fetch timed out after {timeout:.0f}s: {url}")
        return FetchOutcome(status=AccessStatus.BLOCKED)
    except Exception as e:
        logger.info(f"Fetch failed for {url}: {e}")
        return FetchOutcome(status=AccessStatus.BLOCKED)


class EvidenceExtractor:
    def __init__(self, services: DeepDiveServices):
        self.services = services

    async def _process(self, source: Source, budget: TimeBudget) -> Optional[FetchOutcome]:
        settings = self.services.settings
        if not budget.allows(settings.fetch_buffer):
            return None
        outcome = await fetch_source(
            self.services.fetcher,
            source.url,
            timeout=settings.fetch_timeout,
            min_readable_chars=settings.min_readable_chars,
            max_chars=settings.max_extracted_chars,
        )
        self.services.store.update_source(source.id, outcome, fetched_at=self.services.now())
        return outcome

    async def run(self, job: Job, state: FetchState, budget: TimeBudget) -> None:
        services = self.services
        settings = services.settings
        store = services.store

        batch = store.list_sources(job.id, access_status=AccessStatus.UNKNOWN, limit=settings.max_fetch_per_invocation)
        results: List[Optional[FetchOutcome]] = list(
            await asyncio.gather(*(self._process(source, budget) for source in batch))
        )
        processed = sum(1 for outcome in results if outcome is not None)

        total = store.count_sources(job.id)
        remaining = store.count_sources(job.id, access_status=AccessStatus.UNKNOWN)
        ok_count = store.count_sources(job.id, access_status=AccessStatus.OK)
        fetched_count = total - remaining
        progress = FetchProgress(
            total_sources=total,
            fetched_count=fetched_count,
            ok_count=ok_count,
            next_index=fetched_count,
        )

        partial = False
        if ok_count >= settings.min_ok_sources:
            next_state = SynthesizeState(
                partial=state.partial,
                discovery=state.discovery,
                fetch=progress,
                synthesis=SynthesisProgress(strategy=SynthesisStrategy.DIRECT),
            )
        elif remaining > 0:
            next_state = FetchState(partial=state.partial, discovery=state.discovery, fetch=progress)
        elif ok_count >= settings.min_partial_sources:
            partial = True
            next_state = SynthesizeState(
                partial=True,
                discovery=state.discovery,
                fetch=progress,
                synthesis=SynthesisProgress(strategy=SynthesisStrategy.DIRECT),
            )
        else:
            partial = True
            next_state = SynthesizeState(
                partial=True,
                discovery=state.discovery,
                fetch=progress,
                synthesis=SynthesisProgress(strategy=SynthesisStrategy.MAP_REDUCE),
            )

        store.update_job(
            job.id,
            status=JobStatus.PARTIAL if partial else None,
            state=dump_state(next_state),
        )

        log_deep_dive(
            job_id=job.id,
            user_id=job.user_id,
            stage="FETCH",
            status="continuing" if next_state.stage == "FETCH" else "done",
            batch=len(batch),
            fetched=processed,
            sources_ok=ok_count,
            sources_total=total,
            elapsed=round(budget.elapsed(), 3),
        )
