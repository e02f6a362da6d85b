from __future__ import annotations

from datetime import timedelta

import pytest

from config import DeepDiveSettings
from core import (
    AccessStatus,
    ArticleMatch,
    Candidate,
    CorpusArticle,
    DeepDiveConfig,
    DiscoverState,
    JobStatus,
    SynthesisStrategy,
    Topic,
)
from deep_dive import CandidateDiscovery, resolve_max_sources, select_candidates
from deep_dive_support import NOW, TOPIC_ID, TOPIC_LABEL, USER_ID, build_services, create_job, make_articles
from sources import InMemoryCorpus
from utils.timing import TimeBudget


def test_resolve_max_sources_clamps_preference() -> None:
    settings = DeepDiveSettings()

    assert resolve_max_sources(None, settings) == 12
    assert resolve_max_sources(DeepDiveConfig(user_id="u", max_sources=3), settings) == 6
    assert resolve_max_sources(DeepDiveConfig(user_id="u", max_sources=8), settings) == 8
    assert resolve_max_sources(DeepDiveConfig(user_id="u", max_sources=40), settings) == 12


def test_select_candidates_dedupes_blocks_and_ranks() -> None:
    candidates = [
        Candidate(url="https://blog.example.org/one"),
        Candidate(url="https://www.reuters.com/two?utm_source=x"),
        Candidate(url="https://reuters.com/two"),
        Candidate(url="https://spam.contentfarm.io/three"),
        Candidate(url="https://blog.example.org/four"),
        Candidate(url="https://www.ft.com/five"),
    ]
    tiers = {"reuters.com": 1, "ft.com": 2}

    selected = select_candidates(
        candidates,
        max_sources=3,
        quality_tier=lambda url: tiers.get(url.split("/")[2].removeprefix("www."), 3),
        blocked_patterns=["contentfarm"],
    )

    assert [c.url for c in selected] == [
        "https://www.reuters.com/two?utm_source=x",
        "https://www.ft.com/five",
        "https://blog.example.org/one",
    ]


def test_recent_candidates_prefers_index_then_keyword_fallback() -> None:
    articles = make_articles(3)
    old = CorpusArticle(
        url="https://news.example.com/old",
        title=f"{TOPIC_LABEL} archive",
        fetched_at=NOW - timedelta(days=30),
        published_at=NOW - timedelta(days=30),
    )
    topic = Topic(id=TOPIC_ID, label=TOPIC_LABEL)

    indexed = InMemoryCorpus(
        articles=[*articles, old],
        matches=[],
    )
    fallback = indexed.recent_candidates(topic, user_id=USER_ID, now=NOW)
    assert [c.url for c in fallback] == [a.url for a in articles]

    indexed.add_match(ArticleMatch(user_id=USER_ID, topic_id=TOPIC_ID, url=articles[2].url, score=0.9))
    hits = indexed.recent_candidates(topic, user_id=USER_ID, now=NOW)
    assert [c.url for c in hits] == [articles[2].url]


@pytest.mark.asyncio
async def test_discovery_adds_sources_and_moves_to_fetch() -> None:
    services = build_services(articles=make_articles(5))
    job = create_job(services)

    await CandidateDiscovery(services).run(job, DiscoverState(), TimeBudget(max_duration=45))

    state = services.store.get_job(job.id).load_state()
    assert state.stage == "FETCH"
    assert state.discovery.selected_count == 5
    assert state.fetch.total_sources == 5
    assert services.store.count_sources(job.id, access_status=AccessStatus.UNKNOWN) == 5


@pytest.mark.asyncio
async def test_discovery_without_candidates_skips_to_synthesize() -> None:
    services = build_services()
    job = create_job(services)

    await CandidateDiscovery(services).run(job, DiscoverState(), TimeBudget(max_duration=45))

    updated = services.store.get_job(job.id)
    state = updated.load_state()
    assert state.stage == "SYNTHESIZE"
    assert state.partial is True
    assert state.synthesis.strategy == SynthesisStrategy.MAP_REDUCE
    assert updated.status == JobStatus.PARTIAL


@pytest.mark.asyncio
async def test_discovery_fails_fast_on_missing_topic() -> None:
    services = build_services(articles=make_articles(2), topics=[])
    job = create_job(services)

    await CandidateDiscovery(services).run(job, DiscoverState(), TimeBudget(max_duration=45))

    updated = services.store.get_job(job.id)
    assert updated.status == JobStatus.FAILED
    assert updated.state["error"] == "Topic not found"
    assert services.store.count_sources(job.id) == 0
