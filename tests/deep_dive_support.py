"""Fakes and fixtures data shared by the deep dive tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import httpx

from config import DeepDiveSettings
from core import (
    AccessStatus,
    ArticleMatch,
    Candidate,
    CorpusArticle,
    DeepDiveConfig,
    FetchOutcome,
    Topic,
    UserProfile,
)
from deep_dive import DeepDiveServices
from delivery import DeliveryResult, EmailSender, InMemoryTokenIssuer
from intelligence.llm import GenerationService
from sources import HttpxDocumentFetcher, InMemoryCorpus
from storage import InMemoryDirectory, InMemoryJobStore, JobStore
from utils.exceptions import DeliveryError


NOW = datetime(2026, 10, 14, 12, 0, tzinfo=timezone.utc)  # a Wednesday

TOPIC_ID = "topic_banking"
TOPIC_LABEL = "Bank Capital Rules"
USER_ID = "user_1"

SOURCE_PARAGRAPH = (
    "The Federal Reserve finalized new capital rules on Tuesday covering Goldman Sachs, "
    "JPMorgan Chase and other lenders with more than 100 billion in assets. The SEC published "
    "a companion disclosure framework for the same institutions. Banks must report liquidity "
    "positions every quarter starting in January, replacing the previous annual filing cycle. "
)
SOURCE_TEXT = SOURCE_PARAGRAPH * 6

VALID_REPORT = """# Federal Reserve tightens capital rules for large banks

## What Happened
- The Federal Reserve finalized capital rules covering Goldman Sachs and JPMorgan Chase.
- Regulators at the SEC published a companion disclosure framework.
- Banks must report liquidity positions every quarter starting in January.
- The rules apply to lenders with more than 100 billion in assets.

## What Changed
- Quarterly liquidity reporting replaces the previous annual filing.
- Capital buffers rise by two percentage points for the largest lenders.

## Why It Matters
- Advisory teams at large lenders face new quarterly reporting work.
- Treasury functions need updated liquidity models before January.
- Audit committees must review capital planning assumptions again.

## Risks / Watch-outs
- Smaller lenders could see indirect pressure from counterparties.
- Reporting systems may not be ready for quarterly cycles.

## Action Prompts
- Map each client's liquidity data sources against the quarterly template.
- Schedule capital planning workshops with treasury leads this month.
- Draft a readiness checklist for the January reporting deadline!

## Sources
1. [Fed finalizes capital rules](https://news.example.com/a1) — Example News — 2026-10-12
"""

INVALID_REPORT = """# Banks

## What Happened
- This article covers a paradigm shift in banking!
- Everything is changing!

## Sources
1. [Fed finalizes capital rules](https://news.example.com/a1) — Example News
"""


def article_html(title: str, text: str, *, site: str = "Example News") -> str:
    return f"""<html>
  <head>
    <title>{title} | {site}</title>
    <meta property="og:title" content="{title}">
    <meta property="og:site_name" content="{site}">
  </head>
  <body>
    <nav>Home Markets Policy</nav>
    <article><p>{text}</p></article>
    <footer>Copyright</footer>
  </body>
</html>"""


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class ScriptedGenerator(GenerationService):
    """Returns queued responses in order, or delegates to ``handler``."""

    def __init__(
        self,
        responses: Optional[Sequence[Optional[str]]] = None,
        handler: Optional[Callable[[str, str], Optional[str]]] = None,
    ):
        self.responses: List[Optional[str]] = list(responses or [])
        self.handler = handler
        self.calls: List[Dict] = []

    async def generate(self, system_prompt, user_prompt, *, max_output_tokens, temperature, hard_timeout):
        self.calls.append(
            {
                "system": system_prompt,
                "user": user_prompt,
                "max_output_tokens": max_output_tokens,
                "temperature": temperature,
                "hard_timeout": hard_timeout,
            }
        )
        if self.handler is not None:
            return self.handler(system_prompt, user_prompt)
        if self.responses:
            return self.responses.pop(0)
        return None


class RecordingSender(EmailSender):
    channel = "test"

    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.sent: List[Tuple[str, str, str]] = []

    async def send(self, to_address: str, subject: str, html: str) -> DeliveryResult:
        if self.fail:
            raise DeliveryError("smtp down", channel=self.channel)
        self.sent.append((to_address, subject, html))
        return DeliveryResult(ok=True, channel=self.channel, message_id=f"msg_{len(self.sent)}")


def page_transport(pages: Dict[str, Tuple[int, str]]) -> httpx.MockTransport:
    """Serve ``url -> (status, html)``; unknown URLs answer 404."""

    def _handler(request: httpx.Request) -> httpx.Response:
        status, body = pages.get(str(request.url), (404, "not found"))
        return httpx.Response(status, text=body)

    return httpx.MockTransport(_handler)


def make_articles(count: int, *, host: str = "news.example.com") -> List[CorpusArticle]:
    return [
        CorpusArticle(
            url=f"https://{host}/story-{i}",
            title=f"Capital rules story {i}",
            snippet=f"{TOPIC_LABEL} update {i}",
            source_name="Example News",
            published_at=NOW - timedelta(hours=i + 1),
            fetched_at=NOW - timedelta(hours=i + 1),
            access_status="ok",
        )
        for i in range(count)
    ]


def ok_pages(articles: Sequence[CorpusArticle]) -> Dict[str, Tuple[int, str]]:
    return {article.url: (200, article_html(article.title, SOURCE_TEXT)) for article in articles}


def build_services(
    *,
    articles: Sequence[CorpusArticle] = (),
    matches: Optional[Sequence[ArticleMatch]] = None,
    pages: Optional[Dict[str, Tuple[int, str]]] = None,
    generator: Optional[GenerationService] = None,
    sender: Optional[EmailSender] = None,
    store: Optional[JobStore] = None,
    clock: Optional[Callable[[], float]] = None,
    settings: Optional[DeepDiveSettings] = None,
    user: Optional[UserProfile] = None,
    config: Optional[DeepDiveConfig] = None,
    topics: Optional[Sequence[Topic]] = None,
) -> DeepDiveServices:
    if matches is None:
        matches = [
            ArticleMatch(user_id=USER_ID, topic_id=TOPIC_ID, url=article.url, score=1.0 - i / 100)
            for i, article in enumerate(articles)
        ]
    directory = InMemoryDirectory(
        topics=topics if topics is not None else [Topic(id=TOPIC_ID, label=TOPIC_LABEL)],
        users=[user or UserProfile(id=USER_ID, email="analyst@example.com", timezone="UTC")],
        configs=[config or DeepDiveConfig(user_id=USER_ID, day_of_week="WE", topic_ids=[TOPIC_ID])],
    )
    services = DeepDiveServices(
        store=store or InMemoryJobStore(),
        directory=directory,
        corpus=InMemoryCorpus(articles=articles, matches=matches),
        fetcher=HttpxDocumentFetcher(transport=page_transport(pages or {})),
        generator=generator or ScriptedGenerator(),
        sender=sender or RecordingSender(),
        tokens=InMemoryTokenIssuer(),
        settings=settings or DeepDiveSettings(),
        now=lambda: NOW,
    )
    if clock is not None:
        services.clock = clock
    return services


def create_job(services: DeepDiveServices, *, user_id: str = USER_ID, topic_id: str = TOPIC_ID):
    return services.store.create_job(user_id, NOW.date(), topic_id, now=NOW)


def job_with_ok_sources(services: DeepDiveServices, count: int = 4):
    """A job whose first ``count`` sources are already fetched ``ok``."""
    job = create_job(services)
    services.store.add_sources(
        job.id,
        [
            Candidate(
                url=f"https://news.example.com/story-{i}",
                title=f"Capital rules story {i}",
                source_name="Example News",
                published_at=NOW - timedelta(days=1),
            )
            for i in range(count)
        ],
    )
    for source in services.store.list_sources(job.id):
        services.store.update_source(
            source.id,
            FetchOutcome(status=AccessStatus.OK, text=SOURCE_TEXT),
            fetched_at=NOW,
        )
    return job
