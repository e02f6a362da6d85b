"""Collaborators shared by every stage of a deep dive job."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
import time
from typing import Callable, Optional

from config import DeepDiveSettings, Settings, get_settings
from delivery import EmailSender, InMemoryTokenIssuer, JsonFileTokenIssuer, get_email_sender
from intelligence.llm import GenerationService, LLMGenerationService, get_llm
from sources import DocumentFetcher, HttpxDocumentFetcher, InMemoryCorpus
from storage import InMemoryDirectory, JobStore, JsonFileJobStore, load_seed


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DeepDiveServices:
    """
    Everything a stage may touch.

    ``clock`` is the monotonic clock behind time budgets; ``now`` is the
    wall clock used for lookback windows, subjects and token expiry.
    """

    store: JobStore
    directory: InMemoryDirectory
    corpus: InMemoryCorpus
    fetcher: DocumentFetcher
    generator: GenerationService
    sender: EmailSender
    tokens: InMemoryTokenIssuer = field(default_factory=InMemoryTokenIssuer)
    settings: DeepDiveSettings = field(default_factory=DeepDiveSettings)
    app_host: str = "http://localhost:3000"
    clock: Callable[[], float] = time.monotonic
    now: Callable[[], datetime] = _utcnow

    def topic_label(self, topic_id: str, default: str) -> str:
        topic = self.directory.get_topic(topic_id)
        return topic.label if topic and topic.label else default

    async def aclose(self) -> None:
        await self.generator.aclose()


def build_services(settings: Optional[Settings] = None) -> DeepDiveServices:
    """Wire the configured store, seed data, fetcher, LLM and sender."""
    settings = settings or get_settings()
    data_dir = Path(settings.storage.data_dir)
    directory, corpus = load_seed(data_dir / settings.storage.seed_file)

    return DeepDiveServices(
        store=JsonFileJobStore(data_dir / settings.storage.jobs_file),
        directory=directory,
        corpus=corpus,
        fetcher=HttpxDocumentFetcher(
            timeout=settings.deep_dive.fetch_timeout,
            user_agent=settings.deep_dive.user_agent,
        ),
        generator=LLMGenerationService(get_llm()),
        sender=get_email_sender(settings.email.provider),
        tokens=JsonFileTokenIssuer(data_dir / settings.storage.tokens_file),
        settings=settings.deep_dive,
        app_host=settings.email.app_host,
    )
