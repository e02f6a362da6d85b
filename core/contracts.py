"""Canonical data contracts for deep dive research jobs."""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator


STATE_VERSION = 1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    """Lifecycle status of a research job."""

    QUEUED = "queued"
    RUNNING = "running"
    PARTIAL = "partial"
    COMPLETE = "complete"
    FAILED = "failed"
    ABORTED = "aborted"

    @property
    def is_hard_terminal(self) -> bool:
        return self in HARD_TERMINAL_STATUSES


HARD_TERMINAL_STATUSES = frozenset({JobStatus.COMPLETE, JobStatus.FAILED, JobStatus.ABORTED})
ADVANCEABLE_STATUSES = frozenset({JobStatus.QUEUED, JobStatus.RUNNING, JobStatus.PARTIAL})


class Stage(str, Enum):
    """Stage of the research state machine, in execution order."""

    DISCOVER = "DISCOVER"
    FETCH = "FETCH"
    SYNTHESIZE = "SYNTHESIZE"
    PUBLISH = "PUBLISH"

    @property
    def order(self) -> int:
        return _STAGE_ORDER[self]


_STAGE_ORDER = {Stage.DISCOVER: 0, Stage.FETCH: 1, Stage.SYNTHESIZE: 2, Stage.PUBLISH: 3}


class AccessStatus(str, Enum):
    """Fetch classification of a source document."""

    UNKNOWN = "unknown"
    OK = "ok"
    PAYWALLED = "paywalled"
    BLOCKED = "blocked"


class SynthesisStrategy(str, Enum):
    """How a report draft was (or will be) produced."""

    DIRECT = "direct"
    MAP_REDUCE = "map-reduce"
    TEMPLATE = "template"
    NO_COVERAGE = "no-coverage"


# ---------------------------------------------------------------------------
# Job state document (tagged union on ``stage``)
# ---------------------------------------------------------------------------


class DiscoveryProgress(BaseModel):
    candidate_urls: List[str] = Field(default_factory=list)
    selected_count: int = 0


class FetchProgress(BaseModel):
    total_sources: int = 0
    fetched_count: int = 0
    ok_count: int = 0
    next_index: int = 0


class SynthesisProgress(BaseModel):
    strategy: SynthesisStrategy = SynthesisStrategy.DIRECT
    retry_count: int = 0
    partial_markdown: Optional[str] = None
    used_strategy: Optional[SynthesisStrategy] = None
    validation_errors: List[str] = Field(default_factory=list)


class PublishProgress(BaseModel):
    report_id: Optional[str] = None
    email_sent: bool = False


class _StateBase(BaseModel):
    version: int = STATE_VERSION
    # Sticky flag: once degraded, a job publishes as ``partial``.
    partial: bool = False


class DiscoverState(_StateBase):
    stage: Literal["DISCOVER"] = "DISCOVER"
    error: Optional[str] = None


class FetchState(_StateBase):
    stage: Literal["FETCH"] = "FETCH"
    discovery: DiscoveryProgress
    fetch: FetchProgress


class SynthesizeState(_StateBase):
    stage: Literal["SYNTHESIZE"] = "SYNTHESIZE"
    discovery: Optional[DiscoveryProgress] = None
    fetch: Optional[FetchProgress] = None
    synthesis: SynthesisProgress = Field(default_factory=SynthesisProgress)


class PublishState(_StateBase):
    stage: Literal["PUBLISH"] = "PUBLISH"
    discovery: Optional[DiscoveryProgress] = None
    fetch: Optional[FetchProgress] = None
    synthesis: SynthesisProgress = Field(default_factory=SynthesisProgress)
    publish: Optional[PublishProgress] = None


JobState = Annotated[
    Union[DiscoverState, FetchState, SynthesizeState, PublishState],
    Field(discriminator="stage"),
]

_STATE_ADAPTER: TypeAdapter = TypeAdapter(JobState)


def parse_state(raw: Any) -> Optional[JobState]:
    """Parse a persisted state document. Returns None for unrecognized documents."""
    if raw is None:
        return DiscoverState()
    try:
        return _STATE_ADAPTER.validate_python(raw)
    except ValidationError:
        return None


def dump_state(state: JobState) -> Dict[str, Any]:
    return state.model_dump(mode="json")


def initial_state() -> Dict[str, Any]:
    return dump_state(DiscoverState())


# ---------------------------------------------------------------------------
# Persisted rows
# ---------------------------------------------------------------------------


class Job(BaseModel):
    """One research task for one user for one period."""

    id: str
    user_id: str
    period: date
    topic_id: str
    status: JobStatus = JobStatus.QUEUED
    attempt: int = 0
    state: Dict[str, Any] = Field(default_factory=initial_state)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("user_id", "topic_id", mode="before")
    @classmethod
    def _non_empty_text(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("value is required")
        return text

    def load_state(self) -> Optional[JobState]:
        return parse_state(self.state)


class Source(BaseModel):
    """One candidate document attached to a job."""

    id: str
    job_id: str
    url: str
    canonical_url: str
    title: Optional[str] = None
    source_name: Optional[str] = None
    published_at: Optional[datetime] = None
    access_status: AccessStatus = AccessStatus.UNKNOWN
    extracted_text: Optional[str] = None
    fetched_at: Optional[datetime] = None


class Report(BaseModel):
    """The single published artifact for a job."""

    id: str
    job_id: str
    subject: str
    markdown: str
    html: str
    created_at: datetime = Field(default_factory=_utcnow)


class JobResult(BaseModel):
    """Read surface for callers: final status and the artifact when one exists."""

    job_id: str
    status: JobStatus
    stage: Optional[str] = None
    report: Optional[Report] = None


# ---------------------------------------------------------------------------
# Stage inputs / outputs
# ---------------------------------------------------------------------------


class Candidate(BaseModel):
    """A URL considered for inclusion as evidence before fetching."""

    url: str
    title: Optional[str] = None
    source_name: Optional[str] = None
    published_at: Optional[datetime] = None


class FetchOutcome(BaseModel):
    """Result of fetching and classifying one source."""

    status: AccessStatus
    title: Optional[str] = None
    source_name: Optional[str] = None
    text: Optional[str] = None


class SourceCitation(BaseModel):
    title: str = ""
    url: str = ""
    source: str = ""
    date: Optional[str] = None


class ReportDocument(BaseModel):
    """Structured view of a report's markdown."""

    headline: str = ""
    what_happened: List[str] = Field(default_factory=list)
    what_changed: List[str] = Field(default_factory=list)
    why_it_matters: List[str] = Field(default_factory=list)
    risks: List[str] = Field(default_factory=list)
    action_prompts: List[str] = Field(default_factory=list)
    sources: List[SourceCitation] = Field(default_factory=list)


class ValidationResult(BaseModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)
