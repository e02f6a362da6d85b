"""Core contracts and shared types for deep dive research jobs."""

from .contracts import (
    ADVANCEABLE_STATUSES,
    HARD_TERMINAL_STATUSES,
    AccessStatus,
    Candidate,
    DiscoverState,
    DiscoveryProgress,
    FetchOutcome,
    FetchProgress,
    FetchState,
    Job,
    JobResult,
    JobState,
    JobStatus,
    PublishProgress,
    PublishState,
    Report,
    ReportDocument,
    Source,
    SourceCitation,
    Stage,
    SynthesisProgress,
    SynthesisStrategy,
    SynthesizeState,
    ValidationResult,
    dump_state,
    initial_state,
    parse_state,
)
from .records import ArticleMatch, CorpusArticle, DeepDiveConfig, Topic, UserProfile

__all__ = [
    "ADVANCEABLE_STATUSES",
    "HARD_TERMINAL_STATUSES",
    "AccessStatus",
    "ArticleMatch",
    "Candidate",
    "CorpusArticle",
    "DeepDiveConfig",
    "DiscoverState",
    "DiscoveryProgress",
    "FetchOutcome",
    "FetchProgress",
    "FetchState",
    "Job",
    "JobResult",
    "JobState",
    "JobStatus",
    "PublishProgress",
    "PublishState",
    "Report",
    "ReportDocument",
    "Source",
    "SourceCitation",
    "Stage",
    "SynthesisProgress",
    "SynthesisStrategy",
    "SynthesizeState",
    "Topic",
    "UserProfile",
    "ValidationResult",
    "dump_state",
    "initial_state",
    "parse_state",
]
