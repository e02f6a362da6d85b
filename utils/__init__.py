"""
Utils Module
Shared helpers: logging, errors, time budgets, text and calendar helpers
"""
from .logger import hash_user_id, log_daily_tick, log_deep_dive, setup_logger
from .exceptions import (
    ConfigurationError,
    DeepDiveError,
    DeliveryError,
    DuplicateJobError,
    DuplicateReportError,
    JobNotFoundError,
    StorageError,
)
from .timing import TimeBudget, has_budget
from .text import canonicalize_url, extract_domain, normalize_whitespace, truncate_text

__all__ = [
    "setup_logger",
    "hash_user_id",
    "log_daily_tick",
    "log_deep_dive",
    "ConfigurationError",
    "DeepDiveError",
    "DeliveryError",
    "DuplicateJobError",
    "DuplicateReportError",
    "JobNotFoundError",
    "StorageError",
    "TimeBudget",
    "has_budget",
    "canonicalize_url",
    "extract_domain",
    "normalize_whitespace",
    "truncate_text",
]
