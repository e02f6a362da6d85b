"""Deep dive scheduling and the daily tick entry point."""

from .scheduler import DeepDiveScheduler
from .tick import TickResult, daily_tick

__all__ = [
    "DeepDiveScheduler",
    "TickResult",
    "daily_tick",
]
