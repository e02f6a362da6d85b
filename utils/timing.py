"""Time-budget guard for invocations with a hard wall-clock limit."""

from __future__ import annotations

from dataclasses import dataclass, field
import time
from typing import Callable, Optional

Clock = Callable[[], float]

DEFAULT_BUFFER = 8.0


def has_budget(
    started_at: float,
    max_duration: float,
    buffer: float = DEFAULT_BUFFER,
    *,
    now: Optional[float] = None,
) -> bool:
    """True iff another unit of work may start: ``now - started_at < max_duration - buffer``."""
    current = time.monotonic() if now is None else now
    return (current - started_at) < (max_duration - buffer)


@dataclass
class TimeBudget:
    """A started budget bound to a clock."""

    max_duration: float
    clock: Clock = time.monotonic
    started_at: float = field(default=-1.0)

    def __post_init__(self) -> None:
        if self.started_at < 0:
            self.started_at = self.clock()

    def elapsed(self) -> float:
        return self.clock() - self.started_at

    def remaining(self) -> float:
        return self.max_duration - self.elapsed()

    def allows(self, buffer: float = DEFAULT_BUFFER) -> bool:
        return has_budget(self.started_at, self.max_duration, buffer, now=self.clock())
