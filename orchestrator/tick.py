"""Daily tick: the single entry point, carrying the global deep research gate."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
import logging
from typing import Optional

from deep_dive import DeepDiveServices
from utils.logger import log_daily_tick
from utils.timing import TimeBudget

from .scheduler import DeepDiveScheduler


logger = logging.getLogger(__name__)

SCHEDULE_BUFFER = 15.0


@dataclass
class TickResult:
    ok: bool = True
    elapsed: float = 0.0
    jobs_created: int = 0
    jobs_advanced: int = 0
    enabled: bool = True


async def daily_tick(
    services: DeepDiveServices,
    *,
    enabled: bool,
    now: Optional[datetime] = None,
    scheduler: Optional[DeepDiveScheduler] = None,
) -> TickResult:
    """Schedule due jobs, then advance open ones, all within ``tick_max_duration``."""
    settings = services.settings
    budget = TimeBudget(max_duration=settings.tick_max_duration, clock=services.clock)
    result = TickResult(enabled=enabled)

    log_daily_tick("start", max_duration=settings.tick_max_duration)

    if not enabled:
        log_daily_tick("deep_dive", status="disabled")
        result.elapsed = round(budget.elapsed(), 3)
        return result

    scheduler = scheduler or DeepDiveScheduler(services)
    try:
        if budget.allows(SCHEDULE_BUFFER):
            result.jobs_created = scheduler.run_once(now)
            log_daily_tick("schedule_deep_dives", created=result.jobs_created)

        if budget.allows(settings.advance_buffer):
            result.jobs_advanced = await scheduler.advance(
                settings.max_jobs_per_tick,
                settings.tick_max_duration,
                budget=budget,
            )
    except Exception as e:
        logger.exception("Daily tick failed")
        log_daily_tick("error", level=logging.ERROR, error=str(e))
        result.ok = False

    result.elapsed = round(budget.elapsed(), 3)
    log_daily_tick("complete", **asdict(result))
    return result
