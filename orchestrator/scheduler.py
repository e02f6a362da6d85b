"""Scheduler: creates due jobs once per period and advances open jobs within a budget."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import List, Optional, Sequence

from core import ADVANCEABLE_STATUSES, JobStatus
from deep_dive import DeepDiveOrchestrator, DeepDiveServices
from utils.exceptions import DuplicateJobError
from utils.logger import hash_user_id, log_daily_tick
from utils.periods import day_of_week_code, week_start
from utils.timing import TimeBudget


logger = logging.getLogger(__name__)


class DeepDiveScheduler:
    """``run_once(now)`` creates jobs; ``advance(max_jobs, max_duration)`` steps them."""

    def __init__(self, services: DeepDiveServices, orchestrator: Optional[DeepDiveOrchestrator] = None):
        self.services = services
        self.orchestrator = orchestrator or DeepDiveOrchestrator(services)

    def select_topic(self, user_id: str, topic_ids: Sequence[str]) -> Optional[str]:
        """First topic absent from the user's most recent jobs, else the least recently used."""
        if not topic_ids:
            return None
        if len(topic_ids) == 1:
            return topic_ids[0]

        wanted = set(topic_ids)
        recent = [job for job in self.services.store.list_user_jobs(user_id) if job.topic_id in wanted]
        recent = recent[: len(topic_ids)]
        used = {job.topic_id for job in recent}
        for topic_id in topic_ids:
            if topic_id not in used:
                return topic_id
        return recent[-1].topic_id if recent else topic_ids[0]

    def run_once(self, now: Optional[datetime] = None) -> int:
        """Create at most one job per due user for the current period; returns jobs created."""
        services = self.services
        now = now or services.now()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        created = 0
        for config in services.directory.enabled_configs():
            if not config.topic_ids:
                continue
            user = services.directory.get_user(config.user_id)
            tz_name = user.timezone if user else "UTC"
            if day_of_week_code(now, tz_name) != config.day_of_week:
                continue

            period = week_start(now, tz_name)
            if services.store.find_job(config.user_id, period) is not None:
                continue
            topic_id = self.select_topic(config.user_id, config.topic_ids)
            if not topic_id:
                continue

            try:
                services.store.create_job(config.user_id, period, topic_id, now=now)
            except DuplicateJobError:
                continue
            created += 1
            log_daily_tick(
                "schedule_deep_dive",
                user=hash_user_id(config.user_id),
                topic=topic_id,
                period=period.isoformat(),
            )

        return created

    def per_job_budget(self, remaining: float) -> float:
        settings = self.services.settings
        return max(settings.per_job_floor, min(remaining - settings.per_job_reserve, settings.per_job_ceiling))

    async def advance(self, max_jobs: int, max_duration: float, *, budget: Optional[TimeBudget] = None) -> int:
        """
        Step up to ``max_jobs`` open jobs once each, partial first then oldest.

        Partial jobs that already have a report are skipped. ``budget`` lets a
        caller share an already-running tick budget.
        """
        services = self.services
        budget = budget or TimeBudget(max_duration=float(max_duration), clock=services.clock)

        candidates = services.store.list_jobs(ADVANCEABLE_STATUSES)
        jobs: List = []
        for job in candidates:
            if job.status == JobStatus.PARTIAL and services.store.get_report(job.id) is not None:
                continue
            jobs.append(job)
            if len(jobs) >= max(0, int(max_jobs)):
                break

        if not jobs:
            return 0

        advanced = 0
        for job in jobs:
            if not budget.allows(services.settings.advance_buffer):
                log_daily_tick(
                    "advance_deep_dives",
                    message="Time budget exhausted",
                    advanced=advanced,
                    remaining=len(jobs) - advanced,
                )
                break

            try:
                await self.orchestrator.step(job.id, self.per_job_budget(budget.remaining()))
                advanced += 1
            except Exception as e:
                logger.exception(f"Step failed outside stage handling for job {job.id}")
                log_daily_tick("advance_deep_dives", level=logging.ERROR, job_id=job.id, error=str(e))

        log_daily_tick("advance_deep_dives", jobs_found=len(jobs), advanced=advanced)
        return advanced
