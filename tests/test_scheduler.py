from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

import pytest

from core import DeepDiveConfig, JobStatus, Topic, UserProfile
from deep_dive_support import NOW, USER_ID, FakeClock, build_services
from orchestrator import DeepDiveScheduler


class RecordingOrchestrator:
    def __init__(self, clock: Optional[FakeClock] = None, cost: float = 0.0):
        self.clock = clock
        self.cost = cost
        self.steps: List[tuple] = []

    async def step(self, job_id: str, max_duration: float):
        self.steps.append((job_id, max_duration))
        if self.clock is not None:
            self.clock.advance(self.cost)
        return None


def _topics():
    return [Topic(id="topic_a", label="Alpha"), Topic(id="topic_b", label="Beta")]


def test_run_once_creates_one_job_per_period() -> None:
    services = build_services(
        topics=_topics(),
        config=DeepDiveConfig(user_id=USER_ID, day_of_week="WE", topic_ids=["topic_a", "topic_b"]),
    )
    scheduler = DeepDiveScheduler(services)

    assert scheduler.run_once(NOW) == 1
    assert scheduler.run_once(NOW) == 0
    assert scheduler.run_once(NOW + timedelta(hours=6)) == 0

    [job] = services.store.list_user_jobs(USER_ID)
    assert job.period == date(2026, 10, 12)
    assert job.status == JobStatus.QUEUED


def test_run_once_respects_day_of_week_in_user_timezone() -> None:
    monday_utc = datetime(2026, 10, 19, 2, 0, tzinfo=timezone.utc)
    services = build_services(
        user=UserProfile(id=USER_ID, email="analyst@example.com", timezone="America/Los_Angeles"),
        config=DeepDiveConfig(user_id=USER_ID, day_of_week="SU", topic_ids=["topic_banking"]),
    )
    scheduler = DeepDiveScheduler(services)

    assert scheduler.run_once(NOW) == 0
    assert scheduler.run_once(monday_utc) == 1
    assert services.store.list_user_jobs(USER_ID)[0].period == date(2026, 10, 12)


def test_run_once_skips_disabled_and_topicless_configs() -> None:
    services = build_services(config=DeepDiveConfig(user_id=USER_ID, enabled=False, day_of_week="WE", topic_ids=["t"]))
    assert DeepDiveScheduler(services).run_once(NOW) == 0

    services = build_services(config=DeepDiveConfig(user_id=USER_ID, day_of_week="WE", topic_ids=[]))
    assert DeepDiveScheduler(services).run_once(NOW) == 0


def test_topics_rotate_least_recently_used() -> None:
    services = build_services(
        topics=_topics(),
        config=DeepDiveConfig(user_id=USER_ID, day_of_week="WE", topic_ids=["topic_a", "topic_b"]),
    )
    scheduler = DeepDiveScheduler(services)

    assert scheduler.select_topic(USER_ID, ["topic_a", "topic_b"]) == "topic_a"
    scheduler.run_once(NOW)
    assert scheduler.select_topic(USER_ID, ["topic_a", "topic_b"]) == "topic_b"
    scheduler.run_once(NOW + timedelta(days=7))
    assert scheduler.select_topic(USER_ID, ["topic_a", "topic_b"]) == "topic_a"

    topics = [job.topic_id for job in reversed(services.store.list_user_jobs(USER_ID))]
    assert topics == ["topic_a", "topic_b"]


def test_per_job_budget_is_clamped() -> None:
    scheduler = DeepDiveScheduler(build_services())

    assert scheduler.per_job_budget(55) == 45
    assert scheduler.per_job_budget(30) == 25
    assert scheduler.per_job_budget(12) == 10


def _seed_jobs(services, count: int):
    jobs = []
    for i in range(count):
        jobs.append(
            services.store.create_job(f"user_{i}", date(2026, 10, 12), "topic_banking", now=NOW + timedelta(minutes=i))
        )
    return jobs


@pytest.mark.asyncio
async def test_advance_orders_partial_first_and_skips_published_partials() -> None:
    services = build_services()
    first, second, third, published, done = _seed_jobs(services, 5)
    services.store.update_job(third.id, status=JobStatus.PARTIAL)
    services.store.update_job(published.id, status=JobStatus.PARTIAL)
    services.store.create_report(published.id, subject="s", markdown="# m", html="")
    services.store.update_job(done.id, status=JobStatus.COMPLETE)
    recorder = RecordingOrchestrator()

    advanced = await DeepDiveScheduler(services, orchestrator=recorder).advance(max_jobs=3, max_duration=55)

    assert advanced == 3
    assert [job_id for job_id, _ in recorder.steps] == [third.id, first.id, second.id]


@pytest.mark.asyncio
async def test_advance_stops_when_budget_runs_out() -> None:
    clock = FakeClock()
    services = build_services(clock=clock)
    _seed_jobs(services, 4)
    recorder = RecordingOrchestrator(clock=clock, cost=20)

    advanced = await DeepDiveScheduler(services, orchestrator=recorder).advance(max_jobs=4, max_duration=55)

    assert advanced == 3
    assert [budget for _, budget in recorder.steps] == [45, 30, 10]


@pytest.mark.asyncio
async def test_advance_without_open_jobs() -> None:
    services = build_services()

    assert await DeepDiveScheduler(services, orchestrator=RecordingOrchestrator()).advance(3, 55) == 0
