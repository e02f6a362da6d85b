"""CLI entrypoint for deep dive scheduling, advancement and inspection."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import asdict
from datetime import date, datetime, timezone
import json
from typing import Optional

from config import get_settings
from deep_dive import DeepDiveOrchestrator, build_services
from orchestrator import DeepDiveScheduler, daily_tick
from utils.exceptions import DuplicateJobError
from utils.logger import setup_logger


def _parse_now(text: str) -> Optional[datetime]:
    raw = str(text or "").strip()
    if not raw:
        return None
    return datetime.fromisoformat(raw.replace("Z", "+00:00")).astimezone(timezone.utc)


def _print(payload) -> None:
    print(json.dumps(payload, ensure_ascii=False, default=str))


async def _run_and_close(services, awaitable):
    try:
        return await awaitable
    finally:
        await services.aclose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Deep dive research job CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    tick = sub.add_parser("tick")
    tick.add_argument("--now-utc", default="")

    schedule = sub.add_parser("schedule")
    schedule.add_argument("--now-utc", default="")

    advance = sub.add_parser("advance")
    advance.add_argument("--max-jobs", type=int, default=None)
    advance.add_argument("--max-duration", type=float, default=None)

    step = sub.add_parser("step")
    step.add_argument("--job-id", required=True)
    step.add_argument("--max-duration", type=float, default=45.0)

    status = sub.add_parser("status")
    status.add_argument("--job-id", required=True)

    create = sub.add_parser("create-job")
    create.add_argument("--user-id", required=True)
    create.add_argument("--topic-id", required=True)
    create.add_argument("--period", default="", help="ISO date of the period start (defaults to today)")

    args = parser.parse_args()
    setup_logger(name="")
    settings = get_settings()
    services = build_services(settings)

    if args.command == "tick":
        result = asyncio.run(
            _run_and_close(
                services,
                daily_tick(services, enabled=settings.flags.deep_research_enabled, now=_parse_now(args.now_utc)),
            )
        )
        _print(asdict(result))
        return

    if args.command == "schedule":
        created = DeepDiveScheduler(services).run_once(_parse_now(args.now_utc))
        _print({"jobs_created": created})
        return

    if args.command == "advance":
        scheduler = DeepDiveScheduler(services)
        advanced = asyncio.run(
            _run_and_close(
                services,
                scheduler.advance(
                    args.max_jobs if args.max_jobs is not None else settings.deep_dive.max_jobs_per_tick,
                    args.max_duration if args.max_duration is not None else settings.deep_dive.tick_max_duration,
                ),
            )
        )
        _print({"jobs_advanced": advanced})
        return

    if args.command == "step":
        job_status = asyncio.run(
            _run_and_close(services, DeepDiveOrchestrator(services).step(args.job_id, args.max_duration))
        )
        _print({"job_id": args.job_id, "status": job_status.value if job_status else None})
        return

    if args.command == "status":
        result = services.store.get_job_result(args.job_id)
        _print(result.model_dump(mode="json") if result else {"job_id": args.job_id, "found": False})
        return

    if args.command == "create-job":
        period = date.fromisoformat(args.period) if str(args.period).strip() else datetime.now(timezone.utc).date()
        try:
            job = services.store.create_job(args.user_id, period, args.topic_id)
        except DuplicateJobError as e:
            _print({"created": False, "error": e.message, "period": e.period})
            return
        _print({"created": True, "job_id": job.id, "period": job.period.isoformat()})


if __name__ == "__main__":
    main()
