"""Calendar period helpers evaluated in a user's local timezone."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.records import DAY_CODES


def _zone(tz_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(str(tz_name or "UTC"))
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def local_date(now: datetime, tz_name: str) -> date:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(_zone(tz_name)).date()


def day_of_week_code(now: datetime, tz_name: str) -> str:
    """Two-letter weekday code (``MO`` .. ``SU``) of ``now`` in the given timezone."""
    return DAY_CODES[local_date(now, tz_name).weekday()]


def week_start(now: datetime, tz_name: str) -> date:
    """Monday of the week containing ``now`` in the given timezone."""
    today = local_date(now, tz_name)
    return today - timedelta(days=today.weekday())
