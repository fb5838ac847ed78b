"""
Reference time zone helpers

Every calendar-day decision in the engine (streak days, challenge days,
adherence windows) is made in one configured reference zone, never in the
host's local time.

RULES:
- Naive datetimes are assumed to already be in UTC
- Days are `date` objects in the reference zone
- Day windows are half-open [start, end) aware datetimes
"""

import logging
from datetime import datetime, date, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from personalfit import config

logger = logging.getLogger(__name__)


def reference_zone(tz_name: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(tz_name or config.REFERENCE_TIMEZONE)


def now_utc() -> datetime:
    """Current timezone-aware UTC datetime"""
    return datetime.now(timezone.utc)


def to_reference(dt: datetime, tz_name: Optional[str] = None) -> datetime:
    """Convert a datetime to the reference zone (naive input is treated as UTC)"""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(reference_zone(tz_name))


def to_reference_date(dt: datetime, tz_name: Optional[str] = None) -> date:
    """Calendar day of `dt` in the reference zone"""
    return to_reference(dt, tz_name).date()


def today_reference(tz_name: Optional[str] = None) -> date:
    return to_reference_date(now_utc(), tz_name)


def day_bounds(day: date, tz_name: Optional[str] = None) -> Tuple[datetime, datetime]:
    """
    [start, end) of a reference-zone calendar day as aware datetimes

    Example:
        >>> day_bounds(date(2024, 3, 10), "UTC")
        (datetime(2024, 3, 10, 0, 0, tzinfo=...), datetime(2024, 3, 11, 0, 0, tzinfo=...))
    """
    tz = reference_zone(tz_name)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start, end


def trailing_days(today: date, days: int) -> list[date]:
    """The `days` calendar days ending with `today`, oldest first"""
    return [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
