"""
Date/Time Handling Utilities

All progress data is stored and bucketed in UTC:
- XP transactions, summaries and task completions carry aware UTC datetimes
- Day boundaries (daily summaries, completion checks) are UTC midnights
- Naive datetimes coming from callers are assumed to already be UTC
"""

import logging
from datetime import datetime, date, time, timedelta, timezone

logger = logging.getLogger(__name__)


def now_utc() -> datetime:
    """Current datetime in UTC (timezone-aware)"""
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert datetime to aware UTC

    Naive datetimes are taken to be UTC already.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_day(value) -> date:
    """UTC calendar day of a datetime (dates pass through)"""
    if isinstance(value, datetime):
        return to_utc(value).date()
    return value


def day_start_utc(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def day_key(value) -> str:
    """YYYY-MM-DD key of the UTC day"""
    return utc_day(value).isoformat()


def sunday_based_weekday(day: date) -> int:
    """Weekday index with 0 = Sunday ... 6 = Saturday"""
    return (day.weekday() + 1) % 7


def week_start_sunday(day: date) -> date:
    """Sunday that starts the week containing `day`"""
    return day - timedelta(days=sunday_based_weekday(day))


def iter_days(start: date, end: date):
    """Every calendar day from start to end inclusive"""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
