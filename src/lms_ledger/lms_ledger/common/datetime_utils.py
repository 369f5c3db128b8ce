from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Union


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def coerce_date(value: Union[str, date, datetime]) -> date:
    """Calendar date of a YYYY-MM-DD string, date or datetime (taken in UTC)."""
    if isinstance(value, datetime):
        return as_utc(value).date()
    if isinstance(value, date):
        return value
    return parse_iso_date(str(value).strip()[:10])


def now_utc() -> datetime:
    """Current time, timezone-aware UTC.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC (the database stores UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_midnight(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        value = as_utc(value).date()
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def whole_days_since(day: date, now: datetime) -> int:
    """Whole days elapsed from `day` at UTC midnight until `now` (floored, may be negative)."""
    delta = as_utc(now) - utc_midnight(day)
    return delta // timedelta(days=1)


def previous_day(now: datetime) -> date:
    """Yesterday relative to the wall clock of `now`."""
    return now.date() - timedelta(days=1)


def weekday_index(day: date) -> int:
    """Weekday with 0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7
