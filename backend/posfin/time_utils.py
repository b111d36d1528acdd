from __future__ import annotations

from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


EPOCH = datetime(1970, 1, 1)

DAY_KEY_FORMAT = "%Y-%m-%d"
MONTH_KEY_FORMAT = "%Y-%m"


def get_zone(tz_name: Optional[str]) -> tzinfo:
    """Resolve a zone name, treating empty/unknown names as UTC."""
    if not tz_name or tz_name.upper() in ("UTC", "Z"):
        return timezone.utc
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def local_now(tz_name: Optional[str] = None) -> datetime:
    """Wall-clock 'now' in the report zone (naive, canonical)."""
    return datetime.now(get_zone(tz_name)).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str], tz_name: Optional[str] = None) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to a local-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" and "YYYY-MM-DDTHH:MM" (naive) are interpreted as local
    - "...Z" or "...+/-HH:MM" is converted to the report zone and tzinfo is stripped

    Raises ValueError for text that is not ISO-8601.
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt

    return dt.astimezone(get_zone(tz_name)).replace(tzinfo=None)


def coerce_datetime(value: Any, tz_name: Optional[str] = None) -> Optional[datetime]:
    """
    Lenient timestamp reader for snapshot records.

    Accepts datetimes, dates, epoch milliseconds and ISO strings. Anything
    unreadable yields None so the caller can drop the record.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value
        return value.astimezone(get_zone(tz_name)).replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)):
        try:
            dt = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
        return dt.astimezone(get_zone(tz_name)).replace(tzinfo=None)
    if isinstance(value, str):
        try:
            return parse_iso_datetime(value, tz_name)
        except ValueError:
            return None
    return None


def first_datetime(*values: Any, tz_name: Optional[str] = None) -> Optional[datetime]:
    """First readable timestamp among candidate fields."""
    for value in values:
        dt = coerce_datetime(value, tz_name)
        if dt is not None:
            return dt
    return None


def start_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=23, minute=59, second=59, microsecond=999000)


def add_years(dt: datetime, years: int) -> datetime:
    """Shift by whole years, clamping Feb 29 to Feb 28."""
    try:
        return dt.replace(year=dt.year + years)
    except ValueError:
        return dt.replace(year=dt.year + years, day=28)


def first_of_next_month(dt: datetime) -> datetime:
    if dt.month == 12:
        return datetime(dt.year + 1, 1, 1)
    return datetime(dt.year, dt.month + 1, 1)


def day_key(dt: datetime) -> str:
    return dt.strftime(DAY_KEY_FORMAT)


def month_key(dt: datetime) -> str:
    return dt.strftime(MONTH_KEY_FORMAT)


def days_between(start: datetime, end: datetime) -> float:
    return (end - start) / timedelta(days=1)


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a local-naive datetime with millisecond precision."""
    if dt is None:
        return None
    return dt.isoformat(timespec="milliseconds")
