# Overview: Resolves time-range selectors into inclusive [start, end] local datetimes.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from posfin.time_utils import EPOCH, add_years, end_of_day, start_of_day, to_iso


TIME_RANGE_TODAY = "today"
TIME_RANGE_7D = "7d"
TIME_RANGE_30D = "30d"
TIME_RANGE_90D = "90d"
TIME_RANGE_1Y = "1y"
TIME_RANGE_ALL = "all"
TIME_RANGE_CUSTOM = "custom"

TIME_RANGES = (
    TIME_RANGE_TODAY,
    TIME_RANGE_7D,
    TIME_RANGE_30D,
    TIME_RANGE_90D,
    TIME_RANGE_1Y,
    TIME_RANGE_ALL,
    TIME_RANGE_CUSTOM,
)

_RELATIVE_DAYS = {
    TIME_RANGE_7D: 7,
    TIME_RANGE_30D: 30,
    TIME_RANGE_90D: 90,
}


@dataclass(frozen=True)
class DateRange:
    """Inclusive local-naive bounds. Either bound missing means the range is unusable."""
    start: Optional[datetime]
    end: Optional[datetime]

    @property
    def is_valid(self) -> bool:
        return self.start is not None and self.end is not None

    def contains(self, dt: Optional[datetime]) -> bool:
        if dt is None or not self.is_valid:
            return False
        return self.start <= dt <= self.end

    def to_dict(self) -> dict:
        return {"start": to_iso(self.start), "end": to_iso(self.end)}


INVALID_RANGE = DateRange(None, None)


def _as_datetime(value: date | datetime | None) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day)


def get_date_range(
    time_range: Optional[str],
    *,
    now: datetime,
    custom_start: date | datetime | None = None,
    custom_end: date | datetime | None = None,
) -> DateRange:
    """
    Map a selector to an inclusive [start, end] pair.

    Relative windows start at local midnight N days (or one year) before
    today and end at the last millisecond of today, so the result only
    depends on the calendar day of `now`. Unknown selectors resolve as today.
    A custom range with a missing bound resolves to INVALID_RANGE.
    """
    today_start = start_of_day(now)
    today_end = end_of_day(now)
    selector = (time_range or TIME_RANGE_TODAY).strip().lower()

    if selector in _RELATIVE_DAYS:
        return DateRange(today_start - timedelta(days=_RELATIVE_DAYS[selector]), today_end)

    if selector == TIME_RANGE_1Y:
        return DateRange(add_years(today_start, -1), today_end)

    if selector == TIME_RANGE_ALL:
        return DateRange(EPOCH, today_end)

    if selector == TIME_RANGE_CUSTOM:
        start = _as_datetime(custom_start)
        end = _as_datetime(custom_end)
        if start is None or end is None:
            return INVALID_RANGE
        return DateRange(start_of_day(start), end_of_day(end))

    return DateRange(today_start, today_end)
