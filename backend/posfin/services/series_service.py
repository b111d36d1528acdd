# Overview: Daily, monthly and hourly revenue/expense series over a resolved range.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from posfin.services.date_range_service import DateRange
from posfin.services.order_service import NormalizedOrder
from posfin.services.profit_service import ExpenseEntry
from posfin.services.refund_service import RefundAllocation
from posfin.time_utils import (
    EPOCH,
    day_key,
    first_of_next_month,
    month_key,
    start_of_day,
)


GRANULARITY_DAY = "day"
GRANULARITY_MONTH = "month"
GRANULARITY_HOUR = "hour"

DEFAULT_DAILY_MAX_DAYS = 60


@dataclass
class TimeSeries:
    granularity: str
    keys: list = field(default_factory=list)
    labels: list = field(default_factory=list)
    revenue: list = field(default_factory=list)
    expense: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "granularity": self.granularity,
            "keys": list(self.keys),
            "labels": list(self.labels),
            "revenue": list(self.revenue),
            "expense": list(self.expense),
        }


def span_days(date_range: DateRange) -> int:
    """Calendar days covered by the range, both ends included."""
    return (date_range.end.date() - date_range.start.date()).days + 1


def choose_granularity(date_range: DateRange, *, max_daily_days: int = DEFAULT_DAILY_MAX_DAYS) -> str:
    if span_days(date_range) <= max_daily_days:
        return GRANULARITY_DAY
    return GRANULARITY_MONTH


def day_keys(start: datetime, end: datetime) -> list[str]:
    keys = []
    cursor = start_of_day(start)
    while cursor <= end:
        keys.append(day_key(cursor))
        cursor += timedelta(days=1)
    return keys


def month_keys(start: datetime, end: datetime) -> list[str]:
    """
    One key per calendar month touched by [start, end].

    The cursor always moves to the first of the next month, so a start on
    the 31st never rolls past a short month.
    """
    keys = []
    cursor = datetime(start.year, start.month, 1)
    while cursor <= end:
        key = month_key(cursor)
        if not keys or keys[-1] != key:
            keys.append(key)
        cursor = first_of_next_month(cursor)
    return keys


def _day_label(key: str) -> str:
    return datetime.strptime(key, "%Y-%m-%d").strftime("%d %b")


def month_labels(keys: list[str]) -> list[str]:
    """Short month names within one year, month and year once the keys span years."""
    months = [datetime.strptime(key, "%Y-%m") for key in keys]
    single_year = len({month.year for month in months}) <= 1
    fmt = "%b" if single_year else "%b %Y"
    return [month.strftime(fmt) for month in months]


def _earliest_activity(
    orders: list[NormalizedOrder],
    allocations: list[RefundAllocation],
    expenses: list[ExpenseEntry],
) -> Optional[datetime]:
    dates = [order.created_at for order in orders]
    # Unresolved or zero refunds and undated fallbacks are not activity
    dates.extend(
        allocation.effective_date
        for allocation in allocations
        if allocation.order is not None and allocation.amount and allocation.effective_date > EPOCH
    )
    dates.extend(expense.date for expense in expenses)
    return min(dates) if dates else None


def _fill(
    series: TimeSeries,
    key_of: Callable[[datetime], Optional[str]],
    orders: list[NormalizedOrder],
    allocations: list[RefundAllocation],
    expenses: list[ExpenseEntry],
) -> TimeSeries:
    slots = {key: index for index, key in enumerate(series.keys)}
    series.revenue = [0.0] * len(series.keys)
    series.expense = [0.0] * len(series.keys)

    for order in orders:
        index = slots.get(key_of(order.created_at))
        if index is not None:
            series.revenue[index] += order.total

    # Keyed by the refund's own effective date, not the order's period
    for allocation in allocations:
        index = slots.get(key_of(allocation.effective_date))
        if index is not None:
            series.revenue[index] -= allocation.amount

    for expense in expenses:
        index = slots.get(key_of(expense.date))
        if index is not None:
            series.expense[index] += expense.amount

    return series


def build_time_series(
    date_range: DateRange,
    *,
    orders: Iterable[NormalizedOrder],
    allocations: Iterable[RefundAllocation],
    expenses: Iterable[ExpenseEntry],
    max_daily_days: int = DEFAULT_DAILY_MAX_DAYS,
) -> TimeSeries:
    """
    Revenue (sales net of refunds) and petty expense per bucket.

    Purchase orders are not expenses here, matching the profit calculation.
    An "all time" range starts at the first activity instead of the epoch.
    """
    orders = list(orders)
    allocations = list(allocations)
    expenses = list(expenses)

    if not date_range.is_valid:
        return TimeSeries(granularity=GRANULARITY_DAY)

    start = date_range.start
    if start == EPOCH:
        earliest = _earliest_activity(orders, allocations, expenses)
        if earliest is not None and earliest > start:
            start = earliest
    window = DateRange(start, date_range.end)

    granularity = choose_granularity(window, max_daily_days=max_daily_days)
    if granularity == GRANULARITY_DAY:
        keys = day_keys(window.start, window.end)
        series = TimeSeries(granularity=granularity, keys=keys, labels=[_day_label(key) for key in keys])
        return _fill(series, day_key, orders, allocations, expenses)

    keys = month_keys(window.start, window.end)
    series = TimeSeries(granularity=granularity, keys=keys, labels=month_labels(keys))
    return _fill(series, month_key, orders, allocations, expenses)


def build_hourly_series(
    day: str,
    date_range: DateRange,
    *,
    orders: Iterable[NormalizedOrder],
    allocations: Iterable[RefundAllocation],
    expenses: Iterable[ExpenseEntry],
) -> TimeSeries:
    """24 one-hour buckets for the calendar day whose day key equals `day`."""
    if not date_range.is_valid:
        return TimeSeries(granularity=GRANULARITY_HOUR)

    keys = [f"{hour:02d}" for hour in range(24)]
    series = TimeSeries(
        granularity=GRANULARITY_HOUR,
        keys=keys,
        labels=[f"{key}:00" for key in keys],
    )

    def hour_key(dt: datetime) -> Optional[str]:
        if day_key(dt) != day:
            return None
        return f"{dt.hour:02d}"

    return _fill(series, hour_key, list(orders), list(allocations), list(expenses))
