# Overview: Pytest coverage for daily, monthly and hourly bucketing.

from datetime import date, datetime

from posfin.services.date_range_service import INVALID_RANGE, DateRange, get_date_range
from posfin.services.order_service import SALE_MODE_NORMAL, build_order_index, normalize_orders
from posfin.services.profit_service import ExpenseEntry
from posfin.services.refund_service import allocate_refunds
from posfin.services.series_service import (
    GRANULARITY_DAY,
    GRANULARITY_HOUR,
    GRANULARITY_MONTH,
    build_hourly_series,
    build_time_series,
    choose_granularity,
    month_keys,
    month_labels,
)


NOW = datetime(2024, 3, 15, 12)


class TestMonthKeys:
    def test_start_on_the_31st_does_not_skip_february(self):
        keys = month_keys(datetime(2024, 1, 31), datetime(2024, 3, 1))
        assert keys == ["2024-01", "2024-02", "2024-03"]

    def test_labels_within_one_year(self):
        assert month_labels(["2024-01", "2024-02", "2024-03"]) == ["Jan", "Feb", "Mar"]

    def test_labels_across_years_carry_the_year(self):
        assert month_labels(["2023-12", "2024-01"]) == ["Dec 2023", "Jan 2024"]


class TestGranularity:
    def test_sixty_days_is_daily(self):
        date_range = get_date_range("custom", now=NOW, custom_start=date(2024, 1, 1), custom_end=date(2024, 2, 29))
        assert choose_granularity(date_range) == GRANULARITY_DAY

    def test_sixty_one_days_is_monthly(self):
        date_range = get_date_range("custom", now=NOW, custom_start=date(2024, 1, 1), custom_end=date(2024, 3, 1))
        assert choose_granularity(date_range) == GRANULARITY_MONTH


class TestBuildTimeSeries:
    def test_daily_buckets_net_refunds_on_their_own_day(self, mixed_order):
        date_range = get_date_range("7d", now=NOW)
        refund = {"orderId": "ord-1", "createdAt": "2024-03-16T09:00:00", "totalRefundAmount": 10}
        wide = DateRange(date_range.start, datetime(2024, 3, 16, 23, 59))
        series = build_time_series(
            wide,
            orders=normalize_orders([mixed_order], wide, SALE_MODE_NORMAL),
            allocations=allocate_refunds([refund], build_order_index([mixed_order]), wide, SALE_MODE_NORMAL),
            expenses=[ExpenseEntry(date=datetime(2024, 3, 15, 9), amount=15)],
        )

        assert series.granularity == GRANULARITY_DAY
        assert series.keys[0] == "2024-03-08"
        assert series.keys[-1] == "2024-03-16"
        assert series.revenue[series.keys.index("2024-03-15")] == 59
        assert series.revenue[series.keys.index("2024-03-16")] == -5
        assert series.expense[series.keys.index("2024-03-15")] == 15
        assert series.labels[series.keys.index("2024-03-15")] == "15 Mar"

    def test_all_time_starts_at_first_activity(self, mixed_order):
        mixed_order["createdAt"] = "2024-01-20T10:00:00"
        date_range = get_date_range("all", now=NOW)
        series = build_time_series(
            date_range,
            orders=normalize_orders([mixed_order], date_range, SALE_MODE_NORMAL),
            allocations=[],
            expenses=[],
        )

        assert series.granularity == GRANULARITY_DAY
        assert series.keys[0] == "2024-01-20"
        assert series.revenue[0] == 59

    def test_unresolved_undated_refund_does_not_stretch_all_time(self, mixed_order):
        mixed_order["createdAt"] = "2024-03-10T10:00:00"
        date_range = get_date_range("all", now=NOW)
        orphan = {"orderId": "missing-order", "totalRefundAmount": 25}
        allocations = allocate_refunds([orphan], build_order_index([mixed_order]), date_range, SALE_MODE_NORMAL)
        assert allocations[0].effective_date == datetime(1970, 1, 1)

        series = build_time_series(
            date_range,
            orders=normalize_orders([mixed_order], date_range, SALE_MODE_NORMAL),
            allocations=allocations,
            expenses=[],
        )

        assert series.granularity == GRANULARITY_DAY
        assert series.keys[0] == "2024-03-10"
        assert series.revenue[0] == 59

    def test_long_ranges_are_monthly(self, mixed_order):
        date_range = get_date_range("1y", now=NOW)
        series = build_time_series(
            date_range,
            orders=normalize_orders([mixed_order], date_range, SALE_MODE_NORMAL),
            allocations=[],
            expenses=[],
        )

        assert series.granularity == GRANULARITY_MONTH
        assert series.keys[0] == "2023-03"
        assert series.keys[-1] == "2024-03"
        assert series.labels[0] == "Mar 2023"
        assert series.revenue[-1] == 59

    def test_invalid_range_yields_empty_series(self):
        series = build_time_series(INVALID_RANGE, orders=[], allocations=[], expenses=[])
        assert series.keys == []
        assert series.revenue == []


class TestHourlySeries:
    def test_twenty_four_buckets_for_one_day(self, mixed_order):
        date_range = get_date_range("today", now=NOW)
        series = build_hourly_series(
            "2024-03-15",
            date_range,
            orders=normalize_orders([mixed_order], date_range, SALE_MODE_NORMAL),
            allocations=[],
            expenses=[ExpenseEntry(date=datetime(2024, 3, 15, 9, 30), amount=15)],
        )

        assert series.granularity == GRANULARITY_HOUR
        assert len(series.keys) == 24
        assert series.labels[10] == "10:00"
        assert series.revenue[10] == 59
        assert series.expense[9] == 15
        assert sum(series.revenue) == 59

    def test_other_days_are_ignored(self, mixed_order):
        date_range = get_date_range("7d", now=NOW)
        series = build_hourly_series(
            "2024-03-14",
            date_range,
            orders=normalize_orders([mixed_order], date_range, SALE_MODE_NORMAL),
            allocations=[],
            expenses=[],
        )
        assert sum(series.revenue) == 0

    def test_invalid_range_yields_empty_series(self):
        series = build_hourly_series("2024-03-15", INVALID_RANGE, orders=[], allocations=[], expenses=[])
        assert series.keys == []
