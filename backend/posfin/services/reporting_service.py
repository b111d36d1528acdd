# Overview: Builds the metrics, series, payment and export bundles from one record snapshot.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from functools import cached_property
from typing import Any, Iterable, Mapping, Optional

from posfin.services.date_range_service import DateRange, get_date_range
from posfin.services.ledger_service import PARTY_CUSTOMER, PARTY_SUPPLIER, summarize_ledger
from posfin.services.order_service import (
    DEFAULT_DELIVERY_TOLERANCE,
    SALE_MODES,
    build_order_index,
    normalize_orders,
    normalize_pending_orders,
)
from posfin.services.payment_service import aggregate_payment_methods
from posfin.services.profit_service import (
    calculate_profit,
    completed_purchase_order_total,
    expenses_in_range,
    pending_summary,
    purchase_order_status_summary,
    purchase_orders_in_range,
)
from posfin.services.refund_service import allocate_refunds
from posfin.services.series_service import (
    DEFAULT_DAILY_MAX_DAYS,
    build_hourly_series,
    build_time_series,
)
from posfin.services.tenant_service import collect_seller_identifiers, filter_by_seller
from posfin.time_utils import DAY_KEY_FORMAT, coerce_datetime, local_now
from posfin.validation import ReportParams, ValidationError, validate_snapshot


logger = logging.getLogger(__name__)


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def _as_tuple(records: Optional[Iterable[Mapping]]) -> tuple:
    if not records:
        return ()
    return tuple(record for record in records if isinstance(record, Mapping))


@dataclass(frozen=True)
class Snapshot:
    """One internally consistent read of every record store."""
    orders: tuple = ()
    refunds: tuple = ()
    purchase_orders: tuple = ()
    expenses: tuple = ()
    customer_transactions: tuple = ()
    supplier_transactions: tuple = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Snapshot":
        return cls(
            orders=_as_tuple(payload.get("orders")),
            refunds=_as_tuple(payload.get("refunds")),
            purchase_orders=_as_tuple(payload.get("purchase_orders")),
            expenses=_as_tuple(payload.get("expenses")),
            customer_transactions=_as_tuple(payload.get("customer_transactions")),
            supplier_transactions=_as_tuple(payload.get("supplier_transactions")),
        )

    def scoped(self, identifiers: frozenset[str]) -> "Snapshot":
        return Snapshot(
            orders=tuple(filter_by_seller(self.orders, identifiers)),
            refunds=tuple(filter_by_seller(self.refunds, identifiers)),
            purchase_orders=tuple(filter_by_seller(self.purchase_orders, identifiers)),
            expenses=tuple(filter_by_seller(self.expenses, identifiers)),
            customer_transactions=tuple(filter_by_seller(self.customer_transactions, identifiers)),
            supplier_transactions=tuple(filter_by_seller(self.supplier_transactions, identifiers)),
        )


@dataclass(frozen=True)
class EngineSettings:
    tz_name: Optional[str] = None
    max_daily_days: int = DEFAULT_DAILY_MAX_DAYS
    delivery_tolerance: float = DEFAULT_DELIVERY_TOLERANCE
    debt_epsilon: float = 0.05

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "EngineSettings":
        return cls(
            tz_name=config.get("REPORT_TIMEZONE"),
            max_daily_days=int(config.get("DAILY_BUCKET_MAX_DAYS", DEFAULT_DAILY_MAX_DAYS)),
            delivery_tolerance=float(config.get("DELIVERY_INFERENCE_TOLERANCE", DEFAULT_DELIVERY_TOLERANCE)),
            debt_epsilon=float(config.get("DEBT_EPSILON", 0.05)),
        )


class ReportContext:
    """
    Everything derived for one (range, sale mode) over a scoped snapshot.

    Each derived collection is computed once; every view reads the same
    normalized orders and the same refund allocations.
    """

    def __init__(
        self,
        snapshot: Snapshot,
        date_range: DateRange,
        sale_mode: str,
        settings: EngineSettings,
    ):
        self.snapshot = snapshot
        self.date_range = date_range
        self.sale_mode = sale_mode
        self.settings = settings

    @cached_property
    def order_index(self) -> dict:
        return build_order_index(self.snapshot.orders)

    @cached_property
    def orders(self) -> list:
        normalized = normalize_orders(
            self.snapshot.orders,
            self.date_range,
            self.sale_mode,
            tz_name=self.settings.tz_name,
            delivery_tolerance=self.settings.delivery_tolerance,
        )
        logger.debug(
            "Normalized %d of %d orders for sale mode %s",
            len(normalized),
            len(self.snapshot.orders),
            self.sale_mode,
        )
        return normalized

    @cached_property
    def pending_orders(self) -> list:
        return normalize_pending_orders(
            self.snapshot.orders,
            self.date_range,
            self.sale_mode,
            tz_name=self.settings.tz_name,
            delivery_tolerance=self.settings.delivery_tolerance,
        )

    @cached_property
    def refund_allocations(self) -> list:
        return allocate_refunds(
            self.snapshot.refunds,
            self.order_index,
            self.date_range,
            self.sale_mode,
            tz_name=self.settings.tz_name,
        )

    @cached_property
    def expenses(self) -> list:
        return expenses_in_range(self.snapshot.expenses, self.date_range, tz_name=self.settings.tz_name)

    @cached_property
    def purchase_orders(self) -> list:
        return purchase_orders_in_range(
            self.snapshot.purchase_orders,
            self.date_range,
            tz_name=self.settings.tz_name,
        )

    @cached_property
    def profit(self):
        return calculate_profit(
            orders=self.orders,
            allocations=self.refund_allocations,
            petty_expenses=sum(expense.amount for expense in self.expenses),
            purchase_order_total=completed_purchase_order_total(self.purchase_orders),
            sale_mode=self.sale_mode,
        )


@dataclass
class FinancialReportEngine:
    """
    Entry point over one snapshot. Contexts are memoized per resolved range
    and sale mode, so switching back and forth never recomputes.
    """
    snapshot: Snapshot
    seller_ids: frozenset = frozenset()
    now: Optional[datetime] = None
    settings: EngineSettings = field(default_factory=EngineSettings)
    _contexts: dict = field(default_factory=dict, init=False, repr=False)

    @cached_property
    def scoped_snapshot(self) -> Snapshot:
        return self.snapshot.scoped(self.seller_ids)

    def resolve_range(
        self,
        time_range: Optional[str],
        custom_start: date | None = None,
        custom_end: date | None = None,
    ) -> DateRange:
        if self.now is None:
            raise ReportError("A reference time is required to resolve the date range")
        return get_date_range(time_range, now=self.now, custom_start=custom_start, custom_end=custom_end)

    def context(
        self,
        *,
        time_range: Optional[str],
        sale_mode: str,
        custom_start: date | None = None,
        custom_end: date | None = None,
    ) -> ReportContext:
        if sale_mode not in SALE_MODES:
            raise ReportError(f"Unknown sale mode: {sale_mode}")
        date_range = self.resolve_range(time_range, custom_start, custom_end)
        key = (date_range, sale_mode)
        if key not in self._contexts:
            self._contexts[key] = ReportContext(self.scoped_snapshot, date_range, sale_mode, self.settings)
        return self._contexts[key]


# =============================================================================
# BUNDLES
# =============================================================================

def financial_summary(engine: FinancialReportEngine, ctx: ReportContext) -> dict:
    """Headline metrics bundle for one context."""
    receivables = summarize_ledger(
        engine.scoped_snapshot.customer_transactions,
        PARTY_CUSTOMER,
        epsilon=engine.settings.debt_epsilon,
    )
    payables = summarize_ledger(
        engine.scoped_snapshot.supplier_transactions,
        PARTY_SUPPLIER,
        epsilon=engine.settings.debt_epsilon,
    )
    profit = ctx.profit

    return {
        "range": ctx.date_range.to_dict(),
        "sale_mode": ctx.sale_mode,
        "order_count": len(ctx.orders),
        "total_revenue": profit.net_revenue,
        **profit.to_dict(),
        "total_receivables": receivables.outstanding,
        "customers_with_debt": receivables.parties_with_balance,
        "total_payables": payables.outstanding,
        "suppliers_owed": payables.parties_with_balance,
        "pending_orders": pending_summary(ctx.pending_orders),
        "purchase_orders": purchase_order_status_summary(ctx.purchase_orders),
    }


def time_series(ctx: ReportContext) -> dict:
    series = build_time_series(
        ctx.date_range,
        orders=ctx.orders,
        allocations=ctx.refund_allocations,
        expenses=ctx.expenses,
        max_daily_days=ctx.settings.max_daily_days,
    )
    return {"range": ctx.date_range.to_dict(), "sale_mode": ctx.sale_mode, **series.to_dict()}


def hourly_series(ctx: ReportContext, day: Optional[str]) -> dict:
    if not day:
        raise ReportError("day is required")
    try:
        datetime.strptime(day, DAY_KEY_FORMAT)
    except ValueError:
        raise ReportError("day must be formatted YYYY-MM-DD")

    series = build_hourly_series(
        day,
        ctx.date_range,
        orders=ctx.orders,
        allocations=ctx.refund_allocations,
        expenses=ctx.expenses,
    )
    return {"day": day, "sale_mode": ctx.sale_mode, **series.to_dict()}


def payment_methods(ctx: ReportContext) -> dict:
    breakdown = aggregate_payment_methods(ctx.orders, ctx.refund_allocations)
    return {"range": ctx.date_range.to_dict(), "sale_mode": ctx.sale_mode, **breakdown.to_dict()}


EXPORT_ROWS = (
    ("Total Revenue", "total_revenue"),
    ("Gross Sales", "gross_sales"),
    ("Total Refunds", "total_refunds"),
    ("Delivery Charges", "delivery_charges"),
    ("Gross COGS", "gross_cogs"),
    ("Net COGS", "net_cogs"),
    ("Gross Profit", "gross_profit"),
    ("Petty Expenses", "petty_expenses"),
    ("Net Profit", "net_profit"),
    ("Profit Margin (%)", "profit_margin"),
    ("Purchase Orders", "purchase_order_total"),
    ("Business Outflow", "business_outflow"),
    ("Total Receivables", "total_receivables"),
    ("Customers With Debt", "customers_with_debt"),
    ("Total Payables", "total_payables"),
)


def export_rows(summary: Mapping[str, Any]) -> list[dict]:
    """Label/value pairs for an external CSV/JSON/PDF writer; no formatting applied."""
    rows = [{"label": label, "value": summary.get(key, 0)} for label, key in EXPORT_ROWS]
    pending = summary.get("pending_orders") or {}
    rows.extend(
        [
            {"label": "Pending Orders Sales", "value": pending.get("sales", 0)},
            {"label": "Pending Orders Profit", "value": pending.get("profit", 0)},
            {"label": "Pending Orders Delivery", "value": pending.get("delivery", 0)},
        ]
    )
    return rows


# =============================================================================
# REQUEST PLUMBING
# =============================================================================

def build_engine(payload: Mapping[str, Any], config: Mapping[str, Any]) -> FinancialReportEngine:
    """
    Engine for an HTTP/CLI payload: validated snapshot, seller identifiers
    and the reference time ("now" from the payload, else the clock).
    """
    snapshot = Snapshot.from_payload(validate_snapshot(payload))
    settings = EngineSettings.from_config(config)

    state = payload.get("state") if isinstance(payload.get("state"), Mapping) else {}
    extra_ids = payload.get("seller_ids")
    seller_ids = collect_seller_identifiers(
        auth_seller_id=payload.get("seller_id"),
        current_user=payload.get("current_user"),
        state_seller_id=state.get("sellerId"),
        state_store_id=state.get("storeId"),
        extra=extra_ids if isinstance(extra_ids, list) else (),
    )

    now = None
    if payload.get("now") is not None:
        now = coerce_datetime(payload.get("now"), settings.tz_name)
        if now is None:
            raise ValidationError("now must be an ISO-8601 datetime")
    if now is None:
        now = local_now(settings.tz_name)

    return FinancialReportEngine(snapshot=snapshot, seller_ids=seller_ids, now=now, settings=settings)


def context_for(engine: FinancialReportEngine, params: ReportParams) -> ReportContext:
    return engine.context(
        time_range=params.time_range,
        sale_mode=params.sale_mode,
        custom_start=params.custom_start,
        custom_end=params.custom_end,
    )
