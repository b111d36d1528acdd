"""
Refund Allocation

WHY: A refund is recorded against a whole bill, but reports are read per
sale mode. Each refund has to be split so that the part belonging to the
active mode, and only that part, reduces revenue and COGS.

ALLOCATION RULES:
- Refund with item lines: each line is matched to a line of the original
  order (product id first, then case-insensitive name). A matched line in the
  active mode contributes qty x rate. Unmatched lines contribute nothing.
- Refund without item lines: aggregate amount x proportional factor of the
  original order.
- Original order not found: nothing is allocated.
- Refunded COGS uses the ORIGINAL line's per-unit cost, not current cost.

Every view (period totals, buckets, hourly drill-down, payment channels)
reads the allocations produced here; none of them re-derives a refund.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Mapping, Optional

from posfin.coercion import first_field, first_positive, normalize_id, to_number
from posfin.services.date_range_service import DateRange
from posfin.services.order_service import (
    is_deleted,
    item_in_mode,
    item_name,
    item_product_id,
    item_unit_cost,
    order_date,
    order_items,
    proportional_factor,
)
from posfin.time_utils import EPOCH, first_datetime


ALLOCATION_ITEMS = "items"
ALLOCATION_PROPORTIONAL = "proportional"
ALLOCATION_UNRESOLVED = "unresolved"


# =============================================================================
# REFUND FIELDS
# =============================================================================

def refund_order_id(refund: Mapping) -> Optional[str]:
    return normalize_id(first_field(refund, "orderId", "order_id"))


def refund_lines(refund: Mapping) -> list[Mapping]:
    lines = refund.get("items")
    if not isinstance(lines, list):
        return []
    return [line for line in lines if isinstance(line, Mapping)]


def refund_line_quantity(line: Mapping) -> float:
    return to_number(first_field(line, "qty", "quantity"), 0.0)


def refund_line_rate(line: Mapping) -> float:
    rate = first_positive(line.get("rate"), line.get("price"), line.get("unitPrice"))
    if rate > 0:
        return rate
    qty = refund_line_quantity(line)
    line_total = first_positive(line.get("lineTotal"), line.get("total"), line.get("amount"))
    return line_total / qty if qty > 0 else 0.0


def refund_aggregate_amount(refund: Mapping) -> float:
    return first_positive(
        refund.get("totalRefundAmount"),
        refund.get("amount"),
        refund.get("refundAmount"),
    )


def refund_effective_date(
    refund: Mapping,
    order: Optional[Mapping],
    tz_name: Optional[str] = None,
) -> datetime:
    """Refund's own date, else the original order's date, else the epoch."""
    own = first_datetime(
        refund.get("refundDate"),
        refund.get("createdAt"),
        refund.get("date"),
        tz_name=tz_name,
    )
    if own is not None:
        return own
    if order is not None:
        fallback = order_date(order, tz_name)
        if fallback is not None:
            return fallback
    return EPOCH


# =============================================================================
# LINE MATCHING
# =============================================================================

def match_by_product_id(line: Mapping, items: Iterable[Mapping]) -> Optional[Mapping]:
    """Exact stage: normalized product identifier equality."""
    line_id = item_product_id(line)
    if not line_id:
        return None
    for item in items:
        if item_product_id(item) == line_id:
            return item
    return None


def match_by_name(line: Mapping, items: Iterable[Mapping]) -> Optional[Mapping]:
    """Fallback stage: trimmed, case-insensitive name equality."""
    line_name = item_name(line)
    if not line_name:
        return None
    for item in items:
        if item_name(item) == line_name:
            return item
    return None


def match_refund_line(line: Mapping, items: list[Mapping]) -> Optional[Mapping]:
    return match_by_product_id(line, items) or match_by_name(line, items)


# =============================================================================
# ALLOCATION
# =============================================================================

@dataclass(frozen=True)
class RefundAllocation:
    """The share of one refund attributed to one sale mode."""
    source: Mapping = field(repr=False)
    refund_id: Optional[str]
    order: Optional[Mapping] = field(repr=False)
    effective_date: datetime
    sale_mode: str
    method: str
    amount: float
    refunded_cost: float
    matched_lines: int = 0

    @property
    def order_payment_method(self) -> str:
        if self.order is None:
            return ""
        return str(self.order.get("paymentMethod") or "").strip().lower()


def allocate_refund(
    refund: Mapping,
    order: Optional[Mapping],
    sale_mode: str,
    *,
    tz_name: Optional[str] = None,
) -> RefundAllocation:
    refund_id = normalize_id(first_field(refund, "_id", "id"))
    effective_date = refund_effective_date(refund, order, tz_name)

    if order is None:
        return RefundAllocation(
            source=refund,
            refund_id=refund_id,
            order=None,
            effective_date=effective_date,
            sale_mode=sale_mode,
            method=ALLOCATION_UNRESOLVED,
            amount=0.0,
            refunded_cost=0.0,
        )

    items = order_items(order)
    lines = refund_lines(refund)

    if lines:
        amount = 0.0
        refunded_cost = 0.0
        matched = 0
        for line in lines:
            original = match_refund_line(line, items)
            if original is None or not item_in_mode(original, sale_mode):
                continue
            qty = refund_line_quantity(line)
            amount += qty * refund_line_rate(line)
            refunded_cost += qty * item_unit_cost(original)
            matched += 1
        return RefundAllocation(
            source=refund,
            refund_id=refund_id,
            order=order,
            effective_date=effective_date,
            sale_mode=sale_mode,
            method=ALLOCATION_ITEMS,
            amount=amount,
            refunded_cost=refunded_cost,
            matched_lines=matched,
        )

    return RefundAllocation(
        source=refund,
        refund_id=refund_id,
        order=order,
        effective_date=effective_date,
        sale_mode=sale_mode,
        method=ALLOCATION_PROPORTIONAL,
        amount=refund_aggregate_amount(refund) * proportional_factor(items, sale_mode),
        refunded_cost=0.0,
    )


def allocate_refunds(
    refunds: Iterable[Mapping],
    order_index: Mapping[str, Mapping],
    date_range: DateRange,
    sale_mode: str,
    *,
    tz_name: Optional[str] = None,
) -> list[RefundAllocation]:
    """Allocations for every non-deleted refund whose effective date is in range."""
    allocations = []
    for refund in refunds:
        if not isinstance(refund, Mapping) or is_deleted(refund):
            continue
        order_id = refund_order_id(refund)
        order = order_index.get(order_id) if order_id else None
        allocation = allocate_refund(refund, order, sale_mode, tz_name=tz_name)
        if date_range.contains(allocation.effective_date):
            allocations.append(allocation)
    return allocations
