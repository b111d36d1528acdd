"""
Order Normalization and Sale-Mode Partitioning

WHY: The shop sells two kinds of line items on the same bill: catalog items
and "direct" items (isDProduct) rung up without stock tracking. Reports are
always read for one kind at a time, so every order is re-totalled for the
active sale mode before any metric sees it.

DESIGN PRINCIPLES:
- Source records are never mutated; normalization returns new objects
- Shared charges (delivery, discount) follow the order's proportional factor
- Online orders count only once delivered; pending ones get their own view
- Malformed numbers count as zero, unreadable dates drop the order

PROPORTIONAL FACTOR:
    factor = sum(selling total of active items) / sum(selling total of all items)
    normalized total = factor * declared grand total
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Mapping, Optional

from posfin.coercion import (
    first_field,
    first_positive,
    is_flag_set,
    normalize_id,
    safe_ratio,
    to_number,
)
from posfin.services.date_range_service import DateRange
from posfin.time_utils import first_datetime


SALE_MODE_NORMAL = "normal"
SALE_MODE_DIRECT = "direct"
SALE_MODES = (SALE_MODE_NORMAL, SALE_MODE_DIRECT)

ORDER_SOURCE_ONLINE = "online"
DELIVERY_STATE_DELIVERED = "delivered"
DELIVERY_STATE_CANCELLED = "cancelled"

DEFAULT_DELIVERY_TOLERANCE = 1.0


# =============================================================================
# LINE ITEM FIELDS
# =============================================================================

def item_quantity(item: Mapping) -> float:
    return to_number(first_field(item, "quantity", "qty"), 0.0)


def item_selling_total(item: Mapping) -> float:
    """Line selling value: explicit line total, else unit price x quantity."""
    total = first_positive(
        item.get("totalSellingPrice"),
        item.get("total"),
        item.get("amount"),
        item.get("lineTotal"),
        item.get("subtotal"),
    )
    if total > 0:
        return total
    unit = first_positive(
        item.get("unitSellingPrice"),
        item.get("sellingPrice"),
        item.get("price"),
        item.get("unitPrice"),
    )
    return unit * item_quantity(item)


def item_cost_total(item: Mapping) -> float:
    """Line cost: positive totalCostPrice wins over unit cost x quantity."""
    total = first_positive(item.get("totalCostPrice"))
    if total > 0:
        return total
    unit = first_positive(
        item.get("costPrice"),
        item.get("unitCost"),
        item.get("purchasePrice"),
        item.get("basePrice"),
    )
    return unit * item_quantity(item)


def item_unit_cost(item: Mapping) -> float:
    """Per-unit cost derived from the line total, quantity floored at 1."""
    return item_cost_total(item) / max(item_quantity(item), 1.0)


def item_product_id(item: Mapping) -> Optional[str]:
    return normalize_id(first_field(item, "productId", "product_id", "localProductId", "_id", "id"))


def item_name(item: Mapping) -> Optional[str]:
    name = first_field(item, "name", "productName")
    if name is None:
        return None
    text = str(name).strip().lower()
    return text or None


def is_direct_item(item: Mapping) -> bool:
    return is_flag_set(item.get("isDProduct"))


def item_in_mode(item: Mapping, sale_mode: str) -> bool:
    if sale_mode == SALE_MODE_DIRECT:
        return is_direct_item(item)
    return not is_direct_item(item)


def partition_items(items: Iterable[Mapping], sale_mode: str) -> list[Mapping]:
    """Items belonging to the active sale mode; every item is in exactly one mode."""
    return [item for item in items if isinstance(item, Mapping) and item_in_mode(item, sale_mode)]


def proportional_factor(items: Iterable[Mapping], sale_mode: str) -> float:
    all_items = [item for item in items if isinstance(item, Mapping)]
    total = sum(item_selling_total(item) for item in all_items)
    active = sum(item_selling_total(item) for item in partition_items(all_items, sale_mode))
    return safe_ratio(active, total)


# =============================================================================
# ORDER FIELDS
# =============================================================================

def order_items(order: Mapping) -> list[Mapping]:
    items = order.get("items")
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, Mapping)]


def order_ids(order: Mapping) -> list[str]:
    """Every identifier an order can be referenced by (_id and id)."""
    ids = (normalize_id(order.get("_id")), normalize_id(order.get("id")))
    return [value for value in ids if value]


def order_date(order: Mapping, tz_name: Optional[str] = None) -> Optional[datetime]:
    return first_datetime(order.get("createdAt"), order.get("date"), tz_name=tz_name)


def is_deleted(record: Mapping) -> bool:
    return is_flag_set(record.get("isDeleted"))


def is_online_order(order: Mapping) -> bool:
    source = first_field(order, "orderSource", "source")
    return str(source or "").strip().lower() == ORDER_SOURCE_ONLINE


def delivery_state(order: Mapping) -> str:
    return str(first_field(order, "orderStatus", "status") or "").strip().lower()


def order_discount(order: Mapping) -> float:
    return first_positive(order.get("discountAmount"), order.get("discount"))


def declared_delivery_charge(order: Mapping) -> float:
    return first_positive(
        order.get("deliveryCharge"),
        order.get("deliveryCharges"),
        order.get("deliveryFee"),
        order.get("shippingCharge"),
    )


def order_grand_total(order: Mapping) -> float:
    declared = first_positive(order.get("totalAmount"), order.get("total"), order.get("grandTotal"))
    if declared > 0:
        return declared
    items_sum = sum(item_selling_total(item) for item in order_items(order))
    return max(0.0, items_sum - order_discount(order) + declared_delivery_charge(order))


def resolve_delivery_charge(
    order: Mapping,
    *,
    tolerance: float = DEFAULT_DELIVERY_TOLERANCE,
) -> float:
    """
    Declared delivery charge, or the excess of the grand total over
    (items - discount) when that excess is larger than the tolerance.
    """
    declared = declared_delivery_charge(order)
    if declared > 0:
        return declared

    items_sum = sum(item_selling_total(item) for item in order_items(order))
    excess = order_grand_total(order) - (items_sum - order_discount(order))
    return excess if excess > tolerance else 0.0


def payment_method(order: Mapping) -> str:
    return str(order.get("paymentMethod") or "").strip().lower()


# =============================================================================
# NORMALIZED ORDERS
# =============================================================================

@dataclass(frozen=True)
class NormalizedOrder:
    """An order re-totalled for one sale mode. `source` is the untouched record."""
    source: Mapping = field(repr=False)
    order_id: Optional[str]
    created_at: datetime
    sale_mode: str
    items: tuple
    proportional_factor: float
    grand_total: float
    total: float
    delivery_share: float
    cost: float

    @property
    def payment_method(self) -> str:
        return payment_method(self.source)

    @property
    def profit(self) -> float:
        return self.total - self.cost


def normalize_order(
    order: Mapping,
    sale_mode: str,
    *,
    created_at: datetime,
    delivery_tolerance: float = DEFAULT_DELIVERY_TOLERANCE,
) -> Optional[NormalizedOrder]:
    """
    Re-total one order for sale_mode. Returns None when the order has no
    item in the active mode.
    """
    items = order_items(order)
    active = partition_items(items, sale_mode)
    if not active:
        return None

    factor = proportional_factor(items, sale_mode)
    grand_total = order_grand_total(order)
    delivery = resolve_delivery_charge(order, tolerance=delivery_tolerance)

    return NormalizedOrder(
        source=order,
        order_id=normalize_id(first_field(order, "_id", "id")),
        created_at=created_at,
        sale_mode=sale_mode,
        items=tuple(active),
        proportional_factor=factor,
        grand_total=grand_total,
        total=factor * grand_total,
        delivery_share=factor * delivery,
        cost=sum(item_cost_total(item) for item in active),
    )


def is_completed_sale(order: Mapping) -> bool:
    """Not deleted, and if online, delivered."""
    if is_deleted(order):
        return False
    if is_online_order(order):
        return delivery_state(order) == DELIVERY_STATE_DELIVERED
    return True


def is_pending_online_order(order: Mapping) -> bool:
    if is_deleted(order) or not is_online_order(order):
        return False
    return delivery_state(order) not in (DELIVERY_STATE_DELIVERED, DELIVERY_STATE_CANCELLED)


def _normalize_matching(
    orders: Iterable[Mapping],
    date_range: DateRange,
    sale_mode: str,
    predicate,
    *,
    tz_name: Optional[str],
    delivery_tolerance: float,
) -> list[NormalizedOrder]:
    results = []
    for order in orders:
        if not isinstance(order, Mapping) or not predicate(order):
            continue
        created_at = order_date(order, tz_name)
        if not date_range.contains(created_at):
            continue
        normalized = normalize_order(
            order,
            sale_mode,
            created_at=created_at,
            delivery_tolerance=delivery_tolerance,
        )
        if normalized is not None:
            results.append(normalized)
    return results


def normalize_orders(
    orders: Iterable[Mapping],
    date_range: DateRange,
    sale_mode: str,
    *,
    tz_name: Optional[str] = None,
    delivery_tolerance: float = DEFAULT_DELIVERY_TOLERANCE,
) -> list[NormalizedOrder]:
    """Gross (not refund-adjusted) per-mode sales for the range."""
    return _normalize_matching(
        orders,
        date_range,
        sale_mode,
        is_completed_sale,
        tz_name=tz_name,
        delivery_tolerance=delivery_tolerance,
    )


def normalize_pending_orders(
    orders: Iterable[Mapping],
    date_range: DateRange,
    sale_mode: str,
    *,
    tz_name: Optional[str] = None,
    delivery_tolerance: float = DEFAULT_DELIVERY_TOLERANCE,
) -> list[NormalizedOrder]:
    """Online orders neither delivered nor cancelled, normalized the same way."""
    return _normalize_matching(
        orders,
        date_range,
        sale_mode,
        is_pending_online_order,
        tz_name=tz_name,
        delivery_tolerance=delivery_tolerance,
    )


def build_order_index(orders: Iterable[Mapping]) -> dict[str, Mapping]:
    """Non-deleted orders keyed by every identifier they carry."""
    index: dict[str, Mapping] = {}
    for order in orders:
        if not isinstance(order, Mapping) or is_deleted(order):
            continue
        for order_id in order_ids(order):
            index.setdefault(order_id, order)
    return index
