# Overview: COGS, profit and outflow calculations over normalized orders and refund allocations.

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Iterable, Mapping, Optional

from posfin.coercion import first_field, first_positive, to_number
from posfin.services.date_range_service import DateRange
from posfin.services.order_service import SALE_MODE_DIRECT, NormalizedOrder, is_deleted
from posfin.services.refund_service import RefundAllocation
from posfin.time_utils import first_datetime


PO_STATUS_PENDING = "pending"
PO_STATUS_IN_PROGRESS = "in-progress"
PO_STATUS_COMPLETED = "completed"
PO_STATUS_CANCELLED = "cancelled"


# =============================================================================
# PETTY EXPENSES
# =============================================================================

@dataclass(frozen=True)
class ExpenseEntry:
    date: datetime
    amount: float
    category: Optional[str] = None


def expense_date(expense: Mapping, tz_name: Optional[str] = None) -> Optional[datetime]:
    return first_datetime(
        expense.get("date"),
        expense.get("expenseDate"),
        expense.get("createdAt"),
        tz_name=tz_name,
    )


def expenses_in_range(
    expenses: Iterable[Mapping],
    date_range: DateRange,
    *,
    tz_name: Optional[str] = None,
) -> list[ExpenseEntry]:
    entries = []
    for expense in expenses:
        if not isinstance(expense, Mapping) or is_deleted(expense):
            continue
        when = expense_date(expense, tz_name)
        if not date_range.contains(when):
            continue
        entries.append(
            ExpenseEntry(
                date=when,
                amount=to_number(expense.get("amount"), 0.0),
                category=expense.get("category"),
            )
        )
    return entries


# =============================================================================
# PURCHASE ORDERS
# =============================================================================

def purchase_order_item_total(item: Mapping) -> float:
    subtotal = first_positive(item.get("subtotal"), item.get("total"), item.get("lineTotal"))
    if subtotal > 0:
        return subtotal
    price = first_positive(
        item.get("price"),
        item.get("costPrice"),
        item.get("unitPrice"),
        item.get("rate"),
    )
    quantity = to_number(first_field(item, "quantity", "qty", "count"), 1.0)
    return price * quantity


def purchase_order_total(purchase_order: Mapping) -> float:
    """Direct total field when positive, else the sum of its lines."""
    direct_total = first_positive(
        purchase_order.get("total"),
        purchase_order.get("grandTotal"),
        purchase_order.get("amount"),
        purchase_order.get("totalAmount"),
    )
    if direct_total > 0:
        return direct_total
    items = purchase_order.get("items")
    if not isinstance(items, list):
        return 0.0
    return sum(purchase_order_item_total(item) for item in items if isinstance(item, Mapping))


def purchase_order_status(purchase_order: Mapping) -> str:
    status = str(purchase_order.get("status") or PO_STATUS_PENDING).strip().lower()
    if status == "canceled":
        return PO_STATUS_CANCELLED
    if status == "processing":
        return PO_STATUS_IN_PROGRESS
    return status or PO_STATUS_PENDING


def purchase_order_date(purchase_order: Mapping, tz_name: Optional[str] = None) -> Optional[datetime]:
    return first_datetime(
        purchase_order.get("completedAt"),
        purchase_order.get("createdAt"),
        purchase_order.get("orderDate"),
        purchase_order.get("date"),
        purchase_order.get("updatedAt"),
        tz_name=tz_name,
    )


def purchase_orders_in_range(
    purchase_orders: Iterable[Mapping],
    date_range: DateRange,
    *,
    tz_name: Optional[str] = None,
) -> list[Mapping]:
    return [
        po
        for po in purchase_orders
        if isinstance(po, Mapping)
        and not is_deleted(po)
        and date_range.contains(purchase_order_date(po, tz_name))
    ]


def completed_purchase_order_total(purchase_orders: Iterable[Mapping]) -> float:
    """Operating outflow: completed purchase orders only."""
    return sum(
        purchase_order_total(po)
        for po in purchase_orders
        if purchase_order_status(po) == PO_STATUS_COMPLETED
    )


def purchase_order_status_summary(purchase_orders: Iterable[Mapping]) -> dict:
    summary = {"completed": 0, "pending": 0, "cancelled": 0, "total": 0}
    for po in purchase_orders:
        status = purchase_order_status(po)
        if status == PO_STATUS_COMPLETED:
            summary["completed"] += 1
        elif status == PO_STATUS_CANCELLED:
            summary["cancelled"] += 1
        else:
            summary["pending"] += 1
        summary["total"] += 1
    return summary


# =============================================================================
# PROFIT
# =============================================================================

@dataclass(frozen=True)
class ProfitSummary:
    gross_sales: float
    total_refunds: float
    net_revenue: float
    delivery_charges: float
    gross_cogs: float
    refunded_cogs: float
    net_cogs: float
    gross_profit: float
    petty_expenses: float
    net_profit: float
    profit_margin: float
    purchase_order_total: float
    business_outflow: float

    def to_dict(self) -> dict:
        data = asdict(self)
        data["profit_margin"] = round(self.profit_margin, 2)
        return data


def calculate_profit(
    *,
    orders: Iterable[NormalizedOrder],
    allocations: Iterable[RefundAllocation],
    petty_expenses: float,
    purchase_order_total: float,
    sale_mode: str,
) -> ProfitSummary:
    """
    Revenue and profit for one sale mode.

    Purchase orders never reduce profit: they buy stock, which is an asset.
    In direct mode petty expenses are not deducted either, so direct-mode
    net profit is the pure item margin.
    """
    orders = list(orders)
    allocations = list(allocations)

    gross_sales = sum(order.total for order in orders)
    delivery_charges = sum(order.delivery_share for order in orders)
    gross_cogs = sum(order.cost for order in orders)
    total_refunds = sum(allocation.amount for allocation in allocations)
    refunded_cogs = sum(allocation.refunded_cost for allocation in allocations)

    net_revenue = gross_sales - total_refunds
    net_cogs = gross_cogs - refunded_cogs
    gross_profit = net_revenue - net_cogs

    if sale_mode == SALE_MODE_DIRECT:
        net_profit = gross_profit
    else:
        net_profit = gross_profit - petty_expenses

    profit_margin = (net_profit / net_revenue * 100.0) if net_revenue > 0 else 0.0

    return ProfitSummary(
        gross_sales=gross_sales,
        total_refunds=total_refunds,
        net_revenue=net_revenue,
        delivery_charges=delivery_charges,
        gross_cogs=gross_cogs,
        refunded_cogs=refunded_cogs,
        net_cogs=net_cogs,
        gross_profit=gross_profit,
        petty_expenses=petty_expenses,
        net_profit=net_profit,
        profit_margin=profit_margin,
        purchase_order_total=purchase_order_total,
        business_outflow=purchase_order_total + petty_expenses,
    )


def pending_summary(orders: Iterable[NormalizedOrder]) -> dict:
    """Sales, profit and delivery tied up in undelivered online orders."""
    orders = list(orders)
    return {
        "count": len(orders),
        "sales": sum(order.total for order in orders),
        "profit": sum(order.profit for order in orders),
        "delivery": sum(order.delivery_share for order in orders),
    }
