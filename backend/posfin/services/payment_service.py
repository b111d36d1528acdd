# Overview: Per-channel sales and refund reconciliation for the active sale mode.

"""
Payment Method Aggregation

WHY: The owner reconciles the cash drawer and the bank statement against the
report, so sales have to be broken down by how they were paid, net of the
refunds given back on those same channels.

DESIGN PRINCIPLES:
- Refunds carry no tender of their own: a refund is taken off the channel of
  its ORIGINAL order
- Refund amounts come from the shared refund allocations, never recomputed
- Split orders stay in their own channel; the cash/online/due split detail is
  summed from what the till recorded, not re-derived from totals
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from posfin.coercion import to_number
from posfin.services.order_service import NormalizedOrder
from posfin.services.refund_service import RefundAllocation


# =============================================================================
# PAYMENT CHANNELS (CONSTANTS)
# =============================================================================

CHANNEL_CASH = "cash"
CHANNEL_ONLINE = "online"
CHANNEL_DUE = "due"
CHANNEL_SPLIT = "split"

CHANNELS = [CHANNEL_CASH, CHANNEL_ONLINE, CHANNEL_DUE, CHANNEL_SPLIT]

CHANNEL_LABELS = {
    CHANNEL_CASH: "Cash",
    CHANNEL_ONLINE: "Online Payment",
    CHANNEL_DUE: "Due (Credit)",
    CHANNEL_SPLIT: "Split Payment",
}

_ONLINE_METHODS = {"card", "upi", "online"}
_DUE_METHODS = {"due", "credit"}


def classify_payment_method(method) -> str:
    """card/upi/online -> online, due/credit -> due, split -> split, else cash."""
    value = str(method or "").strip().lower()
    if value in _ONLINE_METHODS:
        return CHANNEL_ONLINE
    if value in _DUE_METHODS:
        return CHANNEL_DUE
    if value == CHANNEL_SPLIT:
        return CHANNEL_SPLIT
    return CHANNEL_CASH


def payment_method_label(method) -> str:
    return CHANNEL_LABELS[classify_payment_method(method)]


@dataclass
class ChannelTotals:
    channel: str
    count: int = 0
    gross: float = 0.0
    refunds: float = 0.0

    @property
    def amount(self) -> float:
        return self.gross - self.refunds

    @property
    def label(self) -> str:
        return CHANNEL_LABELS[self.channel]


@dataclass
class PaymentBreakdown:
    channels: dict = field(default_factory=dict)
    split_detail: dict = field(default_factory=dict)

    def presentation_rows(self) -> list[dict]:
        """Label/count/amount rows, dropping channels with nothing to show."""
        return [
            {"channel": totals.channel, "label": totals.label, "count": totals.count, "amount": totals.amount}
            for totals in (self.channels[channel] for channel in CHANNELS)
            if totals.amount > 0
        ]

    def to_dict(self) -> dict:
        return {
            "channels": {
                channel: {
                    "label": totals.label,
                    "count": totals.count,
                    "gross": totals.gross,
                    "refunds": totals.refunds,
                    "amount": totals.amount,
                }
                for channel, totals in self.channels.items()
            },
            "rows": self.presentation_rows(),
            "split_detail": dict(self.split_detail),
        }


def aggregate_payment_methods(
    orders: Iterable[NormalizedOrder],
    allocations: Iterable[RefundAllocation],
) -> PaymentBreakdown:
    breakdown = PaymentBreakdown(
        channels={channel: ChannelTotals(channel=channel) for channel in CHANNELS},
        split_detail={CHANNEL_CASH: 0.0, CHANNEL_ONLINE: 0.0, CHANNEL_DUE: 0.0},
    )

    for order in orders:
        channel = classify_payment_method(order.payment_method)
        totals = breakdown.channels[channel]
        totals.count += 1
        totals.gross += order.total

        if channel == CHANNEL_SPLIT:
            details = order.source.get("splitPaymentDetails")
            if isinstance(details, Mapping):
                breakdown.split_detail[CHANNEL_CASH] += to_number(details.get("cashAmount"))
                breakdown.split_detail[CHANNEL_ONLINE] += to_number(details.get("onlineAmount"))
                breakdown.split_detail[CHANNEL_DUE] += to_number(details.get("dueAmount"))

    for allocation in allocations:
        if allocation.order is None or not allocation.amount:
            continue
        channel = classify_payment_method(allocation.order_payment_method)
        breakdown.channels[channel].refunds += allocation.amount

    return breakdown
