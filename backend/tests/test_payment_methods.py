from datetime import datetime

import pytest

from posfin.services.date_range_service import get_date_range
from posfin.services.order_service import SALE_MODE_NORMAL, build_order_index, normalize_orders
from posfin.services.payment_service import (
    CHANNEL_CASH,
    CHANNEL_DUE,
    CHANNEL_ONLINE,
    CHANNEL_SPLIT,
    aggregate_payment_methods,
    classify_payment_method,
    payment_method_label,
)
from posfin.services.refund_service import allocate_refunds


DAY = get_date_range("today", now=datetime(2024, 3, 15, 12))


def _order(order_id, method, total, **extra):
    return {
        "_id": order_id,
        "createdAt": "2024-03-15T10:00:00",
        "paymentMethod": method,
        "totalAmount": total,
        "items": [{"productId": f"{order_id}-p", "name": order_id, "quantity": 1, "sellingPrice": total}],
        **extra,
    }


@pytest.mark.parametrize("method, channel", [
    ("Card", CHANNEL_ONLINE),
    ("upi", CHANNEL_ONLINE),
    ("online", CHANNEL_ONLINE),
    ("credit", CHANNEL_DUE),
    ("due", CHANNEL_DUE),
    ("split", CHANNEL_SPLIT),
    ("cash", CHANNEL_CASH),
    ("cheque", CHANNEL_CASH),
    (None, CHANNEL_CASH),
])
def test_classify_payment_method(method, channel):
    assert classify_payment_method(method) == channel


def test_labels():
    assert payment_method_label("due") == "Due (Credit)"
    assert payment_method_label("upi") == "Online Payment"


def test_refund_comes_off_the_original_orders_channel():
    orders = [_order("o-cash", "cash", 100), _order("o-upi", "upi", 80)]
    refunds = [{"orderId": "o-upi", "totalRefundAmount": 30, "paymentMethod": "cash", "createdAt": "2024-03-15T11:00:00"}]

    normalized = normalize_orders(orders, DAY, SALE_MODE_NORMAL)
    allocations = allocate_refunds(refunds, build_order_index(orders), DAY, SALE_MODE_NORMAL)
    breakdown = aggregate_payment_methods(normalized, allocations)

    assert breakdown.channels[CHANNEL_CASH].amount == 100
    assert breakdown.channels[CHANNEL_ONLINE].gross == 80
    assert breakdown.channels[CHANNEL_ONLINE].refunds == 30
    assert breakdown.channels[CHANNEL_ONLINE].amount == 50


def test_split_detail_is_summed_from_recorded_fields():
    orders = [
        _order("s-1", "split", 100, splitPaymentDetails={"cashAmount": 60, "onlineAmount": 40}),
        _order("s-2", "split", 50, splitPaymentDetails={"cashAmount": 10, "dueAmount": 40}),
    ]
    breakdown = aggregate_payment_methods(normalize_orders(orders, DAY, SALE_MODE_NORMAL), [])

    assert breakdown.channels[CHANNEL_SPLIT].count == 2
    assert breakdown.split_detail == {CHANNEL_CASH: 70.0, CHANNEL_ONLINE: 40.0, CHANNEL_DUE: 40.0}


def test_presentation_rows_omit_empty_channels():
    orders = [_order("o-cash", "cash", 100)]
    breakdown = aggregate_payment_methods(normalize_orders(orders, DAY, SALE_MODE_NORMAL), [])

    rows = breakdown.presentation_rows()
    assert rows == [{"channel": "cash", "label": "Cash", "count": 1, "amount": 100}]
    assert set(breakdown.to_dict()["channels"]) == {CHANNEL_CASH, CHANNEL_ONLINE, CHANNEL_DUE, CHANNEL_SPLIT}
