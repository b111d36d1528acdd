"""
Plain-text invoice for chat sharing.

The receiving side is a plain message, so every field always prints; a
missing value prints as the literal "null" instead of dropping the line.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from posfin.coercion import first_field, first_present, to_number
from posfin.services.payment_service import payment_method_label
from posfin.time_utils import coerce_datetime


NULL = "null"
NAME_WIDTH = 12
QTY_WIDTH = 8
RATE_WIDTH = 8
AMOUNT_WIDTH = 10
DIVIDER = "-" * 32
COUNTRY_CODE = "91"


@dataclass(frozen=True)
class InvoiceShare:
    ok: bool
    message: str = ""
    target_number: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "message": self.message,
            "target_number": self.target_number,
            "error": self.error,
        }


def _with_null(value: Any) -> str:
    if value is None or value == "":
        return NULL
    return str(value)


def sanitize_mobile(value: Any) -> str:
    """Digits only, last ten kept."""
    return re.sub(r"\D", "", str(value or ""))[-10:]


def _money(symbol: str, value: float) -> str:
    return f"{symbol}{value:.2f}"


def _format_qty(qty: float) -> str:
    return str(int(qty)) if float(qty).is_integer() else str(qty)


def _format_date(dt: Optional[datetime]) -> str:
    if dt is None:
        return NULL
    return f"{dt.day}/{dt.month}/{dt.year}"


def _item_row(item: Mapping, index: int) -> str:
    original_quantity = item.get("originalQuantity") if isinstance(item.get("originalQuantity"), Mapping) else {}
    qty = first_present(item.get("quantity"), original_quantity.get("quantity"), item.get("qty"))
    unit = item.get("unit") or original_quantity.get("unit") or ""

    line_value = first_present(item.get("totalSellingPrice"), item.get("total"), item.get("amount"))
    rate = first_present(
        item.get("unitSellingPrice"),
        item.get("sellingPrice"),
        item.get("price"),
        fallback=(line_value / qty) if qty > 0 else 0.0,
    )
    line_total = first_present(
        item.get("totalSellingPrice"),
        item.get("total"),
        item.get("amount"),
        fallback=rate * qty,
    )

    name = str(item.get("name") or item.get("productName") or f"Item {index + 1}")
    row = (
        f"{name[:NAME_WIDTH]:<{NAME_WIDTH}}"
        f"{_format_qty(qty):>{QTY_WIDTH}}   "
        f"{rate:>{RATE_WIDTH}.2f}   "
        f"{line_total:>{AMOUNT_WIDTH}.2f}"
    )
    return f"{row} {unit}" if unit else row


def _empty_item_row() -> str:
    return f"{NULL:<{NAME_WIDTH}}{NULL:>{QTY_WIDTH}}   {NULL:>{RATE_WIDTH}}   {NULL:>{AMOUNT_WIDTH}}"


def format_invoice(
    transaction: Mapping,
    *,
    shop: Optional[Mapping] = None,
    customer_mobile: Optional[str] = None,
    now: Optional[datetime] = None,
    currency_symbol: str = "₹",
    footer: str = "Powered by Drag & Drop",
    tz_name: Optional[str] = None,
) -> str:
    """Fixed-width receipt text for one order/transaction."""
    if not transaction:
        return ""

    shop = shop or {}
    store_name = _with_null(first_field(shop, "name", "storeName", "shopName", "username"))
    store_address = _with_null(first_field(shop, "address", "shopAddress"))
    store_phone_raw = first_field(shop, "phone", "phoneNumber", "mobileNumber", "contact")
    store_phone = sanitize_mobile(store_phone_raw)
    store_phone_display = f"+{COUNTRY_CODE} {store_phone}" if store_phone else _with_null(store_phone_raw)

    raw_date = first_field(transaction, "date", "createdAt", "updatedAt")
    invoice_date = coerce_datetime(raw_date, tz_name) if raw_date is not None else now

    customer_name = _with_null(first_field(transaction, "customerName", "customer") or "Customer")
    if customer_mobile is None:
        customer_mobile = sanitize_mobile(
            first_field(transaction, "customerMobile", "customerPhone", "phoneNumber")
        )
    customer_phone_display = f"+{COUNTRY_CODE} {customer_mobile}" if customer_mobile else NULL

    subtotal = first_present(
        transaction.get("subtotal"),
        transaction.get("subTotal"),
        transaction.get("totalAmount"),
        transaction.get("total"),
    )
    discount = first_present(transaction.get("discountAmount"), transaction.get("discount"))
    tax_amount = first_present(transaction.get("taxAmount"), transaction.get("tax"))
    total = first_present(
        transaction.get("totalAmount"),
        transaction.get("total"),
        transaction.get("amount"),
        fallback=subtotal,
    )

    tax_percent = to_number(first_field(transaction, "taxPercent", "taxRate"), None)
    if tax_percent is None and subtotal > 0:
        tax_percent = tax_amount / subtotal * 100.0
    if tax_percent is None:
        tax_percent_display = NULL
    elif float(tax_percent).is_integer():
        tax_percent_display = f"{tax_percent:.0f}%"
    else:
        tax_percent_display = f"{tax_percent:.2f}%"

    header_line = (
        f"{'Item':<{NAME_WIDTH}}{'Qty':>{QTY_WIDTH}}   "
        f"{'Rate':>{RATE_WIDTH}}   {'Amount':>{AMOUNT_WIDTH}}"
    )
    items = [item for item in (transaction.get("items") or []) if isinstance(item, Mapping)]
    items_section = "\n".join(_item_row(item, index) for index, item in enumerate(items)) or _empty_item_row()

    lines = [
        "             INVOICE",
        "",
        DIVIDER,
        f"Shop Name : {store_name}",
        f"Address   : {store_address}",
        f"Phone     : {store_phone_display}",
        f"Date      : {_format_date(invoice_date)}",
        DIVIDER,
        f"Customer Name : {customer_name}",
        f"Customer Phone: {customer_phone_display}",
        DIVIDER,
        header_line,
        items_section,
        DIVIDER,
        f"Subtotal     : {_money(currency_symbol, subtotal)}",
        f"Discount     : {_money(currency_symbol, discount)}",
        f"Tax ({tax_percent_display})     : {_money(currency_symbol, tax_amount)}",
        DIVIDER,
        f"Grand Total  : {_money(currency_symbol, total)}",
        f"Payment Mode : {payment_method_label(transaction.get('paymentMethod'))}",
        "Thank you for shopping with us!",
        DIVIDER,
        f"       {footer}",
        DIVIDER,
    ]
    return "\n".join(lines)


def build_invoice_share(transaction: Optional[Mapping], **kwargs) -> InvoiceShare:
    """
    Invoice text plus the number to send it to.

    Failures come back as an InvoiceShare with ok=False; the caller decides
    how to show them.
    """
    if not transaction:
        return InvoiceShare(ok=False, error="Unable to prepare invoice details for sharing.")

    mobile = sanitize_mobile(first_field(transaction, "customerMobile", "customerPhone", "phoneNumber"))
    if not mobile:
        return InvoiceShare(ok=False, error="No customer mobile number found for this invoice.")

    message = format_invoice(transaction, customer_mobile=mobile, **kwargs)
    target = f"{COUNTRY_CODE}{mobile}" if len(mobile) == 10 else mobile
    return InvoiceShare(ok=True, message=message, target_number=target)
