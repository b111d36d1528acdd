from datetime import datetime

from posfin.services.invoice_service import NULL, build_invoice_share, format_invoice, sanitize_mobile


SHOP = {"name": "Corner Store", "address": "12 Market Road", "phone": "98765-00000"}


def _transaction(**extra):
    transaction = {
        "customerName": "Asha",
        "customerMobile": "+91 99887 76655",
        "date": "2024-03-05T10:00:00",
        "subtotal": 200,
        "discount": 10,
        "taxAmount": 9.5,
        "total": 199.5,
        "paymentMethod": "upi",
        "items": [
            {"name": "Basmati Rice Premium", "quantity": 2, "unitSellingPrice": 75, "unit": "kg"},
            {"name": "Oil", "quantity": 1.5, "totalSellingPrice": 50},
        ],
    }
    transaction.update(extra)
    return transaction


def test_sanitize_mobile_keeps_last_ten_digits():
    assert sanitize_mobile("+91 99887 76655") == "9988776655"
    assert sanitize_mobile(None) == ""


class TestFormatInvoice:
    def test_header_and_totals(self):
        text = format_invoice(_transaction(), shop=SHOP, customer_mobile="9988776655")

        assert "Shop Name : Corner Store" in text
        assert "Phone     : +91 9876500000" in text
        assert "Date      : 5/3/2024" in text
        assert "Customer Phone: +91 9988776655" in text
        assert "Subtotal     : ₹200.00" in text
        assert "Discount     : ₹10.00" in text
        assert "Grand Total  : ₹199.50" in text
        assert "Payment Mode : Online Payment" in text

    def test_tax_percent_is_derived_from_subtotal(self):
        text = format_invoice(_transaction(), shop=SHOP)
        assert "Tax (4.75%)     : ₹9.50" in text

    def test_item_rows_are_fixed_width(self):
        lines = format_invoice(_transaction(), shop=SHOP).splitlines()
        rice = next(line for line in lines if line.startswith("Basmati Rice"))
        oil = next(line for line in lines if line.startswith("Oil"))

        assert rice.startswith("Basmati Rice")
        assert "Premium" not in rice
        assert rice.endswith("150.00 kg")
        assert "33.33" in oil
        assert oil.endswith("50.00")

    def test_missing_fields_print_null(self):
        text = format_invoice({"total": 10}, shop={})
        assert f"Shop Name : {NULL}" in text
        assert f"Customer Phone: {NULL}" in text
        assert f"{NULL:<12}" in text

    def test_order_total_amount_feeds_subtotal_and_tax(self):
        order = {"totalAmount": 118, "taxAmount": 18, "customerMobile": "9988776655", "date": "2024-03-15T10:00:00"}
        text = format_invoice(order, shop=SHOP)

        assert "Subtotal     : ₹118.00" in text
        assert "Tax (15.25%)     : ₹18.00" in text
        assert "Grand Total  : ₹118.00" in text

    def test_total_amount_wins_over_total(self):
        text = format_invoice({"totalAmount": 120, "total": 100}, shop=SHOP)
        assert "Grand Total  : ₹120.00" in text

    def test_empty_transaction(self):
        assert format_invoice({}) == ""

    def test_date_falls_back_to_now(self):
        text = format_invoice({"total": 10}, now=datetime(2024, 12, 1))
        assert "Date      : 1/12/2024" in text


class TestBuildInvoiceShare:
    def test_share_targets_country_prefixed_number(self):
        share = build_invoice_share(_transaction(), shop=SHOP)
        assert share.ok
        assert share.target_number == "919988776655"
        assert "INVOICE" in share.message

    def test_missing_transaction_is_an_error_result(self):
        share = build_invoice_share(None)
        assert not share.ok
        assert share.error == "Unable to prepare invoice details for sharing."

    def test_missing_mobile_is_an_error_result(self):
        share = build_invoice_share(_transaction(customerMobile=None))
        assert not share.ok
        assert share.error == "No customer mobile number found for this invoice."
