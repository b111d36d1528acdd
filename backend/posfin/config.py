# backend/posfin/config.py
from __future__ import annotations
import os


class Config:
    # Zone used for "local midnight" and bucket boundaries
    REPORT_TIMEZONE = os.environ.get("REPORT_TIMEZONE", "UTC")

    DEFAULT_TIME_RANGE = os.environ.get("DEFAULT_TIME_RANGE", "today")
    DEFAULT_SALE_MODE = os.environ.get("DEFAULT_SALE_MODE", "normal")

    DAILY_BUCKET_MAX_DAYS = int(os.environ.get("DAILY_BUCKET_MAX_DAYS", "60"))
    DELIVERY_INFERENCE_TOLERANCE = float(os.environ.get("DELIVERY_INFERENCE_TOLERANCE", "1.0"))
    DEBT_EPSILON = float(os.environ.get("DEBT_EPSILON", "0.05"))

    # Invoice header/footer used when the request carries no shop block
    SHOP_NAME = os.environ.get("SHOP_NAME", "")
    SHOP_ADDRESS = os.environ.get("SHOP_ADDRESS", "")
    SHOP_PHONE = os.environ.get("SHOP_PHONE", "")
    CURRENCY_SYMBOL = os.environ.get("CURRENCY_SYMBOL", "₹")
    INVOICE_FOOTER = os.environ.get("INVOICE_FOOTER", "Powered by Drag & Drop")
