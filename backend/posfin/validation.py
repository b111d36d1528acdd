from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Optional

from posfin.services.date_range_service import TIME_RANGE_CUSTOM
from posfin.services.order_service import SALE_MODES


SNAPSHOT_COLLECTIONS = (
    "orders",
    "refunds",
    "purchase_orders",
    "expenses",
    "customer_transactions",
    "supplier_transactions",
)


class ValidationError(ValueError):
    """400-level input problem."""


@dataclass(frozen=True)
class ReportParams:
    """
    Parameters shared by every report endpoint and CLI command.

    time_range falls back to the configured default; an unknown selector is
    passed through and resolved as "today" by the date range service.
    """
    time_range: str
    sale_mode: str
    custom_start: Optional[date] = None
    custom_end: Optional[date] = None


def _parse_date(field: str, value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a YYYY-MM-DD date")
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        raise ValidationError(f"{field} must be a YYYY-MM-DD date")


def parse_report_params(
    payload: Mapping[str, Any],
    *,
    default_time_range: str = "today",
    default_sale_mode: str = "normal",
) -> ReportParams:
    time_range = str(payload.get("time_range") or default_time_range).strip().lower()
    sale_mode = str(payload.get("sale_mode") or default_sale_mode).strip().lower()

    if sale_mode not in SALE_MODES:
        raise ValidationError(f"sale_mode must be one of: {', '.join(SALE_MODES)}")

    custom_start = _parse_date("custom_start", payload.get("custom_start"))
    custom_end = _parse_date("custom_end", payload.get("custom_end"))

    if time_range == TIME_RANGE_CUSTOM and (custom_start is None or custom_end is None):
        raise ValidationError("custom_start and custom_end are required for a custom range")

    return ReportParams(
        time_range=time_range,
        sale_mode=sale_mode,
        custom_start=custom_start,
        custom_end=custom_end,
    )


def validate_snapshot(payload: Mapping[str, Any]) -> dict:
    """Every record collection must be a list of objects when present."""
    snapshot = {}
    for key in SNAPSHOT_COLLECTIONS:
        value = payload.get(key)
        if value is None:
            snapshot[key] = []
            continue
        if not isinstance(value, list):
            raise ValidationError(f"{key} must be a list")
        snapshot[key] = [record for record in value if isinstance(record, Mapping)]
    return snapshot
