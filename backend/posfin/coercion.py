"""
Field coercion for loosely-typed snapshot records.

Records arrive from several generations of the order-entry and sync layers,
so the same amount can live under different keys ("totalAmount" vs "total",
"qty" vs "quantity"). Every numeric read in the services goes through the
helpers here so malformed values behave the same everywhere: they count as
absent, never raise.
"""

from __future__ import annotations

import math
from typing import Any, Mapping, Optional


def to_number(value: Any, fallback: float = 0.0) -> float:
    """Finite float for value, else fallback. Booleans are not numbers."""
    if value is None or isinstance(value, bool):
        return fallback
    if isinstance(value, (int, float)):
        num = float(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return fallback
        try:
            num = float(stripped)
        except ValueError:
            return fallback
    else:
        return fallback
    return num if math.isfinite(num) else fallback


def first_positive(*values: Any) -> float:
    """
    Ordered fallback: the first candidate that is a finite number > 0.

    Returns 0.0 when no candidate qualifies.
    """
    for value in values:
        num = to_number(value, 0.0)
        if num > 0:
            return num
    return 0.0


def first_present(*values: Any, fallback: float = 0.0) -> float:
    """
    First candidate that is set and numeric, even if zero or negative.

    Used where an explicit zero must win over later aliases.
    """
    for value in values:
        if value is None or value == "":
            continue
        num = to_number(value, math.nan)
        if not math.isnan(num):
            return num
    return fallback


def normalize_id(value: Any) -> Optional[str]:
    """Stringify and trim an identifier; empty or missing becomes None."""
    if value is None or value is False:
        return None
    text = str(value).strip()
    return text or None


def get_path(record: Any, path: str) -> Any:
    """Read a dotted path ("seller.id") from nested mappings."""
    current = record
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
        if current is None:
            return None
    return current


def first_field(record: Mapping, *keys: str) -> Any:
    """Value of the first key that is present and not None/empty."""
    for key in keys:
        value = get_path(record, key)
        if value is not None and value != "":
            return value
    return None


def is_flag_set(value: Any) -> bool:
    """True for boolean True or the string "true" (any case)."""
    if value is True:
        return True
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def safe_ratio(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    ratio = numerator / denominator
    return ratio if math.isfinite(ratio) else 0.0
