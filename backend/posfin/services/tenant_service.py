"""
Tenant Scoping: Seller Identification and Record Filtering

WHY: A snapshot can hold records from several sellers (shared device, legacy
sync payloads). Every report must be computed over the current seller's
records only.

SCOPING RULES:
1. No candidate identifiers -> scoping disabled, every record passes
2. A record exposing no owner field passes (UNKNOWN_OWNER_POLICY)
3. Otherwise at least one owner value must equal a candidate identifier

Identifiers are compared as trimmed strings, case-sensitive.

USAGE:
    from posfin.services.tenant_service import collect_seller_identifiers, filter_by_seller

    ids = collect_seller_identifiers(auth_seller_id=token_seller_id, current_user=user)
    orders = filter_by_seller(orders, ids)
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from posfin.coercion import get_path, normalize_id


# Records written before owner stamping have no owner field at all. They stay
# visible to every seller until product confirms they can be hidden.
UNKNOWN_OWNER_ALLOW = "allow"
UNKNOWN_OWNER_DENY = "deny"
UNKNOWN_OWNER_POLICY = UNKNOWN_OWNER_ALLOW

CURRENT_USER_ID_FIELDS = (
    "sellerId",
    "id",
    "_id",
    "userId",
    "uid",
    "storeId",
    "profile.sellerId",
)

OWNER_FIELD_PATHS = (
    "sellerId",
    "sellerID",
    "seller_id",
    "_sellerId",
    "seller.id",
    "seller._id",
    "seller.sellerId",
    "storeId",
    "store.id",
    "store._id",
    "vendorId",
    "createdBy.sellerId",
    "createdBy.sellerID",
    "createdBy._id",
    "meta.sellerId",
    "meta.storeId",
    "owner.sellerId",
)


def collect_seller_identifiers(
    *,
    auth_seller_id: Any = None,
    current_user: Optional[Mapping] = None,
    state_seller_id: Any = None,
    state_store_id: Any = None,
    extra: Iterable[Any] = (),
) -> frozenset[str]:
    """
    Gather every identifier the current seller may be known by.

    Sources: the auth token, the signed-in user record (seven fields) and the
    app-level seller/store ids. Values are normalized and deduplicated.
    """
    candidates = [auth_seller_id]
    if isinstance(current_user, Mapping):
        candidates.extend(get_path(current_user, field) for field in CURRENT_USER_ID_FIELDS)
    candidates.extend([state_seller_id, state_store_id])
    candidates.extend(extra)

    return frozenset(filter(None, (normalize_id(value) for value in candidates)))


def record_owner_ids(record: Mapping) -> list[str]:
    """Populated owner values of a record, normalized."""
    owners = (normalize_id(get_path(record, path)) for path in OWNER_FIELD_PATHS)
    return [owner for owner in owners if owner]


def belongs_to_seller(
    record: Any,
    identifiers: frozenset[str] | set[str],
    *,
    unknown_owner_policy: str = UNKNOWN_OWNER_POLICY,
) -> bool:
    if not identifiers:
        return True
    if not isinstance(record, Mapping):
        return False

    owners = record_owner_ids(record)
    if not owners:
        return unknown_owner_policy == UNKNOWN_OWNER_ALLOW

    return any(owner in identifiers for owner in owners)


def filter_by_seller(
    records: Optional[Iterable[Mapping]],
    identifiers: frozenset[str] | set[str],
    *,
    unknown_owner_policy: str = UNKNOWN_OWNER_POLICY,
) -> list[Mapping]:
    """Records visible to the current seller; input is never mutated."""
    if not records:
        return []
    if not identifiers:
        return list(records)
    return [
        record
        for record in records
        if belongs_to_seller(record, identifiers, unknown_owner_policy=unknown_owner_policy)
    ]
