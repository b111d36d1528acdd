# Overview: Customer receivable and supplier payable balances replayed from ledger transactions.

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from posfin.coercion import first_field, normalize_id, to_number
from posfin.services.order_service import is_deleted
"""
Party Ledger Invariants (authoritative)

- A balance is never read from a cached field; it is replayed from every
  non-deleted transaction of the party, every time.
- Payment-like types lower the balance, credit-like types raise it, any other
  type is ignored.
- Customer and supplier ledgers use different type vocabularies.
- "Has a balance" means balance > DEBT_EPSILON, which absorbs float noise.
"""


PARTY_CUSTOMER = "customer"
PARTY_SUPPLIER = "supplier"

DEFAULT_DEBT_EPSILON = 0.05

CUSTOMER_PAYMENT_TYPES = frozenset(
    ["payment", "cash", "online", "upi", "card", "refund", "remove_due"]
)
CUSTOMER_CREDIT_TYPES = frozenset(
    ["credit", "due", "add_due", "credit_usage", "opening_balance", "settlement"]
)

SUPPLIER_PAYMENT_TYPES = frozenset(
    [
        "payment",
        "cash",
        "online",
        "upi",
        "card",
        "remove_due",
        "refund",
        "purchase_return",
        "return",
        "cancel_purchase",
        "debit_note",
        "credit_note",
        "settlement",
    ]
)
SUPPLIER_CREDIT_TYPES = frozenset(
    ["due", "add_due", "opening_balance", "purchase_order", "credit_usage"]
)

LEDGER_TYPES = {
    PARTY_CUSTOMER: (CUSTOMER_PAYMENT_TYPES, CUSTOMER_CREDIT_TYPES),
    PARTY_SUPPLIER: (SUPPLIER_PAYMENT_TYPES, SUPPLIER_CREDIT_TYPES),
}

PARTY_ID_FIELDS = {
    PARTY_CUSTOMER: ("customerId", "customer_id", "customer._id", "customer.id"),
    PARTY_SUPPLIER: ("supplierId", "supplier_id", "vendorId", "supplier._id", "supplier.id"),
}


def transaction_effect(transaction: Mapping, party_kind: str) -> float:
    """Signed change a transaction makes to the party's balance."""
    if not isinstance(transaction, Mapping) or is_deleted(transaction):
        return 0.0
    payment_types, credit_types = LEDGER_TYPES[party_kind]
    txn_type = str(transaction.get("type") or "").strip().lower()
    amount = to_number(transaction.get("amount"), 0.0)
    if txn_type in payment_types:
        return -amount
    if txn_type in credit_types:
        return amount
    return 0.0


def ledger_balance(transactions: Iterable[Mapping], party_kind: str) -> float:
    return sum(transaction_effect(txn, party_kind) for txn in transactions)


def transaction_party_id(transaction: Mapping, party_kind: str) -> Optional[str]:
    return normalize_id(first_field(transaction, *PARTY_ID_FIELDS[party_kind]))


def balances_by_party(transactions: Iterable[Mapping], party_kind: str) -> dict[str, float]:
    """Replay every party's ledger; transactions without a party are skipped."""
    balances: dict[str, float] = {}
    for txn in transactions:
        if not isinstance(txn, Mapping):
            continue
        party_id = transaction_party_id(txn, party_kind)
        if party_id is None:
            continue
        balances[party_id] = balances.get(party_id, 0.0) + transaction_effect(txn, party_kind)
    return balances


@dataclass(frozen=True)
class LedgerSummary:
    party_kind: str
    outstanding: float
    parties_with_balance: int

    def to_dict(self) -> dict:
        return {
            "party_kind": self.party_kind,
            "outstanding": self.outstanding,
            "parties_with_balance": self.parties_with_balance,
        }


def summarize_ledger(
    transactions: Iterable[Mapping],
    party_kind: str,
    *,
    epsilon: float = DEFAULT_DEBT_EPSILON,
) -> LedgerSummary:
    """
    Total outstanding across parties that owe (or are owed) more than epsilon.

    Parties in credit (negative balance) do not offset other parties' debt.
    """
    balances = [balance for balance in balances_by_party(transactions, party_kind).values() if balance > epsilon]
    return LedgerSummary(
        party_kind=party_kind,
        outstanding=sum(balances),
        parties_with_balance=len(balances),
    )
