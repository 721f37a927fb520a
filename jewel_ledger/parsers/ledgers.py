"""
Ledger balance normalization.

Ledger documents have carried two balance shapes over time:
- Split tracks: cashBalance / creditBalance / goldFineWeight / silverFineWeight
- Legacy single amount: amount / goldFineWeight / silverFineWeight

Both are folded into LedgerBalances here so nothing downstream has to
branch on which fields happen to be present.
"""
from __future__ import annotations
from typing import Any, Mapping, Optional

from ..exceptions import LedgerNotFoundError
from ..numeric import parse_decimal
from ..types import LedgerBalances


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def normalize_balances(raw: Any, ledger_id: Optional[str] = None) -> LedgerBalances:
    """
    Convert a stored balance document to LedgerBalances.

    Accepts a LedgerBalances instance, a balances mapping, or a full ledger
    document with a nested "balances" mapping.

    Raises:
        LedgerNotFoundError: If raw is None. Missing balances are never
            treated as zero.
    """
    if raw is None:
        raise LedgerNotFoundError(f"Ledger not found: {ledger_id or '<unknown>'}")
    if isinstance(raw, LedgerBalances):
        return raw

    nested = raw.get("balances")
    if isinstance(nested, Mapping):
        raw = nested

    gold = _first(raw, "goldFineWeight", "gold_fine_weight", "gold_fine")
    silver = _first(raw, "silverFineWeight", "silver_fine_weight", "silver_fine")

    cash = _first(raw, "cashBalance", "cash_balance", "cash")
    credit = _first(raw, "creditBalance", "credit_balance", "credit")
    if cash is None and credit is None:
        # Legacy single-amount shape
        cash = raw.get("amount")

    return LedgerBalances(
        cash=parse_decimal(cash),
        credit=parse_decimal(credit),
        gold_fine=parse_decimal(gold),
        silver_fine=parse_decimal(silver),
    )


def parse_opening_balance(ledger: Mapping[str, Any] | None) -> LedgerBalances:
    """
    Read a ledger's opening balance (the starting point for a replay).

    A ledger without an opening balance starts from zero; this is not a
    lookup failure because the ledger itself exists.
    """
    opening = (ledger or {}).get("openingBalance") or (ledger or {}).get("opening_balance") or {}
    return normalize_balances(opening)
