"""
Input parsers for billing forms and ledger documents.

Raw dictionaries from the billing screen or the ledger store are turned
into the canonical types once, at the boundary:
- Line items and vouchers (camelCase form keys or snake_case)
- Settlement deltas (the overloaded "cash received" field)
- Ledger balances (split cash/credit tracks or the legacy single amount)
"""

from .vouchers import (
    parse_date,
    parse_line_item,
    parse_line_items,
    parse_voucher,
    settlement_from_payment,
)
from .ledgers import normalize_balances, parse_opening_balance

__all__ = [
    "parse_date",
    "parse_line_item",
    "parse_line_items",
    "parse_voucher",
    "settlement_from_payment",
    "normalize_balances",
    "parse_opening_balance",
]
