"""
Jewel Ledger - metal-and-money ledger engine for jewellery retailers.

Tracks every customer in two parallel currencies: rupees and fine weight
(grams of pure gold or silver after melting and wastage adjustments).

Key Features:
- Net and fine weight per item (melting %, wastage in grams)
- Item amounts with flat or per-gram labour charges
- Invoice totals, with labour summed as charged rather than as rated
- GST type (CGST+SGST or IGST) and breakdown
- Point-in-time balance snapshots for cash bills, credit bills and settlements
- Editing, cancelling and deleting saved vouchers against live balances
- Running balance replay for recalculating a ledger from its history

Usage:
    # Price a billing form
    python -m jewel_ledger quote invoice.json

    # Create the PostgreSQL schema
    python -m jewel_ledger init-schema

    # Rebuild a ledger's balances from its vouchers
    python -m jewel_ledger recalculate LEDGER_ID
"""

__version__ = "1.0.0"

from .config import JewelLedgerConfig
from .billing import BillingService, RecalculationResult
from .exceptions import (
    LedgerNotFoundError,
    LedgerStoreError,
    VoucherNotFoundError,
    VoucherValidationError,
)

__all__ = [
    "JewelLedgerConfig",
    "BillingService",
    "RecalculationResult",
    "LedgerNotFoundError",
    "LedgerStoreError",
    "VoucherNotFoundError",
    "VoucherValidationError",
    "__version__",
]
