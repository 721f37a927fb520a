"""
Ledger stores.

The engine never mutates balances itself; a store persists vouchers and
applies the balances the engine computed.
"""

from .base import InMemoryLedgerStore, LedgerStore
from .postgres import PostgresLedgerStore, get_connection

__all__ = ["LedgerStore", "InMemoryLedgerStore", "PostgresLedgerStore", "get_connection"]
