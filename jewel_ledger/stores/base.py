"""
Ledger store interface and an in-memory implementation.

The store owns live balances and persisted vouchers. The engine only
computes; the store applies. ``lock`` marks the unit within which the
billing service reads balances and writes the voucher with the new
balances, so at most one balance-changing voucher is in flight per ledger.
"""
from __future__ import annotations
import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import ContextManager, Iterator, Optional, Protocol
from loguru import logger

from ..exceptions import LedgerNotFoundError, VoucherNotFoundError
from ..types import LedgerBalances, Voucher


class LedgerStore(Protocol):
    def get_balances(self, ledger_id: str) -> Optional[LedgerBalances]: ...
    def get_opening_balances(self, ledger_id: str) -> Optional[LedgerBalances]: ...
    def list_vouchers(self, ledger_id: str) -> list[Voucher]: ...
    def get_voucher(self, ledger_id: str, voucher_id: str) -> Optional[Voucher]: ...
    def save_voucher(self, ledger_id: str, voucher: Voucher, new_balances: LedgerBalances) -> str: ...
    def replace_voucher(
        self, ledger_id: str, voucher_id: str, voucher: Voucher, new_balances: LedgerBalances
    ) -> None: ...
    def delete_voucher(self, ledger_id: str, voucher_id: str, new_balances: LedgerBalances) -> None: ...
    def set_balances(self, ledger_id: str, balances: LedgerBalances) -> None: ...
    def lock(self, ledger_id: str) -> ContextManager[None]: ...


class InMemoryLedgerStore:
    """
    Dictionary-backed store for tests and embedding.

    Usage:
        store = InMemoryLedgerStore()
        store.add_ledger("L1", LedgerBalances(cash=500))
        with store.lock("L1"):
            balances = store.get_balances("L1")
    """

    def __init__(self):
        self._balances: dict[str, LedgerBalances] = {}
        self._opening: dict[str, LedgerBalances] = {}
        self._vouchers: dict[str, list[Voucher]] = defaultdict(list)
        self._locks: dict[str, threading.RLock] = defaultdict(threading.RLock)
        self._guard = threading.Lock()
        self._next_id = 1

    def add_ledger(
        self,
        ledger_id: str,
        balances: Optional[LedgerBalances] = None,
        opening: Optional[LedgerBalances] = None,
    ) -> None:
        """Register a ledger. Live balances start at the opening balance."""
        opening = opening or LedgerBalances()
        self._opening[ledger_id] = opening
        self._balances[ledger_id] = balances or opening

    def _require(self, ledger_id: str) -> None:
        if ledger_id not in self._balances:
            raise LedgerNotFoundError(f"Ledger not found: {ledger_id}")

    @contextmanager
    def lock(self, ledger_id: str) -> Iterator[None]:
        """Hold the ledger lock; changes made inside are undone if the block raises."""
        with self._guard:
            ledger_lock = self._locks[ledger_id]
        with ledger_lock:
            balances = self._balances.get(ledger_id)
            vouchers = list(self._vouchers.get(ledger_id, []))
            try:
                yield
            except Exception:
                if balances is not None:
                    self._balances[ledger_id] = balances
                self._vouchers[ledger_id] = vouchers
                logger.warning(f"Rolled back changes to ledger {ledger_id}")
                raise

    def get_balances(self, ledger_id: str) -> Optional[LedgerBalances]:
        return self._balances.get(ledger_id)

    def get_opening_balances(self, ledger_id: str) -> Optional[LedgerBalances]:
        return self._opening.get(ledger_id)

    def list_vouchers(self, ledger_id: str) -> list[Voucher]:
        return list(self._vouchers.get(ledger_id, []))

    def get_voucher(self, ledger_id: str, voucher_id: str) -> Optional[Voucher]:
        for voucher in self._vouchers.get(ledger_id, []):
            if voucher.voucher_id == voucher_id:
                return voucher
        return None

    def _index(self, ledger_id: str, voucher_id: str) -> int:
        for i, voucher in enumerate(self._vouchers.get(ledger_id, [])):
            if voucher.voucher_id == voucher_id:
                return i
        raise VoucherNotFoundError(f"Voucher {voucher_id} not found on ledger {ledger_id}")

    def save_voucher(self, ledger_id: str, voucher: Voucher, new_balances: LedgerBalances) -> str:
        self._require(ledger_id)
        with self._guard:
            voucher_id = str(self._next_id)
            self._next_id += 1
        stored = voucher.model_copy(update={"voucher_id": voucher_id, "ledger_id": ledger_id})
        self._vouchers[ledger_id].append(stored)
        self._balances[ledger_id] = new_balances
        logger.debug(f"Stored voucher {voucher_id} for ledger {ledger_id}")
        return voucher_id

    def replace_voucher(
        self, ledger_id: str, voucher_id: str, voucher: Voucher, new_balances: LedgerBalances
    ) -> None:
        self._require(ledger_id)
        i = self._index(ledger_id, voucher_id)
        self._vouchers[ledger_id][i] = voucher.model_copy(
            update={"voucher_id": voucher_id, "ledger_id": ledger_id}
        )
        self._balances[ledger_id] = new_balances
        logger.debug(f"Replaced voucher {voucher_id} on ledger {ledger_id}")

    def delete_voucher(self, ledger_id: str, voucher_id: str, new_balances: LedgerBalances) -> None:
        self._require(ledger_id)
        del self._vouchers[ledger_id][self._index(ledger_id, voucher_id)]
        self._balances[ledger_id] = new_balances
        logger.debug(f"Deleted voucher {voucher_id} from ledger {ledger_id}")

    def set_balances(self, ledger_id: str, balances: LedgerBalances) -> None:
        self._require(ledger_id)
        self._balances[ledger_id] = balances
