"""
Running balance replay over a ledger's voucher history.

Snapshots frozen into vouchers are an audit trail, not a live view: if an
earlier voucher is edited or deleted, later snapshots keep the balances
that were true when they were saved. Replay rebuilds the running balance
from the opening balance instead, which is what "recalculate balance"
writes back to the ledger. Frozen snapshots are only reported, never
rewritten.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional
from loguru import logger

from ..types import LedgerBalances, OldBalance, PaymentType, Voucher
from .snapshot import apply_voucher, compute_snapshot, voucher_effect


@dataclass(frozen=True)
class StatementRow:
    voucher_id: Optional[str]
    voucher_date: Optional[date]
    payment_type: PaymentType
    effect: LedgerBalances
    running: LedgerBalances


@dataclass(frozen=True)
class StaleSnapshot:
    """A voucher whose frozen old balance no longer matches the replayed history."""

    voucher_id: Optional[str]
    voucher_date: Optional[date]
    recorded: OldBalance
    expected: OldBalance


def _chronological(vouchers: Iterable[Voucher]) -> list[Voucher]:
    # Stable: vouchers on the same date keep their saved order
    return sorted(vouchers, key=lambda v: v.voucher_date or date.min)


def replay_history(
    opening: LedgerBalances,
    vouchers: Iterable[Voucher],
) -> tuple[list[StatementRow], LedgerBalances]:
    """
    Apply every voucher to the opening balance in date order.

    Returns:
        Tuple of (statement rows, closing balances)
    """
    running = opening
    rows = []
    for voucher in _chronological(vouchers):
        effect = voucher_effect(voucher)
        running = apply_voucher(running, voucher)
        rows.append(
            StatementRow(
                voucher_id=voucher.voucher_id,
                voucher_date=voucher.voucher_date,
                payment_type=voucher.payment_type,
                effect=effect,
                running=running,
            )
        )
    return rows, running


def find_stale_snapshots(
    opening: LedgerBalances,
    vouchers: Iterable[Voucher],
) -> list[StaleSnapshot]:
    """List vouchers whose frozen old balance differs from a replay of the history."""
    running = opening
    stale = []
    for voucher in _chronological(vouchers):
        # A cancelled voucher keeps the snapshot it was saved with
        if voucher.balance_snapshot is not None and not voucher.is_cancelled:
            expected = compute_snapshot(running, voucher).old_balance
            recorded = voucher.balance_snapshot.old_balance
            if recorded != expected:
                logger.warning(
                    f"Stale snapshot on voucher {voucher.voucher_id}: "
                    f"recorded {recorded.total_amount}, replayed {expected.total_amount}"
                )
                stale.append(
                    StaleSnapshot(
                        voucher_id=voucher.voucher_id,
                        voucher_date=voucher.voucher_date,
                        recorded=recorded,
                        expected=expected,
                    )
                )
        running = apply_voucher(running, voucher)
    return stale
