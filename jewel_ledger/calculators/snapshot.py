"""
Ledger balance snapshot engine.

Every voucher carries a frozen record of the customer's balances just
before it was saved (old balance) and just after (current balance).

Bills:
- Cash bill: only the cash track moves. Old amount is the cash balance
  alone; metal balances pass through.
- Credit bill: old amount is cash + credit; the bill's net value goes to
  the credit track and item fine weights accrue to the metal balances.

Settlements are payments against what the customer owes, so the entered
value is subtracted from the target balance (a negative value adds):
- add_cash: cash balance
- add_gold / add_silver: metal balance, in grams
- money_to_gold / money_to_silver: cash converted to grams at the day's
  rate, applied to the metal balance; cash balance untouched

Snapshots are point-in-time. Once saved they are never recomputed, even
if an earlier voucher is edited or deleted later; see
``statement.find_stale_snapshots`` for detecting the drift.

The caller must read balances, compute the snapshot and persist the
voucher with the new balances as one unit per ledger. Two computations
against the same stale balance double-count.
"""
from __future__ import annotations
from decimal import Decimal
from typing import Any, Optional
from loguru import logger

from ..exceptions import LedgerNotFoundError
from ..numeric import ZERO, parse_decimal, round_money, round_weight
from ..parsers.ledgers import normalize_balances
from ..parsers.vouchers import settlement_from_payment
from ..types import (
    AddCash,
    AddGold,
    AddSilver,
    BalanceSnapshot,
    ConvertToGold,
    ConvertToSilver,
    CurrentBalance,
    LedgerBalances,
    MetalRates,
    MetalType,
    OldBalance,
    PaymentType,
    SettlementDelta,
    Voucher,
)
from .totals import fine_weight_by_metal, items_amount


def net_bill_value(voucher: Voucher) -> Decimal:
    """Items + stone amount + round off - cash received."""
    return round_money(
        items_amount(voucher.items)
        + voucher.stone_amount
        + voucher.round_off
        - voucher.cash_received
    )


def convert_cash_to_fine(cash_amount: Any, metal_rate: Any) -> Decimal:
    """
    Grams of fine metal a cash amount buys at a rate.

    A rate of zero or below converts to nothing; validation rejects such
    settlements before they reach the ledger.
    """
    rate = parse_decimal(metal_rate)
    if rate <= ZERO:
        logger.warning(f"Cannot convert cash to fine weight at rate {rate}")
        return ZERO
    return round_weight(parse_decimal(cash_amount) / rate)


def resolve_settlement(voucher: Voucher) -> Optional[SettlementDelta]:
    """The voucher's settlement delta, resolved from cash received if not set."""
    if not voucher.is_settlement:
        return None
    if voucher.settlement is not None:
        return voucher.settlement
    return settlement_from_payment(voucher.payment_type, voucher.cash_received)


def settlement_effect(delta: SettlementDelta, rates: MetalRates) -> LedgerBalances:
    """Balance change caused by a settlement."""
    if isinstance(delta, AddCash):
        return LedgerBalances(cash=-delta.amount)
    if isinstance(delta, AddGold):
        return LedgerBalances(gold_fine=-delta.grams)
    if isinstance(delta, AddSilver):
        return LedgerBalances(silver_fine=-delta.grams)
    if isinstance(delta, ConvertToGold):
        return LedgerBalances(gold_fine=-convert_cash_to_fine(delta.cash_amount, rates.gold))
    if isinstance(delta, ConvertToSilver):
        return LedgerBalances(silver_fine=-convert_cash_to_fine(delta.cash_amount, rates.silver))
    raise TypeError(f"Unknown settlement delta: {delta!r}")


def voucher_effect(voucher: Voucher) -> LedgerBalances:
    """
    Net change a voucher makes to a customer's balances.

    Items are taken as priced; their stored amounts and fine weights are
    used without repricing. A cancelled voucher has no effect.
    """
    if voucher.is_cancelled:
        return LedgerBalances()
    if voucher.is_settlement:
        return settlement_effect(resolve_settlement(voucher), voucher.rates)

    net = net_bill_value(voucher)
    if voucher.payment_type == PaymentType.CASH:
        return LedgerBalances(cash=net)

    fine = fine_weight_by_metal(voucher.items)
    return LedgerBalances(
        credit=net,
        gold_fine=fine[MetalType.GOLD],
        silver_fine=fine[MetalType.SILVER],
    )


def _old_balance(balances: LedgerBalances, payment_type: PaymentType) -> OldBalance:
    total = balances.cash if payment_type == PaymentType.CASH else balances.total_amount
    return OldBalance(
        cash_amount=round_money(balances.cash),
        credit_amount=round_money(balances.credit),
        total_amount=round_money(total),
        gold_fine_weight=round_weight(balances.gold_fine),
        silver_fine_weight=round_weight(balances.silver_fine),
    )


def compute_snapshot(old_balances: Any, voucher: Voucher) -> BalanceSnapshot:
    """
    Compute the before/after balance snapshot for a voucher.

    Args:
        old_balances: The customer's balances immediately before this
            voucher (LedgerBalances or a raw balance document)
        voucher: A priced voucher

    Raises:
        LedgerNotFoundError: If old_balances is None. Zero balances are
            never assumed for an unknown customer.
    """
    if old_balances is None:
        raise LedgerNotFoundError(
            f"Cannot compute balance snapshot: ledger {voucher.ledger_id or '<unknown>'} not found"
        )
    balances = normalize_balances(old_balances, ledger_id=voucher.ledger_id)

    old = _old_balance(balances, voucher.payment_type)
    effect = voucher_effect(voucher)

    snapshot = BalanceSnapshot(
        payment_type=voucher.payment_type,
        old_balance=old,
        current_balance=CurrentBalance(
            amount=round_money(old.total_amount + effect.cash + effect.credit),
            gold_fine_weight=round_weight(old.gold_fine_weight + effect.gold_fine),
            silver_fine_weight=round_weight(old.silver_fine_weight + effect.silver_fine),
        ),
    )
    logger.debug(
        f"Snapshot for {voucher.payment_type.value}: "
        f"{old.total_amount} -> {snapshot.current_balance.amount}"
    )
    return snapshot


def _rounded(balances: LedgerBalances) -> LedgerBalances:
    return LedgerBalances(
        cash=round_money(balances.cash),
        credit=round_money(balances.credit),
        gold_fine=round_weight(balances.gold_fine),
        silver_fine=round_weight(balances.silver_fine),
    )


def apply_voucher(balances: LedgerBalances, voucher: Voucher) -> LedgerBalances:
    """The ledger's live balances after a voucher is saved."""
    return _rounded(balances.plus(voucher_effect(voucher)))


def revert_voucher(balances: LedgerBalances, voucher: Voucher) -> LedgerBalances:
    """
    The ledger's live balances with a saved voucher's effect taken back out.

    Used when a voucher is edited, cancelled or deleted. Snapshots frozen
    into later vouchers are not touched.
    """
    return _rounded(balances.minus(voucher_effect(voucher)))
