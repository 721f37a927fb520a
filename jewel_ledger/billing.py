"""
Billing orchestration.

Ties the pure calculators to a ledger store:
- quote: price a form without saving (live totals on the billing screen)
- post_voucher: validate, price, snapshot and persist as one unit
- update_voucher / cancel_voucher / delete_voucher: change a saved voucher,
  taking its old effect back out of the live balances
- recalculate_balance: rebuild live balances from the voucher history
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol, Union
from loguru import logger

from .calculators import (
    StaleSnapshot,
    StatementRow,
    aggregate,
    apply_voucher,
    build_gst_details,
    compute_snapshot,
    find_stale_snapshots,
    gst_taxable_amount,
    price_items,
    replay_history,
    revert_voucher,
)
from .config import JewelLedgerConfig
from .exceptions import LedgerNotFoundError, VoucherNotFoundError, VoucherValidationError
from .parsers import normalize_balances, parse_voucher
from .stores import LedgerStore
from .types import GSTDefaults, InvoiceType, LabourChargePolicy, LedgerBalances, Voucher, VoucherStatus
from .validators import ensure_valid, validate_voucher, validate_voucher_form


class Inventory(Protocol):
    """Stock register for item-mode sales."""

    def mark_sold(self, item_ids: list[str], voucher_id: str) -> None: ...
    def mark_available(self, item_ids: list[str], voucher_id: str) -> None: ...


def _stock_ids(voucher: Voucher) -> list[str]:
    if not voucher.affects_stock or voucher.is_cancelled:
        return []
    return [item.source_item_id for item in voucher.items if item.source_item_id]


def _balances_before(voucher: Voucher) -> Optional[LedgerBalances]:
    if voucher.balance_snapshot is None:
        return None
    old = voucher.balance_snapshot.old_balance
    return LedgerBalances(
        cash=old.cash_amount,
        credit=old.credit_amount,
        gold_fine=old.gold_fine_weight,
        silver_fine=old.silver_fine_weight,
    )


@dataclass
class RecalculationResult:
    ledger_id: str
    previous: LedgerBalances
    balances: LedgerBalances
    rows: list[StatementRow] = field(default_factory=list)
    stale_snapshots: list[StaleSnapshot] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.previous != self.balances


class BillingService:
    """
    Billing and settlement workflow for one shop account.

    Usage:
        service = BillingService(InMemoryLedgerStore())

        # Live totals while the form is being filled
        quote = service.quote(form)

        # Save a bill or settlement
        voucher = service.post_voucher("L1", form)

        # Rebuild a ledger's live balances from its history
        result = service.recalculate_balance("L1")
    """

    def __init__(
        self,
        store: LedgerStore,
        config: Optional[JewelLedgerConfig] = None,
        labour_policy: Optional[LabourChargePolicy] = None,
        gst_defaults: Optional[GSTDefaults] = None,
        inventory: Optional[Inventory] = None,
    ):
        self.config = config or JewelLedgerConfig.from_env()
        self.store = store
        self.labour_policy = LabourChargePolicy.parse(labour_policy or self.config.labour_charge_policy)
        self.gst_defaults = gst_defaults or self.config.gst_defaults
        self.inventory = inventory

    def price(self, voucher: Voucher) -> Voucher:
        """Fill in item weights and amounts, totals and GST for a voucher."""
        items = price_items(voucher.items, voucher.rates, self.labour_policy)
        totals = aggregate(items, self.labour_policy)

        gst_details = voucher.gst_details
        if voucher.invoice_type == InvoiceType.GST and not voucher.is_settlement:
            rate = gst_details.rate if gst_details else self.gst_defaults.default_rate
            customer_gst = gst_details.customer_gst_number if gst_details else None
            taxable = gst_taxable_amount(totals.amount_total, voucher.stone_amount, voucher.round_off)
            gst_details = build_gst_details(taxable, rate, self.gst_defaults.business_state, customer_gst)

        return voucher.model_copy(
            update={"items": items, "totals": totals, "gst_details": gst_details}
        )

    def quote(self, raw: Union[Mapping[str, Any], Voucher]) -> Voucher:
        """Price a voucher without validating or saving it."""
        voucher = raw if isinstance(raw, Voucher) else parse_voucher(raw)
        return self.price(voucher)

    def _prepare(self, ledger_id: str, raw: Union[Mapping[str, Any], Voucher]) -> Voucher:
        if isinstance(raw, Voucher):
            voucher = raw.model_copy(update={"ledger_id": ledger_id})
            ensure_valid(validate_voucher(voucher))
            return voucher
        form = {**raw, "ledgerId": ledger_id}
        ensure_valid(validate_voucher_form(form))
        return parse_voucher(form)

    def _existing(self, ledger_id: str, voucher_id: str) -> Voucher:
        voucher = self.store.get_voucher(ledger_id, voucher_id)
        if voucher is None:
            raise VoucherNotFoundError(f"Voucher {voucher_id} not found on ledger {ledger_id}")
        return voucher

    def _sync_stock(self, released: list[str], sold: list[str], voucher_id: str):
        if self.inventory is None:
            return
        # Items on both sides of an edit stay sold
        kept = set(released) & set(sold)
        released = [item_id for item_id in released if item_id not in kept]
        sold = [item_id for item_id in sold if item_id not in kept]
        if released:
            self.inventory.mark_available(released, voucher_id)
        if sold:
            self.inventory.mark_sold(sold, voucher_id)

    def post_voucher(self, ledger_id: str, raw: Union[Mapping[str, Any], Voucher]) -> Voucher:
        """
        Validate, price and save a voucher against a ledger.

        Balances are read, the snapshot computed, and the voucher saved with
        the ledger's new balances while the ledger is locked.

        Raises:
            VoucherValidationError: If the voucher is incomplete
            LedgerNotFoundError: If the ledger does not exist
            LedgerStoreError: If the store fails
        """
        priced = self.price(self._prepare(ledger_id, raw))

        with self.store.lock(ledger_id):
            raw_balances = self.store.get_balances(ledger_id)
            snapshot = compute_snapshot(raw_balances, priced)
            new_balances = apply_voucher(normalize_balances(raw_balances, ledger_id), priced)

            final = priced.model_copy(update={"balance_snapshot": snapshot})
            voucher_id = self.store.save_voucher(ledger_id, final, new_balances)

            self._sync_stock([], _stock_ids(final), voucher_id)

        logger.info(
            f"Posted {final.payment_type.value} voucher {voucher_id} for ledger {ledger_id}: "
            f"balance {snapshot.old_balance.total_amount} -> {snapshot.current_balance.amount}"
        )
        return final.model_copy(update={"voucher_id": voucher_id})

    def update_voucher(
        self,
        ledger_id: str,
        voucher_id: str,
        raw: Union[Mapping[str, Any], Voucher],
    ) -> Voucher:
        """
        Replace a saved voucher with an edited version.

        The old voucher's effect is taken out of the live balances and the
        edited voucher's effect applied. The edited voucher's snapshot starts
        from the old balance it was first saved with, so it keeps its place
        in the history. Snapshots frozen into other vouchers are left as
        saved (see ``recalculate_balance``).

        Raises:
            VoucherValidationError: If the edit is incomplete or the voucher
                is cancelled
            VoucherNotFoundError: If the voucher is not on the ledger
            LedgerNotFoundError: If the ledger does not exist
        """
        priced = self.price(self._prepare(ledger_id, raw))

        with self.store.lock(ledger_id):
            raw_balances = self.store.get_balances(ledger_id)
            balances = normalize_balances(raw_balances, ledger_id)
            existing = self._existing(ledger_id, voucher_id)
            if existing.is_cancelled:
                raise VoucherValidationError({"status": "Cancelled vouchers cannot be edited"})

            balances = revert_voucher(balances, existing)
            before = _balances_before(existing) or balances
            final = priced.model_copy(
                update={
                    "voucher_id": voucher_id,
                    "voucher_number": priced.voucher_number or existing.voucher_number,
                    "voucher_date": priced.voucher_date or existing.voucher_date,
                    "balance_snapshot": compute_snapshot(before, priced),
                }
            )
            self.store.replace_voucher(ledger_id, voucher_id, final, apply_voucher(balances, final))
            self._sync_stock(_stock_ids(existing), _stock_ids(final), voucher_id)

        logger.info(f"Updated voucher {voucher_id} on ledger {ledger_id}")
        return final

    def cancel_voucher(self, ledger_id: str, voucher_id: str) -> Voucher:
        """
        Mark a saved voucher cancelled and take its effect out of the live balances.

        The voucher and its frozen snapshot are kept for the record.
        Cancelling an already cancelled voucher changes nothing.
        """
        with self.store.lock(ledger_id):
            balances = normalize_balances(self.store.get_balances(ledger_id), ledger_id)
            existing = self._existing(ledger_id, voucher_id)
            if existing.is_cancelled:
                logger.info(f"Voucher {voucher_id} on ledger {ledger_id} is already cancelled")
                return existing

            cancelled = existing.model_copy(update={"status": VoucherStatus.CANCELLED})
            self.store.replace_voucher(ledger_id, voucher_id, cancelled, revert_voucher(balances, existing))
            self._sync_stock(_stock_ids(existing), [], voucher_id)

        logger.info(f"Cancelled voucher {voucher_id} on ledger {ledger_id}")
        return cancelled

    def delete_voucher(self, ledger_id: str, voucher_id: str) -> Voucher:
        """
        Delete a saved voucher and take its effect out of the live balances.

        Returns the deleted voucher. Later vouchers keep the snapshots they
        were saved with.
        """
        with self.store.lock(ledger_id):
            balances = normalize_balances(self.store.get_balances(ledger_id), ledger_id)
            existing = self._existing(ledger_id, voucher_id)
            self.store.delete_voucher(ledger_id, voucher_id, revert_voucher(balances, existing))
            self._sync_stock(_stock_ids(existing), [], voucher_id)

        logger.info(f"Deleted voucher {voucher_id} from ledger {ledger_id}")
        return existing

    def recalculate_balance(self, ledger_id: str) -> RecalculationResult:
        """
        Replay a ledger's vouchers from its opening balance and store the result.

        Only live balances are rewritten. Frozen snapshots that disagree with
        the replay are reported in the result.
        """
        with self.store.lock(ledger_id):
            opening = self.store.get_opening_balances(ledger_id)
            current = self.store.get_balances(ledger_id)
            if opening is None or current is None:
                raise LedgerNotFoundError(f"Ledger not found: {ledger_id}")

            vouchers = self.store.list_vouchers(ledger_id)
            rows, closing = replay_history(opening, vouchers)
            stale = find_stale_snapshots(opening, vouchers)
            self.store.set_balances(ledger_id, closing)

        result = RecalculationResult(
            ledger_id=ledger_id,
            previous=current,
            balances=closing,
            rows=rows,
            stale_snapshots=stale,
        )
        logger.info(
            f"Recalculated ledger {ledger_id} over {len(rows)} vouchers "
            f"({'changed' if result.changed else 'unchanged'}, {len(stale)} stale snapshots)"
        )
        return result
