"""
Voucher validation.

Calculators accept anything; this module decides whether a voucher is
complete enough to save. Errors are keyed by form field so the billing
screen can show them next to the input that caused them.
"""
from __future__ import annotations
from typing import Any, Mapping

from .exceptions import VoucherValidationError
from .numeric import ZERO
from .parsers.vouchers import parse_voucher
from .types import InvoiceType, PaymentType, Voucher

SETTLEMENT_RATE_FIELDS = {
    PaymentType.MONEY_TO_GOLD: ("goldRate", "gold", "Gold rate must be greater than 0"),
    PaymentType.MONEY_TO_SILVER: ("silverRate", "silver", "Silver rate must be greater than 0"),
}


def _settlement_value(voucher: Voucher):
    delta = voucher.settlement
    if delta is None:
        return voucher.cash_received
    for attr in ("amount", "grams", "cash_amount"):
        if hasattr(delta, attr):
            return getattr(delta, attr)
    return ZERO


def validate_voucher(voucher: Voucher) -> dict[str, str]:
    """
    Check a parsed voucher. Returns a field -> message dict; empty when valid.
    """
    errors: dict[str, str] = {}

    if not voucher.ledger_id:
        errors["ledgerId"] = "Please select a customer"

    if voucher.settlement is not None and voucher.settlement.kind != voucher.payment_type.value:
        errors["paymentType"] = "Settlement does not match payment type"

    if voucher.is_settlement:
        if voucher.items:
            errors["items"] = "Settlements cannot include items"
        if _settlement_value(voucher) == ZERO:
            errors["cashReceived"] = "Please enter a valid amount"
        if voucher.payment_type in SETTLEMENT_RATE_FIELDS:
            field_name, metal, message = SETTLEMENT_RATE_FIELDS[voucher.payment_type]
            if getattr(voucher.rates, metal) <= ZERO:
                errors[field_name] = message
    else:
        if not voucher.items:
            errors["items"] = "Please add at least one item"
        for i, item in enumerate(voucher.items):
            if not item.item_name.strip():
                errors[f"{i}_itemName"] = "Item name is required"

    if voucher.invoice_type == InvoiceType.GST:
        if voucher.gst_details is None or voucher.gst_details.rate < ZERO:
            errors["gstRate"] = "Please select a valid GST rate"

    return errors


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_voucher_form(raw: Mapping[str, Any]) -> dict[str, str]:
    """
    Check a raw billing form post.

    Adds the checks that need the raw input (a blank gross weight and a
    typed 0 parse to the same Decimal) on top of validate_voucher.
    """
    try:
        voucher = parse_voucher(raw)
    except ValueError as e:
        return {"paymentType": str(e)}

    errors = validate_voucher(voucher)
    if not voucher.is_settlement:
        for i, row in enumerate(raw.get("items") or []):
            gross = row.get("grossWeight", row.get("gross_weight"))
            if _is_blank(gross):
                errors[f"{i}_grossWeight"] = "Gross weight is required"
    return errors


def ensure_valid(errors: Mapping[str, str]) -> None:
    """Raise VoucherValidationError if there are any errors."""
    if errors:
        raise VoucherValidationError(dict(errors))
