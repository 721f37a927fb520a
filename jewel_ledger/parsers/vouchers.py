"""
Voucher and line item parsing.

Accepts the billing screen's field names (grossWeight, melting, wastage,
labourRate, _itemId, ...) as well as snake_case names, so stored records
and form posts go through the same path.
"""
from __future__ import annotations
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional
from loguru import logger

from ..numeric import parse_decimal
from ..types import (
    AddCash,
    AddGold,
    AddSilver,
    ConvertToGold,
    ConvertToSilver,
    GSTDetails,
    InvoiceType,
    LineItem,
    MetalRates,
    PaymentType,
    SettlementDelta,
    Voucher,
)


def _pick(row: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first key present in row."""
    for key in keys:
        if key in row and row[key] is not None:
            return row[key]
    return default


def parse_date(s: Any) -> Optional[date]:
    """
    Parse a voucher date.

    Supported formats:
    - YYYY-MM-DD (form input, ISO timestamps are truncated)
    - DD-MM-YYYY
    - DD/MM/YYYY

    Returns None for empty or unparseable strings.
    """
    if s is None:
        return None
    if isinstance(s, datetime):
        return s.date()
    if isinstance(s, date):
        return s

    s = str(s).strip()
    if not s or s.lower() in ("null", "none"):
        return None

    formats = [
        "%Y-%m-%d",    # 2024-04-01
        "%d-%m-%Y",    # 01-04-2024
        "%d/%m/%Y",    # 01/04/2024
    ]

    for fmt in formats:
        try:
            return datetime.strptime(s[:10], fmt).date()
        except ValueError:
            continue

    logger.warning(f"Could not parse date: {s}")
    return None


def parse_line_item(row: Mapping[str, Any]) -> LineItem:
    """Build a LineItem from one form row. Malformed numbers read as 0."""
    return LineItem(
        metal_type=_pick(row, "metalType", "metal_type"),
        item_name=_pick(row, "itemName", "item_name", default=""),
        pieces=_pick(row, "pieces"),
        gross_weight=_pick(row, "grossWeight", "gross_weight"),
        less_weight=_pick(row, "lessWeight", "less_weight"),
        melting_percent=_pick(row, "melting", "meltingPercent", "melting_percent"),
        wastage_grams=_pick(row, "wastage", "wastageGrams", "wastage_grams"),
        labour_rate=_pick(row, "labourRate", "labour_rate"),
        net_weight=_pick(row, "netWeight", "net_weight"),
        fine_weight=_pick(row, "fineWeight", "fine_weight"),
        amount=_pick(row, "amount"),
        source_item_id=_pick(row, "_itemId", "sourceItemId", "source_item_id"),
    )


def parse_line_items(rows: Iterable[Mapping[str, Any]] | None) -> list[LineItem]:
    """Parse every form row into a LineItem."""
    return [parse_line_item(row) for row in rows or []]


def settlement_from_payment(payment_type: PaymentType, value: Any) -> Optional[SettlementDelta]:
    """
    Resolve the overloaded settlement value for a payment type.

    The billing screen reuses one input for cash received, grams of gold or
    silver, and cash paid against a metal balance. Bills return None.
    """
    payment_type = PaymentType(payment_type)
    if payment_type == PaymentType.ADD_CASH:
        return AddCash(amount=value)
    if payment_type == PaymentType.ADD_GOLD:
        return AddGold(grams=value)
    if payment_type == PaymentType.ADD_SILVER:
        return AddSilver(grams=value)
    if payment_type == PaymentType.MONEY_TO_GOLD:
        return ConvertToGold(cash_amount=value)
    if payment_type == PaymentType.MONEY_TO_SILVER:
        return ConvertToSilver(cash_amount=value)
    return None


def _parse_payment_type(value: Any) -> PaymentType:
    if value is None or value == "":
        return PaymentType.CASH
    try:
        return PaymentType(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown payment type: {value!r}") from None


def parse_voucher(raw: Mapping[str, Any]) -> Voucher:
    """
    Build a Voucher from a billing form post.

    Raises:
        ValueError: If the payment type is not one the ledger understands
    """
    payment_type = _parse_payment_type(_pick(raw, "paymentType", "payment_type"))
    invoice_type = (
        InvoiceType.GST
        if str(_pick(raw, "invoiceType", "invoice_type", default="")).lower() == InvoiceType.GST.value
        else InvoiceType.NORMAL
    )
    cash_received = parse_decimal(_pick(raw, "cashReceived", "cash_received"))

    gst_details = None
    if invoice_type == InvoiceType.GST:
        stored = _pick(raw, "gstDetails", "gst_details", default={}) or {}
        gst_details = GSTDetails(
            rate=_pick(raw, "gstRate", "gst_rate", default=_pick(stored, "gstRate", "rate", default="18")),
            customer_gst_number=_pick(
                raw,
                "customerGSTNumber",
                "customer_gst_number",
                default=_pick(stored, "customerGSTNumber", "customer_gst_number"),
            ),
        )

    is_item_mode = str(_pick(raw, "stockMode", "stock_mode", default="")).lower() == "item"

    voucher = Voucher(
        voucher_id=_pick(raw, "_id", "voucherId", "voucher_id"),
        ledger_id=_pick(raw, "ledgerId", "ledger_id"),
        voucher_number=_pick(raw, "voucherNumber", "voucher_number"),
        voucher_date=parse_date(_pick(raw, "date", "voucher_date")),
        payment_type=payment_type,
        invoice_type=invoice_type,
        items=parse_line_items(_pick(raw, "items", default=[])),
        rates=MetalRates(
            gold=_pick(raw, "goldRate", "gold_rate"),
            silver=_pick(raw, "silverRate", "silver_rate"),
        ),
        stone_amount=_pick(raw, "stoneAmount", "stone_amount"),
        round_off=_pick(raw, "roundOff", "round_off"),
        cash_received=cash_received,
        settlement=settlement_from_payment(payment_type, cash_received),
        gst_details=gst_details,
        narration=_pick(raw, "narration"),
        affects_stock=is_item_mode and not payment_type.is_settlement,
    )
    logger.debug(
        f"Parsed {voucher.payment_type.value} voucher with {len(voucher.items)} items"
    )
    return voucher
