"""
Data types shared by the calculators, parsers and stores.

Input types (LineItem, Voucher) tolerate half-filled forms: every numeric
field is coerced through ``parse_decimal`` before validation, so a blank
or garbled value reads as 0 instead of raising. Output types (Totals,
GSTBreakdown, BalanceSnapshot) are frozen.
"""
from __future__ import annotations
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from .numeric import ZERO, format_money, format_weight, parse_decimal, parse_int


class MetalType(str, Enum):
    GOLD = "gold"
    SILVER = "silver"


class PaymentType(str, Enum):
    CASH = "cash"
    CREDIT = "credit"
    ADD_CASH = "add_cash"
    ADD_GOLD = "add_gold"
    ADD_SILVER = "add_silver"
    MONEY_TO_GOLD = "money_to_gold"
    MONEY_TO_SILVER = "money_to_silver"

    @property
    def is_settlement(self) -> bool:
        return self not in (PaymentType.CASH, PaymentType.CREDIT)


class InvoiceType(str, Enum):
    NORMAL = "normal"
    GST = "gst"


class VoucherStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


class LabourChargePolicy(str, Enum):
    """How an item's labour rate is charged."""

    FLAT = "flat"
    PER_GRAM = "per_gram"

    @classmethod
    def parse(cls, value: Any) -> "LabourChargePolicy":
        """Accept enum values plus the account setting spellings 'full' and 'per-gram'."""
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower().replace("-", "_")
        aliases = {"full": cls.FLAT, "flat": cls.FLAT, "per_gram": cls.PER_GRAM, "pergram": cls.PER_GRAM}
        if key not in aliases:
            raise ValueError(f"Unknown labour charge type: {value!r}")
        return aliases[key]


class TaxType(str, Enum):
    IGST = "IGST"
    CGST_SGST = "CGST_SGST"


def _coerce_metal(value: Any) -> MetalType:
    # Anything that is not explicitly silver is billed as gold
    if isinstance(value, MetalType):
        return value
    if str(value or "").strip().lower() == MetalType.SILVER.value:
        return MetalType.SILVER
    return MetalType.GOLD


def _coerce_text(value: Any) -> str:
    return "" if value is None else str(value)


Amount = Annotated[Decimal, BeforeValidator(parse_decimal)]
Count = Annotated[int, BeforeValidator(parse_int)]
Metal = Annotated[MetalType, BeforeValidator(_coerce_metal)]
Text = Annotated[str, BeforeValidator(_coerce_text)]


class LineItem(BaseModel):
    """One billed ornament. net_weight, fine_weight and amount are derived."""

    model_config = ConfigDict(frozen=True)

    metal_type: Metal = MetalType.GOLD
    item_name: Text = ""
    pieces: Count = 0
    gross_weight: Amount = ZERO
    less_weight: Amount = ZERO
    melting_percent: Amount = ZERO
    wastage_grams: Amount = ZERO
    labour_rate: Amount = ZERO
    net_weight: Amount = ZERO
    fine_weight: Amount = ZERO
    amount: Amount = ZERO
    source_item_id: str | None = None


class MetalRates(BaseModel):
    model_config = ConfigDict(frozen=True)

    gold: Amount = ZERO
    silver: Amount = ZERO

    def rate_for(self, metal_type: MetalType) -> Decimal:
        return self.gold if metal_type == MetalType.GOLD else self.silver


# Settlement deltas: the overloaded "cash received" field resolved per payment type

class AddCash(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["add_cash"] = "add_cash"
    amount: Amount = ZERO


class AddGold(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["add_gold"] = "add_gold"
    grams: Amount = ZERO


class AddSilver(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["add_silver"] = "add_silver"
    grams: Amount = ZERO


class ConvertToGold(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["money_to_gold"] = "money_to_gold"
    cash_amount: Amount = ZERO


class ConvertToSilver(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["money_to_silver"] = "money_to_silver"
    cash_amount: Amount = ZERO


SettlementDelta = Annotated[
    Union[AddCash, AddGold, AddSilver, ConvertToGold, ConvertToSilver],
    Field(discriminator="kind"),
]


class GSTDefaults(BaseModel):
    """Seller-side GST registration settings for an account."""

    model_config = ConfigDict(frozen=True)

    business_state: str | None = None
    gst_number: str | None = None
    default_rate: Amount = Decimal("18")


class GSTBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    tax_type: TaxType | None = None
    rate: Amount = ZERO
    taxable_amount: Amount = ZERO
    igst: Amount = ZERO
    cgst: Amount = ZERO
    sgst: Amount = ZERO
    total_gst: Amount = ZERO
    total: Amount = ZERO


class GSTDetails(BaseModel):
    rate: Amount = Decimal("18")
    customer_gst_number: str | None = None
    tax_type: TaxType | None = None
    breakdown: GSTBreakdown | None = None


class Totals(BaseModel):
    model_config = ConfigDict(frozen=True)

    pieces: int = 0
    gross_weight: Decimal = ZERO
    less_weight: Decimal = ZERO
    net_weight: Decimal = ZERO
    wastage: Decimal = ZERO
    fine_weight: Decimal = ZERO
    labour_total: Decimal = ZERO
    amount_total: Decimal = ZERO


class LedgerBalances(BaseModel):
    """
    A customer's live balances, in canonical shape.

    Positive amounts are owed by the customer; positive fine weights are
    metal the customer owes the shop.
    """

    model_config = ConfigDict(frozen=True)

    cash: Amount = ZERO
    credit: Amount = ZERO
    gold_fine: Amount = ZERO
    silver_fine: Amount = ZERO

    @property
    def total_amount(self) -> Decimal:
        return self.cash + self.credit

    def plus(self, other: "LedgerBalances") -> "LedgerBalances":
        return LedgerBalances(
            cash=self.cash + other.cash,
            credit=self.credit + other.credit,
            gold_fine=self.gold_fine + other.gold_fine,
            silver_fine=self.silver_fine + other.silver_fine,
        )

    def minus(self, other: "LedgerBalances") -> "LedgerBalances":
        return LedgerBalances(
            cash=self.cash - other.cash,
            credit=self.credit - other.credit,
            gold_fine=self.gold_fine - other.gold_fine,
            silver_fine=self.silver_fine - other.silver_fine,
        )


class OldBalance(BaseModel):
    model_config = ConfigDict(frozen=True)

    cash_amount: Decimal = ZERO
    credit_amount: Decimal = ZERO
    total_amount: Decimal = ZERO
    gold_fine_weight: Decimal = ZERO
    silver_fine_weight: Decimal = ZERO


class CurrentBalance(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount: Decimal = ZERO
    gold_fine_weight: Decimal = ZERO
    silver_fine_weight: Decimal = ZERO


class BalanceSnapshot(BaseModel):
    """Before/after balances frozen into a voucher when it is saved."""

    model_config = ConfigDict(frozen=True)

    payment_type: PaymentType
    old_balance: OldBalance
    current_balance: CurrentBalance


class Voucher(BaseModel):
    """A bill or settlement as entered on the billing screen."""

    voucher_id: str | None = None
    ledger_id: str | None = None
    voucher_number: str | None = None
    voucher_date: date | None = None
    payment_type: PaymentType = PaymentType.CASH
    invoice_type: InvoiceType = InvoiceType.NORMAL
    status: VoucherStatus = VoucherStatus.ACTIVE
    items: list[LineItem] = Field(default_factory=list)
    rates: MetalRates = Field(default_factory=MetalRates)
    stone_amount: Amount = ZERO
    round_off: Amount = ZERO
    cash_received: Amount = ZERO
    settlement: Optional[SettlementDelta] = None
    gst_details: GSTDetails | None = None
    narration: str | None = None
    affects_stock: bool = False
    totals: Totals | None = None
    balance_snapshot: BalanceSnapshot | None = None

    @property
    def is_settlement(self) -> bool:
        return self.payment_type.is_settlement

    @property
    def is_cancelled(self) -> bool:
        return self.status == VoucherStatus.CANCELLED


WEIGHT_FIELDS = frozenset({
    "gross_weight", "less_weight", "net_weight", "fine_weight", "wastage",
    "wastage_grams", "gold_fine", "silver_fine", "gold_fine_weight",
    "silver_fine_weight", "grams",
})
# Carried as entered rather than formatted as money
PLAIN_FIELDS = frozenset({"melting_percent", "rate", "default_rate", "pieces"})


def _serialize(key: str | None, value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _serialize(k, v) for k, v in value.items()}
    if isinstance(value, list):
        return [_serialize(key, v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        if key in WEIGHT_FIELDS:
            return format_weight(value)
        if key in PLAIN_FIELDS:
            return str(value)
        return format_money(value)
    return value


def to_record(model: BaseModel) -> dict:
    """
    Dump a model for persistence or display.

    Weights are written with 3 decimal places and money with 2, as strings,
    so repeated save/load cycles never drift.
    """
    return _serialize(None, model.model_dump())
