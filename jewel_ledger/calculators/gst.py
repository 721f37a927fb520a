"""
GST tax engine.

Tax type follows the place of supply:
- Seller and customer in the same state: CGST + SGST, half the rate each
- Different states: IGST at the full rate
- Either state unknown: undetermined (None); no breakdown is computed

A GSTIN is 15 characters: 2-digit state code + 5 letters (PAN) +
4 digits + 4 alphanumeric. The state code is its first two characters.
"""
from __future__ import annotations
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional
from loguru import logger

from ..numeric import HUNDRED, ZERO, parse_decimal, round_money
from ..types import GSTBreakdown, GSTDefaults, GSTDetails, TaxType

GSTIN_PATTERN = re.compile(r"^\d{2}[A-Z]{5}\d{4}[A-Z0-9]{4}$")

STATE_CODES = {
    "01": "Jammu & Kashmir",
    "02": "Himachal Pradesh",
    "03": "Punjab",
    "04": "Chandigarh",
    "05": "Uttarakhand",
    "06": "Haryana",
    "07": "Delhi",
    "08": "Rajasthan",
    "09": "Uttar Pradesh",
    "10": "Bihar",
    "11": "Sikkim",
    "12": "Arunachal Pradesh",
    "13": "Nagaland",
    "14": "Manipur",
    "15": "Mizoram",
    "16": "Tripura",
    "17": "Meghalaya",
    "18": "Assam",
    "19": "West Bengal",
    "20": "Jharkhand",
    "21": "Odisha",
    "22": "Chhattisgarh",
    "23": "Madhya Pradesh",
    "24": "Gujarat",
    "25": "Daman & Diu",
    "26": "Dadra & Nagar Haveli",
    "27": "Maharashtra",
    "28": "Andhra Pradesh (Old)",
    "29": "Karnataka",
    "30": "Goa",
    "31": "Lakshadweep",
    "32": "Kerala",
    "33": "Tamil Nadu",
    "34": "Puducherry",
    "35": "Andaman & Nicobar Islands",
    "36": "Telangana",
    "37": "Andhra Pradesh (New)",
    "38": "Ladakh",
    "97": "Other Territory",
    "99": "Centre Jurisdiction",
}


def is_valid_gst_format(gst_number: str | None) -> bool:
    """Check a GSTIN against the 15-character pattern (case-insensitive)."""
    if not gst_number:
        return False
    return bool(GSTIN_PATTERN.match(gst_number.strip().upper()))


def extract_state_code(gst_number: str | None) -> Optional[str]:
    """First two characters of a GST number, without validating the rest."""
    if not gst_number or len(gst_number.strip()) < 2:
        return None
    return gst_number.strip()[:2]


def state_code_from_gst(gst_number: str | None) -> Optional[str]:
    """State code of a well-formed GSTIN, else None."""
    if not is_valid_gst_format(gst_number):
        return None
    return gst_number.strip()[:2]


def format_gst_number(gst_number: str | None) -> str:
    """Upper-case a GST number for display."""
    if not gst_number:
        return ""
    return gst_number.strip().upper()


def state_name(state_code: Any) -> str:
    """Name of a GST state code, or the code itself when unknown."""
    code = str(state_code).strip()
    if code in STATE_CODES:
        return STATE_CODES[code]
    return STATE_CODES.get(code.zfill(2), code)


def _normalize_state(state_code: Any) -> Optional[str]:
    if state_code is None:
        return None
    code = str(state_code).strip()
    if not code:
        return None
    return code.zfill(2) if code.isdigit() else code.upper()


def determine_tax_type(seller_state_code: Any, customer_state_code: Any) -> Optional[TaxType]:
    """
    Decide between intrastate and interstate tax.

    Returns None when either state code is missing.
    """
    seller = _normalize_state(seller_state_code)
    customer = _normalize_state(customer_state_code)
    if seller is None or customer is None:
        return None
    return TaxType.CGST_SGST if seller == customer else TaxType.IGST


def compute_gst(taxable_amount: Any, rate_percent: Any, tax_type: TaxType | str | None) -> GSTBreakdown:
    """
    Compute the GST breakdown for a taxable amount.

    A zero rate or zero taxable amount gives an all-zero breakdown with
    total equal to the taxable amount. Never raises.
    """
    taxable = round_money(parse_decimal(taxable_amount))
    rate = parse_decimal(rate_percent)
    try:
        tax_type = TaxType(tax_type) if tax_type is not None else None
    except ValueError:
        logger.warning(f"Unknown GST type {tax_type!r}, no tax applied")
        tax_type = None

    if taxable == ZERO or rate == ZERO or tax_type is None:
        return GSTBreakdown(tax_type=tax_type, rate=rate, taxable_amount=taxable, total=taxable)

    if tax_type == TaxType.IGST:
        igst = round_money(taxable * rate / HUNDRED)
        return GSTBreakdown(
            tax_type=tax_type,
            rate=rate,
            taxable_amount=taxable,
            igst=igst,
            total_gst=igst,
            total=taxable + igst,
        )

    # Rounded from the unsplit amount so the total matches IGST at the same rate;
    # SGST takes the remainder so the halves always add up to the total
    total_gst = round_money(taxable * rate / HUNDRED)
    cgst = round_money(taxable * (rate / 2) / HUNDRED)
    return GSTBreakdown(
        tax_type=tax_type,
        rate=rate,
        taxable_amount=taxable,
        cgst=cgst,
        sgst=total_gst - cgst,
        total_gst=total_gst,
        total=taxable + total_gst,
    )


def gst_taxable_amount(items_amount: Any, stone_amount: Any, round_off: Any) -> Decimal:
    """Taxable value of a GST invoice: items + stone amount + round off."""
    return round_money(
        parse_decimal(items_amount) + parse_decimal(stone_amount) + parse_decimal(round_off)
    )


def build_gst_details(
    taxable_amount: Any,
    rate_percent: Any,
    seller_state_code: Any,
    customer_gst_number: str | None,
) -> GSTDetails:
    """
    Resolve tax type from the customer's GSTIN and compute the breakdown.

    The breakdown is left empty while the tax type is undetermined.
    """
    tax_type = determine_tax_type(seller_state_code, extract_state_code(customer_gst_number))
    breakdown = None
    if tax_type is not None:
        breakdown = compute_gst(taxable_amount, rate_percent, tax_type)
    else:
        logger.debug("GST type undetermined: seller or customer state missing")
    return GSTDetails(
        rate=parse_decimal(rate_percent),
        customer_gst_number=format_gst_number(customer_gst_number) or None,
        tax_type=tax_type,
        breakdown=breakdown,
    )


@dataclass
class ValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)


def is_gst_settings_complete(defaults: GSTDefaults | None) -> bool:
    """Seller settings are complete with a valid GSTIN, a state and a rate."""
    return bool(
        defaults
        and defaults.gst_number
        and is_valid_gst_format(defaults.gst_number)
        and defaults.business_state
        and defaults.default_rate is not None
    )


def validate_gst_invoice(
    seller: GSTDefaults | None,
    customer_gst_number: str | None = None,
) -> ValidationResult:
    """Check the seller settings and the customer's GSTIN before a GST invoice."""
    errors = []

    if seller is None:
        errors.append("Seller GST settings not found")
    else:
        if not seller.gst_number:
            errors.append("Seller GST Number is required")
        elif not is_valid_gst_format(seller.gst_number):
            errors.append("Seller GST Number format is invalid")

        if not seller.business_state:
            errors.append("Seller Business State is required")

        if seller.default_rate is None:
            errors.append("Seller GST Rate is not set")

    if customer_gst_number and not is_valid_gst_format(customer_gst_number):
        errors.append("Customer GST Number format is invalid")

    return ValidationResult(is_valid=not errors, errors=errors)
