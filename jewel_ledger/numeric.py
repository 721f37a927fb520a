"""
Numeric parsing and rounding utilities.

Billing forms arrive half-filled: weights typed as "10.5", rates pasted as
"₹6,000", blank labour fields. Everything that reaches a calculator goes
through these helpers first, so a calculator never sees anything but a
finite Decimal.

Precision conventions:
- Weights (grams): 3 decimal places (milligram precision)
- Money (₹): 2 decimal places
"""
from __future__ import annotations
import re
from decimal import Context, Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any
from loguru import logger

ZERO = Decimal("0")
HUNDRED = Decimal("100")
WEIGHT_PLACES = Decimal("0.001")
MONEY_PLACES = Decimal("0.01")
# Inputs at or above this magnitude are treated as garbage
MAX_MAGNITUDE = Decimal("1e15")

# Wide enough that quantizing any product of bounded inputs never overflows
_QUANTIZE_CONTEXT = Context(prec=100)

_EMPTY_MARKERS = ("", "null", "none", "undefined", "nan")


def parse_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """
    Parse a user-entered numeric value to Decimal.

    Handles:
    - Comma separators (1,234.56)
    - Parentheses for negatives ((1234.56))
    - Currency symbols
    - Empty strings, None, NaN and infinities

    Anything that cannot be read as a finite number, or whose magnitude is
    at least ``MAX_MAGNITUDE``, becomes ``default``.
    """
    if value is None or isinstance(value, bool):
        return default

    if isinstance(value, Decimal):
        return value if _in_range(value, value) else default

    if isinstance(value, (int, float)):
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            return default
        return result if _in_range(result, value) else default

    s = str(value).strip()
    if s.lower() in _EMPTY_MARKERS:
        return default

    is_negative = s.startswith("(") and s.endswith(")")
    if is_negative:
        s = s[1:-1]

    s = re.sub(r"[,₹$\s]", "", s)
    if s.lower().endswith("g"):
        s = s[:-1]

    try:
        result = Decimal(s)
    except InvalidOperation:
        logger.warning(f"Could not parse number: {value!r}")
        return default

    if not _in_range(result, value):
        return default
    return -result if is_negative else result


def _in_range(result: Decimal, value: Any) -> bool:
    if not result.is_finite():
        return False
    if abs(result) >= MAX_MAGNITUDE:
        logger.warning(f"Number out of range: {value!r}")
        return False
    return True


def parse_int(value: Any, default: int = 0) -> int:
    """Parse a piece count. "3.0" reads as 3."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value

    parsed = parse_decimal(value, default=Decimal(default))
    return int(parsed)


def round_weight(value: Decimal) -> Decimal:
    """Quantize a weight to milligram precision."""
    return value.quantize(WEIGHT_PLACES, rounding=ROUND_HALF_UP, context=_QUANTIZE_CONTEXT)


def round_money(value: Decimal) -> Decimal:
    """Quantize an amount to paise."""
    return value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP, context=_QUANTIZE_CONTEXT)


def _as_decimal(value: Any) -> Decimal:
    # Computed totals may legitimately exceed the input bound
    if isinstance(value, Decimal) and value.is_finite():
        return value
    return parse_decimal(value)


def format_weight(value: Any) -> str:
    """Serialize a weight with exactly 3 decimal places."""
    return str(round_weight(_as_decimal(value)))


def format_money(value: Any) -> str:
    """Serialize an amount with exactly 2 decimal places."""
    return str(round_money(_as_decimal(value)))
