"""
Item amount calculator.

    labour charge = labour rate                  (flat policy)
                  = labour rate x gross weight   (per-gram policy)
    item amount   = fine weight x metal rate + labour charge

Metal rates may be zero or negative; negative rates are how corrections
are entered, so they are not rejected here.
"""
from __future__ import annotations
from decimal import Decimal
from typing import Any, Iterable
from loguru import logger

from ..numeric import parse_decimal, round_money, round_weight
from ..types import LabourChargePolicy, LineItem, MetalRates
from .weights import compute_weights


def compute_labour_charge(
    labour_rate: Any,
    gross_weight: Any,
    policy: LabourChargePolicy = LabourChargePolicy.FLAT,
) -> Decimal:
    """Labour charge for one item under the account's labour charge policy."""
    rate = parse_decimal(labour_rate)
    if LabourChargePolicy.parse(policy) == LabourChargePolicy.PER_GRAM:
        return round_money(rate * parse_decimal(gross_weight))
    return round_money(rate)


def compute_item_amount(fine_weight: Any, metal_rate: Any, labour_charge: Any) -> Decimal:
    """Billed amount for one item, in rupees."""
    fine = round_weight(parse_decimal(fine_weight))
    return round_money(fine * parse_decimal(metal_rate) + parse_decimal(labour_charge))


def price_item(
    item: LineItem,
    rates: MetalRates,
    policy: LabourChargePolicy = LabourChargePolicy.FLAT,
) -> LineItem:
    """
    Recalculate an item's derived fields from its raw measurements.

    Returns a new LineItem with net_weight, fine_weight and amount filled
    in. Pricing the same raw inputs twice gives identical results.
    """
    weights = compute_weights(
        item.gross_weight,
        item.less_weight,
        item.melting_percent,
        item.wastage_grams,
    )
    labour_charge = compute_labour_charge(item.labour_rate, item.gross_weight, policy)
    amount = compute_item_amount(weights.fine_weight, rates.rate_for(item.metal_type), labour_charge)

    if weights.net_weight < 0:
        logger.warning(
            f"Negative net weight for item {item.item_name!r}: "
            f"gross {item.gross_weight} < less {item.less_weight}"
        )

    return item.model_copy(
        update={
            "net_weight": weights.net_weight,
            "fine_weight": weights.fine_weight,
            "amount": amount,
        }
    )


def price_items(
    items: Iterable[LineItem],
    rates: MetalRates,
    policy: LabourChargePolicy = LabourChargePolicy.FLAT,
) -> list[LineItem]:
    """Price every item on an invoice."""
    return [price_item(item, rates, policy) for item in items]
