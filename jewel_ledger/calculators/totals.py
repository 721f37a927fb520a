"""
Invoice totals aggregator.

Weights, pieces and amounts are straight sums over the items. Labour is
the exception: the total is the sum of each item's charge under the
labour policy, not the sum of the raw labour rates (under the per-gram
policy the two differ whenever gross weights differ).
"""
from __future__ import annotations
from decimal import Decimal
from typing import Iterable, Optional

from ..numeric import ZERO, round_money, round_weight
from ..types import LabourChargePolicy, LineItem, MetalRates, MetalType, Totals
from .amounts import compute_labour_charge, price_items


def aggregate(
    items: Iterable[LineItem],
    policy: LabourChargePolicy = LabourChargePolicy.FLAT,
    rates: Optional[MetalRates] = None,
) -> Totals:
    """
    Reduce line items to invoice totals.

    Args:
        items: Line items (already priced unless rates are given)
        policy: Labour charge policy of the account
        rates: If given, items are re-priced at these rates first

    Returns:
        Totals; all zero for an empty item list
    """
    items = list(items)
    if rates is not None:
        items = price_items(items, rates, policy)

    pieces = 0
    gross = less = net = wastage = fine = labour = amount = ZERO
    for item in items:
        pieces += item.pieces
        gross += item.gross_weight
        less += item.less_weight
        net += item.net_weight
        wastage += item.wastage_grams
        fine += item.fine_weight
        labour += compute_labour_charge(item.labour_rate, item.gross_weight, policy)
        amount += item.amount

    return Totals(
        pieces=pieces,
        gross_weight=round_weight(gross),
        less_weight=round_weight(less),
        net_weight=round_weight(net),
        wastage=round_weight(wastage),
        fine_weight=round_weight(fine),
        labour_total=round_money(labour),
        amount_total=round_money(amount),
    )


def fine_weight_by_metal(items: Iterable[LineItem]) -> dict[MetalType, Decimal]:
    """Sum fine weight separately for gold and silver items."""
    sums = {MetalType.GOLD: ZERO, MetalType.SILVER: ZERO}
    for item in items:
        sums[item.metal_type] += item.fine_weight
    return {metal: round_weight(total) for metal, total in sums.items()}


def items_amount(items: Iterable[LineItem]) -> Decimal:
    """Sum of item amounts, without stone amount or round off."""
    return round_money(sum((item.amount for item in items), ZERO))
