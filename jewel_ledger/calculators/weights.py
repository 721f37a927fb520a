"""
Metal weight calculator.

    net weight  = gross weight - less weight
    fine weight = net weight x melting% / 100 + wastage (grams)

Net weight is not clamped: less weight above gross weight yields a
negative net weight, which is returned as-is for the caller to flag.
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from ..numeric import HUNDRED, parse_decimal, round_weight


@dataclass(frozen=True)
class ItemWeights:
    net_weight: Decimal
    fine_weight: Decimal


def compute_net_weight(gross_weight: Any, less_weight: Any) -> Decimal:
    """Gross minus less weight, at milligram precision."""
    return round_weight(parse_decimal(gross_weight) - parse_decimal(less_weight))


def compute_fine_weight(net_weight: Any, melting_percent: Any, wastage_grams: Any) -> Decimal:
    """
    Pure-metal equivalent of a net weight.

    Wastage is entered in grams, not as a percentage.
    """
    net = parse_decimal(net_weight)
    melting = parse_decimal(melting_percent)
    wastage = parse_decimal(wastage_grams)
    return round_weight(net * melting / HUNDRED + wastage)


def compute_weights(
    gross_weight: Any,
    less_weight: Any,
    melting_percent: Any,
    wastage_grams: Any,
) -> ItemWeights:
    """Compute net and fine weight for one line item. Never raises."""
    net_weight = compute_net_weight(gross_weight, less_weight)
    fine_weight = compute_fine_weight(net_weight, melting_percent, wastage_grams)
    return ItemWeights(net_weight=net_weight, fine_weight=fine_weight)
