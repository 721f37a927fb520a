"""
Tests for the weight, amount and totals calculators.
"""
from decimal import Decimal
from jewel_ledger.calculators import (
    aggregate,
    compute_item_amount,
    compute_labour_charge,
    compute_weights,
    fine_weight_by_metal,
    items_amount,
    price_item,
    price_items,
)
from jewel_ledger.types import LabourChargePolicy, LineItem, MetalRates, MetalType


RATES = MetalRates(gold=Decimal("6000"), silver=Decimal("75"))


def _item(**overrides) -> LineItem:
    fields = {
        "metal_type": "gold",
        "item_name": "Ring",
        "pieces": 1,
        "gross_weight": "10",
        "less_weight": "0.5",
        "melting_percent": "91.6",
        "wastage_grams": "0.2",
        "labour_rate": "200",
    }
    fields.update(overrides)
    return LineItem(**fields)


class TestWeights:
    """Tests for net and fine weight."""

    def test_fine_weight_with_wastage_in_grams(self):
        """9.5g net at 91.6% melting plus 0.2g wastage is 8.902g fine."""
        weights = compute_weights("10", "0.5", "91.6", "0.2")
        assert weights.net_weight == Decimal("9.500")
        assert weights.fine_weight == Decimal("8.902")

    def test_net_weight_is_gross_minus_less(self):
        for gross, less in [("5.123", "0.123"), ("0", "0"), ("12.5", "12.5")]:
            weights = compute_weights(gross, less, "100", "0")
            assert weights.net_weight == Decimal(gross) - Decimal(less)

    def test_less_above_gross_is_not_clamped(self):
        weights = compute_weights("1", "2", "100", "0")
        assert weights.net_weight == Decimal("-1.000")
        assert weights.fine_weight == Decimal("-1.000")

    def test_malformed_input_reads_as_zero(self):
        """A half-filled row computes instead of raising."""
        weights = compute_weights("abc", None, "", "0.2")
        assert weights.net_weight == Decimal("0")
        assert weights.fine_weight == Decimal("0.200")

    def test_fine_weight_rounded_to_milligrams(self):
        weights = compute_weights("1.111", "0", "91.6", "0")
        # 1.111 x 0.916 = 1.017676
        assert weights.fine_weight == Decimal("1.018")

    def test_out_of_range_input_reads_as_zero(self):
        """Oversized weights read as zero instead of overflowing the rounding."""
        weights = compute_weights("1e26", "0", "91.6", "0")
        assert weights.net_weight == Decimal("0")
        assert weights.fine_weight == Decimal("0.000")


class TestAmounts:
    """Tests for labour charges and item amounts."""

    def test_flat_labour_ignores_weight(self):
        assert compute_labour_charge("200", "10", LabourChargePolicy.FLAT) == Decimal("200.00")

    def test_per_gram_labour(self):
        assert compute_labour_charge("200", "10.5", LabourChargePolicy.PER_GRAM) == Decimal("2100.00")

    def test_policy_accepts_setting_spellings(self):
        assert compute_labour_charge("10", "3", "per-gram") == Decimal("30.00")
        assert compute_labour_charge("10", "3", "full") == Decimal("10.00")

    def test_out_of_range_labour_reads_as_zero(self):
        assert compute_labour_charge("1e27", "1", LabourChargePolicy.FLAT) == Decimal("0.00")
        assert compute_labour_charge("200", "1e20", LabourChargePolicy.PER_GRAM) == Decimal("0.00")
        assert compute_item_amount("1e16", "6000", "0") == Decimal("0.00")

    def test_item_amount(self):
        assert compute_item_amount("5.000", "6000", "200") == Decimal("30200.00")

    def test_negative_rate_is_allowed(self):
        assert compute_item_amount("1", "-100", "0") == Decimal("-100.00")

    def test_silver_item_uses_silver_rate(self):
        priced = price_item(_item(metal_type="silver", gross_weight="100", less_weight="0",
                                  melting_percent="100", wastage_grams="0", labour_rate="0"), RATES)
        assert priced.fine_weight == Decimal("100.000")
        assert priced.amount == Decimal("7500.00")

    def test_unknown_metal_is_priced_as_gold(self):
        priced = price_item(_item(metal_type="platinum"), RATES)
        assert priced.metal_type == MetalType.GOLD

    def test_price_item_fills_derived_fields(self):
        priced = price_item(_item(), RATES)
        assert priced.net_weight == Decimal("9.500")
        assert priced.fine_weight == Decimal("8.902")
        # 8.902 x 6000 + 200
        assert priced.amount == Decimal("53612.00")

    def test_pricing_is_idempotent(self):
        once = price_item(_item(), RATES, LabourChargePolicy.PER_GRAM)
        twice = price_item(once, RATES, LabourChargePolicy.PER_GRAM)
        assert once == twice

    def test_stale_derived_fields_are_replaced(self):
        priced = price_item(_item(fine_weight="99", amount="1"), RATES)
        assert priced.fine_weight == Decimal("8.902")


class TestAggregate:
    """Tests for invoice totals."""

    def test_amount_total(self):
        """Items of 5g and 3g fine at 6000 with 200 labour each total 48400."""
        items = [
            _item(gross_weight="5", less_weight="0", melting_percent="100", wastage_grams="0"),
            _item(gross_weight="3", less_weight="0", melting_percent="100", wastage_grams="0"),
        ]
        totals = aggregate(items, LabourChargePolicy.FLAT, RATES)
        assert totals.fine_weight == Decimal("8.000")
        assert totals.labour_total == Decimal("400.00")
        assert totals.amount_total == Decimal("48400.00")

    def test_sums_stored_amounts_without_rates(self):
        items = [
            LineItem(fine_weight="5", amount="30200"),
            LineItem(fine_weight="3", amount="18200"),
        ]
        assert aggregate(items).amount_total == Decimal("48400.00")

    def test_per_gram_labour_total_is_not_sum_of_rates(self):
        items = price_items(
            [_item(gross_weight="10", labour_rate="100"), _item(gross_weight="5", labour_rate="100")],
            RATES,
            LabourChargePolicy.PER_GRAM,
        )
        totals = aggregate(items, LabourChargePolicy.PER_GRAM)
        assert totals.labour_total == Decimal("1500.00")
        assert totals.labour_total != sum(item.labour_rate for item in items)

    def test_weight_and_piece_sums(self):
        items = price_items([_item(pieces=2), _item(pieces=3, less_weight="0")], RATES)
        totals = aggregate(items)
        assert totals.pieces == 5
        assert totals.gross_weight == Decimal("20.000")
        assert totals.less_weight == Decimal("0.500")
        assert totals.net_weight == Decimal("19.500")
        assert totals.wastage == Decimal("0.400")

    def test_empty_invoice(self):
        totals = aggregate([])
        assert totals.pieces == 0
        assert totals.fine_weight == 0
        assert totals.labour_total == 0
        assert totals.amount_total == 0

    def test_fine_weight_by_metal(self):
        items = [
            LineItem(metal_type="gold", fine_weight="1.5"),
            LineItem(metal_type="silver", fine_weight="40"),
            LineItem(metal_type="gold", fine_weight="0.25"),
        ]
        sums = fine_weight_by_metal(items)
        assert sums[MetalType.GOLD] == Decimal("1.750")
        assert sums[MetalType.SILVER] == Decimal("40.000")

    def test_items_amount(self):
        assert items_amount([LineItem(amount="10.005"), LineItem(amount="5")]) == Decimal("15.01")
        assert items_amount([]) == Decimal("0")
