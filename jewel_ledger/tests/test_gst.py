"""
Tests for the GST tax engine.
"""
import pytest
from decimal import Decimal
from jewel_ledger.calculators import (
    build_gst_details,
    compute_gst,
    determine_tax_type,
    extract_state_code,
    format_gst_number,
    gst_taxable_amount,
    is_gst_settings_complete,
    is_valid_gst_format,
    state_code_from_gst,
    state_name,
    validate_gst_invoice,
)
from jewel_ledger.types import GSTDefaults, TaxType


KARNATAKA_GSTIN = "29AABCR1718E1ZL"
MAHARASHTRA_GSTIN = "27AABCR1718E1ZL"


class TestTaxType:
    """Tests for place-of-supply resolution."""

    def test_same_state_is_cgst_sgst(self):
        assert determine_tax_type("27", "27") == TaxType.CGST_SGST

    def test_different_state_is_igst(self):
        assert determine_tax_type("27", "29") == TaxType.IGST

    def test_unknown_state_is_undetermined(self):
        assert determine_tax_type(None, "27") is None
        assert determine_tax_type("27", "") is None

    def test_numeric_state_codes_are_padded(self):
        assert determine_tax_type(7, "07") == TaxType.CGST_SGST


class TestComputeGST:
    """Tests for the GST breakdown."""

    def test_intrastate_split(self):
        """3% on 10000 within a state is 150 CGST + 150 SGST."""
        breakdown = compute_gst("10000", "3", TaxType.CGST_SGST)
        assert breakdown.cgst == Decimal("150.00")
        assert breakdown.sgst == Decimal("150.00")
        assert breakdown.igst == 0
        assert breakdown.total_gst == Decimal("300.00")
        assert breakdown.total == Decimal("10300.00")

    def test_interstate(self):
        breakdown = compute_gst("10000", "3", TaxType.IGST)
        assert breakdown.igst == Decimal("300.00")
        assert breakdown.cgst == 0
        assert breakdown.total == Decimal("10300.00")

    @pytest.mark.parametrize(
        "taxable, rate",
        [
            ("1.01", "3"),
            ("999.99", "18"),
            ("12345.67", "5"),
            ("0.5", "12"),
            ("33.33", "3"),
            ("10001", "3"),
            ("1", "3"),
        ],
    )
    def test_split_total_matches_igst(self, taxable, rate):
        """The split never loses or gains a paisa against IGST."""
        split = compute_gst(taxable, rate, TaxType.CGST_SGST)
        igst = compute_gst(taxable, rate, TaxType.IGST)
        assert split.total_gst == igst.total_gst
        assert split.total == igst.total
        assert split.cgst + split.sgst == split.total_gst

    def test_halves_add_up_when_total_rounds_up(self):
        """3% on 10001 is 300.03; the odd paisa goes to CGST."""
        split = compute_gst("10001", "3", TaxType.CGST_SGST)
        igst = compute_gst("10001", "3", TaxType.IGST)
        assert split.cgst == Decimal("150.02")
        assert split.sgst == Decimal("150.01")
        assert split.total_gst == igst.igst == Decimal("300.03")
        assert split.cgst + split.sgst == split.total_gst

    def test_zero_rate(self):
        breakdown = compute_gst("10000", "0", TaxType.IGST)
        assert breakdown.total_gst == 0
        assert breakdown.total == Decimal("10000.00")

    def test_zero_amount(self):
        breakdown = compute_gst("0", "3", TaxType.CGST_SGST)
        assert breakdown.total_gst == 0
        assert breakdown.total == 0

    def test_unknown_tax_type_applies_no_tax(self):
        breakdown = compute_gst("500", "3", "VAT")
        assert breakdown.tax_type is None
        assert breakdown.total == Decimal("500.00")

    def test_taxable_amount_includes_stone_and_round_off(self):
        assert gst_taxable_amount("48400", "100", "-0.5") == Decimal("48499.50")


class TestGSTDetails:
    """Tests for resolving GST details from a customer GSTIN."""

    def test_build_intrastate(self):
        details = build_gst_details("10000", "3", "29", KARNATAKA_GSTIN.lower())
        assert details.tax_type == TaxType.CGST_SGST
        assert details.customer_gst_number == KARNATAKA_GSTIN
        assert details.breakdown.total == Decimal("10300.00")

    def test_build_interstate(self):
        details = build_gst_details("10000", "3", "29", MAHARASHTRA_GSTIN)
        assert details.tax_type == TaxType.IGST

    def test_without_customer_gstin(self):
        details = build_gst_details("10000", "3", "29", None)
        assert details.tax_type is None
        assert details.breakdown is None
        assert details.customer_gst_number is None


class TestGSTNumbers:
    """Tests for GSTIN helpers."""

    def test_valid_format(self):
        assert is_valid_gst_format(KARNATAKA_GSTIN)
        assert is_valid_gst_format(KARNATAKA_GSTIN.lower())

    def test_invalid_format(self):
        assert not is_valid_gst_format("29AABCR1718E1Z")
        assert not is_valid_gst_format("ABAABCR1718E1ZL")
        assert not is_valid_gst_format(None)

    def test_state_codes(self):
        assert extract_state_code(KARNATAKA_GSTIN) == "29"
        assert extract_state_code("X") is None
        assert state_code_from_gst(KARNATAKA_GSTIN) == "29"
        assert state_code_from_gst("29-not-a-gstin") is None

    def test_state_name(self):
        assert state_name("27") == "Maharashtra"
        assert state_name(7) == "Delhi"
        assert state_name("77") == "77"

    def test_format(self):
        assert format_gst_number(" 29aabcr1718e1zl ") == KARNATAKA_GSTIN
        assert format_gst_number(None) == ""


class TestGSTValidation:
    """Tests for pre-invoice GST checks."""

    def test_complete_settings(self):
        seller = GSTDefaults(business_state="29", gst_number=KARNATAKA_GSTIN)
        assert is_gst_settings_complete(seller)
        result = validate_gst_invoice(seller, MAHARASHTRA_GSTIN)
        assert result.is_valid
        assert result.errors == []

    def test_missing_seller_settings(self):
        result = validate_gst_invoice(None)
        assert not result.is_valid
        assert result.errors == ["Seller GST settings not found"]
        assert not is_gst_settings_complete(None)

    def test_incomplete_seller(self):
        result = validate_gst_invoice(GSTDefaults(gst_number="BAD"))
        assert "Seller GST Number format is invalid" in result.errors
        assert "Seller Business State is required" in result.errors

    def test_invalid_customer_gstin(self):
        seller = GSTDefaults(business_state="29", gst_number=KARNATAKA_GSTIN)
        result = validate_gst_invoice(seller, "bad")
        assert result.errors == ["Customer GST Number format is invalid"]
