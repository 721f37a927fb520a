"""
Tests for environment-driven configuration.
"""
from decimal import Decimal
from jewel_ledger.config import JewelLedgerConfig
from jewel_ledger.types import LabourChargePolicy


class TestConfig:
    """Tests for configuration handling."""

    def test_config_from_env(self):
        """Test config loads from environment."""
        config = JewelLedgerConfig.from_env()
        assert config.db_url is not None
        assert config.db_schema

    def test_config_validation(self):
        """Test config validation."""
        config = JewelLedgerConfig(db_url="", retry_attempts=0, gst_default_rate=Decimal("-1"))
        errors = config.validate()
        assert "DB_URL is required" in errors
        assert "JEWEL_LEDGER_RETRY_ATTEMPTS must be at least 1" in errors
        assert "GST_DEFAULT_RATE cannot be negative" in errors

    def test_labour_policy_from_env(self, monkeypatch):
        monkeypatch.setenv("LABOUR_CHARGE_TYPE", "per-gram")
        assert JewelLedgerConfig.from_env().labour_charge_policy == LabourChargePolicy.PER_GRAM

    def test_unknown_labour_policy_falls_back_to_flat(self, monkeypatch):
        monkeypatch.setenv("LABOUR_CHARGE_TYPE", "hourly")
        assert JewelLedgerConfig.from_env().labour_charge_policy == LabourChargePolicy.FLAT

    def test_gst_defaults(self, monkeypatch):
        monkeypatch.setenv("GST_BUSINESS_STATE", "29")
        monkeypatch.setenv("GST_NUMBER", "29AABCR1718E1ZL")
        monkeypatch.delenv("GST_DEFAULT_RATE", raising=False)
        defaults = JewelLedgerConfig.from_env().gst_defaults
        assert defaults.business_state == "29"
        assert defaults.gst_number == "29AABCR1718E1ZL"
        assert defaults.default_rate == Decimal("18")
