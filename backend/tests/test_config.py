"""
Tests for application settings.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from fieldservice.core.config import Settings

PRODUCTION = {
    "app_env": "production",
    "database_url": "postgresql+asyncpg://fieldservice:s3cret@db:5432/fieldservice",
    "debug": False,
    "cors_origins": ["https://interventi.example.com"],
}


class TestTaxRate:
    """Tests for the tax rate setting."""

    def test_comma_decimal(self):
        """Test aliquota con la virgola."""
        assert Settings(tax_rate="0,10").tax_rate == Decimal("0.10")

    @pytest.mark.parametrize("value", ["-0.01", "1", "22", "abc"])
    def test_out_of_range(self, value):
        """Test aliquota fuori da [0, 1)."""
        with pytest.raises(ValidationError):
            Settings(tax_rate=value)

    def test_more_than_four_decimals_rejected(self):
        """Test aliquota non rappresentabile in Numeric(6, 4)."""
        with pytest.raises(ValidationError):
            Settings(tax_rate="0.12345")

    @pytest.mark.parametrize("value", ["0.1235", "0.10000"])
    def test_four_decimals_accepted(self, value):
        """Test aliquota con al massimo 4 decimali significativi."""
        assert Settings(tax_rate=value).tax_rate == Decimal(value)


class TestProductionSettings:
    """Tests for the production guard rails."""

    def test_valid_production(self):
        """Test configurazione di produzione valida."""
        assert Settings(**PRODUCTION).is_production is True

    @pytest.mark.parametrize(
        "override",
        [
            {"database_url": "postgresql+asyncpg://fieldservice:changeme@db/fieldservice"},
            {"debug": True},
            {"cors_origins": ["http://localhost:5173"]},
        ],
    )
    def test_rejected_production(self, override):
        """Test credenziali di default, debug e CORS locali rifiutati."""
        with pytest.raises(ValidationError):
            Settings(**{**PRODUCTION, **override})
