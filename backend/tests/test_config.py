"""
Test per la validazione delle impostazioni.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from timesink.core.config import Settings


class TestSettings:
    """Test per Settings."""

    def test_defaults(self, monkeypatch):
        """Test valori di default della fatturazione."""
        monkeypatch.delenv("INVOICE_NUMBER_PREFIX", raising=False)
        settings = Settings(_env_file=None)
        assert settings.invoice_number_prefix == "INV"
        assert settings.default_due_days == 30
        assert settings.default_tax_rate == Decimal("0")

    def test_tax_rate_with_comma(self):
        """Test aliquota con virgola decimale."""
        settings = Settings(_env_file=None, default_tax_rate="0,0825")
        assert settings.default_tax_rate == Decimal("0.0825")

    @pytest.mark.parametrize("rate", ["-0.1", "22"])
    def test_tax_rate_out_of_range(self, rate):
        """Test aliquota fuori da [0, 1]."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, default_tax_rate=rate)

    @pytest.mark.parametrize("prefix", ["", "  ", "INV-A"])
    def test_invalid_prefix(self, prefix):
        """Test prefisso vuoto o con separatore."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, invoice_number_prefix=prefix)

    def test_env_override(self, monkeypatch):
        """Test lettura da variabili d'ambiente."""
        monkeypatch.setenv("DEFAULT_DUE_DAYS", "15")
        monkeypatch.setenv("INVOICE_NUMBER_PREFIX", "FT")
        settings = Settings(_env_file=None)
        assert settings.default_due_days == 15
        assert settings.invoice_number_prefix == "FT"

    def test_production_requires_file_database(self):
        """Test in produzione niente database in memoria né debug."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, app_env="production", debug=True)
        with pytest.raises(ValidationError):
            Settings(
                _env_file=None,
                app_env="production",
                debug=False,
                database_url="sqlite+aiosqlite:///:memory:",
            )
