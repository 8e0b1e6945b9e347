"""
Tests for core.config — Lifecycle settings and the tax catalogue.
"""

import pytest
from decimal import Decimal

from core.config.rules import (
    COMMON_LINE_ITEM_TAXES,
    LifecycleConfig,
    get_tax_by_id,
)


# ── LifecycleConfig Tests ────────────────────────────────────

class TestLifecycleConfig:
    def test_defaults(self):
        config = LifecycleConfig()
        assert config.currency == "KES"
        assert config.quotation_validity_days == 30
        assert config.proforma_validity_days == 15
        assert config.invoice_due_days == 30
        assert config.strict_stock is False

    def test_currency_must_be_3_chars(self):
        with pytest.raises(ValueError, match="3-letter"):
            LifecycleConfig(currency="KE")

    def test_negative_period_rejected(self):
        with pytest.raises(ValueError, match="invoice_due_days"):
            LifecycleConfig(invoice_due_days=-1)

    def test_frozen_immutability(self):
        config = LifecycleConfig()
        with pytest.raises(AttributeError):
            config.currency = "USD"


class TestLifecycleConfigFromEnv:
    def test_empty_environment_keeps_defaults(self):
        assert LifecycleConfig.from_env({}) == LifecycleConfig()

    def test_reads_prefixed_variables(self):
        config = LifecycleConfig.from_env({
            "TRADEDOCS_CURRENCY": "TZS",
            "TRADEDOCS_INVOICE_DUE_DAYS": "14",
            "TRADEDOCS_STRICT_STOCK": "yes",
            "TRADEDOCS_SIMULATION_INTERVAL_SECONDS": "2.5",
        })
        assert config.currency == "TZS"
        assert config.invoice_due_days == 14
        assert config.strict_stock is True
        assert config.simulation_interval_seconds == 2.5

    def test_invalid_value_names_variable(self):
        with pytest.raises(ValueError, match="TRADEDOCS_STRICT_STOCK"):
            LifecycleConfig.from_env({"TRADEDOCS_STRICT_STOCK": "maybe"})


# ── Tax Catalogue ────────────────────────────────────────────

class TestTaxCatalogue:
    def test_lookup(self):
        excise = get_tax_by_id("excise")
        assert excise.rate == Decimal("10")
        assert excise.is_compound_tax is False

    def test_service_charge_is_compound(self):
        assert get_tax_by_id("service_charge").is_compound_tax is True

    def test_unknown_tax(self):
        assert get_tax_by_id("nope") is None

    def test_ids_unique(self):
        ids = [t.tax_id for t in COMMON_LINE_ITEM_TAXES]
        assert len(ids) == len(set(ids))
