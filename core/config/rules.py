"""
Trade Documents Core Config — Lifecycle Settings and Tax Catalogue
====================================================================
Doctrine: No hardcoded rates or periods in lifecycle logic.
Validity windows, stock policy and the additional-tax catalogue come
from configuration, not from the service code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Optional, Tuple

from core.tax.models import TaxDefinition

ENV_PREFIX = "TRADEDOCS_"


# ══════════════════════════════════════════════════════════════
# LIFECYCLE CONFIG
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class LifecycleConfig:
    """
    Settings consumed by the Document Lifecycle Service.

    Fields:
        currency:                    ISO 4217 code of the store's amounts
        quotation_validity_days:     valid_until offset for new quotations
        proforma_validity_days:      valid_until offset for new proformas
        invoice_due_days:            due_date offset for new invoices
        strict_stock:                reject oversells instead of clamping
        simulation_interval_seconds: demo driver tick period
    """
    currency: str = "KES"
    quotation_validity_days: int = 30
    proforma_validity_days: int = 15
    invoice_due_days: int = 30
    strict_stock: bool = False
    simulation_interval_seconds: float = 30.0

    def __post_init__(self) -> None:
        if not self.currency or len(self.currency) != 3:
            raise ValueError(
                f"currency must be 3-letter ISO 4217 code, got '{self.currency}'."
            )
        for name in ("quotation_validity_days", "proforma_validity_days",
                     "invoice_due_days"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} must be non-negative integer.")
        if self.simulation_interval_seconds <= 0:
            raise ValueError("simulation_interval_seconds must be > 0.")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> LifecycleConfig:
        """Build from TRADEDOCS_* variables; unset keys keep defaults."""
        env = os.environ if environ is None else environ
        defaults = cls()

        def _get(name: str, cast, default):
            raw = env.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is None or raw == "":
                return default
            try:
                return cast(raw)
            except ValueError as exc:
                raise ValueError(
                    f"{ENV_PREFIX}{name.upper()} has invalid value {raw!r}."
                ) from exc

        return cls(
            currency=_get("currency", str, defaults.currency),
            quotation_validity_days=_get(
                "quotation_validity_days", int, defaults.quotation_validity_days),
            proforma_validity_days=_get(
                "proforma_validity_days", int, defaults.proforma_validity_days),
            invoice_due_days=_get("invoice_due_days", int, defaults.invoice_due_days),
            strict_stock=_get("strict_stock", _parse_bool, defaults.strict_stock),
            simulation_interval_seconds=_get(
                "simulation_interval_seconds", float,
                defaults.simulation_interval_seconds),
        )


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {raw!r}")


# ══════════════════════════════════════════════════════════════
# ADDITIONAL TAX CATALOGUE
# ══════════════════════════════════════════════════════════════

COMMON_LINE_ITEM_TAXES: Tuple[TaxDefinition, ...] = (
    TaxDefinition(tax_id="excise", name="Excise Tax", rate=Decimal("10")),
    TaxDefinition(tax_id="luxury", name="Luxury Tax", rate=Decimal("5")),
    TaxDefinition(tax_id="env_levy", name="Environmental Levy", rate=Decimal("2")),
    TaxDefinition(tax_id="import_duty", name="Import Duty", rate=Decimal("25")),
    TaxDefinition(
        tax_id="service_charge",
        name="Service Charge",
        rate=Decimal("10"),
        is_compound_tax=True,
    ),
)


def get_tax_by_id(tax_id: str) -> Optional[TaxDefinition]:
    for tax in COMMON_LINE_ITEM_TAXES:
        if tax.tax_id == tax_id:
            return tax
    return None
