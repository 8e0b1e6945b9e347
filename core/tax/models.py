"""
Trade Documents Tax — Definitions
===================================
Data-driven tax definitions. Rates are admin-configured percentages,
never hardcoded in engine logic.

A simple tax applies to the line's after-discount amount. A compound
tax applies to the after-discount amount plus the taxes applied before
it on the same line.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from core.primitives.money import ZERO, to_decimal, to_money


@dataclass(frozen=True)
class TaxDefinition:
    """
    An additional tax that can be selected on a line item.

    Fields:
        tax_id:          Stable identifier (e.g. "excise")
        name:            Display name
        rate:            Percentage (16 means 16%)
        is_compound_tax: Applies on top of previously applied taxes
    """
    tax_id: str
    name: str
    rate: Decimal
    is_compound_tax: bool = False

    def __post_init__(self):
        if not self.tax_id or not isinstance(self.tax_id, str):
            raise ValueError("tax_id must be non-empty string.")
        if not self.name or not isinstance(self.name, str):
            raise ValueError("name must be non-empty string.")
        object.__setattr__(self, "rate", to_decimal(self.rate, "rate"))
        if not 0 <= self.rate <= 100:
            raise ValueError(f"Tax rate must be between 0 and 100, got {self.rate}.")

    def to_dict(self) -> dict:
        return {
            "tax_id": self.tax_id,
            "name": self.name,
            "rate": str(self.rate),
            "is_compound_tax": self.is_compound_tax,
        }

    @classmethod
    def from_dict(cls, data: dict) -> TaxDefinition:
        return cls(
            tax_id=data["tax_id"],
            name=data["name"],
            rate=Decimal(data["rate"]),
            is_compound_tax=data.get("is_compound_tax", False),
        )


@dataclass(frozen=True)
class LineItemTax:
    """A tax definition applied to one line, with its computed amount."""
    tax_id: str
    name: str
    rate: Decimal
    is_compound_tax: bool = False
    amount: Decimal = ZERO

    def __post_init__(self):
        object.__setattr__(self, "rate", to_decimal(self.rate, "rate"))
        object.__setattr__(self, "amount", to_money(self.amount, "amount"))
        if self.amount < 0:
            raise ValueError("tax amount cannot be negative.")

    @classmethod
    def applied(cls, definition: TaxDefinition, amount: Decimal) -> LineItemTax:
        return cls(
            tax_id=definition.tax_id,
            name=definition.name,
            rate=definition.rate,
            is_compound_tax=definition.is_compound_tax,
            amount=amount,
        )

    def to_dict(self) -> dict:
        return {
            "tax_id": self.tax_id,
            "name": self.name,
            "rate": str(self.rate),
            "is_compound_tax": self.is_compound_tax,
            "amount": str(self.amount),
        }

    @classmethod
    def from_dict(cls, data: dict) -> LineItemTax:
        return cls(
            tax_id=data["tax_id"],
            name=data["name"],
            rate=Decimal(data["rate"]),
            is_compound_tax=data.get("is_compound_tax", False),
            amount=Decimal(data.get("amount", "0")),
        )
