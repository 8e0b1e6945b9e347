"""
Trade Documents — Entity Kinds
================================
Every stored entity belongs to exactly one kind. Document kinds also
own a human-readable number prefix.
"""

from __future__ import annotations

from enum import Enum


class EntityKind(Enum):
    CUSTOMER = "customer"
    SUPPLIER = "supplier"
    PRODUCT = "product"
    TAX = "tax"
    QUOTATION = "quotation"
    PROFORMA = "proforma"
    INVOICE = "invoice"
    CREDIT_NOTE = "credit_note"
    PAYMENT = "payment"
    STOCK_MOVEMENT = "stock_movement"

    @property
    def is_document(self) -> bool:
        return self in DOCUMENT_KINDS

    @property
    def number_prefix(self) -> str:
        try:
            return NUMBER_PREFIXES[self]
        except KeyError:
            raise ValueError(f"{self.value} has no document number prefix.") from None


DOCUMENT_KINDS = frozenset({
    EntityKind.QUOTATION,
    EntityKind.PROFORMA,
    EntityKind.INVOICE,
    EntityKind.CREDIT_NOTE,
})

NUMBER_PREFIXES = {
    EntityKind.QUOTATION: "QUO",
    EntityKind.PROFORMA: "PRO",
    EntityKind.INVOICE: "INV",
    EntityKind.CREDIT_NOTE: "CRN",
}


def parse_kind(value) -> EntityKind:
    """Accept an EntityKind or its string value."""
    if isinstance(value, EntityKind):
        return value
    try:
        return EntityKind(value)
    except ValueError:
        raise ValueError(f"Unknown entity kind '{value}'.") from None
