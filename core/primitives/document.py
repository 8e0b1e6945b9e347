"""
Trade Documents Document Primitive — Quotations, Proformas, Invoices,
Credit Notes
======================================================================
Engine: Core Primitives

Shared shape for every business document: a numbered header, a party
reference, ordered line items and the rolled-up totals. Kind-specific
classes add their own status enum and fields.

RULES (NON-NEGOTIABLE):
- Documents are immutable snapshots; the Lifecycle Service replaces
  them wholesale in the store
- total == subtotal - discount_amount + vat_amount + additional_tax_amount
- Invoice balance == total - amount_paid, never negative
- Conversions are recorded by an explicit ConversionRef, set once
- Documents reference parties and products by id only

This file contains NO persistence logic.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Optional, Tuple, Type

from core.primitives.kinds import EntityKind
from core.primitives.money import ZERO, to_decimal, to_money
from core.tax.models import LineItemTax


# ══════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════

class QuotationStatus(Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class ProformaStatus(Enum):
    DRAFT = "draft"
    SENT = "sent"
    CONVERTED = "converted"
    EXPIRED = "expired"


class InvoiceStatus(Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class CreditNoteStatus(Enum):
    DRAFT = "draft"
    ISSUED = "issued"
    APPLIED = "applied"


class EtimsStatus(Enum):
    """Electronic tax invoice submission state of an invoice."""
    PENDING = "pending"
    SUBMITTED = "submitted"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


# ══════════════════════════════════════════════════════════════
# LINE ITEM
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class LineItem:
    """
    One product row on a document, with its computed amounts.

    product_id is None only for placeholder rows, which carry no
    weight in document totals.
    """
    line_id: uuid.UUID
    product_id: Optional[uuid.UUID]
    quantity: int
    unit_price: Decimal
    discount_percent: Decimal = ZERO
    vat_rate: Decimal = ZERO
    line_taxes: Tuple[LineItemTax, ...] = ()
    subtotal: Decimal = ZERO
    discount_amount: Decimal = ZERO
    vat_amount: Decimal = ZERO
    additional_tax_amount: Decimal = ZERO
    line_total: Decimal = ZERO
    description: str = ""

    def __post_init__(self):
        if not isinstance(self.line_id, uuid.UUID):
            raise ValueError("line_id must be UUID.")
        if self.product_id is not None and not isinstance(self.product_id, uuid.UUID):
            raise ValueError("product_id must be UUID or None.")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity <= 0:
            raise ValueError("quantity must be positive integer.")
        if not isinstance(self.line_taxes, tuple):
            raise TypeError("line_taxes must be a tuple.")
        object.__setattr__(self, "unit_price", to_money(self.unit_price, "unit_price"))
        object.__setattr__(self, "discount_percent", to_decimal(self.discount_percent, "discount_percent"))
        object.__setattr__(self, "vat_rate", to_decimal(self.vat_rate, "vat_rate"))
        for name in ("subtotal", "discount_amount", "vat_amount",
                     "additional_tax_amount", "line_total"):
            object.__setattr__(self, name, to_money(getattr(self, name), name))

    @property
    def after_discount(self) -> Decimal:
        return self.subtotal - self.discount_amount

    @property
    def is_placeholder(self) -> bool:
        return self.product_id is None

    @classmethod
    def from_totals(cls, *, product_id, quantity, unit_price, discount_percent,
                    totals, description: str = "", line_id=None) -> LineItem:
        return cls(
            line_id=line_id or uuid.uuid4(),
            product_id=product_id,
            quantity=quantity,
            unit_price=unit_price,
            discount_percent=discount_percent,
            vat_rate=totals.vat_rate,
            line_taxes=totals.line_taxes,
            subtotal=totals.subtotal,
            discount_amount=totals.discount_amount,
            vat_amount=totals.vat_amount,
            additional_tax_amount=totals.additional_tax_amount,
            line_total=totals.line_total,
            description=description,
        )

    def to_dict(self) -> dict:
        return {
            "line_id": str(self.line_id),
            "product_id": str(self.product_id) if self.product_id else None,
            "description": self.description,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "discount_percent": str(self.discount_percent),
            "vat_rate": str(self.vat_rate),
            "line_taxes": [t.to_dict() for t in self.line_taxes],
            "subtotal": str(self.subtotal),
            "discount_amount": str(self.discount_amount),
            "vat_amount": str(self.vat_amount),
            "additional_tax_amount": str(self.additional_tax_amount),
            "line_total": str(self.line_total),
        }

    @classmethod
    def from_dict(cls, data: dict) -> LineItem:
        return cls(
            line_id=uuid.UUID(data["line_id"]),
            product_id=uuid.UUID(data["product_id"]) if data.get("product_id") else None,
            description=data.get("description", ""),
            quantity=data["quantity"],
            unit_price=Decimal(data["unit_price"]),
            discount_percent=Decimal(data.get("discount_percent", "0")),
            vat_rate=Decimal(data.get("vat_rate", "0")),
            line_taxes=tuple(LineItemTax.from_dict(t) for t in data.get("line_taxes", ())),
            subtotal=Decimal(data["subtotal"]),
            discount_amount=Decimal(data["discount_amount"]),
            vat_amount=Decimal(data["vat_amount"]),
            additional_tax_amount=Decimal(data.get("additional_tax_amount", "0")),
            line_total=Decimal(data["line_total"]),
        )


# ══════════════════════════════════════════════════════════════
# CONVERSION MARKER
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ConversionRef:
    """Back-reference from a source document to the one it became."""
    kind: EntityKind
    document_id: uuid.UUID
    number: str

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "document_id": str(self.document_id),
            "number": self.number,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ConversionRef:
        return cls(
            kind=EntityKind(data["kind"]),
            document_id=uuid.UUID(data["document_id"]),
            number=data["number"],
        )


# ══════════════════════════════════════════════════════════════
# DOCUMENT BASE
# ══════════════════════════════════════════════════════════════

_MONEY_FIELDS = (
    "subtotal", "discount_amount", "vat_amount",
    "additional_tax_amount", "total",
)


@dataclass(frozen=True)
class Document:
    """
    Common document header and totals.

    Fields:
        document_id:   Unique identifier
        number:        Human-readable number (e.g. INV-2026-003)
        customer_id:   Party the document is addressed to
        items:         Ordered line items
        subtotal .. total: Rolled-up amounts (see module rules)
        status:        Kind-specific status enum
        issue_date:    Date of issue
        notes:         Free text
        created_at / updated_at: Audit timestamps
    """
    KIND: ClassVar[EntityKind]
    STATUS_TYPE: ClassVar[Type[Enum]]

    document_id: uuid.UUID
    number: str
    customer_id: uuid.UUID
    items: Tuple[LineItem, ...]
    subtotal: Decimal
    discount_amount: Decimal
    vat_amount: Decimal
    additional_tax_amount: Decimal
    total: Decimal
    status: Enum
    issue_date: datetime
    created_at: datetime
    updated_at: datetime
    notes: str = ""

    def __post_init__(self):
        if not isinstance(self.document_id, uuid.UUID):
            raise ValueError("document_id must be UUID.")
        if not self.number or not isinstance(self.number, str):
            raise ValueError("number must be non-empty string.")
        if not isinstance(self.customer_id, uuid.UUID):
            raise ValueError("customer_id must be UUID.")
        if not isinstance(self.items, tuple):
            raise TypeError("items must be a tuple.")
        if not isinstance(self.status, self.STATUS_TYPE):
            raise ValueError(f"status must be {self.STATUS_TYPE.__name__} enum.")
        if not isinstance(self.issue_date, datetime):
            raise TypeError("issue_date must be datetime.")
        for name in _MONEY_FIELDS:
            object.__setattr__(self, name, to_money(getattr(self, name), name))
        expected = (
            self.subtotal - self.discount_amount
            + self.vat_amount + self.additional_tax_amount
        )
        if self.total != expected:
            raise ValueError(
                f"total {self.total} does not equal subtotal - discount "
                f"+ vat + additional taxes ({expected})."
            )

    @property
    def kind(self) -> EntityKind:
        return self.KIND

    def evolve(self, **changes) -> Document:
        """Return a copy with changes applied (validation re-runs)."""
        return replace(self, **changes)

    def _extra_to_dict(self) -> dict:
        return {}

    @classmethod
    def _extra_from_dict(cls, data: dict) -> dict:
        return {}

    def to_dict(self) -> dict:
        payload = {
            "kind": self.KIND.value,
            "document_id": str(self.document_id),
            "number": self.number,
            "customer_id": str(self.customer_id),
            "items": [item.to_dict() for item in self.items],
            "status": self.status.value,
            "issue_date": self.issue_date.isoformat(),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "notes": self.notes,
        }
        for name in _MONEY_FIELDS:
            payload[name] = str(getattr(self, name))
        payload.update(self._extra_to_dict())
        return payload

    @classmethod
    def from_dict(cls, data: dict):
        return cls(
            document_id=uuid.UUID(data["document_id"]),
            number=data["number"],
            customer_id=uuid.UUID(data["customer_id"]),
            items=tuple(LineItem.from_dict(i) for i in data.get("items", ())),
            status=cls.STATUS_TYPE(data["status"]),
            issue_date=datetime.fromisoformat(data["issue_date"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            notes=data.get("notes", ""),
            **{name: Decimal(data[name]) for name in _MONEY_FIELDS},
            **cls._extra_from_dict(data),
        )


# ══════════════════════════════════════════════════════════════
# DOCUMENT KINDS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Quotation(Document):
    """Non-binding price offer. May be converted once when accepted."""
    KIND: ClassVar[EntityKind] = EntityKind.QUOTATION
    STATUS_TYPE: ClassVar[Type[Enum]] = QuotationStatus

    valid_until: Optional[datetime] = None
    converted_to: Optional[ConversionRef] = None

    @property
    def is_converted(self) -> bool:
        return self.converted_to is not None

    def _extra_to_dict(self) -> dict:
        return {
            "valid_until": _iso(self.valid_until),
            "converted_to": self.converted_to.to_dict() if self.converted_to else None,
        }

    @classmethod
    def _extra_from_dict(cls, data: dict) -> dict:
        return {
            "valid_until": _from_iso(data.get("valid_until")),
            "converted_to": (
                ConversionRef.from_dict(data["converted_to"])
                if data.get("converted_to") else None
            ),
        }


@dataclass(frozen=True)
class ProformaInvoice(Document):
    """Preliminary invoice issued ahead of delivery."""
    KIND: ClassVar[EntityKind] = EntityKind.PROFORMA
    STATUS_TYPE: ClassVar[Type[Enum]] = ProformaStatus

    valid_until: Optional[datetime] = None
    source_quotation_id: Optional[uuid.UUID] = None
    converted_to: Optional[ConversionRef] = None

    @property
    def is_converted(self) -> bool:
        return self.converted_to is not None

    def _extra_to_dict(self) -> dict:
        return {
            "valid_until": _iso(self.valid_until),
            "source_quotation_id": (
                str(self.source_quotation_id) if self.source_quotation_id else None
            ),
            "converted_to": self.converted_to.to_dict() if self.converted_to else None,
        }

    @classmethod
    def _extra_from_dict(cls, data: dict) -> dict:
        return {
            "valid_until": _from_iso(data.get("valid_until")),
            "source_quotation_id": (
                uuid.UUID(data["source_quotation_id"])
                if data.get("source_quotation_id") else None
            ),
            "converted_to": (
                ConversionRef.from_dict(data["converted_to"])
                if data.get("converted_to") else None
            ),
        }


@dataclass(frozen=True)
class Invoice(Document):
    """
    Binding demand for payment.

    amount_paid grows with each payment; balance = total - amount_paid.
    """
    KIND: ClassVar[EntityKind] = EntityKind.INVOICE
    STATUS_TYPE: ClassVar[Type[Enum]] = InvoiceStatus

    due_date: Optional[datetime] = None
    amount_paid: Decimal = ZERO
    balance: Optional[Decimal] = None
    etims_status: EtimsStatus = EtimsStatus.PENDING
    etims_code: Optional[str] = None
    source_document_id: Optional[uuid.UUID] = None

    def __post_init__(self):
        super().__post_init__()
        object.__setattr__(self, "amount_paid", to_money(self.amount_paid, "amount_paid"))
        if self.balance is None:
            object.__setattr__(self, "balance", self.total - self.amount_paid)
        object.__setattr__(self, "balance", to_money(self.balance, "balance"))
        if not isinstance(self.etims_status, EtimsStatus):
            raise ValueError("etims_status must be EtimsStatus enum.")
        if self.amount_paid < 0:
            raise ValueError("amount_paid cannot be negative.")
        if self.balance < 0:
            raise ValueError("balance cannot be negative.")
        if self.balance != self.total - self.amount_paid:
            raise ValueError(
                f"balance {self.balance} does not equal total {self.total} "
                f"- amount_paid {self.amount_paid}."
            )

    @property
    def is_settled(self) -> bool:
        return self.balance == ZERO

    def _extra_to_dict(self) -> dict:
        return {
            "due_date": _iso(self.due_date),
            "amount_paid": str(self.amount_paid),
            "balance": str(self.balance),
            "etims_status": self.etims_status.value,
            "etims_code": self.etims_code,
            "source_document_id": (
                str(self.source_document_id) if self.source_document_id else None
            ),
        }

    @classmethod
    def _extra_from_dict(cls, data: dict) -> dict:
        return {
            "due_date": _from_iso(data.get("due_date")),
            "amount_paid": Decimal(data.get("amount_paid", "0")),
            "balance": Decimal(data["balance"]) if data.get("balance") is not None else None,
            "etims_status": EtimsStatus(data.get("etims_status", EtimsStatus.PENDING.value)),
            "etims_code": data.get("etims_code"),
            "source_document_id": (
                uuid.UUID(data["source_document_id"])
                if data.get("source_document_id") else None
            ),
        }


@dataclass(frozen=True)
class CreditNote(Document):
    """
    Reduces what a customer owes. Independent of the referenced
    invoice's balance; reconciliation is manual.
    """
    KIND: ClassVar[EntityKind] = EntityKind.CREDIT_NOTE
    STATUS_TYPE: ClassVar[Type[Enum]] = CreditNoteStatus

    invoice_id: Optional[uuid.UUID] = None
    reason: str = field(default="")

    def __post_init__(self):
        super().__post_init__()
        if not isinstance(self.reason, str) or not self.reason.strip():
            raise ValueError("reason must be non-empty string.")

    def _extra_to_dict(self) -> dict:
        return {
            "invoice_id": str(self.invoice_id) if self.invoice_id else None,
            "reason": self.reason,
        }

    @classmethod
    def _extra_from_dict(cls, data: dict) -> dict:
        return {
            "invoice_id": uuid.UUID(data["invoice_id"]) if data.get("invoice_id") else None,
            "reason": data.get("reason", ""),
        }


DOCUMENT_CLASSES = {
    EntityKind.QUOTATION: Quotation,
    EntityKind.PROFORMA: ProformaInvoice,
    EntityKind.INVOICE: Invoice,
    EntityKind.CREDIT_NOTE: CreditNote,
}
