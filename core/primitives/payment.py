"""
Trade Documents Payment Primitive
===================================
Engine: Core Primitives

A Payment records money received against one invoice. Payments are
immutable once created; corrections are new documents (credit notes),
never edits.

This file contains NO persistence logic.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from core.primitives.money import to_money


class PaymentMethod(Enum):
    CASH = "cash"
    MPESA = "mpesa"
    BANK = "bank"
    CHEQUE = "cheque"
    CARD = "card"


@dataclass(frozen=True)
class Payment:
    """
    Fields:
        payment_id:   Unique identifier
        amount:       Amount received (> 0)
        method:       How it was paid
        reference:    External reference (M-Pesa code, cheque number)
        invoice_id:   Invoice the payment settles
        customer_id:  Paying party
        created_at:   When it was recorded
        notes:        Free text
    """
    payment_id: uuid.UUID
    amount: Decimal
    method: PaymentMethod
    reference: str
    invoice_id: uuid.UUID
    customer_id: uuid.UUID
    created_at: datetime
    notes: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.payment_id, uuid.UUID):
            raise ValueError("payment_id must be UUID.")
        object.__setattr__(self, "amount", to_money(self.amount, "amount"))
        if self.amount <= 0:
            raise ValueError("amount must be > 0.")
        if not isinstance(self.method, PaymentMethod):
            raise ValueError("method must be PaymentMethod enum.")
        if not isinstance(self.reference, str):
            raise ValueError("reference must be a string.")
        if not isinstance(self.invoice_id, uuid.UUID):
            raise ValueError("invoice_id must be UUID.")
        if not isinstance(self.customer_id, uuid.UUID):
            raise ValueError("customer_id must be UUID.")

    def to_dict(self) -> dict:
        return {
            "payment_id": str(self.payment_id),
            "amount": str(self.amount),
            "method": self.method.value,
            "reference": self.reference,
            "invoice_id": str(self.invoice_id),
            "customer_id": str(self.customer_id),
            "created_at": self.created_at.isoformat(),
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Payment:
        return cls(
            payment_id=uuid.UUID(data["payment_id"]),
            amount=Decimal(data["amount"]),
            method=PaymentMethod(data["method"]),
            reference=data["reference"],
            invoice_id=uuid.UUID(data["invoice_id"]),
            customer_id=uuid.UUID(data["customer_id"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            notes=data.get("notes"),
        )
