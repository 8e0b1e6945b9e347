"""
Trade Documents Party Primitive — Customer / Supplier
=======================================================
Engine: Core Primitives

A Party is a customer or supplier that documents are issued to.
Only the Lifecycle Service mutates a party, and only its aggregate
balance (reduced when payments are applied).

RULES (NON-NEGOTIABLE):
- Party snapshots are immutable (frozen); changes produce new snapshots
- balance and credit_limit are Decimal amounts, never negative
- Documents reference parties by party_id only

This file contains NO persistence logic.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from core.primitives.money import ZERO, to_money


# ══════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════

class PartyType(Enum):
    """Classification of party."""
    CUSTOMER = "CUSTOMER"
    SUPPLIER = "SUPPLIER"


# ══════════════════════════════════════════════════════════════
# PARTY SNAPSHOT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Party:
    """
    Customer or supplier snapshot.

    Fields:
        party_id:      Unique identifier
        party_type:    CUSTOMER | SUPPLIER
        name:          Display name
        email/phone:   Contact details (optional)
        kra_pin:       Tax PIN (optional)
        address:       Postal / physical address (optional)
        credit_limit:  Maximum credit extended
        balance:       Aggregate outstanding amount
        is_active:     Inactive parties cannot receive new documents
    """
    party_id: uuid.UUID
    name: str
    party_type: PartyType = PartyType.CUSTOMER
    email: Optional[str] = None
    phone: Optional[str] = None
    kra_pin: Optional[str] = None
    address: Optional[str] = None
    credit_limit: Decimal = ZERO
    balance: Decimal = ZERO
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not isinstance(self.party_id, uuid.UUID):
            raise ValueError("party_id must be UUID.")
        if not self.name or not isinstance(self.name, str):
            raise ValueError("name must be non-empty string.")
        if not isinstance(self.party_type, PartyType):
            raise ValueError("party_type must be PartyType enum.")
        object.__setattr__(self, "credit_limit", to_money(self.credit_limit, "credit_limit"))
        object.__setattr__(self, "balance", to_money(self.balance, "balance"))
        if self.credit_limit < 0:
            raise ValueError("credit_limit cannot be negative.")
        if self.balance < 0:
            raise ValueError("balance cannot be negative.")

    @property
    def is_customer(self) -> bool:
        return self.party_type == PartyType.CUSTOMER

    @property
    def is_supplier(self) -> bool:
        return self.party_type == PartyType.SUPPLIER

    def with_balance(self, balance: Decimal, at: datetime) -> Party:
        return replace(self, balance=balance, updated_at=at)

    def to_dict(self) -> dict:
        return {
            "party_id": str(self.party_id),
            "party_type": self.party_type.value,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "kra_pin": self.kra_pin,
            "address": self.address,
            "credit_limit": str(self.credit_limit),
            "balance": str(self.balance),
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Party:
        return cls(
            party_id=uuid.UUID(data["party_id"]),
            party_type=PartyType(data.get("party_type", PartyType.CUSTOMER.value)),
            name=data["name"],
            email=data.get("email"),
            phone=data.get("phone"),
            kra_pin=data.get("kra_pin"),
            address=data.get("address"),
            credit_limit=Decimal(data.get("credit_limit", "0")),
            balance=Decimal(data.get("balance", "0")),
            is_active=data.get("is_active", True),
            created_at=(
                datetime.fromisoformat(data["created_at"])
                if data.get("created_at") else None
            ),
            updated_at=(
                datetime.fromisoformat(data["updated_at"])
                if data.get("updated_at") else None
            ),
        )
