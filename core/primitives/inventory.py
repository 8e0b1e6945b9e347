"""
Trade Documents Inventory Primitive — Stock Movement Audit Record
===================================================================
Engine: Core Primitives

Every change to a product's stock counters is expressed as a
StockMovement. The movement log is append-only.

RULES (NON-NEGOTIABLE):
- Quantities are positive integers
- Movement types are explicit (IN, OUT)
- new_stock == previous_stock + quantity for IN
- new_stock == max(0, previous_stock - quantity) for OUT (oversell clamps)
- reference names the document number (or other cause) of the change

This file contains NO persistence logic.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


# ══════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════

class MovementType(Enum):
    """Direction of an inventory movement."""
    IN = "in"       # Replenishment, returns
    OUT = "out"     # Sales


# ══════════════════════════════════════════════════════════════
# STOCK MOVEMENT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StockMovement:
    """
    Single stock movement record — the atomic unit of inventory change.

    Fields:
        movement_id:    Unique identifier
        product_id:     Product whose stock changed
        movement_type:  IN | OUT
        quantity:       Amount requested (always positive)
        previous_stock: current_stock before the movement
        new_stock:      current_stock after the movement
        reference:      Document number that caused it (e.g. INV-2026-003)
        created_at:     When the movement was posted
        notes:          Free text
    """
    movement_id: uuid.UUID
    product_id: uuid.UUID
    movement_type: MovementType
    quantity: int
    previous_stock: int
    new_stock: int
    reference: str
    created_at: datetime
    notes: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.movement_id, uuid.UUID):
            raise ValueError("movement_id must be UUID.")
        if not isinstance(self.product_id, uuid.UUID):
            raise ValueError("product_id must be UUID.")
        if not isinstance(self.movement_type, MovementType):
            raise ValueError("movement_type must be MovementType enum.")
        if not isinstance(self.quantity, int) or self.quantity <= 0:
            raise ValueError("quantity must be positive integer.")
        if not isinstance(self.created_at, datetime):
            raise TypeError("created_at must be datetime.")
        if self.new_stock != self.expected_new_stock:
            raise ValueError(
                f"new_stock {self.new_stock} does not follow from "
                f"previous_stock {self.previous_stock} "
                f"{self.movement_type.value} {self.quantity}."
            )

    @property
    def expected_new_stock(self) -> int:
        if self.movement_type == MovementType.IN:
            return self.previous_stock + self.quantity
        return max(0, self.previous_stock - self.quantity)

    @property
    def net_quantity_change(self) -> int:
        """Effective change in on-hand stock (clamping included)."""
        return self.new_stock - self.previous_stock

    def to_dict(self) -> dict:
        return {
            "movement_id": str(self.movement_id),
            "product_id": str(self.product_id),
            "movement_type": self.movement_type.value,
            "quantity": self.quantity,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "reference": self.reference,
            "created_at": self.created_at.isoformat(),
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> StockMovement:
        return cls(
            movement_id=uuid.UUID(data["movement_id"]),
            product_id=uuid.UUID(data["product_id"]),
            movement_type=MovementType(data["movement_type"]),
            quantity=data["quantity"],
            previous_stock=data["previous_stock"],
            new_stock=data["new_stock"],
            reference=data["reference"],
            created_at=datetime.fromisoformat(data["created_at"]),
            notes=data.get("notes"),
        )
