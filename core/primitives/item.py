"""
Trade Documents Item Primitive — Catalogue Product
====================================================
Engine: Core Primitives

The Product snapshot carries pricing, primary tax settings and the
inventory counters that sales conversions debit.

RULES (NON-NEGOTIABLE):
- Products are immutable snapshots; stock changes produce new snapshots
  and are always accompanied by a StockMovement
- available_stock = current_stock - reserved_stock (best effort,
  never negative)
- Prices are Decimal amounts; tax_rate is a plain percentage

This file contains NO persistence logic.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Optional

from core.primitives.money import ZERO, to_decimal, to_money


# ══════════════════════════════════════════════════════════════
# PRODUCT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Product:
    """
    Catalogue product snapshot.

    Fields:
        product_id:         Unique identifier
        name / sku:         Display name and stock-keeping unit
        selling_price:      Default unit price on new line items
        taxable:            Whether the primary tax (VAT) applies
        tax_rate:           Primary tax percentage (e.g. 16)
        price_includes_tax: selling_price is VAT-inclusive
        track_inventory:    Whether sales post stock movements
        current_stock:      Units on hand
        reserved_stock:     Units held for pending orders
        available_stock:    current_stock - reserved_stock
        reorder_level:      Low stock alert threshold
        min_stock:          Minimum stock to keep
    """
    product_id: uuid.UUID
    name: str
    sku: str
    selling_price: Decimal
    taxable: bool = True
    tax_rate: Decimal = Decimal("16")
    price_includes_tax: bool = False
    track_inventory: bool = True
    current_stock: int = 0
    reserved_stock: int = 0
    available_stock: Optional[int] = None
    reorder_level: int = 0
    min_stock: int = 0
    unit: str = "piece"
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not isinstance(self.product_id, uuid.UUID):
            raise ValueError("product_id must be UUID.")
        if not self.name or not isinstance(self.name, str):
            raise ValueError("name must be non-empty string.")
        if not self.sku or not isinstance(self.sku, str):
            raise ValueError("sku must be non-empty string.")
        object.__setattr__(self, "selling_price", to_money(self.selling_price, "selling_price"))
        object.__setattr__(self, "tax_rate", to_decimal(self.tax_rate, "tax_rate"))
        if self.selling_price < 0:
            raise ValueError("selling_price cannot be negative.")
        if not 0 <= self.tax_rate <= 100:
            raise ValueError("tax_rate must be between 0 and 100.")
        for name in ("current_stock", "reserved_stock", "reorder_level", "min_stock"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} must be non-negative integer.")
        if self.available_stock is None:
            object.__setattr__(
                self, "available_stock",
                max(0, self.current_stock - self.reserved_stock),
            )
        elif self.available_stock < 0:
            raise ValueError("available_stock cannot be negative.")

    @property
    def effective_tax_rate(self) -> Decimal:
        return self.tax_rate if self.taxable else ZERO

    @property
    def is_low_stock(self) -> bool:
        return self.track_inventory and self.current_stock <= self.reorder_level

    def with_stock(self, current_stock: int, available_stock: int, at: datetime) -> Product:
        return replace(
            self,
            current_stock=current_stock,
            available_stock=available_stock,
            updated_at=at,
        )

    def to_dict(self) -> dict:
        return {
            "product_id": str(self.product_id),
            "name": self.name,
            "sku": self.sku,
            "selling_price": str(self.selling_price),
            "taxable": self.taxable,
            "tax_rate": str(self.tax_rate),
            "price_includes_tax": self.price_includes_tax,
            "track_inventory": self.track_inventory,
            "current_stock": self.current_stock,
            "reserved_stock": self.reserved_stock,
            "available_stock": self.available_stock,
            "reorder_level": self.reorder_level,
            "min_stock": self.min_stock,
            "unit": self.unit,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Product:
        return cls(
            product_id=uuid.UUID(data["product_id"]),
            name=data["name"],
            sku=data["sku"],
            selling_price=Decimal(data["selling_price"]),
            taxable=data.get("taxable", True),
            tax_rate=Decimal(data.get("tax_rate", "0")),
            price_includes_tax=data.get("price_includes_tax", False),
            track_inventory=data.get("track_inventory", True),
            current_stock=data.get("current_stock", 0),
            reserved_stock=data.get("reserved_stock", 0),
            available_stock=data.get("available_stock"),
            reorder_level=data.get("reorder_level", 0),
            min_stock=data.get("min_stock", 0),
            unit=data.get("unit", "piece"),
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
