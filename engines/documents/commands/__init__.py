"""Trade Documents Lifecycle Engine - request objects."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from core.errors import InvalidAmountError, ValidationError
from core.primitives.money import HUNDRED, ZERO, Amount, to_decimal, to_money
from core.primitives.payment import PaymentMethod


def as_uuid(value, field_name: str) -> uuid.UUID:
    """Accept a UUID or its string form."""
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, str):
        try:
            return uuid.UUID(value)
        except ValueError:
            pass
    raise ValidationError(f"{field_name} must be UUID, got {value!r}.")


def as_aware_datetime(value, field_name: str) -> datetime:
    """Accept only timezone-aware datetimes."""
    if not isinstance(value, datetime) or value.tzinfo is None or value.utcoffset() is None:
        raise ValidationError(f"{field_name} must be timezone-aware datetime, got {value!r}.")
    return value


def parse_payment_method(value) -> PaymentMethod:
    if isinstance(value, PaymentMethod):
        return value
    try:
        return PaymentMethod(value)
    except ValueError:
        raise ValidationError(f"Unknown payment method '{value}'.") from None


@dataclass(frozen=True)
class LineItemRequest:
    """
    One requested document line.

    unit_price None means "use the product's selling price". tax_ids
    select additional taxes, applied in the given order.
    product_id None is a placeholder row and is ignored by totals.
    """
    product_id: Optional[uuid.UUID]
    quantity: int
    unit_price: Optional[Amount] = None
    discount_percent: Amount = ZERO
    tax_ids: Tuple[str, ...] = ()
    description: str = ""

    def __post_init__(self):
        if self.product_id is not None:
            object.__setattr__(self, "product_id", as_uuid(self.product_id, "product_id"))
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity <= 0:
            raise ValidationError(f"quantity must be integer > 0, got {self.quantity!r}.")
        try:
            discount = to_decimal(self.discount_percent, "discount_percent")
            price = (
                None if self.unit_price is None
                else to_decimal(self.unit_price, "unit_price")
            )
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        if not ZERO <= discount <= HUNDRED:
            raise ValidationError("discount_percent must be between 0 and 100.")
        if price is not None and price < 0:
            raise ValidationError("unit_price must be >= 0.")
        object.__setattr__(self, "discount_percent", discount)
        object.__setattr__(self, "unit_price", price)
        if isinstance(self.tax_ids, str) or not all(
            isinstance(t, str) and t for t in self.tax_ids
        ):
            raise ValidationError("tax_ids must be a sequence of non-empty strings.")
        object.__setattr__(self, "tax_ids", tuple(self.tax_ids))

    @property
    def is_placeholder(self) -> bool:
        return self.product_id is None

    @classmethod
    def from_dict(cls, data: dict) -> LineItemRequest:
        return cls(
            product_id=data.get("product_id"),
            quantity=data.get("quantity"),
            unit_price=data.get("unit_price"),
            discount_percent=data.get("discount_percent", ZERO),
            tax_ids=tuple(data.get("tax_ids", ())),
            description=data.get("description", ""),
        )


def coerce_line_requests(items: Iterable) -> Tuple[LineItemRequest, ...]:
    """Normalise requests given as LineItemRequest or plain dicts."""
    if items is None:
        raise ValidationError("items are required.")
    requests = []
    for item in items:
        if isinstance(item, LineItemRequest):
            requests.append(item)
        elif isinstance(item, dict):
            requests.append(LineItemRequest.from_dict(item))
        else:
            raise ValidationError(
                f"line item must be LineItemRequest or dict, got {type(item).__name__}."
            )
    if not any(not r.is_placeholder for r in requests):
        raise ValidationError("at least one line item with a product is required.")
    return tuple(requests)


def payment_amount(value: Amount) -> Decimal:
    """Validated payment amount, rounded to cents."""
    try:
        amount = to_money(value, "amount")
    except ValueError as exc:
        raise InvalidAmountError(str(exc)) from exc
    if amount <= 0:
        raise InvalidAmountError(f"amount must be > 0, got {amount}.")
    return amount
