"""
Trade Documents — Lifecycle Errors
====================================
Typed failures raised by the document lifecycle core.

Every failure carries an ErrorKind so callers can branch on the
category without parsing messages. The Document Store and Tax Engine
only ever raise ValidationError; business-rule failures come from
the Lifecycle Service.

A failed call never leaves partial writes behind.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Failure categories exposed to callers."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    ALREADY_CONVERTED = "ALREADY_CONVERTED"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    OVER_PAYMENT = "OVER_PAYMENT"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"


class LifecycleError(Exception):
    """Base error for lifecycle operations."""

    kind: ErrorKind = ErrorKind.VALIDATION_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"code": self.kind.value, "message": self.message}


class ValidationError(LifecycleError, ValueError):
    """Missing or malformed input. Nothing was mutated."""

    kind = ErrorKind.VALIDATION_ERROR


class NotFoundError(LifecycleError):
    """A referenced entity does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} '{entity_id}' not found.")


class InvalidTransitionError(LifecycleError):
    """Status change not permitted from the current state."""

    kind = ErrorKind.INVALID_TRANSITION


class AlreadyConvertedError(LifecycleError):
    """Source document already produced its one conversion."""

    kind = ErrorKind.ALREADY_CONVERTED

    def __init__(self, number: str, converted_to: str):
        self.number = number
        self.converted_to = converted_to
        super().__init__(
            f"Document {number} was already converted to {converted_to}."
        )


class InvalidAmountError(LifecycleError):
    """Amount or quantity must be strictly positive."""

    kind = ErrorKind.INVALID_AMOUNT


class OverPaymentError(LifecycleError):
    """Payment exceeds the invoice's outstanding balance."""

    kind = ErrorKind.OVER_PAYMENT

    def __init__(self, number: str, amount, balance):
        self.number = number
        self.amount = amount
        self.balance = balance
        super().__init__(
            f"Payment of {amount} exceeds balance {balance} "
            f"on invoice {number}."
        )


class InsufficientStockError(LifecycleError):
    """Stock out exceeds on-hand quantity under strict enforcement."""

    kind = ErrorKind.INSUFFICIENT_STOCK

    def __init__(self, sku: str, requested: int, on_hand: int):
        self.sku = sku
        self.requested = requested
        self.on_hand = on_hand
        super().__init__(
            f"Insufficient stock for {sku}: requested {requested}, "
            f"on hand {on_hand}."
        )
