"""
Trade Documents Ledger Primitive — Balance and Stock Bookkeeping
==================================================================
Engine: Core Primitives

Pure helpers used by every document mutation:

    apply_payment         — reduce an invoice's balance
    reduce_party_balance  — reduce a party's aggregate balance
    post_stock_movement   — move a product's stock and emit the audit record

Each helper takes snapshots and returns new snapshots. Persisting the
results together is the caller's job (one store transaction).

RULES (NON-NEGOTIABLE):
- Payment amounts are strictly positive and never exceed the balance
- Balances are rounded to cents and clamped at exactly 0
- Stock OUT clamps at 0; oversell is logged, rejected only when strict
- Every stock change yields exactly one StockMovement
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from core.errors import InsufficientStockError, InvalidAmountError
from core.primitives.document import Invoice, InvoiceStatus
from core.primitives.inventory import MovementType, StockMovement
from core.primitives.item import Product
from core.primitives.money import ZERO, Amount, to_money
from core.primitives.party import Party

logger = logging.getLogger("tradedocs.ledger")


def _positive_amount(amount: Amount) -> Decimal:
    try:
        value = to_money(amount)
    except ValueError as exc:
        raise InvalidAmountError(str(exc)) from exc
    if value <= 0:
        raise InvalidAmountError(f"amount must be > 0, got {value}.")
    return value


# ══════════════════════════════════════════════════════════════
# PAYMENTS
# ══════════════════════════════════════════════════════════════

def apply_payment(invoice: Invoice, amount: Amount, at: datetime) -> Invoice:
    """
    Apply a payment to an invoice snapshot.

    amount_paid += amount, balance -= amount. A balance that reaches
    zero is clamped to exactly 0.00 and the invoice becomes PAID.
    """
    value = _positive_amount(amount)
    if value > invoice.balance:
        raise InvalidAmountError(
            f"amount {value} exceeds balance {invoice.balance} "
            f"on invoice {invoice.number}."
        )

    balance = max(ZERO, to_money(invoice.balance - value))
    amount_paid = invoice.total - balance
    status = InvoiceStatus.PAID if balance == ZERO else invoice.status

    return invoice.evolve(
        amount_paid=amount_paid,
        balance=balance,
        status=status,
        updated_at=at,
    )


def reduce_party_balance(party: Party, amount: Amount, at: datetime) -> Party:
    """Decrease a party's aggregate balance, floored at 0."""
    value = _positive_amount(amount)
    return party.with_balance(max(ZERO, party.balance - value), at)


# ══════════════════════════════════════════════════════════════
# STOCK
# ══════════════════════════════════════════════════════════════

def post_stock_movement(
    product: Product,
    movement_type: MovementType,
    quantity: int,
    reference: str,
    *,
    at: datetime,
    strict: bool = False,
    notes: Optional[str] = None,
) -> Tuple[Product, Optional[StockMovement]]:
    """
    Move stock for one product.

    Products that do not track inventory are returned unchanged with
    no movement. OUT clamps current and available stock at 0; with
    strict=True an oversell raises InsufficientStockError instead.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidAmountError(f"quantity must be integer > 0, got {quantity!r}.")
    if not isinstance(movement_type, MovementType):
        raise ValueError("movement_type must be MovementType enum.")

    if not product.track_inventory:
        return product, None

    previous_stock = product.current_stock
    if movement_type == MovementType.OUT:
        if quantity > previous_stock:
            if strict:
                raise InsufficientStockError(product.sku, quantity, previous_stock)
            logger.warning(
                f"Oversell on {product.sku}: {quantity} out against "
                f"{previous_stock} on hand ({reference}); clamping to 0."
            )
        new_stock = max(0, previous_stock - quantity)
        available_stock = max(0, product.available_stock - quantity)
    else:
        new_stock = previous_stock + quantity
        available_stock = product.available_stock + quantity

    movement = StockMovement(
        movement_id=uuid.uuid4(),
        product_id=product.product_id,
        movement_type=movement_type,
        quantity=quantity,
        previous_stock=previous_stock,
        new_stock=new_stock,
        reference=reference,
        created_at=at,
        notes=notes,
    )
    return product.with_stock(new_stock, available_stock, at), movement
