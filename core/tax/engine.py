"""
Trade Documents Tax — Line and Document Totals
================================================
Pure calculation functions. Same input → same output, no side effects.

Line algorithm (fixed order):
    1. subtotal        = quantity × unit_price
    2. discount_amount = subtotal × discount_percent / 100
    3. after_discount  = subtotal − discount_amount
    4. vat             = after_discount × tax_rate / 100   (taxable products)
    5. additional taxes:
         simple   → after_discount × rate / 100
         compound → running base × rate / 100, in selection order,
                    running base = after_discount + simple taxes
                    + compound taxes already applied
    6. line_total      = after_discount + vat + Σ additional

Every component is rounded to cents before it is summed, so a
document's total always equals the sum of its line totals.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Sequence, Tuple

from core.errors import ValidationError
from core.primitives.money import (
    HUNDRED,
    ZERO,
    percent_of,
    sum_money,
    to_decimal,
    to_money,
)
from core.tax.models import LineItemTax


# ══════════════════════════════════════════════════════════════
# RESULT TYPES
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class LineTotals:
    """Breakdown of one line's amounts."""
    subtotal: Decimal
    discount_amount: Decimal
    after_discount: Decimal
    vat_rate: Decimal
    vat_amount: Decimal
    line_taxes: Tuple[LineItemTax, ...]
    additional_tax_amount: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class DocumentTotals:
    """Aggregated amounts across a document's selected lines."""
    subtotal: Decimal = ZERO
    discount_amount: Decimal = ZERO
    vat_amount: Decimal = ZERO
    additional_tax_amount: Decimal = ZERO
    total: Decimal = ZERO

    def to_dict(self) -> dict:
        return {
            "subtotal": str(self.subtotal),
            "discount_amount": str(self.discount_amount),
            "vat_amount": str(self.vat_amount),
            "additional_tax_amount": str(self.additional_tax_amount),
            "total": str(self.total),
        }


# ══════════════════════════════════════════════════════════════
# INPUT CHECKS
# ══════════════════════════════════════════════════════════════

def _line_inputs(item) -> Tuple[int, Decimal, Decimal]:
    quantity = item.quantity
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("quantity must be integer > 0.")
    try:
        unit_price = to_decimal(item.unit_price, "unit_price")
        discount_percent = to_decimal(item.discount_percent, "discount_percent")
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    if unit_price < 0:
        raise ValidationError("unit_price must be >= 0.")
    if not ZERO <= discount_percent <= HUNDRED:
        raise ValidationError("discount_percent must be between 0 and 100.")
    return quantity, unit_price, discount_percent


# ══════════════════════════════════════════════════════════════
# LINE CALCULATIONS
# ══════════════════════════════════════════════════════════════

def calculate_line_item_taxes(
    base_amount: Decimal,
    taxes: Iterable,
) -> Tuple[LineItemTax, ...]:
    """
    Apply additional taxes to a line's after-discount amount.

    Simple taxes are independent of each other. Compound taxes stack
    sequentially in selection order on the running base. The returned
    tuple keeps the selection order.
    """
    selected = tuple(taxes)
    base = to_money(base_amount)

    simple_amounts = {}
    simple_total = ZERO
    for index, tax in enumerate(selected):
        if not tax.is_compound_tax:
            amount = percent_of(base, tax.rate)
            simple_amounts[index] = amount
            simple_total += amount

    applied = []
    running_base = base + simple_total
    for index, tax in enumerate(selected):
        if tax.is_compound_tax:
            amount = percent_of(running_base, tax.rate)
            running_base += amount
        else:
            amount = simple_amounts[index]
        applied.append(LineItemTax.applied(tax, amount))
    return tuple(applied)


def calculate_line_total(
    item,
    product,
    additional_taxes: Iterable = (),
) -> LineTotals:
    """
    Compute a line's amounts.

    item needs quantity, unit_price and discount_percent. product may be
    None for a placeholder row (no primary tax applied).
    """
    quantity, unit_price, discount_percent = _line_inputs(item)

    subtotal = to_money(quantity * unit_price)
    discount_amount = percent_of(subtotal, discount_percent)
    after_discount = subtotal - discount_amount

    vat_rate = ZERO
    if product is not None and product.taxable:
        vat_rate = product.tax_rate
    vat_amount = percent_of(after_discount, vat_rate)

    line_taxes = calculate_line_item_taxes(after_discount, additional_taxes)
    additional_tax_amount = sum_money(t.amount for t in line_taxes)

    return LineTotals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        after_discount=after_discount,
        vat_rate=vat_rate,
        vat_amount=vat_amount,
        line_taxes=line_taxes,
        additional_tax_amount=additional_tax_amount,
        line_total=after_discount + vat_amount + additional_tax_amount,
    )


# ══════════════════════════════════════════════════════════════
# DOCUMENT CALCULATIONS
# ══════════════════════════════════════════════════════════════

def is_selected_line(line) -> bool:
    """Placeholder rows (no product chosen yet) are excluded from totals."""
    return getattr(line, "product_id", None) is not None


def calculate_document_totals(lines: Sequence) -> DocumentTotals:
    """
    Sum line components across selected lines.

    total = subtotal − discount_amount + vat_amount + additional_tax_amount
    """
    selected = [line for line in lines if is_selected_line(line)]
    subtotal = sum_money(line.subtotal for line in selected)
    discount_amount = sum_money(line.discount_amount for line in selected)
    vat_amount = sum_money(line.vat_amount for line in selected)
    additional_tax_amount = sum_money(line.additional_tax_amount for line in selected)
    return DocumentTotals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        vat_amount=vat_amount,
        additional_tax_amount=additional_tax_amount,
        total=subtotal - discount_amount + vat_amount + additional_tax_amount,
    )


def exclusive_unit_price(gross_price, rate: Optional[Decimal]) -> Decimal:
    """Strip an included primary tax from a catalogue price."""
    gross = to_decimal(gross_price, "gross_price")
    if not rate:
        return to_money(gross)
    return to_money(gross * HUNDRED / (HUNDRED + to_decimal(rate, "rate")))
