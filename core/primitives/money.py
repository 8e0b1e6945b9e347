"""
Trade Documents Money Helpers — Decimal Currency Amounts
==========================================================
Engine: Core Primitives

All monetary values are decimal.Decimal quantized to the currency's
minor unit (2 fraction digits). Floats are accepted at the boundary
only through str() conversion so that 0.1 stays 0.1.

RULES:
- Every stored amount is quantized (ROUND_HALF_UP)
- Percentages are plain numbers (16 means 16%), never fractions
- No currency conversion: one currency per store
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Union

Amount = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def to_decimal(value: Amount, field_name: str = "amount") -> Decimal:
    """Coerce to an unrounded Decimal. Raises ValueError on junk."""
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be numeric, got bool.")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError(f"{field_name} must be numeric, got {value!r}.") from exc
    else:
        raise ValueError(
            f"{field_name} must be numeric, got {type(value).__name__}."
        )
    if not result.is_finite():
        raise ValueError(f"{field_name} must be finite.")
    return result


def to_money(value: Amount, field_name: str = "amount") -> Decimal:
    """Coerce and round half-up to cents."""
    return to_decimal(value, field_name).quantize(CENT, rounding=ROUND_HALF_UP)


def percent_of(base: Decimal, rate: Amount) -> Decimal:
    """rate% of base, rounded to cents."""
    return to_money(base * to_decimal(rate, "rate") / HUNDRED)


def sum_money(values: Iterable[Decimal]) -> Decimal:
    total = ZERO
    for value in values:
        total += value
    return to_money(total)


def money_to_str(value: Decimal) -> str:
    return str(to_money(value))
