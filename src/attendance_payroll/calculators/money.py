"""Decimal money helpers."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def round_to_cents(amount: Decimal) -> Decimal:
    """Round amount to 2 decimal places (cents)."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_decimal(value: object) -> Decimal:
    """Coerce a stored or user supplied number to Decimal.

    Floats go through ``str`` so 0.1 stays 0.1 instead of its binary expansion.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def sum_money(amounts) -> Decimal:
    """Sum amounts exactly and round the result to cents."""
    total = ZERO
    for amount in amounts:
        total += to_decimal(amount)
    return round_to_cents(total)
