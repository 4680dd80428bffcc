"""
Money arithmetic in integer cents.

WHY: Binary floats cannot represent most currency values exactly
(0.1 + 0.2 == 0.30000000000000004). Every amount is converted to integer
cents (half away from zero), combined with integer math, and converted back
once. Results are Decimals with exactly two places.

RULES:
- Every monetary figure the calculator, ledger or closure services store or
  display must come out of this module.
- Never add or multiply raw currency values directly.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Iterable, Union

Amount = Union[int, float, str, Decimal]

CENT = Decimal("0.01")
DEFAULT_TOLERANCE = Decimal("0.01")


def to_decimal(value: Amount) -> Decimal:
    """
    Coerce an input amount to Decimal.

    Floats go through their shortest repr, so 0.1 becomes Decimal("0.1")
    rather than the 55-digit binary expansion.
    """
    if isinstance(value, bool):
        raise TypeError("Boolean is not a monetary amount")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    if isinstance(value, (int, str)):
        try:
            return Decimal(value)
        except InvalidOperation:
            raise ValueError(f"Invalid amount: {value!r}")
    raise TypeError(f"Unsupported amount type: {type(value).__name__}")


def _round_half_away(value: Decimal) -> int:
    if not value.is_finite():
        raise ValueError(f"Amount must be a finite number, got {value}")
    return int(value.to_integral_value(rounding=ROUND_HALF_UP))


def to_cents(amount: Amount) -> int:
    """Convert currency to integer cents."""
    return _round_half_away(to_decimal(amount) * 100)


def from_cents(cents: int) -> Decimal:
    """Convert integer cents back to a 2-place currency Decimal."""
    return (Decimal(int(cents)) / 100).quantize(CENT)


def add_money(a: Amount, b: Amount) -> Decimal:
    return from_cents(to_cents(a) + to_cents(b))


def subtract_money(a: Amount, b: Amount) -> Decimal:
    return from_cents(to_cents(a) - to_cents(b))


def multiply_money(amount: Amount, factor: Amount) -> Decimal:
    """Multiply currency by a (possibly fractional) factor, e.g. price * qty or rate * hours."""
    return from_cents(_round_half_away(to_cents(amount) * to_decimal(factor)))


def percentage_of(amount: Amount, percentage: Amount) -> Decimal:
    return from_cents(_round_half_away(to_cents(amount) * to_decimal(percentage) / 100))


def sum_money(amounts: Iterable[Amount]) -> Decimal:
    """Sum in cents, convert back once at the end."""
    return from_cents(sum(to_cents(a) for a in amounts))


def round_money(amount: Amount) -> Decimal:
    """Normalize to exactly two decimal places via the cents round-trip."""
    return from_cents(to_cents(amount))


def money_equals(a: Amount, b: Amount, tolerance: Amount = DEFAULT_TOLERANCE) -> bool:
    """
    Compare two amounts as decimals, not cents.

    Default tolerance is a full cent: amounts typed by an operator must still
    match a computed total.
    """
    return abs(to_decimal(a) - to_decimal(b)) < to_decimal(tolerance)


def max_money(a: Amount, b: Amount) -> Decimal:
    return from_cents(max(to_cents(a), to_cents(b)))


def money_to_json(amount: Amount) -> float:
    """JSON number for a 2-place amount (float of a 2-place Decimal reprs exactly)."""
    return float(round_money(amount))
