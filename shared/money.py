"""Conversions between major units (dollars) and integer minor units (cents)."""
import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward positive infinity (2.5 -> 3, -2.5 -> -2)."""
    return math.floor(value + 0.5)


def to_cents(value) -> int:
    """Convert a dollar amount (str, int, float or Decimal) to cents; NaN and infinities are rejected."""
    if value is None or value == "":
        return 0
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid monetary amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Invalid monetary amount: {value!r}")
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_dollars(cents: int) -> str:
    return f"${cents / 100:.2f}"
