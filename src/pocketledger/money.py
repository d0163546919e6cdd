"""Money helpers.

Amounts are persisted as integer minor units (cents) and handed to callers as
``Decimal`` values quantized to two places.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from .errors import ValidationError

MoneyLike = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Range of a signed 64-bit INTEGER column
MAX_CENTS = 2**63 - 1
MIN_CENTS = -(2**63)


def to_decimal(value: MoneyLike) -> Decimal:
    """Parse *value* into a two-place Decimal, rounding half-up.

    Amounts whose cent count does not fit a signed 64-bit integer column are
    rejected.
    """

    if isinstance(value, bool):
        raise ValidationError("Amount must be a number.")
    try:
        # floats go through str() so 0.1 becomes Decimal("0.1"), not its binary expansion
        raw = Decimal(str(value).strip()) if isinstance(value, (float, str)) else Decimal(value)
        if not raw.is_finite():
            raise ValidationError(f"Invalid amount: {value!r}")
        amount = raw.quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ValidationError(f"Invalid amount: {value!r}") from exc
    if not MIN_CENTS <= int(amount * 100) <= MAX_CENTS:
        raise ValidationError(f"Amount is too large: {value!r}")
    return amount


def to_cents(value: MoneyLike) -> int:
    """Convert a money value to integer cents."""

    return int(to_decimal(value) * 100)


def from_cents(cents: int | None) -> Decimal:
    """Convert integer cents back into a two-place Decimal."""

    return (Decimal(cents or 0) / 100).quantize(CENT)


def format_money(amount: Decimal) -> str:
    """Render an amount the way the UI shows it: ``-$12.99`` / ``$250.00``."""

    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"
