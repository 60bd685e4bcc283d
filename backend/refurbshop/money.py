"""
Money helpers.

All amounts are AUD unless a column name says otherwise, held as Decimal
and rounded to cents with ROUND_HALF_UP. Floats never reach the database.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """Coerce int/str/float/Decimal to a 2dp Decimal."""
    if value is None:
        return ZERO
    if isinstance(value, float):
        # str() first so 0.1 stays 0.1 rather than its binary expansion
        value = str(value)
    try:
        return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"invalid monetary amount: {value!r}") from exc


def to_cents(value) -> int:
    """Minor units for payment processors."""
    return int((to_money(value) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def as_number(value: Decimal | None) -> float | None:
    """JSON-friendly rendering for API responses."""
    if value is None:
        return None
    return float(to_money(value))
