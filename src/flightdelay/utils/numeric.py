# ========================
# src/flightdelay/utils/numeric.py
# ========================

"""
Numeric Helpers

Rounding used by every aggregate column. Values are rounded half away from
zero, matching ROUND(numeric, 2) in PostgreSQL.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

Number = Union[int, float, Decimal]

TWO_PLACES = Decimal('0.01')


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without picking up binary float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def round_half_up(value: Number, places: Decimal = TWO_PLACES) -> float:
    """Round to two decimal places (by default), halves away from zero."""
    return float(to_decimal(value).quantize(places, rounding=ROUND_HALF_UP))


def percentage(part: int, total: int) -> float:
    """Return part / total * 100 rounded to two places; 0.0 for an empty total."""
    if total <= 0:
        return 0.0
    return round_half_up(Decimal(part) * 100 / Decimal(total))


def mean(total: Number, count: int) -> Optional[float]:
    """Arithmetic mean rounded to two places, or None when nothing was counted."""
    if count <= 0:
        return None
    return round_half_up(to_decimal(total) / Decimal(count))
