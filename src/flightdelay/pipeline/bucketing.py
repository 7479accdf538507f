# ========================
# src/flightdelay/pipeline/bucketing.py
# ========================

"""
Bucketing Module

Ordered lookup tables for ordinal classification and month labels.
"""

import logging
from typing import Optional, Sequence, Tuple

from .errors import InvalidMonthError

logger = logging.getLogger(__name__)

# (closed upper bound, label), evaluated in ascending order
PERFORMANCE_RATING_BUCKETS: Tuple[Tuple[float, str], ...] = (
    (20.0, 'Excellent'),
    (30.0, 'Good'),
    (40.0, 'Fair'),
    (50.0, 'Poor'),
)
PERFORMANCE_RATING_DEFAULT = 'Very Poor'

MONTH_NAMES: Tuple[str, ...] = (
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December',
)
MONTH_NAME_FALLBACK = 'December'


def first_matching_bucket(value: float,
                          buckets: Sequence[Tuple[float, str]],
                          default: Optional[str] = None) -> Optional[str]:
    """
    Return the label of the first bucket whose upper bound is >= value.

    Args:
        value (float): Value to classify
        buckets (sequence): (upper_bound, label) pairs in ascending bound order
        default (str): Label returned when no bound matches

    Returns:
        str: Matching label, or ``default``
    """
    for upper_bound, label in buckets:
        if value <= upper_bound:
            return label
    return default


def performance_rating(delay_percentage: float) -> str:
    """Classify a departure-delay percentage into its rating band."""
    return first_matching_bucket(
        delay_percentage, PERFORMANCE_RATING_BUCKETS, PERFORMANCE_RATING_DEFAULT
    )


def month_name(month: int, strict: bool = True) -> str:
    """
    Map a month number to its English name.

    Out-of-range values raise InvalidMonthError in strict mode. In lenient
    mode they fall back to December with a warning, which is what the
    dashboard's SQL catch-all used to do.
    """
    if isinstance(month, int) and 1 <= month <= 12:
        return MONTH_NAMES[month - 1]

    if strict:
        raise InvalidMonthError(month)

    logger.warning(f"Month {month!r} is outside 1-12; labelling it {MONTH_NAME_FALLBACK}")
    return MONTH_NAME_FALLBACK
