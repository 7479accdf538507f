# ========================
# src/flightdelay/pipeline/filtering.py
# ========================

"""
Filter & Project Module

The one inclusion rule shared by every output table: recent years,
meaningful delays, major carriers.
"""

import logging
from typing import Dict, Iterable, List, Optional

from .schema import FlightRecord

logger = logging.getLogger(__name__)

MIN_FLIGHT_YEAR = 2020
MEANINGFUL_DELAY_MINUTES = 10

# Matched verbatim: case and punctuation included
MAJOR_AIRLINES = frozenset({
    'Southwest Airlines Co.',
    'Delta Air Lines Inc.',
    'American Airlines Inc.',
    'United Air Lines Inc.',
    'JetBlue Airways',
    'Alaska Airlines Inc.',
    'Spirit Air Lines',
    'Frontier Airlines Inc.',
    'Allegiant Air',
    'Hawaiian Airlines Inc.',
    'SkyWest Airlines Inc.',
    'Republic Airline',
})

EXCLUDED_BY_YEAR = 'year'
EXCLUDED_BY_DELAY = 'delay'
EXCLUDED_BY_AIRLINE = 'airline'


def _exceeds(minutes, threshold: int) -> bool:
    # None compares like SQL NULL: never greater than anything
    return minutes is not None and minutes > threshold


def is_meaningfully_delayed(record: FlightRecord) -> bool:
    """True when either leg is delayed by more than the threshold."""
    return (_exceeds(record.departure_delay_minutes, MEANINGFUL_DELAY_MINUTES)
            or _exceeds(record.arrival_delay_minutes, MEANINGFUL_DELAY_MINUTES))


def exclusion_reason(record: FlightRecord) -> Optional[str]:
    """Return the first rule the record fails, or None if it is included."""
    # Rows without a date fall under the year rule
    if record.year is None or record.year < MIN_FLIGHT_YEAR:
        return EXCLUDED_BY_YEAR
    if not is_meaningfully_delayed(record):
        return EXCLUDED_BY_DELAY
    if record.airline not in MAJOR_AIRLINES:
        return EXCLUDED_BY_AIRLINE
    return None


def passes_filter(record: FlightRecord) -> bool:
    """Inclusion predicate for the dashboard dataset."""
    return exclusion_reason(record) is None


class FlightFilter:
    """Applies the inclusion predicate chunk by chunk and counts exclusions."""

    def __init__(self):
        self.records_seen = 0
        self.records_kept = 0
        self.excluded: Dict[str, int] = {
            EXCLUDED_BY_YEAR: 0,
            EXCLUDED_BY_DELAY: 0,
            EXCLUDED_BY_AIRLINE: 0,
        }

    def filter_chunk(self, records: Iterable[FlightRecord]) -> List[FlightRecord]:
        """Return the records of a chunk that pass the inclusion predicate."""
        kept = []
        for record in records:
            self.records_seen += 1
            reason = exclusion_reason(record)
            if reason is None:
                kept.append(record)
            else:
                self.excluded[reason] += 1
        self.records_kept += len(kept)
        logger.debug(f"Filter kept {len(kept)} records from chunk")
        return kept

    def get_statistics(self) -> Dict[str, object]:
        """Get filtering statistics."""
        return {
            'records_seen': self.records_seen,
            'records_kept': self.records_kept,
            'excluded_by_year': self.excluded[EXCLUDED_BY_YEAR],
            'excluded_by_delay': self.excluded[EXCLUDED_BY_DELAY],
            'excluded_by_airline': self.excluded[EXCLUDED_BY_AIRLINE],
            'keep_rate': self.records_kept / self.records_seen * 100 if self.records_seen > 0 else 0,
        }
