# ========================
# src/flightdelay/pipeline/profiling.py
# ========================

"""
Source Profiling

Diagnostics over the full, unfiltered source: row count, missing values
in the key columns, and the date range covered. These are the numbers to
look at first when an output table comes out empty or smaller than expected.
"""

import logging
from typing import Any, Dict, Iterable, List

from .schema import FlightRecord

logger = logging.getLogger(__name__)


class SourceProfiler:
    """Accumulates diagnostics for every parsed source record."""

    def __init__(self):
        self.total_rows = 0
        self.non_null_dates = 0
        self.non_null_airlines = 0
        self.non_null_departure_delays = 0
        self.non_null_arrival_delays = 0
        self.earliest_date = None
        self.latest_date = None

    def process_chunk(self, records: Iterable[FlightRecord]) -> None:
        for record in records:
            self.total_rows += 1
            if record.airline:
                self.non_null_airlines += 1
            if record.departure_delay_minutes is not None:
                self.non_null_departure_delays += 1
            if record.arrival_delay_minutes is not None:
                self.non_null_arrival_delays += 1

            if record.flight_date is None:
                continue
            self.non_null_dates += 1

            if self.earliest_date is None or record.flight_date < self.earliest_date:
                self.earliest_date = record.flight_date
            if self.latest_date is None or record.flight_date > self.latest_date:
                self.latest_date = record.flight_date

    def get_profile(self) -> Dict[str, Any]:
        return {
            'total_rows': self.total_rows,
            'non_null_dates': self.non_null_dates,
            'non_null_airlines': self.non_null_airlines,
            'non_null_departure_delays': self.non_null_departure_delays,
            'non_null_arrival_delays': self.non_null_arrival_delays,
            'earliest_date': self.earliest_date.isoformat() if self.earliest_date else None,
            'latest_date': self.latest_date.isoformat() if self.latest_date else None,
        }


def _value_range(rows: List[Dict[str, Any]], column: str) -> Dict[str, Any]:
    values = [row[column] for row in rows if row.get(column) is not None]
    return {
        'min': min(values) if values else None,
        'max': max(values) if values else None,
    }


def build_verification_report(airline_rows: List[Dict[str, Any]],
                              monthly_row_count: int,
                              yearly_rows: List[Dict[str, Any]],
                              filtered_row_count: int) -> Dict[str, Any]:
    """
    Sanity checks over the finished tables.

    Args:
        airline_rows (list[dict]): Airline performance rows
        monthly_row_count (int): Rows written to the monthly trends table
        yearly_rows (list[dict]): Yearly overview rows
        filtered_row_count (int): Records that passed the filter

    Returns:
        dict: Row counts, value ranges and consistency flags
    """
    yearly_total = sum(row['total_flights'] for row in yearly_rows)

    report = {
        'row_counts': {
            'airline_performance': len(airline_rows),
            'monthly_delay_trends': monthly_row_count,
            'yearly_delay_overview': len(yearly_rows),
        },
        'departure_delay_percentage_range': _value_range(airline_rows, 'departure_delay_percentage'),
        'yearly_avg_departure_delay_range': _value_range(yearly_rows, 'yearly_avg_departure_delay'),
        'checks': {
            'monthly_rows_match_filtered': monthly_row_count == filtered_row_count,
            'yearly_totals_match_filtered': yearly_total == filtered_row_count,
        },
    }

    for check, passed in report['checks'].items():
        if not passed:
            logger.warning(f"Verification check failed: {check}")

    return report
