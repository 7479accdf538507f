# ========================
# src/flightdelay/pipeline/transformation.py
# ========================

"""
Data Transformation Module

Builds the three dashboard tables from filtered flight chunks:
airline performance, monthly trends and the yearly overview.
"""

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Any, Dict, Iterable, List

from .bucketing import month_name, performance_rating
from .schema import FlightRecord
from ..utils.numeric import mean, percentage, to_decimal

logger = logging.getLogger(__name__)

MIN_AIRLINE_FLIGHTS = 50


def _is_delayed_departure(record: FlightRecord) -> bool:
    return record.departure_delay_minutes is not None and record.departure_delay_minutes > 0


class AirlinePerformanceAggregator:
    """
    Counts flights and delayed departures per airline, then rates each
    airline with enough flights to be meaningful.
    """

    def __init__(self, min_flights: int = MIN_AIRLINE_FLIGHTS):
        """
        Initialize the airline aggregator.

        Args:
            min_flights (int): Airlines with fewer flights are left out of the table
        """
        self.min_flights = min_flights
        self.airline_counts = defaultdict(lambda: {
            'total_flights': 0,
            'delayed_departures': 0,
        })
        self.records_processed = 0
        self.rows: List[Dict[str, Any]] = []
        self.airlines_below_threshold: List[str] = []
        logger.info(f"AirlinePerformanceAggregator initialized with min_flights={min_flights}")

    def process_chunk(self, records: Iterable[FlightRecord]) -> None:
        """Update per-airline counters with a chunk of filtered records."""
        for record in records:
            counts = self.airline_counts[record.airline]
            counts['total_flights'] += 1
            if _is_delayed_departure(record):
                counts['delayed_departures'] += 1
            self.records_processed += 1

    def finalize(self) -> List[Dict[str, Any]]:
        """
        Compute percentages and ratings, drop small airlines, and sort.

        Returns:
            list[dict]: Rows ordered best performer first
        """
        rows = []
        self.airlines_below_threshold = []

        for airline, counts in self.airline_counts.items():
            # Post-aggregation filter, like SQL HAVING
            if counts['total_flights'] < self.min_flights:
                self.airlines_below_threshold.append(airline)
                logger.debug(f"Skipping {airline}: only {counts['total_flights']} flights")
                continue

            delay_pct = percentage(counts['delayed_departures'], counts['total_flights'])
            rows.append({
                'airline': airline,
                'total_flights': counts['total_flights'],
                'delayed_departures': counts['delayed_departures'],
                'departure_delay_percentage': delay_pct,
                'performance_rating': performance_rating(delay_pct),
            })

        rows.sort(key=lambda row: (row['departure_delay_percentage'], row['airline']))
        self.rows = rows

        logger.info(
            f"Airline performance: {len(rows)} airlines rated, "
            f"{len(self.airlines_below_threshold)} below {self.min_flights} flights"
        )
        return rows


class MonthlyTrendTransformer:
    """
    Relabels each filtered record with its month name. One output row per
    input row: nothing is grouped, filtered or deduplicated.
    """

    def __init__(self, strict_months: bool = True):
        self.strict_months = strict_months
        self.records_transformed = 0
        logger.info(f"MonthlyTrendTransformer initialized (strict_months={strict_months})")

    def transform_record(self, record: FlightRecord) -> Dict[str, Any]:
        row = record.to_row()
        row['month_name'] = month_name(record.month, strict=self.strict_months)
        return row

    def transform_chunk(self, records: Iterable[FlightRecord]) -> List[Dict[str, Any]]:
        rows = [self.transform_record(record) for record in records]
        self.records_transformed += len(rows)
        return rows


class YearlyOverviewAggregator:
    """
    Per-year delay statistics. Averages are taken over individual flights,
    never over monthly averages, so busy months weigh what they should.
    """

    def __init__(self):
        self.year_stats = defaultdict(lambda: {
            'total_flights': 0,
            'delayed_flights': 0,
            'departure_delay_sum': Decimal(0),
            'departure_delay_count': 0,
            'arrival_delay_sum': Decimal(0),
            'arrival_delay_count': 0,
        })
        self.records_processed = 0
        self.rows: List[Dict[str, Any]] = []
        logger.info("YearlyOverviewAggregator initialized")

    def process_chunk(self, records: Iterable[FlightRecord]) -> None:
        """Update per-year running sums with a chunk of filtered records."""
        for record in records:
            stats = self.year_stats[record.year]
            stats['total_flights'] += 1

            if _is_delayed_departure(record):
                stats['delayed_flights'] += 1

            # Missing delays are skipped, as SQL AVG skips NULLs
            if record.departure_delay_minutes is not None:
                stats['departure_delay_sum'] += to_decimal(record.departure_delay_minutes)
                stats['departure_delay_count'] += 1
            if record.arrival_delay_minutes is not None:
                stats['arrival_delay_sum'] += to_decimal(record.arrival_delay_minutes)
                stats['arrival_delay_count'] += 1

            self.records_processed += 1

    def finalize(self) -> List[Dict[str, Any]]:
        """
        Compute per-year averages and delay rates.

        Returns:
            list[dict]: One row per year in ascending order
        """
        rows = []
        for year in sorted(self.year_stats):
            stats = self.year_stats[year]
            rows.append({
                'year': year,
                'yearly_avg_departure_delay': mean(stats['departure_delay_sum'], stats['departure_delay_count']),
                'yearly_avg_arrival_delay': mean(stats['arrival_delay_sum'], stats['arrival_delay_count']),
                'total_flights': stats['total_flights'],
                'delayed_flights': stats['delayed_flights'],
                'yearly_delay_percentage': percentage(stats['delayed_flights'], stats['total_flights']),
            })

        self.rows = rows
        logger.info(f"Yearly overview: {len(rows)} years")
        return rows
