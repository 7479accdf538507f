# ========================
# src/flightdelay/utils/data_generator.py
# ========================

"""
Data Generation Utilities

Synthetic flight-delay datasets shaped like the public delay export the
dashboard is built on, for demos and large-scale runs.
"""

import csv
import random
import logging
from datetime import date, timedelta
from typing import List, Dict, Any, Optional
from pathlib import Path

logger = logging.getLogger(__name__)

SOURCE_HEADER = [
    'fl_date', 'airline', 'origin_city', 'dest', 'dep_delay', 'arr_delay',
    'delay_due_carrier_minutes', 'delay_due_weather_minutes', 'delay_due_nas_minutes',
    'delay_due_security_minutes', 'delay_due_late_aircraft_minutes',
]


class DataGenerator:
    """
    Data generator for realistic flight-delay test datasets.
    """

    def __init__(self, seed: Optional[int] = None):
        """
        Initialize data generator.

        Args:
            seed (int): Random seed for reproducible data generation
        """
        self.random = random.Random(seed)
        self._initialize_data_patterns()
        logger.info(f"DataGenerator initialized with seed: {seed}")

    def _initialize_data_patterns(self) -> None:
        """Initialize carriers, routes and delay distributions."""
        # (carrier name, traffic weight, on-time tendency 0..1)
        self.airlines = [
            ("Southwest Airlines Co.", 0.17, 0.55),
            ("Delta Air Lines Inc.", 0.13, 0.70),
            ("American Airlines Inc.", 0.12, 0.58),
            ("United Air Lines Inc.", 0.10, 0.62),
            ("SkyWest Airlines Inc.", 0.09, 0.66),
            ("Republic Airline", 0.04, 0.64),
            ("JetBlue Airways", 0.04, 0.45),
            ("Alaska Airlines Inc.", 0.04, 0.68),
            ("Spirit Air Lines", 0.03, 0.52),
            ("Frontier Airlines Inc.", 0.02, 0.45),
            ("Allegiant Air", 0.02, 0.50),
            ("Hawaiian Airlines Inc.", 0.01, 0.74),
            # Regional carriers outside the dashboard's scope
            ("Envoy Air", 0.06, 0.62),
            ("Endeavor Air Inc.", 0.05, 0.72),
            ("PSA Airlines Inc.", 0.04, 0.60),
            ("Mesa Airlines Inc.", 0.04, 0.58),
        ]

        self.routes = [
            ("Atlanta, GA", "ORD"), ("Chicago, IL", "ATL"), ("Dallas/Fort Worth, TX", "LAX"),
            ("Denver, CO", "SEA"), ("Los Angeles, CA", "JFK"), ("New York, NY", "MIA"),
            ("Seattle, WA", "DEN"), ("Miami, FL", "DFW"), ("Phoenix, AZ", "LAS"),
            ("Las Vegas, NV", "PHX"), ("Boston, MA", "SFO"), ("San Francisco, CA", "BOS"),
            ("Honolulu, HI", "LAX"), ("Orlando, FL", "EWR"), ("Charlotte, NC", "MCO"),
        ]

        # Seasonal delay pressure (month -> multiplier)
        self.seasonal_patterns = {
            1: 1.1, 2: 1.0, 3: 0.9, 4: 0.85, 5: 0.95, 6: 1.3,
            7: 1.35, 8: 1.2, 9: 0.8, 10: 0.8, 11: 0.9, 12: 1.25,
        }

    def generate_dataset(self,
                         file_path: str,
                         num_rows: int,
                         start_date: Optional[date] = None,
                         end_date: Optional[date] = None,
                         null_delay_rate: float = 0.02) -> Dict[str, Any]:
        """
        Generate a flight-delay CSV.

        Args:
            file_path (str): Output CSV file path
            num_rows (int): Number of rows to generate
            start_date (date): First possible flight date (default 2019-01-01)
            end_date (date): Last possible flight date (default 2023-08-31)
            null_delay_rate (float): Fraction of cancelled flights with empty delays

        Returns:
            dict: Generation statistics
        """
        start_date = start_date or date(2019, 1, 1)
        end_date = end_date or date(2023, 8, 31)
        span_days = (end_date - start_date).days

        logger.info(f"Generating {num_rows:,} flights between {start_date} and {end_date}...")

        stats = {
            'total_rows': num_rows,
            'start_date': start_date.isoformat(),
            'end_date': end_date.isoformat(),
            'cancelled_flights': 0,
            'rows_by_year': {},
        }

        Path(file_path).parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow(SOURCE_HEADER)

            for i in range(num_rows):
                flight_date = start_date + timedelta(days=self.random.randint(0, span_days))
                writer.writerow(self._generate_single_record(flight_date, null_delay_rate, stats))

                year = str(flight_date.year)
                stats['rows_by_year'][year] = stats['rows_by_year'].get(year, 0) + 1

                if (i + 1) % 100000 == 0:
                    logger.debug(f"Generated {i + 1:,} records")

        logger.info(f"Dataset generated: {file_path}")
        logger.info(f"Rows by year: {stats['rows_by_year']}")

        return stats

    def _generate_single_record(self,
                                flight_date: date,
                                null_delay_rate: float,
                                stats: Dict[str, Any]) -> List[Any]:
        """Generate one source row."""
        weights = [weight for _, weight, _ in self.airlines]
        airline, _, on_time_tendency = self.random.choices(self.airlines, weights=weights)[0]
        origin_city, dest = self.random.choice(self.routes)

        if self.random.random() < null_delay_rate:
            stats['cancelled_flights'] += 1
            return [flight_date.isoformat(), airline, origin_city, dest, '', '', '', '', '', '', '']

        pressure = self.seasonal_patterns[flight_date.month]
        if self.random.random() < on_time_tendency / pressure:
            dep_delay = self.random.randint(-15, 5)
        else:
            dep_delay = int(self.random.expovariate(1 / (35 * pressure))) + 1

        # Arrival tracks departure, recovering or losing a few minutes en route
        arr_delay = dep_delay + self.random.randint(-12, 10)

        causes = [''] * 5
        if arr_delay >= 15:
            causes = self._split_delay_causes(arr_delay)

        return [flight_date.isoformat(), airline, origin_city, dest, dep_delay, arr_delay, *causes]

    def _split_delay_causes(self, arr_delay: int) -> List[int]:
        """Distribute an arrival delay across carrier, weather, NAS, security, late aircraft."""
        shares = [self.random.random() * w for w in (0.35, 0.08, 0.25, 0.01, 0.31)]
        total = sum(shares)
        minutes = [int(arr_delay * share / total) for share in shares]
        # Rounding remainder goes to late aircraft
        minutes[4] += arr_delay - sum(minutes)
        return minutes
