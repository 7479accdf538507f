# ========================
# src/flightdelay/pipeline/schema.py
# ========================

"""
Record Schema

Typed flight record plus the column layouts of the source and of every
output table.
"""

from dataclasses import dataclass, asdict
from datetime import date
from typing import Any, Dict, Optional, Tuple, Union

Minutes = Union[int, float]

DELAY_CAUSE_FIELDS: Tuple[str, ...] = (
    'delay_due_carrier_minutes',
    'delay_due_weather_minutes',
    'delay_due_nas_minutes',
    'delay_due_security_minutes',
    'delay_due_late_aircraft_minutes',
)

# Canonical field -> accepted source headers, first match wins.
# The short names are those of the public flight-delay dataset.
SOURCE_COLUMN_ALIASES: Dict[str, Tuple[str, ...]] = {
    'flight_date': ('flight_date', 'fl_date'),
    'airline': ('airline',),
    'origin_city': ('origin_city',),
    'destination_airport': ('destination_airport', 'dest'),
    'departure_delay_minutes': ('departure_delay_minutes', 'dep_delay'),
    'arrival_delay_minutes': ('arrival_delay_minutes', 'arr_delay'),
    **{field: (field,) for field in DELAY_CAUSE_FIELDS},
}


@dataclass(frozen=True)
class FlightRecord:
    """
    One observed flight. Year and month are derived from the flight date,
    and are None when the source row has no date.
    """
    flight_date: Optional[date]
    airline: str
    origin_city: str
    destination_airport: str
    departure_delay_minutes: Optional[Minutes]
    arrival_delay_minutes: Optional[Minutes]
    delay_due_carrier_minutes: Optional[Minutes] = None
    delay_due_weather_minutes: Optional[Minutes] = None
    delay_due_nas_minutes: Optional[Minutes] = None
    delay_due_security_minutes: Optional[Minutes] = None
    delay_due_late_aircraft_minutes: Optional[Minutes] = None

    @property
    def year(self) -> Optional[int]:
        return self.flight_date.year if self.flight_date else None

    @property
    def month(self) -> Optional[int]:
        return self.flight_date.month if self.flight_date else None

    def to_row(self) -> Dict[str, Any]:
        """Flatten into the filtered-dataset column layout."""
        row = asdict(self)
        row['flight_date'] = self.flight_date.isoformat() if self.flight_date else None
        row['year'] = self.year
        row['month'] = self.month
        return {column: row[column] for column in FILTERED_FLIGHT_COLUMNS}


FILTERED_FLIGHT_COLUMNS = [
    'flight_date', 'year', 'month', 'airline', 'origin_city', 'destination_airport',
    'departure_delay_minutes', 'arrival_delay_minutes', *DELAY_CAUSE_FIELDS,
]

AIRLINE_PERFORMANCE_COLUMNS = [
    'airline', 'total_flights', 'delayed_departures',
    'departure_delay_percentage', 'performance_rating',
]

MONTHLY_TREND_COLUMNS = [
    'flight_date', 'year', 'month', 'month_name', 'airline', 'origin_city',
    'destination_airport', 'departure_delay_minutes', 'arrival_delay_minutes',
    *DELAY_CAUSE_FIELDS,
]

YEARLY_OVERVIEW_COLUMNS = [
    'year', 'yearly_avg_departure_delay', 'yearly_avg_arrival_delay',
    'total_flights', 'delayed_flights', 'yearly_delay_percentage',
]

# Columns always rendered with exactly two decimals
TWO_DECIMAL_COLUMNS = frozenset({
    'departure_delay_percentage',
    'yearly_avg_departure_delay',
    'yearly_avg_arrival_delay',
    'yearly_delay_percentage',
})
