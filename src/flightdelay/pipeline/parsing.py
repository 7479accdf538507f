# ========================
# src/flightdelay/pipeline/parsing.py
# ========================

"""
Record Parsing Module

Converts raw CSV rows into typed FlightRecord objects.
"""

import logging
import math
from datetime import date, datetime
from typing import Any, Dict, Optional

from .errors import MalformedRecordError
from .ingestion import LINE_NUMBER_KEY
from .schema import DELAY_CAUSE_FIELDS, FlightRecord, Minutes

logger = logging.getLogger(__name__)


class FlightRecordParser:
    """
    Parses raw rows into FlightRecords.

    Unlike a cleaning step, nothing is repaired or dropped here: a value
    that cannot be parsed fails the whole run. Empty delay cells become
    None and behave like SQL NULLs downstream.
    """

    DATE_FORMATS = [
        "%Y-%m-%d",
        "%Y-%m-%d %H:%M:%S",
        "%Y/%m/%d",
        "%m/%d/%Y",
        "%m/%d/%Y %I:%M:%S %p",
        "%d-%b-%Y",
    ]

    def __init__(self):
        """Initialize the record parser."""
        self.records_parsed = 0
        self.null_dates = 0
        self.null_departure_delays = 0
        self.null_arrival_delays = 0
        logger.info("FlightRecordParser initialized")

    def parse_record(self, row: Dict[str, Any]) -> FlightRecord:
        """
        Parse a single canonical-keyed row.

        Args:
            row (dict): Row as yielded by CSVReader with required_columns set

        Returns:
            FlightRecord: The typed record

        Raises:
            MalformedRecordError: If a non-empty date or minute value is unparseable
        """
        line_number = row.get(LINE_NUMBER_KEY)

        flight_date = self._parse_date(row.get('flight_date'), line_number)
        if flight_date is None:
            self.null_dates += 1
        departure_delay = self._parse_minutes('departure_delay_minutes', row, line_number)
        arrival_delay = self._parse_minutes('arrival_delay_minutes', row, line_number)

        if departure_delay is None:
            self.null_departure_delays += 1
        if arrival_delay is None:
            self.null_arrival_delays += 1

        causes = {
            field: self._parse_minutes(field, row, line_number)
            for field in DELAY_CAUSE_FIELDS
        }

        self.records_parsed += 1

        return FlightRecord(
            flight_date=flight_date,
            airline=row.get('airline') or '',
            origin_city=row.get('origin_city') or '',
            destination_airport=row.get('destination_airport') or '',
            departure_delay_minutes=departure_delay,
            arrival_delay_minutes=arrival_delay,
            **causes
        )

    def _parse_date(self, value: Any, line_number: Optional[int]) -> Optional[date]:
        """
        Parses a date string in the formats seen in flight exports.
        Returns a date object, None for an empty cell, or raises if malformed.
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return None

        if isinstance(value, str):
            for fmt in self.DATE_FORMATS:
                try:
                    return datetime.strptime(value.strip(), fmt).date()
                except ValueError:
                    continue

        raise MalformedRecordError('flight_date', value, line_number)

    def _parse_minutes(self, field: str, row: Dict[str, Any],
                       line_number: Optional[int]) -> Optional[Minutes]:
        """Parse a minute count; empty cells are None, integral values are ints."""
        value = row.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            return None

        try:
            minutes = float(value)
        except (ValueError, TypeError):
            raise MalformedRecordError(field, value, line_number) from None

        if not math.isfinite(minutes):
            raise MalformedRecordError(field, value, line_number)

        return int(minutes) if minutes.is_integer() else minutes

    def get_statistics(self) -> Dict[str, int]:
        """Get parsing statistics."""
        return {
            'records_parsed': self.records_parsed,
            'null_dates': self.null_dates,
            'null_departure_delays': self.null_departure_delays,
            'null_arrival_delays': self.null_arrival_delays,
        }
