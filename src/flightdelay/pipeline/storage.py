# ========================
# src/flightdelay/pipeline/storage.py
# ========================

"""
Data Storage Module

Writes the dashboard tables as CSV. Every file of a run is written into a
private staging directory first and only moved into the output directory
once the whole run has succeeded, so a failed run never leaves partial
tables behind.
"""

import csv
import json
import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .schema import TWO_DECIMAL_COLUMNS

logger = logging.getLogger(__name__)

TABLE_FILES = {
    'airline_performance': 'airline_performance.csv',
    'monthly_trends': 'monthly_delay_trends.csv',
    'yearly_overview': 'yearly_delay_overview.csv',
    'filtered_flights': 'flight_data_optimized.csv',
}
SUMMARY_FILE = 'pipeline_summary.json'
DATA_DICTIONARY_FILE = 'DATA_DICTIONARY.md'


def format_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """Render two-decimal columns with exactly two decimals and nulls as empty cells."""
    formatted = {}
    for key, value in row.items():
        if value is None:
            formatted[key] = ''
        elif key in TWO_DECIMAL_COLUMNS:
            formatted[key] = f"{value:.2f}"
        else:
            formatted[key] = value
    return formatted


class TableWriter:
    """Incremental CSV writer for tables too large to hold in memory."""

    def __init__(self, file_path: Path, headers: List[str]):
        self.file_path = file_path
        self.headers = headers
        self.rows_written = 0
        self._file = open(file_path, 'w', newline='', encoding='utf-8')
        self._writer = csv.DictWriter(self._file, fieldnames=headers)
        self._writer.writeheader()

    def write_rows(self, rows: Iterable[Dict[str, Any]]) -> None:
        for row in rows:
            self._writer.writerow(format_row(row))
            self.rows_written += 1

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()
            logger.info(f"Saved {self.rows_written} records to {self.file_path}")


class DataSaver:
    """
    Saves the dashboard tables to CSV with drop-and-recreate semantics.
    """

    def __init__(self, output_dir: str = "data/processed"):
        """
        Initialize the data saver.

        Args:
            output_dir (str): Directory to publish output files to
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.staging_dir: Optional[Path] = None
        self._writers: List[TableWriter] = []
        logger.info(f"DataSaver initialized with output directory: {self.output_dir}")

    def begin(self) -> Path:
        """Create a fresh staging directory for this run."""
        self.staging_dir = self.output_dir / f".staging-{uuid.uuid4().hex}"
        self.staging_dir.mkdir(parents=True)
        self._writers = []
        logger.debug(f"Staging outputs in {self.staging_dir}")
        return self.staging_dir

    def _staged_path(self, file_name: str) -> Path:
        if self.staging_dir is None:
            raise RuntimeError("DataSaver.begin() must be called before writing")
        return self.staging_dir / file_name

    def open_table(self, table: str, headers: List[str]) -> TableWriter:
        """Open a streaming writer for a table inside the staging directory."""
        writer = TableWriter(self._staged_path(TABLE_FILES[table]), headers)
        self._writers.append(writer)
        return writer

    def save_table(self, table: str, headers: List[str], rows: List[Dict[str, Any]]) -> None:
        """Write a whole table in one go."""
        writer = self.open_table(table, headers)
        try:
            writer.write_rows(rows)
        finally:
            writer.close()

    def save_summary(self, summary_data: Dict[str, Any]) -> None:
        """Save the run summary as JSON."""
        file_path = self._staged_path(SUMMARY_FILE)

        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(summary_data, f, indent=2, ensure_ascii=False, default=str)

        logger.info(f"Summary staged at {file_path}")

    def publish(self) -> Dict[str, str]:
        """
        Move every staged file into the output directory, replacing the
        previous run's files.

        Returns:
            dict: Mapping of output type to published file path
        """
        for writer in self._writers:
            writer.close()

        staged_files = {path.name: path for path in self.staging_dir.iterdir()}
        published = {}

        for table, file_name in TABLE_FILES.items():
            target = self.output_dir / file_name
            if file_name in staged_files:
                os.replace(staged_files[file_name], target)
                published[table] = str(target)
            elif target.exists():
                # Optional table not produced this run: drop the stale copy
                target.unlink()
                logger.info(f"Removed stale output {target}")

        for key, file_name in (('summary', SUMMARY_FILE), ('data_dictionary', DATA_DICTIONARY_FILE)):
            if file_name in staged_files:
                target = self.output_dir / file_name
                os.replace(staged_files[file_name], target)
                published[key] = str(target)

        shutil.rmtree(self.staging_dir)
        self.staging_dir = None

        logger.info(f"Published {len(published)} files to {self.output_dir}")
        return published

    def discard(self) -> None:
        """Throw away everything staged by a failed run."""
        for writer in self._writers:
            writer.close()
        self._writers = []

        if self.staging_dir is not None and self.staging_dir.exists():
            shutil.rmtree(self.staging_dir)
            logger.warning(f"Discarded staged outputs in {self.staging_dir}")
        self.staging_dir = None

    def create_data_dictionary(self) -> None:
        """Create a data dictionary explaining all output files."""
        file_path = self._staged_path(DATA_DICTIONARY_FILE)

        content = """# Data Dictionary

This document describes the structure and content of all generated data files.
All tables cover flights from 2020 onwards, delayed by more than 10 minutes on
departure or arrival, operated by one of the 12 major carriers.

## Files Overview

### 1. airline_performance.csv
One row per airline with at least 50 qualifying flights, best performer first.

| Column | Type | Description |
|--------|------|-------------|
| airline | string | Carrier name |
| total_flights | integer | Qualifying flights |
| delayed_departures | integer | Flights that left late (departure delay > 0) |
| departure_delay_percentage | float | delayed_departures / total_flights * 100, 2 dp |
| performance_rating | string | Excellent (<=20), Good (<=30), Fair (<=40), Poor (<=50), Very Poor |

### 2. monthly_delay_trends.csv
One row per qualifying flight, labelled with its month name.

| Column | Type | Description |
|--------|------|-------------|
| flight_date | date | YYYY-MM-DD |
| year | integer | Flight year |
| month | integer | Flight month (1-12) |
| month_name | string | January ... December |
| airline | string | Carrier name |
| origin_city | string | Origin city |
| destination_airport | string | Destination airport code |
| departure_delay_minutes | number | Negative means early; empty when unknown |
| arrival_delay_minutes | number | Negative means early; empty when unknown |
| delay_due_carrier_minutes | number | Minutes attributed to the airline |
| delay_due_weather_minutes | number | Minutes attributed to weather |
| delay_due_nas_minutes | number | Minutes attributed to the National Airspace System |
| delay_due_security_minutes | number | Minutes attributed to security |
| delay_due_late_aircraft_minutes | number | Minutes attributed to a late inbound aircraft |

### 3. yearly_delay_overview.csv
One row per year, oldest first. Averages are over individual flights.

| Column | Type | Description |
|--------|------|-------------|
| year | integer | Flight year |
| yearly_avg_departure_delay | float | Mean departure delay in minutes, 2 dp |
| yearly_avg_arrival_delay | float | Mean arrival delay in minutes, 2 dp |
| total_flights | integer | Qualifying flights |
| delayed_flights | integer | Flights with departure delay > 0 |
| yearly_delay_percentage | float | delayed_flights / total_flights * 100, 2 dp |

### 4. flight_data_optimized.csv (optional)
The filtered dataset itself; same columns as monthly_delay_trends.csv without month_name.

### 5. pipeline_summary.json
Source diagnostics, filter statistics, row counts and verification checks.

## Data Quality Notes

- Percentages and averages are rounded half away from zero, never truncated
- Empty delay cells are treated as unknown and skipped in averages
- Files are regenerated in full on every run
"""

        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(content)

        logger.info(f"Data dictionary staged at {file_path}")
