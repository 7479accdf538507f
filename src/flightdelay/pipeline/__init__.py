# ========================
# src/flightdelay/pipeline/__init__.py
# ========================

"""
Flight Delay Pipeline Package

This package contains all core components of the flight delay pipeline:
- ingestion: Memory-efficient CSV reading and header checks
- parsing: Typed flight records
- filtering: The shared inclusion rule
- bucketing: Rating bands and month names
- transformation: Airline, monthly and yearly tables
- storage: Staged, all-or-nothing output publishing
- orchestrator: Pipeline coordination
"""

from .errors import PipelineError, SchemaError, MalformedRecordError, InvalidMonthError
from .schema import FlightRecord
from .ingestion import CSVReader
from .parsing import FlightRecordParser
from .filtering import FlightFilter, passes_filter, MAJOR_AIRLINES
from .transformation import (
    AirlinePerformanceAggregator,
    MonthlyTrendTransformer,
    YearlyOverviewAggregator,
)
from .storage import DataSaver, TABLE_FILES
from .orchestrator import FlightDelayPipeline

__all__ = [
    'PipelineError',
    'SchemaError',
    'MalformedRecordError',
    'InvalidMonthError',
    'FlightRecord',
    'CSVReader',
    'FlightRecordParser',
    'FlightFilter',
    'passes_filter',
    'MAJOR_AIRLINES',
    'AirlinePerformanceAggregator',
    'MonthlyTrendTransformer',
    'YearlyOverviewAggregator',
    'DataSaver',
    'TABLE_FILES',
    'FlightDelayPipeline'
]
