# ========================
# src/flightdelay/pipeline/errors.py
# ========================

"""
Pipeline Exceptions

Every error raised here aborts the whole run before any table is published.
"""

from typing import Iterable, Optional


class PipelineError(Exception):
    """Base class for fatal pipeline failures."""


class SchemaError(PipelineError):
    """Raised when the source is missing one or more required columns."""

    def __init__(self, missing_columns: Iterable[str], file_path: Optional[str] = None):
        self.missing_columns = sorted(missing_columns)
        self.file_path = file_path
        location = f" in '{file_path}'" if file_path else ""
        super().__init__(
            f"Missing required column(s){location}: {', '.join(self.missing_columns)}"
        )


class MalformedRecordError(PipelineError):
    """Raised when a source value cannot be parsed into its field type."""

    def __init__(self, field: str, value, line_number: Optional[int] = None):
        self.field = field
        self.value = value
        self.line_number = line_number
        location = f" on line {line_number}" if line_number is not None else ""
        super().__init__(f"Malformed value for '{field}'{location}: {value!r}")


class InvalidMonthError(PipelineError, ValueError):
    """Raised when a month number falls outside 1-12."""

    def __init__(self, month):
        self.month = month
        super().__init__(f"Month must be between 1 and 12, got {month!r}")
