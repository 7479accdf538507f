# ========================
# src/flightdelay/pipeline/ingestion.py
# ========================

"""
Data Ingestion Module

Handles memory-efficient reading of large flight CSV files using chunked
processing, and checks the header against the required source columns
before any row is handed downstream.
"""

import csv
import logging
from typing import Dict, Optional, Sequence

from .errors import SchemaError

logger = logging.getLogger(__name__)

LINE_NUMBER_KEY = '_line_number'


def resolve_columns(header: Sequence[str],
                    aliases: Dict[str, Sequence[str]]) -> Dict[str, str]:
    """
    Map each canonical column to the first matching source header.

    Args:
        header (list[str]): Source header row
        aliases (dict): Canonical name -> accepted source names

    Returns:
        dict: Canonical name -> source header

    Raises:
        SchemaError: If any canonical column has no match in the header
    """
    present = {name.strip(): name for name in header if name is not None}
    resolved = {}
    missing = []

    for canonical, candidates in aliases.items():
        for candidate in candidates:
            if candidate in present:
                resolved[canonical] = present[candidate]
                break
        else:
            missing.append(canonical)

    if missing:
        raise SchemaError(missing)

    return resolved


class CSVReader:
    """
    A memory-efficient CSV reader that reads a file in chunks.
    This keeps memory flat for sources with millions of flights.
    """

    def __init__(self, file_path, required_columns: Optional[Dict[str, Sequence[str]]] = None):
        """
        Initialize the CSV reader.

        Args:
            file_path (str): Path to the CSV file to read
            required_columns (dict): Optional canonical name -> accepted headers.
                When given, rows are yielded keyed by canonical name.
        """
        self.file_path = file_path
        self.required_columns = required_columns
        self.header = []
        self.column_map = {}
        self.rows_read = 0
        logger.info(f"Initialized CSVReader for file: {file_path}")

    def read_in_chunks(self, chunk_size):
        """
        A generator that yields a list of dictionaries for each chunk of data.

        Each row carries its physical line number under ``_line_number`` so
        parse errors can point at the offending line.

        Args:
            chunk_size (int): The number of rows to yield per chunk.

        Yields:
            list[dict]: A list of dictionaries representing a chunk of rows.

        Raises:
            SchemaError: If required columns are missing from the header.
        """
        try:
            with open(self.file_path, 'r', newline='', encoding='utf-8-sig') as f:
                reader = csv.DictReader(f)
                self.header = reader.fieldnames

                if self.header is None:
                    logger.warning(f"'{self.file_path}' is empty; no rows to read")
                    return

                logger.info(f"CSV header: {self.header}")

                if self.required_columns is not None:
                    try:
                        self.column_map = resolve_columns(self.header, self.required_columns)
                    except SchemaError as e:
                        logger.error(f"Schema check failed for '{self.file_path}': {e}")
                        raise SchemaError(e.missing_columns, str(self.file_path)) from e

                chunk = []
                self.rows_read = 0

                for row in reader:
                    chunk.append(self._project(row, reader.line_num))
                    self.rows_read += 1

                    if len(chunk) == chunk_size:
                        logger.debug(f"Yielding chunk with {len(chunk)} rows")
                        yield chunk
                        chunk = []

                # Yield any remaining rows in the last chunk
                if chunk:
                    logger.debug(f"Yielding final chunk with {len(chunk)} rows")
                    yield chunk

                logger.info(f"Total rows read: {self.rows_read}")

        except FileNotFoundError:
            logger.error(f"File '{self.file_path}' was not found")
            raise

    def _project(self, row: Dict[str, str], line_number: int) -> Dict[str, str]:
        """Rename source headers to canonical names and drop unused columns."""
        if self.column_map:
            projected = {canonical: row.get(source) for canonical, source in self.column_map.items()}
        else:
            projected = dict(row)
        projected[LINE_NUMBER_KEY] = line_number
        return projected
