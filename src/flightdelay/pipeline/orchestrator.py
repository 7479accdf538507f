# ========================
# src/flightdelay/pipeline/orchestrator.py
# ========================

"""
Pipeline Orchestrator Module

Main orchestrator class that coordinates the flight delay pipeline:
read, parse, filter, aggregate, publish.
"""

import logging
from typing import Optional
from pathlib import Path

from .ingestion import CSVReader
from .parsing import FlightRecordParser
from .filtering import FlightFilter
from .transformation import (
    AirlinePerformanceAggregator,
    MonthlyTrendTransformer,
    YearlyOverviewAggregator,
)
from .profiling import SourceProfiler, build_verification_report
from .schema import (
    SOURCE_COLUMN_ALIASES,
    AIRLINE_PERFORMANCE_COLUMNS,
    FILTERED_FLIGHT_COLUMNS,
    MONTHLY_TREND_COLUMNS,
    YEARLY_OVERVIEW_COLUMNS,
)
from .storage import DataSaver
from ..utils.performance_monitor import monitor_performance
from ..utils.config import Config

logger = logging.getLogger(__name__)


class FlightDelayPipeline:
    """
    Orchestrates the flight delay pipeline.
    Coordinates reading, parsing, filtering, aggregating and storing data.
    """

    def __init__(self,
                 input_file: str,
                 output_dir: str,
                 chunk_size: int = 1000,
                 config: Optional[Config] = None):
        """
        Initialize the pipeline.

        Args:
            input_file (str): Path to the raw flight CSV
            output_dir (str): Directory for the published tables
            chunk_size (int): Number of rows to process per chunk
            config (Config): Configuration object
        """
        self.input_file = input_file
        self.output_dir = output_dir
        self.chunk_size = chunk_size
        self.config = config or Config()

        self.strict_months = self.config.STRICT_MONTH_VALIDATION
        self.export_filtered = self.config.EXPORT_FILTERED_DATASET

        self.saver = DataSaver(self.output_dir)
        self._reset_components()

        logger.info("FlightDelayPipeline initialized:")
        logger.info(f"  Input: {self.input_file}")
        logger.info(f"  Output: {self.output_dir}")
        logger.info(f"  Chunk size: {self.chunk_size}")

    def _reset_components(self) -> None:
        """Fresh components for every run so reruns never share state."""
        self.reader = CSVReader(self.input_file, required_columns=SOURCE_COLUMN_ALIASES)
        self.parser = FlightRecordParser()
        self.flight_filter = FlightFilter()
        self.profiler = SourceProfiler()
        self.airline_aggregator = AirlinePerformanceAggregator()
        self.monthly_transformer = MonthlyTrendTransformer(strict_months=self.strict_months)
        self.yearly_aggregator = YearlyOverviewAggregator()

    def run(self) -> dict:
        """
        Execute the complete pipeline from start to finish.

        Either all tables are published or, on any error, none are and the
        exception propagates.

        Returns:
            dict: Summary of processing results and published files
        """
        logger.info(f"Starting flight delay pipeline for '{self.input_file}'...")
        self._reset_components()
        self.saver.begin()

        try:
            with monitor_performance("FlightDelayPipeline", self.config.LOG_CHUNK_INTERVAL) as monitor:
                monthly_writer = self.saver.open_table('monthly_trends', MONTHLY_TREND_COLUMNS)
                filtered_writer = None
                if self.export_filtered:
                    filtered_writer = self.saver.open_table('filtered_flights', FILTERED_FLIGHT_COLUMNS)

                self._process_chunks(monitor, monthly_writer, filtered_writer)

                logger.info("All chunks processed. Finalizing aggregations...")
                airline_rows = self.airline_aggregator.finalize()
                yearly_rows = self.yearly_aggregator.finalize()

                logger.info("Saving dashboard tables...")
                self.saver.save_table('airline_performance', AIRLINE_PERFORMANCE_COLUMNS, airline_rows)
                self.saver.save_table('yearly_overview', YEARLY_OVERVIEW_COLUMNS, yearly_rows)

                summary = self._build_summary(airline_rows, monthly_writer.rows_written, yearly_rows)
                self.saver.save_summary(summary)
                self.saver.create_data_dictionary()

            saved_files = self.saver.publish()

        except Exception:
            logger.error("Pipeline failed; no tables were published")
            self.saver.discard()
            raise

        results = {
            'pipeline_status': 'completed',
            'input_file': self.input_file,
            'output_directory': self.output_dir,
            'saved_files': saved_files,
            'processing_stats': self._get_processing_stats(),
            'filter_stats': self.flight_filter.get_statistics(),
            'source_profile': summary['source_profile'],
            'verification': summary['verification'],
            'performance': monitor.summary,
        }

        logger.info("Pipeline finished successfully.")
        self._log_final_summary(results)

        return results

    def _process_chunks(self, monitor, monthly_writer, filtered_writer) -> None:
        """Process input data in chunks."""
        chunk_num = 0

        for raw_chunk in self.reader.read_in_chunks(self.chunk_size):
            chunk_num += 1
            logger.info(f"Processing chunk {chunk_num} with {len(raw_chunk)} rows...")

            records = [self.parser.parse_record(row) for row in raw_chunk]
            self.profiler.process_chunk(records)

            kept = self.flight_filter.filter_chunk(records)
            logger.info(f"Chunk {chunk_num}: {len(kept)}/{len(raw_chunk)} records passed the filter")

            if kept:
                self.airline_aggregator.process_chunk(kept)
                self.yearly_aggregator.process_chunk(kept)
                monthly_writer.write_rows(self.monthly_transformer.transform_chunk(kept))
                if filtered_writer is not None:
                    filtered_writer.write_rows(record.to_row() for record in kept)

            monitor.update_progress(len(raw_chunk))

    def _build_summary(self, airline_rows, monthly_row_count, yearly_rows) -> dict:
        """Deterministic run summary; identical input gives an identical file."""
        return {
            'input_file': str(self.input_file),
            'source_profile': self.profiler.get_profile(),
            'parse_stats': self.parser.get_statistics(),
            'filter_stats': self.flight_filter.get_statistics(),
            'airlines_below_threshold': sorted(self.airline_aggregator.airlines_below_threshold),
            'verification': build_verification_report(
                airline_rows,
                monthly_row_count,
                yearly_rows,
                self.flight_filter.records_kept,
            ),
        }

    def _get_processing_stats(self) -> dict:
        """Get processing statistics."""
        return {
            'records_processed': self.parser.records_parsed,
            'records_filtered': self.flight_filter.records_kept,
            'airlines_rated': len(self.airline_aggregator.rows),
            'years_covered': len(self.yearly_aggregator.rows),
            'monthly_rows': self.monthly_transformer.records_transformed,
            'chunk_size': self.chunk_size,
            'input_file_size': Path(self.input_file).stat().st_size if Path(self.input_file).exists() else 0
        }

    def _log_final_summary(self, results: dict) -> None:
        """Log final pipeline summary."""
        logger.info("="*60)
        logger.info("PIPELINE EXECUTION SUMMARY")
        logger.info("="*60)

        processing_stats = results['processing_stats']
        filter_stats = results['filter_stats']

        logger.info(f"Input file: {results['input_file']}")
        logger.info(f"Records processed: {processing_stats['records_processed']:,}")
        logger.info(f"Records kept by filter: {filter_stats['records_kept']:,} ({filter_stats['keep_rate']:.1f}%)")
        logger.info(f"Output files generated: {len(results['saved_files'])}")
        logger.info(f"Output directory: {results['output_directory']}")

        logger.info("Generated datasets:")
        for dataset_type, file_path in results['saved_files'].items():
            logger.info(f"  - {dataset_type}: {file_path}")

        logger.info("="*60)

    def validate_input(self) -> bool:
        """
        Validate input file exists and is readable.

        Returns:
            bool: True if input is valid
        """
        input_path = Path(self.input_file)
        if not input_path.exists():
            logger.error(f"Input file does not exist: {self.input_file}")
            return False

        if not input_path.is_file():
            logger.error(f"Input path is not a file: {self.input_file}")
            return False

        try:
            with open(self.input_file, 'r', encoding='utf-8') as f:
                f.readline()
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Cannot read input file: {e}")
            return False

        logger.info(f"Input validation passed: {self.input_file}")
        return True

    def estimate_processing_time(self) -> dict:
        """
        Estimate processing time based on file size and configuration.

        Returns:
            dict: Processing time estimates
        """
        try:
            file_size = Path(self.input_file).stat().st_size
        except OSError as e:
            logger.warning(f"Could not estimate processing time: {e}")
            return {}

        estimated_rows = file_size // 150  # Rough estimate: 150 bytes per flight row

        # Conservative rows per second for parse + filter + aggregate
        base_rate = 40000
        estimated_seconds = estimated_rows / base_rate

        return {
            'file_size_mb': file_size / (1024 * 1024),
            'estimated_rows': estimated_rows,
            'estimated_processing_time_seconds': estimated_seconds,
            'estimated_processing_time_minutes': estimated_seconds / 60,
            'chunk_count_estimate': estimated_rows // self.chunk_size
        }
