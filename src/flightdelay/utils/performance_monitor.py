# ========================
# src/flightdelay/utils/performance_monitor.py
# ========================

"""
Performance Monitoring Utilities

Provides performance monitoring for pipeline runs.
"""

import time
import os
import logging
from contextlib import contextmanager
from typing import Dict, Any

import psutil

logger = logging.getLogger(__name__)


class PerformanceMonitor:
    """
    Performance monitoring utility for the pipeline.
    Tracks memory usage, processing time, and throughput.
    """

    def __init__(self, name: str = "Pipeline", log_interval: int = 100):
        """
        Initialize performance monitor.

        Args:
            name (str): Name for this monitoring session
            log_interval (int): Log progress every this many chunks
        """
        self.name = name
        self.log_interval = log_interval
        self.start_time = None
        self.end_time = None
        self.peak_memory_mb = 0.0
        self.records_processed = 0
        self.chunks_processed = 0
        self.summary: Dict[str, Any] = {}
        self._process = psutil.Process(os.getpid())

        logger.debug(f"PerformanceMonitor initialized: {name}")

    def start_monitoring(self) -> None:
        """Start performance monitoring."""
        self.start_time = time.time()
        self.peak_memory_mb = self._get_memory_usage_mb()

        logger.info(f"{self.name} - Performance monitoring started")
        logger.info(f"Initial memory usage: {self.peak_memory_mb:.2f} MB")

    def update_progress(self, records_in_chunk: int) -> None:
        """
        Update progress tracking.

        Args:
            records_in_chunk (int): Number of records processed in this chunk
        """
        self.records_processed += records_in_chunk
        self.chunks_processed += 1
        current_memory = self._get_memory_usage_mb()
        self.peak_memory_mb = max(self.peak_memory_mb, current_memory)

        if self.chunks_processed % self.log_interval == 0:
            self._log_progress(current_memory)

    def _log_progress(self, current_memory: float) -> None:
        """Log current progress."""
        if self.start_time:
            elapsed = time.time() - self.start_time
            throughput = self.records_processed / elapsed if elapsed > 0 else 0

            logger.info(
                f"{self.name} - Progress: {self.chunks_processed} chunks, "
                f"{self.records_processed:,} records, "
                f"{throughput:.0f} records/sec, "
                f"Memory: {current_memory:.2f} MB"
            )

    def stop_monitoring(self) -> Dict[str, Any]:
        """
        Stop monitoring and return performance summary.

        Returns:
            dict: Performance statistics
        """
        self.end_time = time.time()
        total_time = self.end_time - self.start_time if self.start_time else 0
        throughput = self.records_processed / total_time if total_time > 0 else 0

        self.summary = {
            'name': self.name,
            'total_processing_time_seconds': total_time,
            'records_processed': self.records_processed,
            'chunks_processed': self.chunks_processed,
            'average_throughput_records_per_second': throughput,
            'peak_memory_usage_mb': self.peak_memory_mb,
        }

        self._log_summary(self.summary)
        return self.summary

    def _log_summary(self, summary: Dict[str, Any]) -> None:
        """Log formatted performance summary."""
        logger.info(f"PERFORMANCE SUMMARY - {summary['name']}")
        logger.info(f"Total processing time: {summary['total_processing_time_seconds']:.2f} seconds")
        logger.info(f"Records processed: {summary['records_processed']:,}")
        logger.info(f"Chunks processed: {summary['chunks_processed']:,}")
        logger.info(f"Average throughput: {summary['average_throughput_records_per_second']:.0f} records/second")
        logger.info(f"Peak memory usage: {summary['peak_memory_usage_mb']:.2f} MB")

    def _get_memory_usage_mb(self) -> float:
        """Get current resident memory in MB."""
        try:
            return self._process.memory_info().rss / (1024 * 1024)
        except psutil.Error as e:
            logger.debug(f"Could not get memory usage: {e}")
            return self.peak_memory_mb


@contextmanager
def monitor_performance(name: str = "Pipeline", log_interval: int = 100):
    """
    Context manager for easy performance monitoring.

    Args:
        name (str): Name for this monitoring session
        log_interval (int): Log progress every this many chunks

    Yields:
        PerformanceMonitor: Monitor instance
    """
    monitor = PerformanceMonitor(name, log_interval)
    monitor.start_monitoring()
    try:
        yield monitor
    finally:
        monitor.stop_monitoring()


class SystemResourceMonitor:
    """Monitor system-wide resource usage."""

    @staticmethod
    def get_system_stats(disk_path: str = '/') -> Dict[str, Any]:
        """Get current system resource statistics."""
        stats: Dict[str, Any] = {}

        try:
            stats['cpu_percent'] = psutil.cpu_percent(interval=None)
            stats['cpu_count'] = psutil.cpu_count()

            memory = psutil.virtual_memory()
            stats['memory_total_gb'] = memory.total / (1024**3)
            stats['memory_available_gb'] = memory.available / (1024**3)
            stats['memory_used_percent'] = memory.percent

            disk = psutil.disk_usage(disk_path)
            stats['disk_total_gb'] = disk.total / (1024**3)
            stats['disk_free_gb'] = disk.free / (1024**3)
            stats['disk_used_percent'] = disk.percent
        except (psutil.Error, OSError) as e:
            logger.warning(f"Could not get system stats: {e}")

        return stats

    @staticmethod
    def check_resource_availability(min_memory_gb: float = 1.0,
                                    min_disk_gb: float = 1.0,
                                    disk_path: str = '/') -> Dict[str, bool]:
        """
        Check if system has sufficient resources.

        Args:
            min_memory_gb (float): Minimum required memory in GB
            min_disk_gb (float): Minimum required disk space in GB
            disk_path (str): Filesystem to check for free space

        Returns:
            dict: Resource availability status
        """
        system_stats = SystemResourceMonitor.get_system_stats(disk_path)

        checks = {
            'sufficient_memory': True,
            'sufficient_disk': True,
        }

        if 'memory_available_gb' in system_stats:
            checks['sufficient_memory'] = system_stats['memory_available_gb'] >= min_memory_gb

        if 'disk_free_gb' in system_stats:
            checks['sufficient_disk'] = system_stats['disk_free_gb'] >= min_disk_gb

        return checks
