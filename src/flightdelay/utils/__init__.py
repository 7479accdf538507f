# ========================
# src/flightdelay/utils/__init__.py
# ========================

"""
Utilities Package

Common utilities and helper functions for the flight delay pipeline.
"""

from .config import Config
from .performance_monitor import monitor_performance, PerformanceMonitor, SystemResourceMonitor
from .logging_setup import setup_logging
from .data_generator import DataGenerator
from .numeric import round_half_up, percentage, mean

__all__ = [
    'Config',
    'monitor_performance',
    'PerformanceMonitor',
    'SystemResourceMonitor',
    'setup_logging',
    'DataGenerator',
    'round_half_up',
    'percentage',
    'mean',
]
