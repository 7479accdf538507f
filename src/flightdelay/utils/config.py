# ========================
# src/flightdelay/utils/config.py
# ========================

"""
Configuration Management

Centralized configuration for the flight delay pipeline with environment support.
"""

import json
import os
from pathlib import Path
from typing import Dict, Any, Optional


def _parse_flag(value: str) -> bool:
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def _env_flag(name: str, default: str) -> bool:
    return _parse_flag(os.getenv(name, default))


def _coerce(current: Any, value: Any) -> Any:
    """Convert an override to the type of the setting it replaces."""
    if isinstance(current, bool):
        return _parse_flag(value) if isinstance(value, str) else bool(value)
    if isinstance(current, int):
        return int(value)
    if isinstance(current, str):
        return str(value)
    return value


class Config:
    """
    Configuration class for the flight delay pipeline.
    Supports environment variables and default values.

    Filtering and rating rules are fixed in the pipeline modules; only
    operational settings live here.
    """

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration.

        Args:
            config_dict (dict): Optional configuration overrides
        """
        # Data Processing Configuration
        self.DEFAULT_CHUNK_SIZE = int(os.getenv('PIPELINE_CHUNK_SIZE', '1000'))

        # File Paths
        self.DEFAULT_INPUT_FILE = os.getenv('PIPELINE_INPUT_FILE', 'data/raw/flights_delay.csv')
        self.DEFAULT_OUTPUT_DIR = os.getenv('PIPELINE_OUTPUT_DIR', 'data/processed')
        self.DASHBOARD_DATA_DIR = os.getenv('DASHBOARD_DATA_DIR', 'dashboard_data')
        self.UPLOAD_DIR = os.getenv('PIPELINE_UPLOAD_DIR', 'data/uploaded')
        self.JOB_METADATA_FILE = os.getenv('JOB_METADATA_FILE', 'data/job_metadata.json')

        # Data Generation Settings
        self.DEFAULT_SAMPLE_ROWS = int(os.getenv('SAMPLE_ROWS', '10000'))
        self.LARGE_DATASET_ROWS = int(os.getenv('LARGE_DATASET_ROWS', '1000000'))

        # Output Behaviour
        self.STRICT_MONTH_VALIDATION = _env_flag('STRICT_MONTH_VALIDATION', 'true')
        self.EXPORT_FILTERED_DATASET = _env_flag('EXPORT_FILTERED_DATASET', 'false')

        # API Settings
        self.API_PORT = int(os.getenv('API_PORT', '8000'))
        self.MAX_CONCURRENT_JOBS = int(os.getenv('MAX_CONCURRENT_JOBS', '3'))

        # Logging Configuration
        self.LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
        self.LOG_CHUNK_INTERVAL = int(os.getenv('LOG_CHUNK_INTERVAL', '100'))

        # Override with provided config
        if config_dict:
            self._update_from_dict(config_dict)

    def _update_from_dict(self, config_dict: Dict[str, Any]) -> None:
        """
        Update configuration from dictionary.

        Values are converted to the type of the setting they override, so
        JSON strings like "false" or "500" behave like their environment
        variable counterparts.

        Raises:
            ValueError: If a value cannot be converted
        """
        for key, value in config_dict.items():
            attr = key.upper()
            if not hasattr(self, attr):
                continue
            try:
                setattr(self, attr, _coerce(getattr(self, attr), value))
            except (TypeError, ValueError) as e:
                raise ValueError(f"Invalid value for {attr}: {value!r}") from e

    def get_data_paths(self) -> Dict[str, Path]:
        """Get all configured data paths as Path objects."""
        return {
            'input_file': Path(self.DEFAULT_INPUT_FILE),
            'output_dir': Path(self.DEFAULT_OUTPUT_DIR),
            'dashboard_data_dir': Path(self.DASHBOARD_DATA_DIR),
            'upload_dir': Path(self.UPLOAD_DIR),
            'raw_data_dir': Path(self.DEFAULT_INPUT_FILE).parent,
            'logs_dir': Path('logs')
        }

    def ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        paths = self.get_data_paths()
        for path_name, path in paths.items():
            if path_name.endswith('_dir'):
                path.mkdir(parents=True, exist_ok=True)

    def validate_config(self) -> Dict[str, bool]:
        """
        Validate configuration values.

        Returns:
            dict: Validation results for each setting
        """
        validations = {}

        validations['chunk_size'] = self.DEFAULT_CHUNK_SIZE > 0
        validations['sample_rows'] = self.DEFAULT_SAMPLE_ROWS > 0
        validations['large_dataset_rows'] = self.LARGE_DATASET_ROWS > 0
        validations['api_port'] = 1000 <= self.API_PORT <= 65535
        validations['max_concurrent_jobs'] = self.MAX_CONCURRENT_JOBS > 0
        validations['log_chunk_interval'] = self.LOG_CHUNK_INTERVAL > 0

        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        validations['log_level'] = str(self.LOG_LEVEL).upper() in valid_log_levels

        return validations

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            attr: getattr(self, attr)
            for attr in dir(self)
            if not attr.startswith('_') and not callable(getattr(self, attr))
        }

    @classmethod
    def load_from_file(cls, file_path: str) -> 'Config':
        """Load configuration from JSON file."""
        with open(file_path, 'r') as f:
            config_dict = json.load(f)
        return cls(config_dict)

    def __str__(self) -> str:
        """String representation of configuration."""
        lines = ["Configuration Settings:"]
        config_dict = self.to_dict()
        for key, value in sorted(config_dict.items()):
            lines.append(f"  {key}: {value}")
        return "\n".join(lines)
