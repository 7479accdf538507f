# ========================
# src/flightdelay/utils/job_metadata.py
# ========================

"""
Job Metadata Management

Handles persistent storage and discovery of pipeline job metadata.
"""

import json
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Dict, Any

from ..pipeline.storage import TABLE_FILES, SUMMARY_FILE, DATA_DICTIONARY_FILE

logger = logging.getLogger(__name__)

INTERRUPTED_JOB_ERROR = "Interrupted by server restart"


class JobMetadataManager:
    """Manages persistent job metadata storage."""

    def __init__(self,
                 metadata_file: str = "data/job_metadata.json",
                 processed_dir: str = "data/processed",
                 upload_dir: str = "data/uploaded"):
        self.metadata_file = Path(metadata_file)
        self.metadata_file.parent.mkdir(parents=True, exist_ok=True)
        self.processed_dir = Path(processed_dir)
        self.upload_dir = Path(upload_dir)

    def save_job_metadata(self, job_status_dict: Dict[str, Dict[str, Any]]) -> None:
        """Save all job metadata to persistent storage."""
        try:
            with open(self.metadata_file, 'w') as f:
                json.dump(job_status_dict, f, indent=2, default=str)
            logger.debug(f"Saved job metadata for {len(job_status_dict)} jobs")
        except OSError as e:
            logger.error(f"Failed to save job metadata: {e}")

    def load_job_metadata(self) -> Dict[str, Dict[str, Any]]:
        """Load job metadata from persistent storage."""
        if not self.metadata_file.exists():
            return {}

        try:
            with open(self.metadata_file, 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load job metadata: {e}")
            return {}

        logger.info(f"Loaded metadata for {len(data)} persisted jobs")
        return data

    def recover_interrupted_jobs(self, job_status_dict: Dict[str, Dict[str, Any]]) -> int:
        """
        Mark jobs left queued or processing by a previous server process as failed.

        Jobs do not survive a restart of the server process.

        Returns:
            int: Number of jobs marked failed
        """
        interrupted = 0
        for job_id, job in job_status_dict.items():
            if job.get('status') in ('queued', 'processing'):
                job['status'] = 'failed'
                job['error'] = INTERRUPTED_JOB_ERROR
                job['failed_at'] = datetime.now().isoformat()
                interrupted += 1
                logger.warning(f"Job {job_id} was interrupted by a server restart; marked failed")
        return interrupted

    def discover_existing_jobs(self) -> Dict[str, Dict[str, Any]]:
        """Discover jobs from per-job output directories left on disk."""
        discovered_jobs = {}

        if not self.processed_dir.exists():
            return discovered_jobs

        for job_dir in self.processed_dir.iterdir():
            if not (job_dir.is_dir() and self._is_valid_uuid(job_dir.name)):
                continue

            job_id = job_dir.name
            input_file, filename = self._find_upload(job_id)

            # A published summary means the run completed
            summary_file = job_dir / SUMMARY_FILE
            status = "completed" if summary_file.exists() else "unknown"
            marker = summary_file if summary_file.exists() else job_dir
            completed_at = datetime.fromtimestamp(marker.stat().st_mtime).isoformat()

            discovered_jobs[job_id] = {
                'job_id': job_id,
                'filename': filename,
                'status': status,
                'created_at': completed_at,  # Use completion time as best guess
                'completed_at': completed_at,
                'input_file': input_file or str(self.upload_dir / f"{job_id}_{filename}"),
                'output_dir': str(job_dir),
                'type': 'discovered',
                'discovered_on_startup': True
            }

            if summary_file.exists():
                try:
                    with open(summary_file, 'r') as f:
                        summary_data = json.load(f)
                except (OSError, json.JSONDecodeError) as e:
                    logger.warning(f"Could not read summary for job {job_id}: {e}")
                    continue

                discovered_jobs[job_id]['results'] = {
                    'source_profile': summary_data.get('source_profile', {}),
                    'filter_stats': summary_data.get('filter_stats', {}),
                    'verification': summary_data.get('verification', {}),
                    'saved_files': self._get_saved_files(job_dir),
                }

        if discovered_jobs:
            logger.info(f"Discovered {len(discovered_jobs)} existing jobs from data directories")

        return discovered_jobs

    def _find_upload(self, job_id: str):
        """Return (path, original filename) of a job's uploaded source, if any."""
        if self.upload_dir.exists():
            for uploaded_file in self.upload_dir.iterdir():
                if uploaded_file.name.startswith(job_id):
                    return str(uploaded_file), uploaded_file.name.replace(f"{job_id}_", "")
        return None, "unknown_file.csv"

    def _is_valid_uuid(self, uuid_string: str) -> bool:
        """Check if string is a valid UUID."""
        try:
            uuid.UUID(uuid_string)
            return True
        except ValueError:
            return False

    def _get_saved_files(self, job_dir: Path) -> Dict[str, str]:
        """Get dictionary of published files for a job."""
        file_mappings = {
            **{file_name: table for table, file_name in TABLE_FILES.items()},
            SUMMARY_FILE: 'summary',
            DATA_DICTIONARY_FILE: 'data_dictionary',
        }

        saved_files = {}
        for filename, file_type in file_mappings.items():
            file_path = job_dir / filename
            if file_path.exists():
                saved_files[file_type] = str(file_path)

        return saved_files
