# ========================
# api_server.py
# ========================

"""
FastAPI Server for the Flight Delay Pipeline

Provides REST API endpoints for uploading flight CSVs, running the pipeline
in the background and downloading the published dashboard tables.
"""

import copy
import sys
import logging
import shutil
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional

from fastapi import FastAPI, File, UploadFile, HTTPException, BackgroundTasks, Query
from fastapi.responses import FileResponse
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

sys.path.insert(0, str(Path(__file__).parent / 'src'))

from flightdelay import __version__
from flightdelay.pipeline import FlightDelayPipeline, TABLE_FILES
from flightdelay.utils import Config, DataGenerator, SystemResourceMonitor, setup_logging
from flightdelay.utils.job_metadata import JobMetadataManager

# Configuration
config = Config()

# Setup logging
setup_logging(log_level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

PROCESSED_DIR = Path(config.DEFAULT_OUTPUT_DIR)
UPLOAD_DIR = Path(config.UPLOAD_DIR)
config.ensure_directories()

# Constants
JOB_NOT_FOUND_MSG = "Job not found"
JOB_NOT_COMPLETED_MSG = "Job not completed yet"

job_metadata_manager = JobMetadataManager(
    metadata_file=config.JOB_METADATA_FILE,
    processed_dir=str(PROCESSED_DIR),
    upload_dir=str(UPLOAD_DIR),
)

# Initialize FastAPI app
app = FastAPI(
    title="Flight Delay Pipeline API",
    description="Upload flight-delay data and build the dashboard tables",
    version=__version__
)

# Add CORS middleware so the dashboard can fetch tables directly
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def initialize_job_status() -> Dict[str, Dict[str, Any]]:
    """Initialize job status by loading from metadata and discovering existing jobs."""
    job_status = job_metadata_manager.load_job_metadata()
    job_metadata_manager.recover_interrupted_jobs(job_status)

    # Discover jobs from data directories that might not be in metadata
    for job_id, job_data in job_metadata_manager.discover_existing_jobs().items():
        if job_id not in job_status:
            job_status[job_id] = job_data
            logger.info(f"Added discovered job {job_id}: {job_data['filename']}")

    if job_status:
        job_metadata_manager.save_job_metadata(job_status)

    return job_status


# Global state for tracking jobs. Background jobs run in worker threads, so
# every read or write of job_status (and of the dicts inside it) holds the lock.
job_status: Dict[str, Dict[str, Any]] = initialize_job_status()
job_status_lock = threading.RLock()


def persist_job_status():
    """Save current job status to persistent storage."""
    with job_status_lock:
        job_metadata_manager.save_job_metadata(job_status)


def _get_job(job_id: str) -> Dict[str, Any]:
    """Snapshot of a job, or 404."""
    with job_status_lock:
        if job_id not in job_status:
            raise HTTPException(status_code=404, detail=JOB_NOT_FOUND_MSG)
        return copy.deepcopy(job_status[job_id])


def _update_job(job_id: str, **fields: Any) -> None:
    with job_status_lock:
        job_status[job_id].update(fields)
        persist_job_status()


def _count_jobs(*statuses: str) -> int:
    with job_status_lock:
        return sum(1 for j in job_status.values() if j['status'] in statuses)


def _check_capacity() -> None:
    active = _count_jobs('queued', 'processing')
    if active >= config.MAX_CONCURRENT_JOBS:
        raise HTTPException(
            status_code=429,
            detail=f"{active} jobs already queued or running (limit {config.MAX_CONCURRENT_JOBS})"
        )


def _new_job(job_id: str, job_type: str, filename: str, input_file: Path, chunk_size: int,
             **extra: Any) -> Dict[str, Any]:
    """Register a queued job; raises 429 when the active-job limit is reached."""
    output_dir = PROCESSED_DIR / job_id

    with job_status_lock:
        _check_capacity()
        job_status[job_id] = {
            'job_id': job_id,
            'type': job_type,
            'filename': filename,
            'status': 'queued',
            'created_at': datetime.now().isoformat(),
            'input_file': str(input_file),
            'output_dir': str(output_dir),
            'chunk_size': chunk_size,
            **extra,
        }
        persist_job_status()
        job = copy.deepcopy(job_status[job_id])

    output_dir.mkdir(parents=True, exist_ok=True)
    return job


class PipelineJobManager:
    """Manages background pipeline jobs."""

    @staticmethod
    def run_pipeline(job_id: str, num_rows: Optional[int] = None) -> None:
        """Run the pipeline for a job, generating its input first when num_rows is set."""
        job = _get_job(job_id)
        try:
            logger.info(f"Starting pipeline job {job_id}")
            _update_job(job_id, status='processing', started_at=datetime.now().isoformat())

            if num_rows:
                generation_stats = DataGenerator(seed=42).generate_dataset(
                    file_path=job['input_file'],
                    num_rows=num_rows,
                )
                _update_job(job_id, generation_stats=generation_stats)

            pipeline = FlightDelayPipeline(
                input_file=job['input_file'],
                output_dir=job['output_dir'],
                chunk_size=job['chunk_size'],
                config=config
            )

            if not pipeline.validate_input():
                raise ValueError("Input file validation failed")

            results = pipeline.run()
            _update_job(job_id, results=results, status='completed',
                        completed_at=datetime.now().isoformat())
            logger.info(f"Pipeline job {job_id} completed successfully")

        except Exception as e:
            logger.error(f"Pipeline job {job_id} failed: {e}", exc_info=True)
            _update_job(job_id, status='failed', error=str(e), failed_at=datetime.now().isoformat())


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Flight Delay Pipeline API",
        "version": __version__,
        "endpoints": {
            "upload": "/upload - Upload a flight CSV and build its tables",
            "run_pipeline": "/run-pipeline - Run the pipeline on a synthetic sample",
            "status": "/status/{job_id} - Check job status",
            "jobs": "/jobs - List all jobs",
            "download": "/download/{job_id}?table=... - Download a published table",
            "health": "/health - Health check",
            "api_docs": "/docs - API documentation"
        },
        "tables": sorted(TABLE_FILES),
        "api_docs_url": "/docs"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "active_jobs": _count_jobs("processing"),
        "resources": SystemResourceMonitor.check_resource_availability(disk_path=str(PROCESSED_DIR)),
    }


@app.post("/upload")
async def upload_file(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    chunk_size: int = Query(1000, description="Number of rows to process per chunk", ge=100, le=100000)
):
    """
    Upload a flight CSV and process it in the background.

    Returns:
        dict: Job ID and status information
    """
    if not file.filename or not file.filename.lower().endswith('.csv'):
        raise HTTPException(status_code=400, detail="Only CSV files are supported")
    _check_capacity()

    job_id = str(uuid.uuid4())
    input_file = UPLOAD_DIR / f"{job_id}_{Path(file.filename).name}"
    with open(input_file, "wb") as buffer:
        shutil.copyfileobj(file.file, buffer)

    try:
        job = _new_job(job_id, 'upload', file.filename, input_file, chunk_size,
                       file_size=input_file.stat().st_size)
    except HTTPException:
        input_file.unlink()
        raise

    background_tasks.add_task(PipelineJobManager.run_pipeline, job['job_id'])
    logger.info(f"Started pipeline job {job['job_id']} for file {file.filename}")

    return {
        "job_id": job['job_id'],
        "filename": file.filename,
        "status": "queued",
        "message": "File uploaded successfully. Pipeline processing started.",
        "estimated_processing_info": "Use /status/{job_id} to check progress"
    }


@app.post("/run-pipeline")
async def run_sample_pipeline(
    background_tasks: BackgroundTasks,
    num_rows: int = Query(config.DEFAULT_SAMPLE_ROWS, description="Synthetic flights to generate", ge=1, le=10_000_000),
    chunk_size: int = Query(config.DEFAULT_CHUNK_SIZE, description="Rows per chunk", ge=100, le=100000)
):
    """Generate a synthetic flight dataset and run the pipeline on it."""
    _check_capacity()
    job_id = str(uuid.uuid4())
    input_file = UPLOAD_DIR / f"{job_id}_sample_flights.csv"
    job = _new_job(job_id, 'sample', input_file.name, input_file, chunk_size)

    background_tasks.add_task(PipelineJobManager.run_pipeline, job['job_id'], num_rows)
    logger.info(f"Started sample pipeline job {job['job_id']} with {num_rows} rows")

    return {
        "job_id": job['job_id'],
        "type": "sample",
        "status": "queued",
        "parameters": {"num_rows": num_rows, "chunk_size": chunk_size},
        "estimated_processing_info": "Use /status/{job_id} to check progress"
    }


@app.get("/status/{job_id}")
async def get_job_status(job_id: str):
    """Get the status of a pipeline job."""
    job = _get_job(job_id)

    if job['status'] == 'completed' and 'results' in job:
        results = job['results']
        job['summary'] = {
            'records_processed': results.get('source_profile', {}).get('total_rows', 0),
            'records_kept': results.get('filter_stats', {}).get('records_kept', 0),
            'output_files': len(results.get('saved_files', {})),
        }

    return job


@app.get("/jobs")
async def list_jobs(
    status: Optional[str] = Query(None, description="Filter by status: queued, processing, completed, failed"),
    limit: int = Query(50, description="Maximum number of jobs to return", ge=1, le=100)
):
    """List pipeline jobs, newest first."""
    with job_status_lock:
        jobs = copy.deepcopy(list(job_status.values()))
        total_count = len(job_status)

    if status:
        jobs = [job for job in jobs if job['status'] == status]

    jobs.sort(key=lambda x: x.get('created_at') or '', reverse=True)
    jobs = jobs[:limit]

    return {
        "jobs": jobs,
        "total_count": total_count,
        "filtered_count": len(jobs)
    }


@app.get("/download/{job_id}")
async def download_table(job_id: str, table: str = Query(..., description="Table to download")):
    """Download a published table of a completed job."""
    job = _get_job(job_id)
    if job['status'] != 'completed':
        raise HTTPException(status_code=400, detail=JOB_NOT_COMPLETED_MSG)

    if table not in TABLE_FILES:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown table '{table}'. Available tables: {sorted(TABLE_FILES)}"
        )

    file_path = Path(job['output_dir']) / TABLE_FILES[table]
    if not file_path.exists():
        raise HTTPException(status_code=404, detail=f"Table '{table}' was not published for job {job_id}")

    return FileResponse(
        path=file_path,
        filename=f"{job_id}_{file_path.name}",
        media_type='text/csv'
    )


@app.delete("/jobs/{job_id}")
async def delete_job(job_id: str):
    """Delete a job and its associated files."""
    with job_status_lock:
        if job_id not in job_status:
            raise HTTPException(status_code=404, detail=JOB_NOT_FOUND_MSG)
        job = job_status[job_id]
        if job['status'] == 'processing':
            raise HTTPException(status_code=409, detail="Job is still processing")
        del job_status[job_id]
        persist_job_status()

    input_file = Path(job['input_file'])
    if input_file.exists():
        input_file.unlink()

    output_dir = Path(job['output_dir'])
    if output_dir.exists():
        shutil.rmtree(output_dir)

    logger.info(f"Deleted job {job_id} and associated files")
    return {"message": f"Job {job_id} and associated files deleted successfully"}


def start_server(host: str = "0.0.0.0", port: int = config.API_PORT, reload: bool = False):
    """Start the FastAPI server."""
    logger.info(f"Starting Flight Delay Pipeline API server on {host}:{port}")
    uvicorn.run(
        "api_server:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info"
    )


if __name__ == "__main__":
    start_server()
