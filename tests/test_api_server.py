# ========================
# tests/test_api_server.py
# ========================

import asyncio
import importlib
import json
import os
import shutil
import sys
import tempfile
import threading
import unittest
from unittest import mock

ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# Add project root and src to Python path
sys.path.insert(0, os.path.join(ROOT_DIR, 'src'))
sys.path.insert(0, ROOT_DIR)

from fastapi import HTTPException

from flightdelay.utils.job_metadata import INTERRUPTED_JOB_ERROR


class TestApiServerJobState(unittest.TestCase):
    """Job bookkeeping of the API server, without a running server."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.original_cwd = os.getcwd()
        os.chdir(self.temp_dir)

        self.metadata_file = os.path.join(self.temp_dir, 'jobs.json')
        self.env = mock.patch.dict(os.environ, {
            'JOB_METADATA_FILE': self.metadata_file,
            'PIPELINE_OUTPUT_DIR': os.path.join(self.temp_dir, 'processed'),
            'PIPELINE_UPLOAD_DIR': os.path.join(self.temp_dir, 'uploaded'),
            'DASHBOARD_DATA_DIR': os.path.join(self.temp_dir, 'dashboard'),
            'MAX_CONCURRENT_JOBS': '3',
        })
        self.env.start()

    def tearDown(self):
        self.env.stop()
        sys.modules.pop('api_server', None)
        os.chdir(self.original_cwd)
        shutil.rmtree(self.temp_dir)

    def _start_server_module(self, persisted_jobs):
        with open(self.metadata_file, 'w') as f:
            json.dump(persisted_jobs, f)
        sys.modules.pop('api_server', None)
        return importlib.import_module('api_server')

    def _job(self, job_id, status):
        return {
            'job_id': job_id,
            'status': status,
            'created_at': '2024-01-01T00:00:00',
            'input_file': os.path.join(self.temp_dir, 'uploaded', f"{job_id}_flights.csv"),
            'output_dir': os.path.join(self.temp_dir, 'processed', job_id),
        }

    def test_restart_fails_unfinished_jobs(self):
        api_server = self._start_server_module({
            'a': self._job('a', 'processing'),
            'b': self._job('b', 'processing'),
            'c': self._job('c', 'queued'),
            'd': self._job('d', 'completed'),
        })

        for job_id in ('a', 'b', 'c'):
            job = api_server.job_status[job_id]
            self.assertEqual(job['status'], 'failed')
            self.assertEqual(job['error'], INTERRUPTED_JOB_ERROR)
        self.assertEqual(api_server.job_status['d']['status'], 'completed')

        # The recovered state is written back
        with open(self.metadata_file) as f:
            self.assertEqual(json.load(f)['a']['status'], 'failed')

        # Stale jobs neither block new work nor deletion
        api_server._check_capacity()
        asyncio.run(api_server.delete_job('a'))
        self.assertNotIn('a', api_server.job_status)

    def test_capacity_counts_active_jobs(self):
        api_server = self._start_server_module({})
        for job_id in ('x', 'y', 'z'):
            api_server.job_status[job_id] = self._job(job_id, 'processing')

        with self.assertRaises(HTTPException) as ctx:
            api_server._check_capacity()
        self.assertEqual(ctx.exception.status_code, 429)

        with self.assertRaises(HTTPException) as ctx:
            asyncio.run(api_server.delete_job('x'))
        self.assertEqual(ctx.exception.status_code, 409)

    def test_concurrent_updates_while_persisting(self):
        api_server = self._start_server_module({})
        errors = []

        def add_jobs(prefix):
            try:
                for i in range(200):
                    job_id = f"{prefix}-{i}"
                    with api_server.job_status_lock:
                        api_server.job_status[job_id] = self._job(job_id, 'queued')
                    api_server._update_job(job_id, status='completed', results={'n': i})
            except Exception as e:
                errors.append(e)

        def persist():
            try:
                for _ in range(200):
                    api_server.persist_job_status()
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=add_jobs, args=(p,)) for p in ('p', 'q')]
        threads.append(threading.Thread(target=persist))
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(errors, [])
        self.assertEqual(len(api_server.job_status), 400)
        with open(self.metadata_file) as f:
            self.assertEqual(len(json.load(f)), 400)


if __name__ == '__main__':
    unittest.main()
