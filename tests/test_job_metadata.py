# ========================
# tests/test_job_metadata.py
# ========================

import unittest
import tempfile
import shutil
import os
import sys
import uuid

# Add src to Python path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src'))

from flightdelay.pipeline import FlightDelayPipeline
from flightdelay.utils import Config, DataGenerator
from flightdelay.utils.job_metadata import JobMetadataManager, INTERRUPTED_JOB_ERROR


class TestJobMetadataManager(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.processed_dir = os.path.join(self.temp_dir, 'processed')
        self.upload_dir = os.path.join(self.temp_dir, 'uploaded')
        os.makedirs(self.upload_dir)
        self.manager = JobMetadataManager(
            metadata_file=os.path.join(self.temp_dir, 'meta', 'jobs.json'),
            processed_dir=self.processed_dir,
            upload_dir=self.upload_dir,
        )

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_save_and_load(self):
        jobs = {'abc': {'job_id': 'abc', 'status': 'queued'}}
        self.manager.save_job_metadata(jobs)
        self.assertEqual(self.manager.load_job_metadata(), jobs)

    def test_load_missing_or_corrupt_file(self):
        self.assertEqual(self.manager.load_job_metadata(), {})

        with open(self.manager.metadata_file, 'w') as f:
            f.write('{not json')
        self.assertEqual(self.manager.load_job_metadata(), {})

    def test_discover_completed_job(self):
        job_id = str(uuid.uuid4())
        input_file = os.path.join(self.upload_dir, f"{job_id}_flights.csv")
        DataGenerator(seed=5).generate_dataset(input_file, 300)
        FlightDelayPipeline(input_file, os.path.join(self.processed_dir, job_id), 100, config=Config()).run()

        # Directories that are not job ids are ignored
        os.makedirs(os.path.join(self.processed_dir, 'large_scale'))

        jobs = self.manager.discover_existing_jobs()

        self.assertEqual(list(jobs), [job_id])
        job = jobs[job_id]
        self.assertEqual(job['status'], 'completed')
        self.assertEqual(job['filename'], 'flights.csv')
        self.assertEqual(job['input_file'], input_file)
        self.assertEqual(job['results']['source_profile']['total_rows'], 300)
        self.assertIn('airline_performance', job['results']['saved_files'])
        self.assertIn('summary', job['results']['saved_files'])
        self.assertNotIn('filtered_flights', job['results']['saved_files'])

    def test_discover_unfinished_job(self):
        job_id = str(uuid.uuid4())
        os.makedirs(os.path.join(self.processed_dir, job_id))

        job = self.manager.discover_existing_jobs()[job_id]

        self.assertEqual(job['status'], 'unknown')
        self.assertEqual(job['filename'], 'unknown_file.csv')
        self.assertNotIn('results', job)

    def test_recover_interrupted_jobs(self):
        jobs = {
            'a': {'job_id': 'a', 'status': 'processing'},
            'b': {'job_id': 'b', 'status': 'processing'},
            'c': {'job_id': 'c', 'status': 'queued'},
            'd': {'job_id': 'd', 'status': 'completed'},
        }

        self.assertEqual(self.manager.recover_interrupted_jobs(jobs), 3)

        for job_id in ('a', 'b', 'c'):
            self.assertEqual(jobs[job_id]['status'], 'failed')
            self.assertEqual(jobs[job_id]['error'], INTERRUPTED_JOB_ERROR)
            self.assertIn('failed_at', jobs[job_id])
        self.assertEqual(jobs['d'], {'job_id': 'd', 'status': 'completed'})


if __name__ == '__main__':
    unittest.main()
