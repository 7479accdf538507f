# ========================
# tests/test_orchestrator.py
# ========================

import unittest
import tempfile
import shutil
import os
import sys
import csv
import json
import logging
from pathlib import Path

# Add the project root (for main.py) and src to Python path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)
sys.path.insert(0, os.path.join(PROJECT_ROOT, 'src'))

from flightdelay.pipeline import FlightDelayPipeline, TABLE_FILES
from flightdelay.pipeline.errors import MalformedRecordError, SchemaError
from flightdelay.pipeline.schema import (
    AIRLINE_PERFORMANCE_COLUMNS,
    MONTHLY_TREND_COLUMNS,
    YEARLY_OVERVIEW_COLUMNS,
)
from flightdelay.utils import Config, DataGenerator

SOURCE_HEADER = [
    'fl_date', 'airline', 'origin_city', 'dest', 'dep_delay', 'arr_delay',
    'delay_due_carrier_minutes', 'delay_due_weather_minutes', 'delay_due_nas_minutes',
    'delay_due_security_minutes', 'delay_due_late_aircraft_minutes',
]

DASHBOARD_TABLES = ('airline_performance', 'monthly_trends', 'yearly_overview')


def read_table(output_dir, table):
    with open(Path(output_dir) / TABLE_FILES[table], newline='', encoding='utf-8') as f:
        reader = csv.DictReader(f)
        return reader.fieldnames, list(reader)


class TestFlightDelayPipeline(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.output_dir = os.path.join(self.temp_dir, 'processed')
        self.config = Config({'strict_month_validation': True, 'export_filtered_dataset': False})

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def _write_source(self, rows, header=SOURCE_HEADER, name='flights.csv'):
        path = os.path.join(self.temp_dir, name)
        with open(path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow(header)
            writer.writerows(rows)
        return path

    def _run(self, input_file, config=None, chunk_size=2):
        pipeline = FlightDelayPipeline(input_file, self.output_dir, chunk_size, config=config or self.config)
        return pipeline.run()

    def test_three_flight_example(self):
        """
        A 2019 flight is excluded by year, a non-major carrier by airline;
        one flight survives and the airline table stays empty (< 50 flights).
        """
        input_file = self._write_source([
            ['2019-05-01', 'Delta Air Lines Inc.', 'Atlanta, GA', 'ORD', '20', '20', '', '', '', '', ''],
            ['2021-03-15', 'Delta Air Lines Inc.', 'Atlanta, GA', 'ORD', '15', '5', '15', '0', '0', '0', '0'],
            ['2021-06-01', 'Envoy Air', 'Chicago, IL', 'ATL', '50', '50', '', '', '', '', ''],
        ])

        results = self._run(input_file)

        headers, airline_rows = read_table(self.output_dir, 'airline_performance')
        self.assertEqual(headers, AIRLINE_PERFORMANCE_COLUMNS)
        self.assertEqual(airline_rows, [])

        headers, monthly_rows = read_table(self.output_dir, 'monthly_trends')
        self.assertEqual(headers, MONTHLY_TREND_COLUMNS)
        self.assertEqual(len(monthly_rows), 1)
        self.assertEqual(monthly_rows[0]['flight_date'], '2021-03-15')
        self.assertEqual(monthly_rows[0]['month'], '3')
        self.assertEqual(monthly_rows[0]['month_name'], 'March')
        self.assertEqual(monthly_rows[0]['departure_delay_minutes'], '15')

        headers, yearly_rows = read_table(self.output_dir, 'yearly_overview')
        self.assertEqual(headers, YEARLY_OVERVIEW_COLUMNS)
        self.assertEqual(yearly_rows, [{
            'year': '2021',
            'yearly_avg_departure_delay': '15.00',
            'yearly_avg_arrival_delay': '5.00',
            'total_flights': '1',
            'delayed_flights': '1',
            'yearly_delay_percentage': '100.00',
        }])

        self.assertEqual(results['pipeline_status'], 'completed')
        self.assertEqual(results['filter_stats']['excluded_by_year'], 1)
        self.assertEqual(results['filter_stats']['excluded_by_airline'], 1)
        self.assertEqual(results['source_profile']['total_rows'], 3)
        self.assertEqual(results['source_profile']['earliest_date'], '2019-05-01')
        self.assertTrue(all(results['verification']['checks'].values()))
        self.assertNotIn('filtered_flights', results['saved_files'])

    def test_airline_table_from_generated_data(self):
        input_file = os.path.join(self.temp_dir, 'generated.csv')
        DataGenerator(seed=11).generate_dataset(input_file, 3000)

        results = self._run(input_file, chunk_size=500)

        _, airline_rows = read_table(self.output_dir, 'airline_performance')
        self.assertGreater(len(airline_rows), 0)
        for row in airline_rows:
            self.assertGreaterEqual(int(row['total_flights']), 50)
            self.assertRegex(row['departure_delay_percentage'], r'^\d+\.\d{2}$')

        percentages = [float(row['departure_delay_percentage']) for row in airline_rows]
        self.assertEqual(percentages, sorted(percentages))

        _, monthly_rows = read_table(self.output_dir, 'monthly_trends')
        self.assertEqual(len(monthly_rows), results['filter_stats']['records_kept'])

        _, yearly_rows = read_table(self.output_dir, 'yearly_overview')
        self.assertEqual(sum(int(row['total_flights']) for row in yearly_rows), len(monthly_rows))
        self.assertTrue(all(int(row['year']) >= 2020 for row in yearly_rows))

    def test_rerun_is_byte_identical(self):
        input_file = os.path.join(self.temp_dir, 'generated.csv')
        DataGenerator(seed=3).generate_dataset(input_file, 1500)

        self._run(input_file, chunk_size=100)
        first_run = {
            table: (Path(self.output_dir) / TABLE_FILES[table]).read_bytes()
            for table in DASHBOARD_TABLES
        }
        first_summary = (Path(self.output_dir) / 'pipeline_summary.json').read_bytes()

        # Different chunking must not change a single byte
        self._run(input_file, chunk_size=333)

        for table in DASHBOARD_TABLES:
            with self.subTest(table=table):
                self.assertEqual((Path(self.output_dir) / TABLE_FILES[table]).read_bytes(), first_run[table])
        self.assertEqual((Path(self.output_dir) / 'pipeline_summary.json').read_bytes(), first_summary)

    def test_empty_source_publishes_header_only_tables(self):
        input_file = self._write_source([])

        results = self._run(input_file)

        for table in DASHBOARD_TABLES:
            with self.subTest(table=table):
                headers, rows = read_table(self.output_dir, table)
                self.assertTrue(headers)
                self.assertEqual(rows, [])
        self.assertEqual(results['source_profile']['total_rows'], 0)

    def test_nothing_passes_filter(self):
        input_file = self._write_source([
            ['2022-01-01', 'Delta Air Lines Inc.', 'Atlanta, GA', 'ORD', '10', '10', '', '', '', '', ''],
            ['2022-01-02', 'Delta Air Lines Inc.', 'Atlanta, GA', 'ORD', '', '', '', '', '', '', ''],
        ])

        results = self._run(input_file)

        for table in DASHBOARD_TABLES:
            _, rows = read_table(self.output_dir, table)
            self.assertEqual(rows, [])
        self.assertEqual(results['filter_stats']['excluded_by_delay'], 2)

    def test_missing_column_publishes_nothing(self):
        """
        A failed run leaves the previous run's tables in place and no
        staging directories behind.
        """
        good_input = self._write_source([
            ['2021-03-15', 'Delta Air Lines Inc.', 'Atlanta, GA', 'ORD', '15', '5', '', '', '', '', ''],
        ])
        self._run(good_input)
        previous = {
            table: (Path(self.output_dir) / TABLE_FILES[table]).read_bytes()
            for table in DASHBOARD_TABLES
        }

        header = [column for column in SOURCE_HEADER if column != 'airline']
        bad_input = self._write_source(
            [['2021-04-01', 'Boston, MA', 'SFO', '40', '35', '', '', '', '', '']],
            header=header,
            name='bad.csv',
        )

        with self.assertRaises(SchemaError) as ctx:
            self._run(bad_input)
        self.assertEqual(ctx.exception.missing_columns, ['airline'])

        for table in DASHBOARD_TABLES:
            self.assertEqual((Path(self.output_dir) / TABLE_FILES[table]).read_bytes(), previous[table])
        self.assertEqual([p for p in os.listdir(self.output_dir) if p.startswith('.staging-')], [])

    def test_missing_date_row_is_excluded(self):
        input_file = self._write_source([
            ['2021-03-15', 'Delta Air Lines Inc.', 'Atlanta, GA', 'ORD', '15', '5', '', '', '', '', ''],
            ['', 'Delta Air Lines Inc.', 'Atlanta, GA', 'ORD', '45', '50', '', '', '', '', ''],
        ])

        results = self._run(input_file)

        _, monthly_rows = read_table(self.output_dir, 'monthly_trends')
        self.assertEqual([row['flight_date'] for row in monthly_rows], ['2021-03-15'])
        _, yearly_rows = read_table(self.output_dir, 'yearly_overview')
        self.assertEqual(yearly_rows[0]['total_flights'], '1')

        self.assertEqual(results['filter_stats']['excluded_by_year'], 1)
        self.assertEqual(results['source_profile']['total_rows'], 2)
        self.assertEqual(results['source_profile']['non_null_dates'], 1)

    def test_malformed_value_aborts_run(self):
        input_file = self._write_source([
            ['2021-03-15', 'Delta Air Lines Inc.', 'Atlanta, GA', 'ORD', '15', '5', '', '', '', '', ''],
            ['2021-03-16', 'Delta Air Lines Inc.', 'Atlanta, GA', 'ORD', 'n/a', '5', '', '', '', '', ''],
        ])

        with self.assertRaises(MalformedRecordError) as ctx:
            self._run(input_file)
        self.assertEqual(ctx.exception.line_number, 3)

        for table in DASHBOARD_TABLES:
            self.assertFalse((Path(self.output_dir) / TABLE_FILES[table]).exists())

    def test_export_filtered_dataset(self):
        input_file = self._write_source([
            ['2021-03-15', 'Delta Air Lines Inc.', 'Atlanta, GA', 'ORD', '15', '5', '', '', '', '', ''],
            ['2021-03-16', 'Delta Air Lines Inc.', 'Atlanta, GA', 'ORD', '1', '2', '', '', '', '', ''],
        ])
        filtered_path = Path(self.output_dir) / TABLE_FILES['filtered_flights']

        results = self._run(input_file, config=Config({'export_filtered_dataset': True}))

        self.assertIn('filtered_flights', results['saved_files'])
        _, rows = read_table(self.output_dir, 'filtered_flights')
        self.assertEqual(len(rows), 1)
        self.assertNotIn('month_name', rows[0])

        # Turning the export off removes the stale copy
        self._run(input_file, config=Config({'export_filtered_dataset': False}))
        self.assertFalse(filtered_path.exists())

    def test_summary_and_data_dictionary_published(self):
        input_file = self._write_source([
            ['2021-03-15', 'Delta Air Lines Inc.', 'Atlanta, GA', 'ORD', '15', '5', '', '', '', '', ''],
        ])

        results = self._run(input_file)

        self.assertTrue(os.path.exists(results['saved_files']['data_dictionary']))
        with open(results['saved_files']['summary'], encoding='utf-8') as f:
            summary = json.load(f)
        self.assertEqual(summary['verification']['row_counts']['monthly_delay_trends'], 1)
        self.assertEqual(summary['filter_stats']['records_kept'], 1)

    def test_validate_input(self):
        self.assertFalse(FlightDelayPipeline('missing.csv', self.output_dir, config=self.config).validate_input())
        input_file = self._write_source([])
        self.assertTrue(FlightDelayPipeline(input_file, self.output_dir, config=self.config).validate_input())


class TestCommandLine(unittest.TestCase):
    """Drive main.main() the way a shell would."""

    def setUp(self):
        import main
        self.main = main
        self.temp_dir = tempfile.mkdtemp()
        self.original_cwd = os.getcwd()
        os.chdir(self.temp_dir)

    def tearDown(self):
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            handler.close()
            root_logger.removeHandler(handler)
        os.chdir(self.original_cwd)
        shutil.rmtree(self.temp_dir)

    def test_run_then_export(self):
        exit_code = self.main.main([
            'run', '--input', 'raw/flights.csv', '--output-dir', 'out',
            '--generate-sample', '800', '--chunk-size', '200',
        ])
        self.assertEqual(exit_code, 0)
        for table in DASHBOARD_TABLES:
            self.assertTrue(os.path.exists(os.path.join('out', TABLE_FILES[table])))

        exit_code = self.main.main([
            'export', 'yearly_overview', '--output-dir', 'out', '--dest', 'export/yearly.csv',
        ])
        self.assertEqual(exit_code, 0)
        self.assertEqual(
            Path('export/yearly.csv').read_bytes(),
            Path('out', TABLE_FILES['yearly_overview']).read_bytes(),
        )

    def test_export_before_run_fails(self):
        self.assertEqual(self.main.main(['export', 'airline_performance', '--output-dir', 'nowhere']), 1)

    def test_run_with_missing_column_fails(self):
        with open('flights.csv', 'w', newline='', encoding='utf-8') as f:
            f.write('fl_date,airline\n2021-01-01,Allegiant Air\n')
        self.assertEqual(self.main.main(['run', '--input', 'flights.csv', '--output-dir', 'out']), 1)


if __name__ == '__main__':
    unittest.main()
