#!/usr/bin/env python3
# ========================
# main.py
# ========================

"""
Main Entry Point for the Flight Delay Dashboard Pipeline

    python main.py run [--input PATH] [--output-dir DIR] [--generate-sample N]
    python main.py export airline_performance [--dest PATH]
    python main.py --config settings.json run
"""

import argparse
import logging
import shutil
import sys
from pathlib import Path

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent / 'src'))

from flightdelay.pipeline import FlightDelayPipeline, PipelineError, TABLE_FILES
from flightdelay.utils import Config, setup_logging, DataGenerator

logger = logging.getLogger(__name__)


def build_parser(config: Config) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Flight delay dashboard pipeline")
    parser.add_argument("--config", help="JSON file of setting overrides")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run the pipeline and publish all tables")
    run.add_argument("--input", default=config.DEFAULT_INPUT_FILE, help="Raw flight CSV")
    run.add_argument("--output-dir", default=config.DEFAULT_OUTPUT_DIR, help="Where tables are published")
    run.add_argument("--chunk-size", type=int, default=config.DEFAULT_CHUNK_SIZE, help="Rows per chunk")
    run.add_argument("--generate-sample", type=int, metavar="N",
                     help="Write N synthetic flights to --input before running")
    run.add_argument("--seed", type=int, default=42, help="Seed for --generate-sample")
    run.add_argument("--export-filtered", action="store_true",
                     help="Also publish the filtered dataset (flight_data_optimized.csv)")
    run.add_argument("--lenient-months", action="store_true",
                     help="Label out-of-range months December instead of failing")
    run.add_argument("--dashboard-dir", nargs="?", const=config.DASHBOARD_DATA_DIR,
                     help=f"Copy published CSVs here after the run (default: {config.DASHBOARD_DATA_DIR})")

    export = subparsers.add_parser("export", help="Write a published table to stdout or a file")
    export.add_argument("table", choices=sorted(TABLE_FILES))
    export.add_argument("--output-dir", default=config.DEFAULT_OUTPUT_DIR, help="Where tables were published")
    export.add_argument("--dest", help="Destination file (default: stdout)")

    return parser


def run_pipeline(args: argparse.Namespace, config: Config) -> int:
    """Run the pipeline end to end."""
    config.ensure_directories()

    if args.export_filtered:
        config.EXPORT_FILTERED_DATASET = True
    if args.lenient_months:
        config.STRICT_MONTH_VALIDATION = False

    if args.generate_sample:
        logger.info(f"Generating {args.generate_sample:,} synthetic flights into {args.input}...")
        generation_stats = DataGenerator(seed=args.seed).generate_dataset(
            file_path=args.input,
            num_rows=args.generate_sample,
        )
        logger.info(f"Sample data generated: {generation_stats}")

    pipeline = FlightDelayPipeline(
        input_file=args.input,
        output_dir=args.output_dir,
        chunk_size=args.chunk_size,
        config=config
    )

    if not pipeline.validate_input():
        logger.error("Input validation failed. Exiting.")
        return 1

    estimates = pipeline.estimate_processing_time()
    if estimates:
        logger.info(f"Processing estimates: {estimates}")

    results = pipeline.run()

    if args.dashboard_dir:
        _copy_data_for_dashboard(args.output_dir, args.dashboard_dir)

    _print_execution_summary(results)
    return 0


def export_table(args: argparse.Namespace) -> int:
    """Copy a published table to stdout or to --dest."""
    source = Path(args.output_dir) / TABLE_FILES[args.table]
    if not source.exists():
        logger.error(f"Table '{args.table}' has not been published to {args.output_dir}; run the pipeline first")
        return 1

    if args.dest:
        Path(args.dest).parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, args.dest)
        logger.info(f"Exported {args.table} to {args.dest}")
    else:
        with open(source, 'r', newline='', encoding='utf-8') as f:
            shutil.copyfileobj(f, sys.stdout)
    return 0


def _copy_data_for_dashboard(output_dir: str, dashboard_dir: str) -> None:
    """Copy published CSVs to the directory the dashboard reads from."""
    dashboard_path = Path(dashboard_dir)
    dashboard_path.mkdir(parents=True, exist_ok=True)

    for csv_file in Path(output_dir).glob("*.csv"):
        shutil.copy2(csv_file, dashboard_path / csv_file.name)
        logger.info(f"Copied {csv_file.name} to dashboard directory")


def _print_execution_summary(results: dict) -> None:
    """Print final execution summary."""
    processing_stats = results['processing_stats']
    filter_stats = results['filter_stats']
    profile = results['source_profile']

    print("\n" + "="*70)
    print("PIPELINE EXECUTION SUMMARY")
    print("="*70)

    print("Source:")
    print(f"   - Flights read: {profile['total_rows']:,}")
    print(f"   - Date range: {profile['earliest_date']} to {profile['latest_date']}")

    print("\nFilter:")
    print(f"   - Kept: {filter_stats['records_kept']:,} ({filter_stats['keep_rate']:.1f}%)")
    print(f"   - Excluded by year: {filter_stats['excluded_by_year']:,}")
    print(f"   - Excluded by delay: {filter_stats['excluded_by_delay']:,}")
    print(f"   - Excluded by airline: {filter_stats['excluded_by_airline']:,}")

    print("\nTables:")
    print(f"   - Airlines rated: {processing_stats['airlines_rated']}")
    print(f"   - Monthly trend rows: {processing_stats['monthly_rows']:,}")
    print(f"   - Years covered: {processing_stats['years_covered']}")

    print("\nGenerated Outputs:")
    for dataset_type, file_path in results['saved_files'].items():
        print(f"   - {dataset_type.replace('_', ' ').title()}: {Path(file_path).name}")

    print("="*70)


def load_config(argv) -> Config:
    """Read --config FILE ahead of the full parse so its values become the defaults."""
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument("--config")
    known, _ = pre_parser.parse_known_args(argv)
    return Config.load_from_file(known.config) if known.config else Config()


def main(argv=None) -> int:
    """Main execution function."""
    try:
        config = load_config(argv)
    except (OSError, ValueError) as e:
        setup_logging()
        logger.error(f"Could not load configuration: {e}")
        return 1
    args = build_parser(config).parse_args(argv)

    setup_logging(
        log_level=config.LOG_LEVEL,
        log_file="pipeline.log" if args.command == "run" else None,
        log_dir="logs"
    )

    invalid_settings = [name for name, ok in config.validate_config().items() if not ok]
    if invalid_settings:
        logger.error(f"Invalid configuration: {', '.join(invalid_settings)}")
        return 1
    logger.debug(str(config))

    try:
        if args.command == "run":
            return run_pipeline(args, config)
        return export_table(args)

    except PipelineError as e:
        logger.error(f"Pipeline aborted: {e}")
        return 1
    except Exception as e:
        logger.error(f"Pipeline execution failed: {e}", exc_info=True)
        return 1


if __name__ == '__main__':
    sys.exit(main())
