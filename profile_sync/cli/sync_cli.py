"""
Command-line interface for the profile sync engine.

Usage:
    python -m profile_sync.cli.sync_cli normalize --input <doc.json> [options]
    python -m profile_sync.cli.sync_cli reconcile [--input <export> --format json|parquet] [options]
    python -m profile_sync.cli.sync_cli listen [options]
"""

import argparse
import json
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv
from pyspark.sql import SparkSession

from profile_sync.batch import BulkReconciler
from profile_sync.batch.readers import SourceTableReader
from profile_sync.batch.readers.export_reader import ExportReader
from profile_sync.core.config import load_projection_config
from profile_sync.core.errors import ProfileSyncError
from profile_sync.core.flattening import ProfileNormalizer
from profile_sync.core.keys import resolve_key
from profile_sync.core.models import SourceRecord
from profile_sync.observability import metrics
from profile_sync.observability.logger import get_logger, reconfigure_loggers
from profile_sync.streaming import ChangePropagator
from profile_sync.streaming.sources import PostgresNotifySource
from profile_sync.warehouse.connection import DatabaseConnectionPool
from profile_sync.warehouse.upsert import PostgresProfileStore

logger = get_logger(__name__)

# Global flag for graceful shutdown
_shutdown_requested = False


def signal_handler(signum, frame):  # type: ignore[no-untyped-def]
    """
    Handle shutdown signals (SIGINT, SIGTERM) for the listen loop.

    Args:
        signum: Signal number
        frame: Current stack frame
    """
    global _shutdown_requested
    signal_name = signal.Signals(signum).name
    logger.info(f"Received {signal_name} signal, stopping after the current event...")
    _shutdown_requested = True


def create_spark_session(app_name: str = "ProfileExportReconcile") -> SparkSession:
    """
    Create Spark session for reading exports.

    Args:
        app_name: Application name

    Returns:
        SparkSession
    """
    spark = SparkSession.builder \
        .appName(app_name) \
        .master("local[*]") \
        .config("spark.sql.adaptive.enabled", "true") \
        .getOrCreate()

    return spark


def create_pool(args: argparse.Namespace) -> DatabaseConnectionPool:
    """Open a connection pool from CLI arguments (falling back to DB_* env vars)."""
    pool = DatabaseConnectionPool(
        host=args.db_host,
        port=args.db_port,
        database=args.db_name,
        user=args.db_user,
        password=args.db_password
    )
    pool.open()
    return pool


def normalize_command(args: argparse.Namespace) -> int:
    """
    Flatten one document file and print the record as JSON.

    Args:
        args: Command-line arguments

    Returns:
        Exit code
    """
    input_path = Path(args.input)
    if not input_path.exists():
        logger.error(f"Input file not found: {args.input}")
        return 1

    config = load_projection_config(args.config)
    normalizer = ProfileNormalizer(config)

    with open(input_path, encoding="utf-8") as f:
        document = json.load(f)

    key = resolve_key(SourceRecord(key=args.key, document=document)) or input_path.stem

    try:
        record = normalizer.normalize(document, key, label=args.label)
    except ProfileSyncError as e:
        logger.error(f"Could not flatten {args.input}: {e}")
        return 1

    print(record.model_dump_json(indent=2))
    return 0


def reconcile_command(args: argparse.Namespace) -> int:
    """
    Rebuild the flattened store from the source table or an export.

    Args:
        args: Command-line arguments

    Returns:
        Exit code
    """
    config = load_projection_config(args.config)
    if args.batch_size:
        config.reconcile.batch_size = args.batch_size
    if args.strict_dedup:
        config.reconcile.strict_dedup = True

    pool = create_pool(args)
    spark = None

    try:
        normalizer = ProfileNormalizer(config)
        store = PostgresProfileStore(pool, normalizer.search_maintainer)
        reconciler = BulkReconciler(store, config, normalizer)

        if args.input:
            input_path = Path(args.input)
            if not input_path.exists():
                logger.error(f"Input file not found: {args.input}")
                return 1
            logger.info(f"Reconciling from export: {args.input}")
            spark = create_spark_session()
            records = ExportReader(spark).iter_records(str(input_path), args.format)
        else:
            logger.info("Reconciling from public_profiles")
            records = SourceTableReader(pool).iter_records()

        report = reconciler.reconcile(records)

        logger.info("=" * 60)
        logger.info("RECONCILE COMPLETE")
        logger.info("=" * 60)
        logger.info(f"Source rows considered: {report.considered}")
        logger.info(f"Flattened records written: {report.written}")
        logger.info(f"Skipped (no key or document): {report.skipped}")
        logger.info(f"Failed: {report.failed}")
        logger.info(f"Duplicate rows discarded: {report.duplicates}")
        logger.info(f"Gap: {report.gap}")
        logger.info("=" * 60)

        print(json.dumps(report.model_dump(), indent=2))
        return 0

    except ProfileSyncError as e:
        logger.error(f"Reconcile aborted: {e}")
        return 1
    finally:
        pool.close()
        if spark is not None:
            spark.stop()


def listen_command(args: argparse.Namespace) -> int:
    """
    Propagate source changes received over LISTEN/NOTIFY until interrupted.

    Args:
        args: Command-line arguments

    Returns:
        Exit code
    """
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    config = load_projection_config(args.config)
    if args.metrics_port:
        metrics.start_metrics_server(args.metrics_port)

    pool = create_pool(args)
    try:
        normalizer = ProfileNormalizer(config)
        store = PostgresProfileStore(pool, normalizer.search_maintainer)
        propagator = ChangePropagator(store, config, normalizer)
        source = PostgresNotifySource(pool, channel=config.notify_channel)

        events = source.events(
            keep_running=lambda: not _shutdown_requested,
            poll_interval=args.poll_interval,
        )
        for event in events:
            propagator.handle(event)

        logger.info("Listener stopped")
        return 0
    finally:
        pool.close()


def add_db_arguments(parser: argparse.ArgumentParser) -> None:
    """Database connection arguments (default to DB_* environment variables)."""
    parser.add_argument("--db-host", help="Database host (default: $DB_HOST or localhost)")
    parser.add_argument("--db-port", type=int, help="Database port (default: $DB_PORT or 5432)")
    parser.add_argument("--db-name", help="Database name (default: $DB_NAME or profiles)")
    parser.add_argument("--db-user", help="Database user (default: $DB_USER or profile_sync)")
    parser.add_argument("--db-password", help="Database password (default: $DB_PASSWORD)")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description="Profile flattening and change propagation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Flatten one document and print the record
  python -m profile_sync.cli.sync_cli normalize --input data/profile.json --key p1

  # Rebuild flattened_profiles from public_profiles
  python -m profile_sync.cli.sync_cli reconcile --env-file .env

  # Rebuild from a JSON lines export
  python -m profile_sync.cli.sync_cli reconcile --input exports/profiles.jsonl --format json

  # Propagate live changes
  python -m profile_sync.cli.sync_cli listen --metrics-port 8000
        """
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to projection policy YAML (default: config/projection.yaml if present)"
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Load environment variables from this file"
    )
    parser.add_argument(
        "--log-format",
        choices=["json", "text"],
        default=None,
        help="Log format (default: $LOG_FORMAT or json)"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: $LOG_LEVEL or INFO)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Normalize command
    normalize_parser = subparsers.add_parser("normalize", help="Flatten one document file")
    normalize_parser.add_argument("--input", required=True, help="Path to a JSON document")
    normalize_parser.add_argument("--key", default=None, help="Record key (default: document id)")
    normalize_parser.add_argument("--label", default=None, help="Batch label")

    # Reconcile command
    reconcile_parser = subparsers.add_parser("reconcile", help="Rebuild the flattened store")
    reconcile_parser.add_argument(
        "--input",
        default=None,
        help="Export to read instead of the public_profiles table"
    )
    reconcile_parser.add_argument(
        "--format",
        default="json",
        choices=["json", "parquet"],
        help="Export format (default: json)"
    )
    reconcile_parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Upsert batch size (overrides config)"
    )
    reconcile_parser.add_argument(
        "--strict-dedup",
        action="store_true",
        help="Abort when several source rows share a key"
    )
    add_db_arguments(reconcile_parser)

    # Listen command
    listen_parser = subparsers.add_parser("listen", help="Propagate change notifications")
    listen_parser.add_argument(
        "--poll-interval",
        type=float,
        default=5.0,
        help="Seconds per listen window (default: 5)"
    )
    listen_parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Expose Prometheus metrics on this port"
    )
    add_db_arguments(listen_parser)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.env_file:
        load_dotenv(args.env_file, override=True)

    if args.log_format or args.log_level:
        reconfigure_loggers(level=args.log_level, format_type=args.log_format)

    try:
        if args.command == "normalize":
            return normalize_command(args)
        elif args.command == "reconcile":
            return reconcile_command(args)
        elif args.command == "listen":
            return listen_command(args)
    except Exception as e:
        logger.error(f"Error during {args.command}: {e}", exc_info=True)
        return 1

    return 1


if __name__ == "__main__":
    sys.exit(main())
