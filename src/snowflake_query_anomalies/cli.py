"""
Command line entry point for a detection run.

Usage:
    snowflake-query-anomalies                              # Snowflake source, table output
    snowflake-query-anomalies --source file --input q.csv  # Exported query history
    snowflake-query-anomalies --format csv --output out/findings.csv
"""

import argparse
import sys
from datetime import datetime
from typing import List, Optional

import pandas as pd

from .config.settings import DetectionConfig, OutputConfig, Settings, load_settings
from .connectors.snowflake_client import SnowflakeClient
from .data_collection.base import QueryLogFilters, QueryLogSource
from .data_collection.file_source import FileQueryLogSource
from .data_collection.query_history import SnowflakeQueryHistorySource
from .output.sinks import create_sink
from .pipeline import AnomalyDetectionPipeline
from .utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='snowflake-query-anomalies',
        description='Flag queries that deviate from each user\'s usual behavior',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  snowflake-query-anomalies --as-of 2024-05-01T00:00:00Z
  snowflake-query-anomalies --source file --input query_history.parquet
  snowflake-query-anomalies --timezone Europe/Berlin --format json --output findings.json
        """
    )
    parser.add_argument(
        '--config',
        default='config',
        help='Configuration directory path (default: config)'
    )
    parser.add_argument(
        '--source',
        choices=['snowflake', 'file'],
        default='snowflake',
        help='Where query history is read from (default: snowflake)'
    )
    parser.add_argument('--input', help='Query history export (CSV or Parquet) for --source file')
    parser.add_argument('--as-of', help='End of both windows, ISO 8601 (default: now, UTC)')
    parser.add_argument('--timezone', help='Reference timezone for hour-of-day')
    parser.add_argument('--min-activity', type=int, help='Minimum historical queries for a baseline')
    parser.add_argument('--multiplier', type=float, help='Complexity deviation multiplier')
    parser.add_argument(
        '--format',
        choices=['table', 'csv', 'json', 'parquet'],
        help='Output format (default: from config, else table)'
    )
    parser.add_argument('--output', help='Output file for csv/json/parquet')
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: from config)'
    )
    return parser


def parse_as_of(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    timestamp = pd.Timestamp(value)
    if timestamp.tzinfo is None:
        timestamp = timestamp.tz_localize('UTC')
    return timestamp.tz_convert('UTC').to_pydatetime()


def resolve_detection_config(settings: Settings, args: argparse.Namespace) -> DetectionConfig:
    data = settings.detection.model_dump()
    if args.timezone:
        data['reference_timezone'] = args.timezone
    if args.min_activity is not None:
        data['min_activity'] = args.min_activity
    if args.multiplier is not None:
        data['complexity_multiplier'] = args.multiplier
    return DetectionConfig(**data)


def resolve_output_config(settings: Settings, args: argparse.Namespace) -> OutputConfig:
    data = settings.output.model_dump()
    if args.format:
        data['format'] = args.format
    if args.output:
        data['path'] = args.output
    return OutputConfig(**data)


def build_source(settings: Settings, args: argparse.Namespace) -> QueryLogSource:
    if args.source == 'file':
        if not args.input:
            raise ValueError("--input is required with --source file")
        return FileQueryLogSource(args.input)

    if settings.snowflake is None:
        raise ValueError(
            "Snowflake connection is not configured (set SNOWFLAKE_* variables "
            "or config/snowflake.json)"
        )
    return SnowflakeQueryHistorySource(SnowflakeClient(settings.snowflake))


def run(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    setup_logging(
        log_level=args.log_level or settings.app.log_level,
        log_file=settings.app.log_file,
    )

    detection_config = resolve_detection_config(settings, args)
    output_config = resolve_output_config(settings, args)
    sink = create_sink(output_config.format, output_config.path)
    source = build_source(settings, args)

    try:
        pipeline = AnomalyDetectionPipeline(
            source,
            config=detection_config,
            filters=QueryLogFilters.from_config(settings.filters),
        )
        result = pipeline.run(as_of=parse_as_of(args.as_of))
    finally:
        if isinstance(source, SnowflakeQueryHistorySource):
            source.client.close()

    sink.emit(result.findings)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        return run(args)
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        logger.error(f"Anomaly detection failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
