"""csvsql CLI entry point.

This module loads one CSV file into one database table.
It maps argparse arguments onto the batch loader.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from typing import Sequence

from core.config import CsvSqlConfig, parse_batch_size, parse_encoding
from core.errors import CsvSqlError
from core.logging_config import configure_logging
from core.types import LoadOptions
from ingest.batch_loader import run_load


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="csvsql",
        description="Load a CSV file into a SQLite or DuckDB table",
    )
    parser.add_argument("source", help="CSV file to read; the first record is the header")
    parser.add_argument("database", help="SQLite database path, or .duckdb/.ddb for DuckDB")
    parser.add_argument("table", help="Target table name")
    parser.add_argument(
        "--batch-size",
        help="Inserts per committed batch (overrides CSVSQL_BATCH_SIZE)",
    )
    parser.add_argument("--encoding", help="Source encoding (overrides CSVSQL_ENCODING)")
    parser.add_argument(
        "--create-table",
        action="store_true",
        help="Create a TEXT table named from the header when it does not exist",
    )
    parser.add_argument(
        "--invalid-path",
        help="Invalid-record file path (default: <source>-invalid.csv)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the csvsql CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = _build_config(args)
        configure_logging(config.log_level)
        options = LoadOptions(
            source=args.source,
            database=args.database,
            table=args.table,
            batch_size=config.batch_size,
            create_table=args.create_table,
            invalid_path=args.invalid_path,
        )
        summary = run_load(options, config)
    except CsvSqlError as error:
        print(f"error: {error}", file=sys.stderr)
        return 1
    print(summary.render())
    return 0


def _build_config(args: argparse.Namespace) -> CsvSqlConfig:
    """Build config from environment with CLI overrides.

    Args:
        args: Parsed CLI args.

    Returns:
        Validated config.
    """
    config = CsvSqlConfig.from_env()
    if args.batch_size is not None:
        config = replace(config, batch_size=parse_batch_size(args.batch_size))
    if args.encoding:
        config = replace(config, encoding=parse_encoding(args.encoding))
    return config
