"""Load-plan CLI entry point.

This module runs every load listed in a YAML load plan and prints one
summary block per load.
"""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from core.config import CsvSqlConfig
from core.errors import CsvSqlError
from core.load_plan import load_plan
from core.logging_config import configure_logging
from ingest.batch_loader import run_load


def build_parser() -> argparse.ArgumentParser:
    """Build the load-plan parser."""
    parser = argparse.ArgumentParser(
        prog="csvsql-plan",
        description="Run the CSV loads described by a YAML load plan",
    )
    parser.add_argument("plan_file", help="Path to YAML load-plan file")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run all loads of a plan in order, stopping at the first failure.

    Returns:
        Process exit code.
    """
    args = build_parser().parse_args(argv)
    try:
        config = CsvSqlConfig.from_env()
        configure_logging(config.log_level)
        plan = load_plan(args.plan_file, default_batch_size=config.batch_size)
        for index, options in enumerate(plan.loads, 1):
            summary = run_load(options, config)
            print(f"[{index}/{len(plan.loads)}] {options.source} -> {options.table}")
            print(summary.render())
    except CsvSqlError as error:
        print(f"error: {error}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
