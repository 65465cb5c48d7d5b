"""Public SDK surface for csvsql.

This module provides a stable import path for library users.
It re-exports the scanner, parser, loader, sink, and typed models.
"""

from __future__ import annotations

from core.config import CsvSqlConfig
from core.errors import (
    CsvSqlConfigError,
    CsvSqlDependencyError,
    CsvSqlError,
    CsvSqlExhaustedError,
    CsvSqlIngestError,
    CsvSqlPlanError,
    CsvSqlStoreError,
)
from core.load_plan import LoadPlan, load_plan
from core.types import FieldList, FieldValue, LoadOptions, LoadSummary
from ingest.batch_loader import BatchLoader, load_csv, run_load
from ingest.field_parser import count_fields, parse_record, quote_field
from ingest.invalid_records import invalid_records_path
from ingest.record_scanner import RecordScanner, open_scanner
from store.sql_sink import SqlSink, open_sink

__all__ = [
    "BatchLoader",
    "CsvSqlConfig",
    "CsvSqlConfigError",
    "CsvSqlDependencyError",
    "CsvSqlError",
    "CsvSqlExhaustedError",
    "CsvSqlIngestError",
    "CsvSqlPlanError",
    "CsvSqlStoreError",
    "FieldList",
    "FieldValue",
    "LoadOptions",
    "LoadPlan",
    "LoadSummary",
    "RecordScanner",
    "SqlSink",
    "count_fields",
    "invalid_records_path",
    "load_csv",
    "load_plan",
    "open_scanner",
    "open_sink",
    "parse_record",
    "quote_field",
    "run_load",
]
