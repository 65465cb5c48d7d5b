"""Core constants used across csvsql modules.

This module centralizes format and runtime defaults.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

FIELD_DELIMITER = ","
QUOTE_CHAR = '"'
RECORD_TERMINATOR = "\n"
CARRIAGE_RETURN = "\r"
DEFAULT_BATCH_SIZE = 1000
DEFAULT_ENCODING = "utf-8"
DEFAULT_LOG_LEVEL = "info"
SUPPORTED_LOG_LEVELS = ("debug", "info", "warning", "error")
CSV_EXTENSION = ".csv"
INVALID_RECORDS_SUFFIX = "-invalid.csv"
DUCKDB_EXTENSIONS = (".duckdb", ".ddb")
GENERATED_COLUMN_PREFIX = "column_"
SUPPORTED_PLAN_VERSION = 1
