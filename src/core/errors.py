"""csvsql exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each layer raises a specific error type for debuggability.
"""

from __future__ import annotations


class CsvSqlError(Exception):
    """Base exception for all csvsql failures."""


class CsvSqlConfigError(CsvSqlError):
    """Raised for invalid runtime configuration."""


class CsvSqlIngestError(CsvSqlError):
    """Raised for source and invalid-record file I/O failures."""


class CsvSqlExhaustedError(CsvSqlIngestError):
    """Raised when a record is requested from an exhausted scanner."""


class CsvSqlStoreError(CsvSqlError):
    """Raised for SQL connection, statement, and transaction failures."""


class CsvSqlDependencyError(CsvSqlError):
    """Raised when an optional runtime dependency is missing."""


class CsvSqlPlanError(CsvSqlError):
    """Raised for invalid or unsupported load-plan files."""
