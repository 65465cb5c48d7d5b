"""Runtime configuration model for csvsql.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import codecs
import os

from core.constants import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_ENCODING,
    DEFAULT_LOG_LEVEL,
    SUPPORTED_LOG_LEVELS,
)
from core.errors import CsvSqlConfigError


@dataclass(frozen=True)
class CsvSqlConfig:
    """Validated runtime configuration.

    Attributes:
        batch_size: Number of inserts executed and committed together.
        encoding: Text encoding used for sources and invalid-record files.
        log_level: Minimum level of emitted log events.
    """

    batch_size: int
    encoding: str
    log_level: str

    @classmethod
    def from_env(cls) -> "CsvSqlConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            CsvSqlConfigError: If environment values are invalid.
        """
        batch_size = parse_batch_size(os.getenv("CSVSQL_BATCH_SIZE", str(DEFAULT_BATCH_SIZE)))
        encoding = parse_encoding(os.getenv("CSVSQL_ENCODING", DEFAULT_ENCODING))
        log_level = _parse_log_level(os.getenv("CSVSQL_LOG_LEVEL", DEFAULT_LOG_LEVEL))
        return cls(batch_size=batch_size, encoding=encoding, log_level=log_level)


def parse_batch_size(raw_value: str) -> int:
    """Parse and validate a batch size value.

    Args:
        raw_value: Raw string from environment or CLI.

    Returns:
        Positive batch size.

    Raises:
        CsvSqlConfigError: If value is not a positive integer.
    """
    try:
        batch_size = int(raw_value)
    except ValueError as error:
        raise CsvSqlConfigError(
            "Invalid CSVSQL_BATCH_SIZE value: "
            f"expected integer, got '{raw_value}'. "
            "Set CSVSQL_BATCH_SIZE to a positive number."
        ) from error
    validate_batch_size(batch_size)
    return batch_size


def validate_batch_size(batch_size: int) -> None:
    """Reject non-positive batch sizes.

    Raises:
        CsvSqlConfigError: If batch size is zero or negative.
    """
    if batch_size <= 0:
        raise CsvSqlConfigError(
            f"Batch size must be positive, got {batch_size}. "
            "Use a batch size of at least 1."
        )


def parse_encoding(raw_value: str) -> str:
    """Return the canonical codec name for an encoding value."""
    try:
        return codecs.lookup(raw_value).name
    except LookupError as error:
        raise CsvSqlConfigError(
            f"Invalid CSVSQL_ENCODING value: unknown encoding '{raw_value}'. "
            "Use a codec name such as utf-8 or latin-1."
        ) from error


def _parse_log_level(raw_value: str) -> str:
    level = raw_value.strip().lower()
    if level not in SUPPORTED_LOG_LEVELS:
        supported_rows = ", ".join(SUPPORTED_LOG_LEVELS)
        raise CsvSqlConfigError(
            f"Invalid CSVSQL_LOG_LEVEL value '{raw_value}'. Use one of: {supported_rows}."
        )
    return level
