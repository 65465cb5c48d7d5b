"""Header-validated batch loading of CSV records into SQL tables.

This module consumes scanner and parser output, checks each record
against the header column count, and commits valid rows in batches.
Records with a different field count go to an invalid-record file
instead of failing the load.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, TextIO

from core.config import CsvSqlConfig, validate_batch_size
from core.constants import DEFAULT_BATCH_SIZE, DEFAULT_ENCODING, GENERATED_COLUMN_PREFIX
from core.errors import CsvSqlConfigError, CsvSqlError, CsvSqlIngestError
from core.logging_config import get_logger
from core.types import Header, LoadOptions, LoadSummary
from ingest.field_parser import parse_record
from ingest.invalid_records import InvalidRecordSink, invalid_records_path
from ingest.record_scanner import RecordScanner
from store.sql_sink import PreparedInsert, open_sink

_LOGGER = get_logger(__name__)


@dataclass
class _LoadCounts:
    """Mutable counters for one load."""

    valid: int = 0
    invalid: int = 0
    batches_committed: int = 0
    blank_skipped: int = 0
    unterminated_quote: bool = False


class BatchLoader:
    """Load CSV sources into a SQL sink with batched commits.

    The first record is the header; its field count is the expected
    column count for every following record. Rows are never padded or
    truncated to fit.
    """

    def __init__(
        self,
        sink: Any,
        batch_size: int = DEFAULT_BATCH_SIZE,
        encoding: str = DEFAULT_ENCODING,
        create_table: bool = False,
    ) -> None:
        """Initialize loader.

        Args:
            sink: Target exposing ``prepare_insert``, ``commit`` and
                ``create_text_table``, such as ``store.sql_sink.SqlSink``.
            batch_size: Inserts executed and committed together.
            encoding: Encoding for source paths and the invalid-record file.
            create_table: Create a TEXT table from the header when missing.

        Raises:
            CsvSqlConfigError: If batch size is not positive.
        """
        validate_batch_size(batch_size)
        self._sink = sink
        self._batch_size = batch_size
        self._encoding = encoding
        self._create_table = create_table

    def load(
        self,
        source: str | Path | TextIO,
        table: str,
        invalid_path: str | Path | None = None,
    ) -> LoadSummary:
        """Load one CSV source into a table.

        Args:
            source: CSV path or open text stream.
            table: Target table name.
            invalid_path: Optional invalid-record file path; derived from
                the source path when omitted.

        Returns:
            Summary of the load.

        Raises:
            CsvSqlConfigError: If no invalid-record path can be derived.
            CsvSqlIngestError: If the source or invalid-record file fails.
            CsvSqlStoreError: If preparing, executing, or committing fails.
        """
        scanner = RecordScanner.open(source, encoding=self._encoding)
        invalid_sink = InvalidRecordSink(
            _resolve_invalid_path(scanner, invalid_path), encoding=self._encoding
        )
        source_name = scanner.name or "<stream>"
        _LOGGER.info(
            "load_started",
            source=source_name,
            table=table,
            batch_size=self._batch_size,
        )
        statement: PreparedInsert | None = None
        completed = False
        try:
            header = _read_header(scanner, source_name)
            if self._create_table:
                self._sink.create_text_table(table, header_column_names(header))
            statement = self._sink.prepare_insert(table, len(header))
            counts = self._load_records(scanner, statement, invalid_sink, len(header))
            completed = True
        finally:
            _release_resources(scanner, invalid_sink, statement, raise_errors=completed)
        summary = LoadSummary(
            source=source_name,
            table=table,
            valid=counts.valid,
            invalid=counts.invalid,
            invalid_path=str(invalid_sink.path) if invalid_sink.created else None,
            batches_committed=counts.batches_committed,
            blank_skipped=counts.blank_skipped,
            unterminated_quote=counts.unterminated_quote,
        )
        _log_load_completion(summary)
        return summary

    def _load_records(
        self,
        scanner: RecordScanner,
        statement: PreparedInsert,
        invalid_sink: InvalidRecordSink,
        column_count: int,
    ) -> _LoadCounts:
        counts = _LoadCounts()
        for record in scanner:
            if scanner.last_record_unterminated:
                counts.unterminated_quote = True
                _LOGGER.warning(
                    "unterminated_quote_at_eof",
                    source=scanner.name,
                    record_length=len(record),
                )
                _divert(invalid_sink, record, counts)
                continue
            if record == "":
                counts.blank_skipped += 1
                continue
            values = parse_record(record)
            if len(values) != column_count:
                _divert(invalid_sink, record, counts)
                continue
            statement.add_batch(values)
            counts.valid += 1
            if statement.pending == self._batch_size:
                self._commit_batch(statement, counts)
        if statement.pending > 0:
            self._commit_batch(statement, counts)
        return counts

    def _commit_batch(self, statement: PreparedInsert, counts: _LoadCounts) -> None:
        row_count = statement.execute_batch()
        self._sink.commit()
        counts.batches_committed += 1
        _LOGGER.debug(
            "batch_committed",
            rows=row_count,
            batches_committed=counts.batches_committed,
            valid=counts.valid,
        )


def load_csv(
    source: str | Path | TextIO,
    sink: Any,
    table: str,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> LoadSummary:
    """Load a CSV source into ``table`` through ``sink``.

    Args:
        source: CSV path or open text stream.
        sink: Target SQL sink.
        table: Target table name.
        batch_size: Inserts executed and committed together.

    Returns:
        Summary of the load.
    """
    return BatchLoader(sink, batch_size=batch_size).load(source, table)


def run_load(options: LoadOptions, config: CsvSqlConfig) -> LoadSummary:
    """Open the target database, run one load, and close the database.

    Args:
        options: Load request options.
        config: Runtime configuration.

    Returns:
        Summary of the load.
    """
    validate_batch_size(options.batch_size)
    with open_sink(options.database) as sink:
        loader = BatchLoader(
            sink,
            batch_size=options.batch_size,
            encoding=config.encoding,
            create_table=options.create_table,
        )
        return loader.load(options.source, options.table, invalid_path=options.invalid_path)


def header_column_names(header: Header) -> list[str]:
    """Derive unique column names from header values.

    Absent or blank names become ``column_<n>`` with a one-based
    position; repeated names get a numeric suffix.
    """
    names: list[str] = []
    seen: set[str] = set()
    for position, value in enumerate(header, 1):
        base_name = (value or "").strip() or f"{GENERATED_COLUMN_PREFIX}{position}"
        name = base_name
        suffix = 2
        while name.lower() in seen:
            name = f"{base_name}_{suffix}"
            suffix += 1
        seen.add(name.lower())
        names.append(name)
    return names


def _read_header(scanner: RecordScanner, source_name: str) -> Header:
    if not scanner.has_next():
        raise CsvSqlIngestError(
            f"CSV source {source_name} is empty. A header record is required."
        )
    header = tuple(parse_record(scanner.next_record()))
    if scanner.last_record_unterminated:
        _LOGGER.warning("unterminated_quote_at_eof", source=source_name, record="header")
        raise CsvSqlIngestError(
            f"CSV source {source_name} has an unterminated quote in its header record, "
            "so the whole file was read as the header. Close the quoted header field."
        )
    if not header:
        raise CsvSqlIngestError(
            f"CSV source {source_name} starts with an empty header record. "
            "Put the column header on the first line."
        )
    _LOGGER.info("header_read", source=source_name, column_count=len(header))
    return header


def _divert(invalid_sink: InvalidRecordSink, record: str, counts: _LoadCounts) -> None:
    invalid_sink.write(record)
    counts.invalid += 1
    _LOGGER.debug("invalid_record_diverted", invalid_count=counts.invalid)


def _resolve_invalid_path(scanner: RecordScanner, invalid_path: str | Path | None) -> Path:
    if invalid_path is not None:
        return Path(invalid_path)
    if scanner.name is None:
        scanner.close()
        raise CsvSqlConfigError(
            "Cannot derive an invalid-record file path for an unnamed stream. "
            "Pass invalid_path explicitly."
        )
    return invalid_records_path(scanner.name)


def _release_resources(
    scanner: RecordScanner,
    invalid_sink: InvalidRecordSink,
    statement: PreparedInsert | None,
    raise_errors: bool,
) -> None:
    """Release scanner, invalid-record file, and statement in that order.

    Every release is attempted. Failures are logged; the first one is
    raised only when no other error is already propagating.
    """
    failures: list[Exception] = []
    releases = [("scanner", scanner.close), ("invalid_records", invalid_sink.close)]
    if statement is not None:
        releases.append(("statement", statement.close))
    for resource, close in releases:
        try:
            close()
        except (CsvSqlError, OSError) as error:
            _LOGGER.error("resource_release_failed", resource=resource, error=str(error))
            failures.append(error)
    if failures and raise_errors:
        raise failures[0]


def _log_load_completion(summary: LoadSummary) -> None:
    _LOGGER.info(
        "load_completed",
        source=summary.source,
        table=summary.table,
        total=summary.total,
        valid=summary.valid,
        invalid=summary.invalid,
        invalid_path=summary.invalid_path,
        batches_committed=summary.batches_committed,
        blank_skipped=summary.blank_skipped,
        unterminated_quote=summary.unterminated_quote,
    )
