"""Transactional SQL sink for batched inserts.

This module wraps a SQLite or DuckDB connection behind one small
prepare / add-batch / execute-batch / commit surface. Transactions are
explicit so each committed batch is durable on its own.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Sequence

from core.constants import DUCKDB_EXTENSIONS
from core.errors import CsvSqlDependencyError, CsvSqlStoreError
from core.logging_config import get_logger
from core.types import FieldValue

_LOGGER = get_logger(__name__)

SQLITE_BACKEND = "sqlite"
DUCKDB_BACKEND = "duckdb"


def open_sink(database: str | Path) -> "SqlSink":
    """Open a sink for a database file, picking the backend by suffix.

    Args:
        database: SQLite path, or a ``.duckdb``/``.ddb`` path for DuckDB.

    Returns:
        Connected sink.

    Raises:
        CsvSqlStoreError: If the connection cannot be opened.
        CsvSqlDependencyError: If DuckDB is requested but not installed.
    """
    database_path = Path(database).expanduser()
    if database_path.suffix.lower() in DUCKDB_EXTENSIONS:
        return _open_duckdb_sink(database_path)
    return _open_sqlite_sink(database_path)


def quote_identifier(name: str) -> str:
    """Quote a SQL identifier, doubling embedded quotes."""
    return '"' + name.replace('"', '""') + '"'


def build_insert_sql(table: str, column_count: int) -> str:
    """Build the positional insert statement for a table."""
    placeholders = ", ".join("?" for _ in range(column_count))
    return f"INSERT INTO {quote_identifier(table)} VALUES({placeholders})"


class SqlSink:
    """Connection wrapper owning the load transaction.

    Autocommit is disabled at the driver level; ``execute_batch`` opens a
    transaction on demand and ``commit`` ends it.
    """

    def __init__(
        self,
        connection: Any,
        backend: str,
        database: str,
        driver_errors: tuple[type[BaseException], ...],
    ) -> None:
        self._connection: Any = connection
        self._backend = backend
        self._database = database
        self._driver_errors = driver_errors
        self._in_transaction = False
        self._commit_count = 0

    @property
    def backend(self) -> str:
        """Return the backend name, ``sqlite`` or ``duckdb``."""
        return self._backend

    @property
    def database(self) -> str:
        """Return the database path."""
        return self._database

    @property
    def commit_count(self) -> int:
        """Return the number of transactions committed so far."""
        return self._commit_count

    def prepare_insert(self, table: str, column_count: int) -> "PreparedInsert":
        """Prepare a positional insert after validating the target table.

        Args:
            table: Target table name.
            column_count: Number of values per row.

        Returns:
            Prepared insert statement bound to this sink.

        Raises:
            CsvSqlStoreError: If the table is missing or its width differs.
        """
        cursor = self._execute(
            f"SELECT * FROM {quote_identifier(table)} LIMIT 0",
            f"prepare insert into table '{table}'",
        )
        table_width = len(cursor.description or ())
        if table_width != column_count:
            raise CsvSqlStoreError(
                f"Cannot prepare insert into table '{table}' in {self._database}: "
                f"table has {table_width} columns but the CSV header has {column_count}. "
                "Align the table definition with the header."
            )
        return PreparedInsert(self, build_insert_sql(table, column_count), column_count)

    def create_text_table(self, table: str, column_names: Sequence[str]) -> None:
        """Create a table of TEXT columns when it does not exist yet."""
        columns = ", ".join(f"{quote_identifier(name)} TEXT" for name in column_names)
        self._execute(
            f"CREATE TABLE IF NOT EXISTS {quote_identifier(table)} ({columns})",
            f"create table '{table}'",
        )
        _LOGGER.info(
            "table_ensured",
            database=self._database,
            table=table,
            column_count=len(column_names),
        )

    def commit(self) -> None:
        """Commit the open transaction, if any.

        Raises:
            CsvSqlStoreError: If the commit fails.
        """
        if not self._in_transaction:
            return
        self._execute("COMMIT", "commit transaction")
        self._in_transaction = False
        self._commit_count += 1

    def rollback(self) -> None:
        """Roll back the open transaction, if any."""
        if not self._in_transaction:
            return
        self._in_transaction = False
        self._execute("ROLLBACK", "roll back transaction")

    def close(self) -> None:
        """Roll back uncommitted work and close the connection; idempotent.

        A rollback failure takes precedence; a close failure after it is
        logged instead of raised.

        Raises:
            CsvSqlStoreError: If rolling back or closing fails.
        """
        connection = self._connection
        if connection is None:
            return
        rollback_error: CsvSqlStoreError | None = None
        try:
            self.rollback()
        except CsvSqlStoreError as error:
            rollback_error = error
        self._connection = None
        try:
            connection.close()
        except self._driver_errors as error:
            if rollback_error is None:
                raise CsvSqlStoreError(
                    f"Failed to close database {self._database}: {error}."
                ) from error
            _LOGGER.error("connection_close_failed", database=self._database, error=str(error))
        if rollback_error is not None:
            raise rollback_error

    def __enter__(self) -> "SqlSink":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def execute_many(self, sql: str, rows: list[tuple[FieldValue, ...]]) -> None:
        """Execute one insert batch, opening a transaction when none is active.

        Raises:
            CsvSqlStoreError: If the batch fails; the open transaction is rolled back.
        """
        if not self._in_transaction:
            self._execute("BEGIN TRANSACTION", "begin transaction")
            self._in_transaction = True
        try:
            self._require_connection().executemany(sql, rows)
        except self._driver_errors as error:
            self._rollback_after_failure()
            raise CsvSqlStoreError(
                f"Failed to execute insert batch of {len(rows)} rows in {self._database}: "
                f"{error}. Rows committed by earlier batches are kept."
            ) from error

    def _rollback_after_failure(self) -> None:
        try:
            self.rollback()
        except CsvSqlStoreError as error:
            _LOGGER.error("rollback_failed", database=self._database, error=str(error))

    def _execute(self, sql: str, action: str) -> Any:
        try:
            return self._require_connection().execute(sql)
        except self._driver_errors as error:
            raise CsvSqlStoreError(
                f"Failed to {action} in {self._database}: {error}."
            ) from error

    def _require_connection(self) -> Any:
        if self._connection is None:
            raise CsvSqlStoreError(f"Database connection to {self._database} is closed.")
        return self._connection


class PreparedInsert:
    """Positional insert statement accumulating rows into a batch."""

    def __init__(self, sink: SqlSink, sql: str, column_count: int) -> None:
        self._sink: SqlSink | None = sink
        self._sql = sql
        self._column_count = column_count
        self._rows: list[tuple[FieldValue, ...]] = []

    @property
    def sql(self) -> str:
        """Return the statement text."""
        return self._sql

    @property
    def pending(self) -> int:
        """Return the number of rows waiting in the batch."""
        return len(self._rows)

    def add_batch(self, values: Sequence[FieldValue]) -> None:
        """Bind one row of values and add it to the batch.

        ``None`` values bind as SQL NULL.

        Raises:
            CsvSqlStoreError: If the row width differs or the statement is closed.
        """
        if self._sink is None:
            raise CsvSqlStoreError("Cannot add rows to a closed insert statement.")
        if len(values) != self._column_count:
            raise CsvSqlStoreError(
                f"Insert expects {self._column_count} values, got {len(values)}."
            )
        self._rows.append(tuple(values))

    def execute_batch(self) -> int:
        """Execute all pending rows inside the sink transaction.

        Returns:
            Number of rows executed.
        """
        if self._sink is None:
            raise CsvSqlStoreError("Cannot execute a closed insert statement.")
        if not self._rows:
            return 0
        rows = self._rows
        self._rows = []
        self._sink.execute_many(self._sql, rows)
        return len(rows)

    def close(self) -> None:
        """Discard pending rows and detach from the sink; idempotent."""
        self._rows = []
        self._sink = None


def _open_sqlite_sink(database_path: Path) -> SqlSink:
    try:
        connection = sqlite3.connect(str(database_path), isolation_level=None)
    except sqlite3.Error as error:
        raise CsvSqlStoreError(
            f"Failed to open SQLite database {database_path}: {error}. "
            "Check the parent directory exists and is writable."
        ) from error
    return SqlSink(connection, SQLITE_BACKEND, str(database_path), (sqlite3.Error,))


def _open_duckdb_sink(database_path: Path) -> SqlSink:
    try:
        import duckdb
    except ImportError as error:
        raise CsvSqlDependencyError(
            "DuckDB databases require the duckdb package, but it is not installed. "
            "Install duckdb or use a SQLite database path."
        ) from error
    try:
        connection = duckdb.connect(str(database_path))
    except duckdb.Error as error:
        raise CsvSqlStoreError(
            f"Failed to open DuckDB database {database_path}: {error}. "
            "Check the path is writable and not locked by another process."
        ) from error
    return SqlSink(connection, DUCKDB_BACKEND, str(database_path), (duckdb.Error,))
