"""Unit tests for the transactional SQL sink."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import duckdb
import pytest

from core.errors import CsvSqlStoreError
from store.sql_sink import (
    DUCKDB_BACKEND,
    SQLITE_BACKEND,
    SqlSink,
    build_insert_sql,
    open_sink,
    quote_identifier,
)


def _sqlite_count(database: Path, table: str) -> int:
    connection = sqlite3.connect(database)
    try:
        return connection.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
    finally:
        connection.close()


def test_build_insert_sql_uses_one_placeholder_per_column() -> None:
    """Insert SQL should carry exactly one positional placeholder per column."""
    assert build_insert_sql("people", 3) == 'INSERT INTO "people" VALUES(?, ?, ?)'


def test_quote_identifier_doubles_embedded_quotes() -> None:
    """Identifiers should be quoted with embedded quotes doubled."""
    assert quote_identifier('we"ird') == '"we""ird"'


def test_open_sink_picks_backend_from_suffix(tmp_path: Path) -> None:
    """SQLite should be the default and .duckdb should select DuckDB."""
    with open_sink(tmp_path / "a.db") as sqlite_sink, open_sink(tmp_path / "b.duckdb") as duck_sink:
        backends = (sqlite_sink.backend, duck_sink.backend)

    assert backends == (SQLITE_BACKEND, DUCKDB_BACKEND)


def test_prepare_insert_raises_for_missing_table(tmp_path: Path) -> None:
    """Preparing against a missing table should raise a store error."""
    with open_sink(tmp_path / "a.db") as sink:
        with pytest.raises(CsvSqlStoreError):
            sink.prepare_insert("missing", 2)

        assert sink.commit_count == 0


def test_prepare_insert_raises_for_column_count_mismatch(tmp_path: Path) -> None:
    """A table narrower or wider than the header should be rejected."""
    with open_sink(tmp_path / "a.db") as sink:
        sink.create_text_table("t", ["a", "b"])

        with pytest.raises(CsvSqlStoreError, match="2 columns"):
            sink.prepare_insert("t", 3)

        assert sink.backend == SQLITE_BACKEND


def test_rows_are_visible_only_after_commit(tmp_path: Path) -> None:
    """Executed batches should stay invisible to other connections until commit."""
    database = tmp_path / "a.db"
    with open_sink(database) as sink:
        sink.create_text_table("t", ["a", "b"])
        statement = sink.prepare_insert("t", 2)
        statement.add_batch(["1", None])
        statement.add_batch(["2", "x"])

        executed = statement.execute_batch()
        before_commit = _sqlite_count(database, "t")
        sink.commit()

    assert (executed, before_commit) == (2, 0)
    assert _sqlite_count(database, "t") == 2


def test_close_discards_uncommitted_batch(tmp_path: Path) -> None:
    """Closing the sink should roll back an executed but uncommitted batch."""
    database = tmp_path / "a.db"
    with open_sink(database) as sink:
        sink.create_text_table("t", ["a"])
        statement = sink.prepare_insert("t", 1)
        statement.add_batch(["kept"])
        statement.execute_batch()
        sink.commit()
        statement.add_batch(["lost"])
        statement.execute_batch()

    assert _sqlite_count(database, "t") == 1


def test_add_batch_rejects_wrong_width(tmp_path: Path) -> None:
    """Rows must match the prepared column count."""
    with open_sink(tmp_path / "a.db") as sink:
        sink.create_text_table("t", ["a", "b"])
        statement = sink.prepare_insert("t", 2)

        with pytest.raises(CsvSqlStoreError):
            statement.add_batch(["only-one"])

        assert statement.pending == 0


def test_closed_statement_rejects_rows(tmp_path: Path) -> None:
    """A closed statement should refuse new rows."""
    with open_sink(tmp_path / "a.db") as sink:
        sink.create_text_table("t", ["a"])
        statement = sink.prepare_insert("t", 1)
        statement.close()
        statement.close()

        with pytest.raises(CsvSqlStoreError):
            statement.add_batch(["x"])

        assert statement.pending == 0


def test_close_is_idempotent(tmp_path: Path) -> None:
    """Closing twice should be safe, and a closed sink should refuse work."""
    sink = open_sink(tmp_path / "a.db")

    sink.close()
    sink.close()

    with pytest.raises(CsvSqlStoreError):
        sink.prepare_insert("t", 1)
    assert sink.database.endswith("a.db")


def test_open_sink_raises_for_missing_directory(tmp_path: Path) -> None:
    """An unreachable database path should raise a store error."""
    with pytest.raises(CsvSqlStoreError):
        open_sink(tmp_path / "missing" / "a.db")

    assert (tmp_path / "missing").exists() is False


def test_duckdb_sink_commits_batches(tmp_path: Path) -> None:
    """The DuckDB backend should insert and commit with NULL binding."""
    database = tmp_path / "a.duckdb"
    with open_sink(database) as sink:
        sink.create_text_table("t", ["a", "b"])
        statement = sink.prepare_insert("t", 2)
        statement.add_batch(["1", None])
        statement.execute_batch()
        sink.commit()
        commit_count = sink.commit_count

    connection = duckdb.connect(str(database))
    try:
        rows = connection.execute('SELECT * FROM "t"').fetchall()
    finally:
        connection.close()
    assert commit_count == 1
    assert rows == [("1", None)]


class _FailingConnection:
    """Connection double whose rollback and close both fail."""

    def __init__(self) -> None:
        self.closed = False

    def execute(self, sql: str) -> None:
        if sql == "ROLLBACK":
            raise sqlite3.OperationalError("rollback failed")

    def executemany(self, sql: str, rows: list[tuple[object, ...]]) -> None:
        return None

    def close(self) -> None:
        self.closed = True
        raise sqlite3.OperationalError("close failed")


def test_execute_many_opens_transaction_until_commit(tmp_path: Path) -> None:
    """Direct batch execution should stay uncommitted until commit."""
    database = tmp_path / "a.db"
    with open_sink(database) as sink:
        sink.create_text_table("t", ["a"])
        sink.execute_many('INSERT INTO "t" VALUES(?)', [("x",), (None,)])
        before_commit = _sqlite_count(database, "t")
        sink.commit()

    assert before_commit == 0
    assert _sqlite_count(database, "t") == 2


def test_close_raises_rollback_error_when_close_also_fails() -> None:
    """A failing rollback should not be replaced by a later close failure."""
    connection = _FailingConnection()
    sink = SqlSink(connection, SQLITE_BACKEND, "fake.db", (sqlite3.Error,))
    sink.execute_many('INSERT INTO "t" VALUES(?)', [("x",)])

    with pytest.raises(CsvSqlStoreError, match="rollback failed"):
        sink.close()

    assert connection.closed is True
    sink.close()
