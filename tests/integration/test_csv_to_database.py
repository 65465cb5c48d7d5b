"""Integration tests for end-to-end CSV loads."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import duckdb

from core.config import CsvSqlConfig
from core.types import LoadOptions
from ingest.batch_loader import run_load
from tests.fixture_paths import fixture_path


def test_people_fixture_loads_into_sqlite(tmp_path: Path) -> None:
    """Quoted, multi-line, blank and short rows should load as specified."""
    options = LoadOptions(
        source=str(fixture_path("people.csv")),
        database=str(tmp_path / "people.db"),
        table="people",
        batch_size=2,
        create_table=True,
        invalid_path=str(tmp_path / "people-invalid.csv"),
    )

    summary = run_load(options, CsvSqlConfig.from_env())

    connection = sqlite3.connect(tmp_path / "people.db")
    try:
        rows = connection.execute('SELECT id, name, notes FROM "people" ORDER BY rowid').fetchall()
    finally:
        connection.close()
    assert (summary.total, summary.valid, summary.invalid, summary.batches_committed) == (5, 4, 1, 2)
    assert rows == [
        ("1", "Ada", 'likes "maths", chess'),
        ("2", "Grace", "line one\nline two"),
        ("3", "Linus", None),
        ("5", "Barbara", "plain"),
    ]
    assert (tmp_path / "people-invalid.csv").read_text(encoding="utf-8") == "4,Alan\n"


def test_mixed_widths_fixture_loads_into_duckdb(tmp_path: Path) -> None:
    """The DuckDB backend should give the same routing as SQLite."""
    options = LoadOptions(
        source=str(fixture_path("mixed_widths.csv")),
        database=str(tmp_path / "mixed.duckdb"),
        table="mixed",
        create_table=True,
        invalid_path=str(tmp_path / "mixed-invalid.csv"),
    )

    summary = run_load(options, CsvSqlConfig.from_env())

    connection = duckdb.connect(str(tmp_path / "mixed.duckdb"))
    try:
        rows = connection.execute('SELECT * FROM "mixed" ORDER BY a').fetchall()
    finally:
        connection.close()
    assert (summary.total, summary.valid, summary.invalid) == (3, 2, 1)
    assert rows == [("1", "2", "3"), ("4", "5", "6")]


def test_quoted_delimiter_and_escaped_quote_load_into_sqlite(tmp_path: Path) -> None:
    """Quoted delimiters and doubled quotes should load as single values."""
    source = tmp_path / "quoted.csv"
    source.write_text('a,"b,c"\nx,"y""z"\n', encoding="utf-8")
    options = LoadOptions(
        source=str(source),
        database=str(tmp_path / "quoted.db"),
        table="quoted",
        create_table=True,
    )

    summary = run_load(options, CsvSqlConfig.from_env())

    connection = sqlite3.connect(tmp_path / "quoted.db")
    try:
        columns = [row[1] for row in connection.execute('PRAGMA table_info("quoted")')]
        rows = connection.execute('SELECT * FROM "quoted"').fetchall()
    finally:
        connection.close()
    assert columns == ["a", "b,c"]
    assert rows == [("x", 'y"z')]
    assert (summary.valid, summary.invalid_path) == (1, None)
    assert (tmp_path / "quoted-invalid.csv").exists() is False
