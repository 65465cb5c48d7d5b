"""Unit tests for CLI command handling."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from cli.main import main
from tests.fixture_paths import fixture_path


def test_cli_prints_summary_for_successful_load(tmp_path, capsys) -> None:
    """CLI should load the file and print total/valid/invalid counts."""
    source = tmp_path / "mixed.csv"
    source.write_text(fixture_path("mixed_widths.csv").read_text(encoding="utf-8"), encoding="utf-8")
    database = tmp_path / "out.db"

    exit_code = main([str(source), str(database), "mixed", "--create-table", "--batch-size", "1"])
    output = capsys.readouterr().out.strip().splitlines()

    assert exit_code == 0
    assert output == [
        "Total records in CSV file: 3",
        "Valid records in CSV file: 2",
        "Invalid records in CSV file: 1",
        f"Invalid CSV records saved to: {tmp_path / 'mixed-invalid.csv'}",
    ]


def test_cli_omits_invalid_path_for_clean_file(tmp_path, capsys) -> None:
    """The invalid-file line should only appear when the file was created."""
    source = tmp_path / "clean.csv"
    source.write_text("a,b\n1,2\n", encoding="utf-8")
    database = tmp_path / "out.db"
    connection = sqlite3.connect(database)
    connection.execute("CREATE TABLE t (a TEXT, b TEXT)")
    connection.commit()
    connection.close()

    exit_code = main([str(source), str(database), "t"])
    output = capsys.readouterr().out

    assert exit_code == 0
    assert "Invalid CSV records saved to" not in output


def test_cli_exits_with_usage_for_wrong_argument_count(capsys) -> None:
    """Missing positional arguments should print usage and exit non-zero."""
    with pytest.raises(SystemExit) as exit_info:
        main(["only-source.csv"])

    assert exit_info.value.code != 0
    assert "usage:" in capsys.readouterr().err


def test_cli_reports_missing_table_as_error(tmp_path: Path, capsys) -> None:
    """A missing table should fail with exit code 1 and an error line."""
    source = tmp_path / "data.csv"
    source.write_text("a,b\n1,2\n", encoding="utf-8")

    exit_code = main([str(source), str(tmp_path / "out.db"), "missing"])
    captured = capsys.readouterr()

    assert exit_code == 1
    assert "error:" in captured.err and captured.out == ""


def test_cli_rejects_non_positive_batch_size(tmp_path: Path, capsys) -> None:
    """A zero batch size should fail before the database is created."""
    database = tmp_path / "out.db"

    exit_code = main(["in.csv", str(database), "t", "--batch-size", "0"])

    assert exit_code == 1 and database.exists() is False
    assert "Batch size" in capsys.readouterr().err
