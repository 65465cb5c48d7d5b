"""Shared typed models.

This module defines the value types passed between the scanner,
parser, loader, and CLI layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from core.constants import DEFAULT_BATCH_SIZE

# ``None`` is the absent marker emitted for bare delimiters; ``""`` is an
# explicit empty value and only comes from a quoted empty field.
FieldValue = Optional[str]
FieldList = list[FieldValue]
Header = tuple[FieldValue, ...]


@dataclass(frozen=True)
class LoadOptions:
    """Options for one CSV-to-table load.

    Attributes:
        source: Path of the CSV file to read.
        database: Path of the SQLite or DuckDB database.
        table: Target table name.
        batch_size: Number of inserts per committed batch.
        create_table: Create a TEXT table from the header when missing.
        invalid_path: Optional override for the invalid-record file path.
    """

    source: str
    database: str
    table: str
    batch_size: int = DEFAULT_BATCH_SIZE
    create_table: bool = False
    invalid_path: str | None = None


@dataclass(frozen=True)
class LoadSummary:
    """Outcome of one load.

    Attributes:
        source: Source path or stream name.
        table: Target table name.
        total: Valid plus invalid records, header and blank records excluded.
        valid: Records inserted into the table.
        invalid: Records diverted to the invalid-record file.
        invalid_path: Invalid-record file path, only when it was created.
        batches_committed: Number of committed insert batches.
        blank_skipped: Number of empty records skipped.
        unterminated_quote: Whether input ended inside a quoted field.
    """

    source: str
    table: str
    valid: int
    invalid: int
    invalid_path: str | None = None
    batches_committed: int = 0
    blank_skipped: int = 0
    unterminated_quote: bool = False

    @property
    def total(self) -> int:
        """Return the number of classified data records."""
        return self.valid + self.invalid

    def render(self) -> str:
        """Render the human-readable summary printed by the CLI."""
        lines = [
            f"Total records in CSV file: {self.total}",
            f"Valid records in CSV file: {self.valid}",
            f"Invalid records in CSV file: {self.invalid}",
        ]
        if self.invalid_path is not None:
            lines.append(f"Invalid CSV records saved to: {self.invalid_path}")
        return "\n".join(lines)
