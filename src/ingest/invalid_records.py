"""Side file for records diverted from a load.

The file is created on the first diverted record only, so clean loads
leave no empty artifacts behind.
"""

from __future__ import annotations

from pathlib import Path
from typing import TextIO

from core.constants import CSV_EXTENSION, DEFAULT_ENCODING, INVALID_RECORDS_SUFFIX
from core.errors import CsvSqlIngestError


def invalid_records_path(source: str | Path) -> Path:
    """Derive the invalid-record file path for a CSV source.

    ``data/people.csv`` maps to ``data/people-invalid.csv``; a source
    without the ``.csv`` extension keeps its full name as the prefix.
    """
    source_text = str(source)
    if source_text.endswith(CSV_EXTENSION):
        source_text = source_text[: -len(CSV_EXTENSION)]
    return Path(source_text + INVALID_RECORDS_SUFFIX)


class InvalidRecordSink:
    """Lazily created writer for raw invalid records."""

    def __init__(self, path: Path, encoding: str = DEFAULT_ENCODING) -> None:
        self._path = path
        self._encoding = encoding
        self._stream: TextIO | None = None
        self._created = False
        self._count = 0

    @property
    def path(self) -> Path:
        """Return the target file path."""
        return self._path

    @property
    def created(self) -> bool:
        """Return whether the file has been created."""
        return self._created

    @property
    def count(self) -> int:
        """Return the number of records written."""
        return self._count

    def write(self, record: str) -> None:
        """Append one raw record followed by a newline.

        Raises:
            CsvSqlIngestError: If the file cannot be created or written.
        """
        try:
            if self._stream is None:
                if self._created:
                    raise CsvSqlIngestError(
                        f"Invalid-record file {self._path} is already closed."
                    )
                self._stream = self._path.open("w", encoding=self._encoding, newline="")
                self._created = True
            self._stream.write(record)
            self._stream.write("\n")
        except OSError as error:
            raise CsvSqlIngestError(
                f"Failed to write invalid-record file {self._path}: {error}. "
                "Check the directory exists and is writable."
            ) from error
        self._count += 1

    def close(self) -> None:
        """Flush and close the file if it was created; idempotent."""
        stream = self._stream
        self._stream = None
        if stream is None:
            return
        try:
            stream.close()
        except OSError as error:
            raise CsvSqlIngestError(
                f"Failed to close invalid-record file {self._path}: {error}."
            ) from error
