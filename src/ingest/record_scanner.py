"""Quote-aware record boundary scanner.

This module splits a character stream into raw CSV records.
Quoted spans may hold delimiters and line breaks, so record ends are
found with a character-level state machine instead of line reads.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, TextIO

from core.constants import CARRIAGE_RETURN, DEFAULT_ENCODING, QUOTE_CHAR, RECORD_TERMINATOR
from core.errors import CsvSqlExhaustedError, CsvSqlIngestError


class RecordScanner:
    """Lazy iterator over the raw records of a CSV stream.

    The scanner reads ahead at most one record. It is restartable only by
    opening a new scanner over the source.

    Example:
        with RecordScanner.open("people.csv") as scanner:
            for record in scanner:
                values = parse_record(record)
    """

    def __init__(self, stream: TextIO, name: str | None = None) -> None:
        """Wrap an open text stream.

        Args:
            stream: Text stream; ownership moves to the scanner.
            name: Optional display name used in errors and logs.
        """
        self._stream: TextIO | None = stream
        self._name = name if name is not None else _stream_name(stream)
        self._buffer: list[str] = []
        self._next_record: str | None = None
        self._next_unterminated = False
        self._last_unterminated = False
        self._exhausted = False

    @classmethod
    def open(cls, source: str | Path | TextIO, encoding: str = DEFAULT_ENCODING) -> "RecordScanner":
        """Open a scanner over a path or text stream.

        Args:
            source: CSV path or already open text stream.
            encoding: Encoding used when source is a path.

        Returns:
            Scanner positioned before the first record.

        Raises:
            CsvSqlIngestError: If the source path cannot be opened.
        """
        if not isinstance(source, (str, Path)):
            return cls(source)
        source_path = Path(source)
        try:
            stream = source_path.open("r", encoding=encoding, newline="")
        except OSError as error:
            raise CsvSqlIngestError(
                f"Failed to open CSV source {source_path}: {error.strerror or error}. "
                "Provide an existing readable file."
            ) from error
        return cls(stream, name=str(source_path))

    @property
    def name(self) -> str | None:
        """Return the source display name when known."""
        return self._name

    @property
    def last_record_unterminated(self) -> bool:
        """Return whether the last returned record ended inside quotes."""
        return self._last_unterminated

    def has_next(self) -> bool:
        """Return whether another record is available.

        Reads ahead once per record; repeated calls reuse the cached answer.

        Raises:
            CsvSqlIngestError: If reading the stream fails.
        """
        if self._next_record is not None:
            return True
        if self._exhausted or self._stream is None:
            return False
        self._next_record = self._read_record()
        if self._next_record is None:
            self._exhausted = True
            return False
        return True

    def next_record(self) -> str:
        """Return and consume the next raw record.

        Raises:
            CsvSqlExhaustedError: If no records remain.
        """
        if not self.has_next():
            raise CsvSqlExhaustedError(
                f"No more records in {self._name or 'CSV stream'}. "
                "Check has_next() before requesting a record."
            )
        record = self._next_record
        self._next_record = None
        self._last_unterminated = self._next_unterminated
        self._next_unterminated = False
        return record  # type: ignore[return-value]

    def close(self) -> None:
        """Release the underlying stream; safe to call repeatedly."""
        stream = self._stream
        self._stream = None
        self._next_record = None
        self._exhausted = True
        if stream is not None:
            stream.close()

    def __iter__(self) -> Iterator[str]:
        return self

    def __next__(self) -> str:
        if not self.has_next():
            raise StopIteration
        return self.next_record()

    def __enter__(self) -> "RecordScanner":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _read_record(self) -> str | None:
        """Read one record, or return None at end of stream."""
        read = self._read_char
        char = read()
        if not char:
            return None
        buffer = self._buffer
        buffer.clear()
        while char and char != RECORD_TERMINATOR:
            if char == CARRIAGE_RETURN:
                char = read()
            elif char == QUOTE_CHAR:
                buffer.append(char)
                char = self._read_quoted_span(buffer)
            else:
                buffer.append(char)
                char = read()
        return "".join(buffer)

    def _read_quoted_span(self, buffer: list[str]) -> str:
        """Consume a quoted span and return the first character after it.

        The opening quote is already in the buffer. A doubled quote keeps the
        span open; any other character after a quote closes it and is returned
        so the caller processes it next.
        """
        read = self._read_char
        char = read()
        while char:
            buffer.append(char)
            if char == QUOTE_CHAR:
                char = read()
                if char != QUOTE_CHAR:
                    return char
                buffer.append(char)
            char = read()
        self._next_unterminated = True
        return char

    def _read_char(self) -> str:
        if self._stream is None:
            return ""
        try:
            return self._stream.read(1)
        except (OSError, UnicodeDecodeError) as error:
            raise CsvSqlIngestError(
                f"Failed to read CSV source {self._name or '<stream>'}: {error}. "
                "Check the file is readable and matches the configured encoding."
            ) from error


def open_scanner(source: str | Path | TextIO, encoding: str = DEFAULT_ENCODING) -> RecordScanner:
    """Open a record scanner over a path or text stream."""
    return RecordScanner.open(source, encoding=encoding)


def _stream_name(stream: TextIO) -> str | None:
    name = getattr(stream, "name", None)
    return name if isinstance(name, str) else None
