"""Field splitting for raw CSV records.

This module turns one raw record into an ordered field list. Bare
delimiters produce the absent marker ``None``; quoted fields are
stripped of their quotes and doubled quotes are collapsed.
"""

from __future__ import annotations

from core.constants import FIELD_DELIMITER, QUOTE_CHAR
from core.types import FieldList

_ESCAPED_QUOTE = QUOTE_CHAR * 2


def parse_record(record: str) -> FieldList:
    """Split one raw record into field values.

    A delimiter or closing quote that ends the record emits one extra
    trailing ``None`` field, so ``"a,"`` parses to ``["a", None]`` and
    ``","`` parses to ``[None, None]``. Column counts downstream depend
    on this exact behaviour.

    Args:
        record: Raw record as returned by the scanner.

    Returns:
        Field values in record order; empty for an empty record.
    """
    values: FieldList = []
    length = len(record)
    if length == 0:
        return values
    start = 0
    while True:
        char = record[start]
        if char == FIELD_DELIMITER:
            values.append(None)
            if start + 1 == length:
                values.append(None)
                return values
            start += 1
        elif char == QUOTE_CHAR:
            end = _find_closing_quote(record, start + 1)
            if end < 0:
                values.append(_unescape(record[start + 1 :]))
                return values
            values.append(_unescape(record[start + 1 : end]))
            if end + 1 == length:
                return values
            if end + 2 == length:
                values.append(None)
                return values
            # Skip the closing quote and the delimiter that follows it.
            start = end + 2
        else:
            end = record.find(FIELD_DELIMITER, start + 1)
            if end < 0:
                values.append(record[start:])
                return values
            values.append(record[start:end])
            if end + 1 == length:
                values.append(None)
                return values
            start = end + 1


def count_fields(record: str) -> int:
    """Return the number of fields ``parse_record`` produces for a record."""
    return len(parse_record(record))


def quote_field(value: str) -> str:
    """Quote a value and double its embedded quotes.

    ``parse_record(quote_field(value)) == [value]`` for every string value.
    """
    return QUOTE_CHAR + value.replace(QUOTE_CHAR, _ESCAPED_QUOTE) + QUOTE_CHAR


def _find_closing_quote(record: str, body_start: int) -> int:
    """Return the index of the quote closing a field body, or -1."""
    position = body_start
    length = len(record)
    while True:
        position = record.find(QUOTE_CHAR, position)
        if position < 0:
            return -1
        if position + 1 < length and record[position + 1] == QUOTE_CHAR:
            position += 2
            continue
        return position


def _unescape(body: str) -> str:
    if _ESCAPED_QUOTE not in body:
        return body
    return body.replace(_ESCAPED_QUOTE, QUOTE_CHAR)
