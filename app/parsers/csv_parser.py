"""
app/parsers/csv_parser.py

Permissive comma-separated text tokenizer used by the CSV ingestion path.

The parser never raises: malformed quoting is absorbed best-effort and an
unterminated quoted field simply runs to the end of the input. Row 0 of the
result is the header by convention; callers decide what to do with it.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

QUOTE = '"'
DELIMITER = ","
ROW_SEPARATOR = "\n"
_NEEDS_QUOTING = frozenset({QUOTE, DELIMITER, "\r", "\n"})


def parse_csv_text(text: str) -> list[list[str]]:
    """
    Split raw CSV text into rows of string cells.

    - ``,`` separates fields, ``\\n`` separates rows.
    - A double-quoted field may contain commas and newlines; ``""`` inside
      quotes is a literal quote.
    - ``\\r`` outside quotes is dropped.
    - Empty input yields no rows and one trailing newline adds no row.
    - A lone empty field is dropped only while no row has been accumulated
      yet (a leading blank line); later blank lines come back as ``[""]``.
    """

    rows: list[list[str]] = []
    row: list[str] = []
    field: list[str] = []
    in_quotes = False
    # True once the current row has consumed any input.
    pending = False

    index = 0
    length = len(text)
    while index < length:
        char = text[index]

        if in_quotes:
            if char == QUOTE:
                if index + 1 < length and text[index + 1] == QUOTE:
                    field.append(QUOTE)
                    index += 2
                    continue
                in_quotes = False
            else:
                field.append(char)
            index += 1
            continue

        if char == QUOTE:
            in_quotes = True
            pending = True
        elif char == DELIMITER:
            row.append("".join(field))
            field = []
            pending = True
        elif char == ROW_SEPARATOR:
            row.append("".join(field))
            field = []
            _append_row(rows, row)
            row = []
            pending = False
        elif char != "\r":
            field.append(char)
            pending = True
        index += 1

    if pending:
        row.append("".join(field))
        _append_row(rows, row)

    return rows


def _append_row(rows: list[list[str]], row: list[str]) -> None:
    if not rows and len(row) == 1 and row[0] == "":
        return
    rows.append(row)


def format_csv_text(rows: Iterable[Sequence[Any]]) -> str:
    """
    Serialize rows back to CSV text that ``parse_csv_text`` reads unchanged.

    ``None`` cells are written empty and other values via ``str``. A row made
    of one empty cell is written as ``""`` so it is not mistaken for a blank
    line. Rows are joined with ``\\n`` without a trailing newline.
    """

    lines: list[str] = []
    for row in rows:
        cells = ["" if cell is None else str(cell) for cell in row]
        if len(cells) == 1 and cells[0] == "":
            lines.append(QUOTE * 2)
            continue
        lines.append(DELIMITER.join(_format_cell(cell) for cell in cells))
    return ROW_SEPARATOR.join(lines)


def _format_cell(cell: str) -> str:
    if not _NEEDS_QUOTING.intersection(cell):
        return cell
    return QUOTE + cell.replace(QUOTE, QUOTE * 2) + QUOTE
