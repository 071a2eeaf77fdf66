"""
tests/test_csv_parser.py

Pytest unit tests for the permissive CSV tokenizer.
"""

from __future__ import annotations

import random

import pytest

from app.parsers.csv_parser import format_csv_text, parse_csv_text


# ---------------------------------------------------------------------------
# Basic splitting
# ---------------------------------------------------------------------------


def test_header_and_rows() -> None:
    assert parse_csv_text("date,amount\n2024-01-01,100") == [
        ["date", "amount"],
        ["2024-01-01", "100"],
    ]


@pytest.mark.parametrize("text", ["", "\n", "\r\n"])
def test_empty_or_blank_input_yields_no_rows(text: str) -> None:
    assert parse_csv_text(text) == []


def test_trailing_newline_adds_no_row() -> None:
    assert parse_csv_text("a,b\n1,2\n") == [["a", "b"], ["1", "2"]]


def test_crlf_line_endings() -> None:
    assert parse_csv_text("a,b\r\n1,2\r\n") == [["a", "b"], ["1", "2"]]


def test_empty_fields_are_kept() -> None:
    assert parse_csv_text("a,,c\n,,") == [["a", "", "c"], ["", "", ""]]


def test_ragged_rows_are_returned_as_is() -> None:
    assert parse_csv_text("a,b,c\n1\n1,2,3,4") == [["a", "b", "c"], ["1"], ["1", "2", "3", "4"]]


# ---------------------------------------------------------------------------
# Quoting
# ---------------------------------------------------------------------------


def test_quoted_field_with_comma_and_newline() -> None:
    assert parse_csv_text('name,note\n"Acme, Inc.","line1\nline2"') == [
        ["name", "note"],
        ["Acme, Inc.", "line1\nline2"],
    ]


def test_doubled_quote_is_literal_quote() -> None:
    assert parse_csv_text('a\n"say ""hi"""') == [["a"], ['say "hi"']]


def test_carriage_return_kept_inside_quotes() -> None:
    assert parse_csv_text('"a\r\nb"') == [["a\r\nb"]]


def test_unterminated_quote_runs_to_end_of_input() -> None:
    assert parse_csv_text('a,"b,c\nd') == [["a", "b,c\nd"]]


def test_quoted_empty_field_after_header_is_a_row() -> None:
    assert parse_csv_text('h\n""\nx') == [["h"], [""], ["x"]]


# ---------------------------------------------------------------------------
# Blank lines
# ---------------------------------------------------------------------------


def test_leading_blank_line_is_dropped() -> None:
    assert parse_csv_text("\na,b\n1,2") == [["a", "b"], ["1", "2"]]


def test_interior_blank_line_is_a_single_empty_cell_row() -> None:
    assert parse_csv_text("a\n\n1") == [["a"], [""], ["1"]]


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def test_format_quotes_only_when_needed() -> None:
    text = format_csv_text([["a", "b,c", 'q"x'], [1, None, "line\nbreak"]])
    assert text == 'a,"b,c","q""x"\n1,,"line\nbreak"'


@pytest.mark.parametrize(
    "rows",
    [
        [["date", "amount"], ["2024-01-01", "100"]],
        [["name"], ["Acme, Inc."], ['say "hi"']],
        [["h"], [""], ["x"]],
        [["a", "b"], ["multi\nline", "\r"], ["", ""]],
    ],
)
def test_formatted_rows_parse_back_unchanged(rows: list[list[str]]) -> None:
    assert parse_csv_text(format_csv_text(rows)) == rows


def test_random_grids_parse_back_unchanged() -> None:
    rng = random.Random(2024)
    alphabet = ["a", "b", "x", "é", " ", ",", '"', "\n", "\r"]
    checked = 0
    for _ in range(500):
        grid = [
            ["".join(rng.choice(alphabet) for _ in range(rng.randint(0, 4))) for _ in range(rng.randint(1, 4))]
            for _ in range(rng.randint(1, 5))
        ]
        # A leading lone empty cell reads as a blank first line.
        if grid[0] == [""]:
            continue
        assert parse_csv_text(format_csv_text(grid)) == grid
        checked += 1
    assert checked > 400
