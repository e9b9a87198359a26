"""Pipe-table parsing for Mesita.

Turns the raw text of a block into a TableModel. The grammar is loose on
purpose, since authors type it by hand:

    Name  | Age | City      <- header row (first non-blank line)
    ------|-----|-----      <- optional separator row
    Alice | 30  | NYC       <- data rows

Leading and trailing pipes are optional. Blank lines are ignored anywhere.

Parsing is a pure function with no host dependency. Failures are returned as
ParseFailure values, never raised: half-typed tables are a normal state while
editing.

"""

from __future__ import annotations

import re
from functools import lru_cache

from mesita.config import get_sync_config
from mesita.model import FailureReason, ParseFailure, TableModel


@lru_cache(maxsize=8)
def _separator_pattern(delimiter: str) -> re.Pattern[str]:
    return re.compile(rf"^[\s\-{re.escape(delimiter)}:]+$")


def _resolve(delimiter: str | None) -> str:
    return delimiter or get_sync_config().delimiter


def split_lines(text: str) -> list[str]:
    """Split text into trimmed, non-blank lines."""
    return [line for line in (raw.strip() for raw in text.split("\n")) if line]


def parse_row(line: str, *, delimiter: str | None = None) -> list[str]:
    """Split one line into trimmed cells.

    A single empty cell at either end is dropped, so wrapping delimiters are
    optional. Interior empty cells are kept.

    Examples:
        >>> parse_row("| A | B |")
        ['A', 'B']
        >>> parse_row("A||C")
        ['A', '', 'C']
    """
    cells = [cell.strip() for cell in line.split(_resolve(delimiter))]

    if cells and cells[0] == "":
        cells.pop(0)
    if cells and cells[-1] == "":
        cells.pop()

    return cells


def is_separator_row(line: str, *, delimiter: str | None = None) -> bool:
    """True for lines made only of whitespace, ``-``, ``:`` and the delimiter.

    This is a character-class match: a one-cell data row such as ``---``
    is also treated as a separator when it is the second line.
    """
    return _separator_pattern(_resolve(delimiter)).match(line) is not None


def looks_tabular(text: str | None, *, delimiter: str | None = None) -> bool:
    """True when at least two lines contain the delimiter."""
    if not text:
        return False
    delim = _resolve(delimiter)
    if delim not in text:
        return False
    return sum(1 for line in text.split("\n") if delim in line) >= 2


def parse_table(text: str, *, delimiter: str | None = None) -> TableModel | ParseFailure:
    """Parse delimiter-separated text into a table.

    Args:
        text: Raw block text
        delimiter: Cell delimiter (defaults to the active SyncConfig)

    Returns:
        TableModel on success, ParseFailure with the reason otherwise

    Example:
        >>> model = parse_table("A | B\\n---|---\\n1 | 2")
        >>> model.headers, model.rows
        (('A', 'B'), (('1', '2'),))
    """
    delim = _resolve(delimiter)
    lines = split_lines(text)

    if len(lines) < 2:
        return ParseFailure(FailureReason.NOT_ENOUGH_LINES)

    if is_separator_row(lines[1], delimiter=delim):
        data_lines = lines[2:]
    else:
        data_lines = lines[1:]

    headers = parse_row(lines[0], delimiter=delim)
    if not headers:
        return ParseFailure(FailureReason.EMPTY_HEADER)

    width = len(headers)
    rows: list[tuple[str, ...]] = []
    for line in data_lines:
        cells = parse_row(line, delimiter=delim)
        if not cells:
            continue
        # Pad short rows, drop cells past the header width
        rows.append(tuple(cells[i] if i < len(cells) else "" for i in range(width)))

    return TableModel(headers=tuple(headers), rows=tuple(rows))


__all__ = [
    "is_separator_row",
    "looks_tabular",
    "parse_row",
    "parse_table",
    "split_lines",
]
