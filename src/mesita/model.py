"""Typed data model for Mesita.

Value types are frozen dataclasses with slots, so they can be shared and
compared freely. Per-block state is the one mutable record: it belongs to the
reconciler that observed the block and is dropped with the block.

Model Overview:
TableModel      parsed table (headers + normalized rows)
ParseFailure    why text is not a table (returned, never raised)
BlockState      per-block mode and render bookkeeping
Theme           host color scheme (dark or light)

"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from mesita.errors import TableParseError

if TYPE_CHECKING:
    from mesita.host.dom import Element

# =============================================================================
# Parse results
# =============================================================================


class FailureReason(Enum):
    """Why a block's text could not be turned into a table."""

    NOT_ENOUGH_LINES = "not-enough-lines"
    EMPTY_HEADER = "empty-header"
    NOT_A_TABLE = "not-a-table"

    def describe(self) -> str:
        """Human-readable description for error messages and logs."""
        return _FAILURE_DESCRIPTIONS[self]


_FAILURE_DESCRIPTIONS = {
    FailureReason.NOT_ENOUGH_LINES: "a table needs at least two non-blank lines",
    FailureReason.EMPTY_HEADER: "header row has no cells",
    FailureReason.NOT_A_TABLE: "fewer than two lines contain the delimiter",
}


@dataclass(frozen=True, slots=True)
class TableModel:
    """Parsed table.

    Column identity is position. Every row holds exactly ``width`` cells;
    the parser pads short rows with empty strings and drops extra cells.

    Raises:
        TableParseError: If ``headers`` is empty. A table without columns is
            a parse failure, not an empty table.

    Example:
        >>> model = TableModel(headers=("Name", "Age"), rows=(("Alice", "30"),))
        >>> model.width
        2

    """

    headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...] = ()

    def __post_init__(self) -> None:
        if not self.headers:
            raise TableParseError(FailureReason.EMPTY_HEADER, lineno=1)

    @property
    def width(self) -> int:
        """Number of columns."""
        return len(self.headers)


@dataclass(frozen=True, slots=True)
class ParseFailure:
    """Text that does not parse as a table.

    Falsy, so callers can write ``if not result`` for both None-like checks
    and failures.
    """

    reason: FailureReason

    def __bool__(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return self.reason.describe()

    def to_error(self) -> TableParseError:
        """Build the equivalent exception for callers that prefer raising."""
        return TableParseError(self.reason)


# =============================================================================
# Block state
# =============================================================================


class BlockMode(Enum):
    """Per-block presentation state."""

    VIEW = "view"
    EDIT = "edit"


@dataclass(slots=True, eq=False)
class BlockState:
    """Mutable bookkeeping for one host block.

    Attributes:
        block: The host element this state describes
        mode: View (table shown) or Edit (raw text shown)
        has_rendered_table: Mirrors the rendered marker on the block
        last_known_text: Text of the last successful render, used to skip
            rewriting identical tables

    """

    block: Element
    mode: BlockMode = BlockMode.VIEW
    has_rendered_table: bool = False
    last_known_text: str | None = None

    @property
    def editing(self) -> bool:
        return self.mode is BlockMode.EDIT


# =============================================================================
# Theme
# =============================================================================


class Theme(Enum):
    """Host color scheme."""

    DARK = "dark"
    LIGHT = "light"


__all__ = [
    "BlockMode",
    "BlockState",
    "FailureReason",
    "ParseFailure",
    "TableModel",
    "Theme",
]
