"""
Mesita — Pipe tables rendered in place, edited as text

Keeps a block of pipe-delimited text and a rendered HTML table in sync
inside a host editor. The text stays the source of truth: clicking a table
or arrowing into it reveals the raw lines; leaving commits them back into
the table.

Quick Start:
    >>> from mesita import render_text
    >>> print(render_text("Name | Age\\n--- | ---\\nAda | 36"))
    <table class="mesita-table"><thead><tr><th data-col="0">Name</th>...

Host integration:
    >>> from mesita import TableSync
    >>> from mesita.host import Document
    >>> doc = Document()
    >>> sync = TableSync(doc)
    >>> sync.load()

Installation:
    pip install mesita               # Zero runtime dependencies
    pip install mesita[test]         # + pytest and Hypothesis
"""

from mesita.blocks import BlockMarkup
from mesita.config import (
    SyncConfig,
    get_sync_config,
    reset_sync_config,
    set_sync_config,
    sync_config_context,
)
from mesita.errors import HostError, MesitaError, PluginError, TableParseError
from mesita.extract import extract_block_text
from mesita.model import (
    BlockMode,
    BlockState,
    FailureReason,
    ParseFailure,
    TableModel,
    Theme,
)
from mesita.navigation import NavigationMapper
from mesita.parser import is_separator_row, looks_tabular, parse_row, parse_table
from mesita.plugin import TableSync
from mesita.profiling import ReconcileOutcome, ReconcileStats
from mesita.reconciler import BlockStates, Reconciler, UpdateLock
from mesita.renderers.html import TableRenderer, render_table
from mesita.state import CaretPlacement, EditStateMachine, ExitHandler, ExitHandlerRegistry
from mesita.theme import PALETTES, Palette, ThemeAdapter, detect_theme

__version__ = "0.1.0"


def render_text(text: str, *, delimiter: str | None = None) -> str | None:
    """Parse pipe-table text and render it to HTML.

    Args:
        text: Block text, one row per line
        delimiter: Cell delimiter (configured delimiter if None)

    Returns:
        Table HTML, or None if the text is not a table
    """
    if not looks_tabular(text, delimiter=delimiter):
        return None
    result = parse_table(text, delimiter=delimiter)
    if isinstance(result, ParseFailure):
        return None
    return TableRenderer(table_class=get_sync_config().table_class).render(result)


__all__ = [
    # Core
    "TableSync",
    "render_text",
    # Parsing
    "FailureReason",
    "ParseFailure",
    "TableModel",
    "is_separator_row",
    "looks_tabular",
    "parse_row",
    "parse_table",
    # Rendering
    "TableRenderer",
    "render_table",
    # Reconciliation
    "BlockMarkup",
    "BlockStates",
    "ReconcileOutcome",
    "ReconcileStats",
    "Reconciler",
    "UpdateLock",
    "extract_block_text",
    # Edit state and navigation
    "BlockMode",
    "BlockState",
    "CaretPlacement",
    "EditStateMachine",
    "ExitHandler",
    "ExitHandlerRegistry",
    "NavigationMapper",
    # Theme
    "PALETTES",
    "Palette",
    "Theme",
    "ThemeAdapter",
    "detect_theme",
    # Configuration
    "SyncConfig",
    "get_sync_config",
    "reset_sync_config",
    "set_sync_config",
    "sync_config_context",
    # Errors
    "HostError",
    "MesitaError",
    "PluginError",
    "TableParseError",
]
