"""Renderers for Mesita table models."""

from mesita.renderers.html import TableRenderer, render_table, row_parity
from mesita.renderers.markup import MarkupBuilder

__all__ = [
    "MarkupBuilder",
    "TableRenderer",
    "render_table",
    "row_parity",
]
