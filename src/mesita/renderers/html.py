"""HTML table renderer using the MarkupBuilder pattern.

Renders a TableModel to the markup placed inside a block's table container.
The output is structural only: rows carry their index and parity as data
attributes and the theme adapter paints colors afterwards, so a theme change
never requires re-rendering.

Output shape (newlines added for reading; none are emitted):

    <table class="mesita-table">
    <thead><tr><th data-col="0">Name</th>...</tr></thead>
    <tbody>
    <tr data-row="0" data-parity="even"><td data-col="0">Alice</td>...</tr>
    </tbody>
    </table>

Determinism:
Rendering is pure. The same model always yields byte-identical markup.
"""

from __future__ import annotations

from mesita.config import get_sync_config
from mesita.model import TableModel
from mesita.renderers.markup import MarkupBuilder


def row_parity(index: int) -> str:
    """Parity of a 0-based body row index ("even" or "odd")."""
    return "even" if index % 2 == 0 else "odd"


class TableRenderer:
    """Render TableModel to HTML.

    Usage:
        >>> from mesita.model import TableModel
        >>> renderer = TableRenderer()
        >>> html = renderer.render(TableModel(headers=("A",), rows=(("<b>",),)))
        >>> html.startswith('<table class="mesita-table"><thead>')
        True
        >>> '<td data-col="0">&lt;b&gt;</td>' in html
        True

    """

    __slots__ = ("_table_class",)

    def __init__(self, *, table_class: str | None = None) -> None:
        """Initialize renderer.

        Args:
            table_class: Class of the ``<table>`` element (defaults to the
                active SyncConfig)
        """
        self._table_class = table_class or get_sync_config().table_class

    def render(self, model: TableModel) -> str:
        """Render a table model to an HTML string."""
        mb = MarkupBuilder()
        mb.start("table", {"class": self._table_class})

        mb.start("thead").start("tr")
        for col, header in enumerate(model.headers):
            mb.start("th", {"data-col": str(col)}).text(header).end("th")
        mb.end("tr").end("thead")

        mb.start("tbody")
        for index, row in enumerate(model.rows):
            self._render_row(row, index, model.width, mb)
        mb.end("tbody")

        mb.end("table")
        return mb.build()

    def _render_row(
        self, row: tuple[str, ...], index: int, width: int, mb: MarkupBuilder
    ) -> None:
        mb.start("tr", {"data-row": str(index), "data-parity": row_parity(index)})
        for col in range(width):
            cell = row[col] if col < len(row) else ""
            mb.start("td", {"data-col": str(col)}).text(cell).end("td")
        mb.end("tr")


def render_table(model: TableModel) -> str:
    """Render a table model with the default renderer."""
    return TableRenderer().render(model)
