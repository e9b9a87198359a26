"""MarkupBuilder for O(n) HTML accumulation.

Appends fragments to a list and joins once at the end, instead of repeated
string concatenation. Text goes through ``text()``, which always escapes, so
callers cannot emit raw cell content by accident.

"""

from __future__ import annotations

from mesita.utils.text import escape_html


class MarkupBuilder:
    """Accumulates HTML fragments.

    Usage:
            >>> mb = MarkupBuilder()
            >>> mb.start("td", {"data-col": "0"}).text("a < b").end("td").build()
            '<td data-col="0">a &lt; b</td>'

    """

    __slots__ = ("_parts",)

    def __init__(self) -> None:
        self._parts: list[str] = []

    def start(self, tag: str, attrs: dict[str, str] | None = None) -> MarkupBuilder:
        """Open a tag; attribute values are escaped."""
        self._parts.append(f"<{tag}")
        if attrs:
            for name, value in attrs.items():
                self._parts.append(f' {name}="{escape_html(value)}"')
        self._parts.append(">")
        return self

    def end(self, tag: str) -> MarkupBuilder:
        """Close a tag."""
        self._parts.append(f"</{tag}>")
        return self

    def text(self, content: str) -> MarkupBuilder:
        """Append escaped text (empty strings are skipped)."""
        if content:
            self._parts.append(escape_html(content))
        return self

    def build(self) -> str:
        """Join all fragments into the final markup."""
        return "".join(self._parts)
