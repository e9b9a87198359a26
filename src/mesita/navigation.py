"""Arrow-key navigation into and out of table blocks.

A rendered table hides its raw lines, so the host's own line-by-line caret
movement would skip straight past it. The mapper fills that gap:

- Arriving: with the caret on a line directly above (ArrowDown) or below
  (ArrowUp) a table block, the block enters Edit and the caret lands on its
  first line (start) or last line (end).
- Leaving: with the caret on the first line of an Edit block (ArrowUp) or the
  last line (ArrowDown), the host moves the caret as usual; shortly after,
  if the caret is outside the block, the block commits and returns to View.

"""

from __future__ import annotations

from mesita.blocks import BlockMarkup
from mesita.config import SyncConfig, get_sync_config
from mesita.host.dom import Document, Element
from mesita.host.events import Event
from mesita.state import CaretPlacement, EditStateMachine
from mesita.utils.logger import get_logger

logger = get_logger(__name__)

_ARROWS = {"ArrowUp": False, "ArrowDown": True}


class NavigationMapper:
    """Maps vertical arrow keys onto Edit transitions."""

    __slots__ = ("_document", "_config", "_markup", "_machine")

    def __init__(
        self,
        document: Document,
        machine: EditStateMachine,
        *,
        config: SyncConfig | None = None,
    ) -> None:
        self._document = document
        self._config = config or get_sync_config()
        self._markup = BlockMarkup(self._config)
        self._machine = machine

    def on_keydown(self, event: Event) -> None:
        down = _ARROWS.get(event.key or "")
        if down is None:
            return
        element = self._document.cursor_element
        if element is None or not element.is_connected:
            return

        editing = element.closest(
            lambda el: self._markup.is_block(el) and self._machine.is_editing(el)
        )
        if editing is not None:
            self._watch_departure(editing, element, down)
        else:
            self._enter_adjacent(event, element, down)

    # -------------------------------------------------------------------------
    # Leaving
    # -------------------------------------------------------------------------

    def _watch_departure(self, block: Element, element: Element, down: bool) -> None:
        lines = self._markup.editable_lines(block)
        index = next((i for i, line in enumerate(lines) if line.contains(element)), None)
        if index is None:
            return
        at_edge = index == len(lines) - 1 if down else index == 0
        if at_edge:
            self._document.scheduler.call_later(
                self._config.exit_check_delay, lambda: self._check_departure(block)
            )

    def _check_departure(self, block: Element) -> None:
        if not block.is_connected or not self._machine.is_editing(block):
            return
        if not block.contains(self._document.cursor_element):
            logger.debug("Caret left %r by keyboard", block)
            self._machine.exit_edit(block)

    # -------------------------------------------------------------------------
    # Arriving
    # -------------------------------------------------------------------------

    def _enter_adjacent(self, event: Event, element: Element, down: bool) -> None:
        line = element.closest(self._markup.is_line)
        if line is None:
            return
        neighbor = self._adjacent(line, down)
        if neighbor is None:
            return
        block = self._nearest_table_block(neighbor, down)
        if block is None:
            return

        event.prevent_default()
        event.stop_propagation()
        placement = CaretPlacement.START_OF_FIRST if down else CaretPlacement.END_OF_LAST
        self._machine.enter_edit(block, placement=placement, delay=self._config.caret_delay)

    def _adjacent(self, line: Element, down: bool) -> Element | None:
        """Next (or previous) element, climbing until a sibling exists."""
        node: Element | None = line
        body = self._document.body
        while node is not None and node is not body:
            sibling = node.next_element_sibling if down else node.previous_element_sibling
            if sibling is not None:
                return sibling
            node = node.parent
        return None

    def _nearest_table_block(self, neighbor: Element, down: bool) -> Element | None:
        candidates = [
            block
            for block in self._markup.iter_blocks(neighbor)
            if self._markup.is_table_block(block) and self._markup.editable_lines(block)
        ]
        if not candidates:
            return None
        return candidates[0] if down else candidates[-1]


__all__ = ["NavigationMapper"]
