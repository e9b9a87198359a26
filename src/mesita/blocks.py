"""Block identification and structural markers.

The host's markup decides what counts as a block, a line or an editable
line; the plugin decides two boolean markers on each block:

- rendered marker (``has-table-render``): a table wrapper is attached
- editing marker (``editing``): the block is in Edit mode

Those two markers drive all visibility. ``BlockMarkup.hides`` is the rule a
host stylesheet would express as:

    .block.has-table-render:not(.editing) > *:not(.wrapper) { display: none }
    .block.has-table-render.editing > .wrapper             { display: none }

"""

from __future__ import annotations

from collections.abc import Iterator

from mesita.config import SyncConfig, get_sync_config
from mesita.host.dom import Element, Node


class BlockMarkup:
    """Class-name aware queries over host elements.

    All methods take elements from the host tree; none of them mutate it
    except the explicit marker setters.
    """

    __slots__ = ("config",)

    def __init__(self, config: SyncConfig | None = None) -> None:
        self.config = config or get_sync_config()

    # -------------------------------------------------------------------------
    # Identification
    # -------------------------------------------------------------------------

    def is_block(self, element: Element) -> bool:
        if any(element.has_class(name) for name in self.config.block_classes):
            return True
        return element.get_attribute("data-type") == self.config.block_data_type

    def is_line(self, element: Element) -> bool:
        return any(element.has_class(name) for name in self.config.line_classes)

    def is_text_line(self, element: Element) -> bool:
        return any(element.has_class(name) for name in self.config.text_line_classes)

    def is_editable_line(self, element: Element) -> bool:
        if any(element.has_class(name) for name in self.config.editable_classes):
            return True
        return element.get_attribute("contenteditable") == "true"

    def is_wrapper(self, element: Element) -> bool:
        return element.has_class(self.config.wrapper_class)

    def has_rendered_table(self, block: Element) -> bool:
        return block.has_class(self.config.rendered_marker)

    def is_editing(self, block: Element) -> bool:
        return block.has_class(self.config.editing_marker)

    def is_table_block(self, element: Element) -> bool:
        """A block showing a rendered table (rendered marker, not editing)."""
        return (
            self.is_block(element)
            and self.has_rendered_table(element)
            and not self.is_editing(element)
        )

    # -------------------------------------------------------------------------
    # Traversal
    # -------------------------------------------------------------------------

    def iter_blocks(self, node: Node) -> Iterator[Element]:
        """``node`` itself and every descendant block, outside table wrappers."""
        if not isinstance(node, Element):
            return
        for element in node.iter_elements(include_self=True, skip=self.is_wrapper):
            if self.is_block(element):
                yield element

    def editable_lines(self, block: Element) -> list[Element]:
        """Raw-text lines of a block in document order."""
        return block.query_all(self.is_editable_line, skip=self.is_wrapper)

    def find_wrapper(self, block: Element) -> Element | None:
        for child in block.element_children:
            if self.is_wrapper(child):
                return child
        return None

    def find_container(self, wrapper: Element) -> Element | None:
        return wrapper.query(lambda el: el.has_class(self.config.container_class))

    # -------------------------------------------------------------------------
    # Markers and visibility
    # -------------------------------------------------------------------------

    def set_rendered(self, block: Element, on: bool) -> None:
        block.toggle_class(self.config.rendered_marker, on)

    def set_editing(self, block: Element, on: bool) -> None:
        block.toggle_class(self.config.editing_marker, on)

    def hides(self, element: Element) -> bool:
        """Visibility rule for direct children of a rendered block."""
        parent = element.parent
        if parent is None or not self.is_block(parent) or not self.has_rendered_table(parent):
            return False
        if self.is_editing(parent):
            return self.is_wrapper(element)
        return not self.is_wrapper(element)


__all__ = ["BlockMarkup"]
