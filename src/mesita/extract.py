"""Text extraction from host blocks.

Hosts store a block's lines in different shapes. Strategies are tried in
order and the first non-empty result wins:

1. Structured lines: the innermost line elements, each trimmed, blank ones
   dropped, joined with newlines.
2. Flat text: the block's concatenated text.
3. Code element: the text of an embedded ``<code>``.

The plugin's own table wrapper is never read, otherwise the rendered cells
would feed back into the next parse.
"""

from __future__ import annotations

from mesita.blocks import BlockMarkup
from mesita.host.dom import Element


def _structured_lines(block: Element, markup: BlockMarkup) -> str | None:
    candidates = block.query_all(markup.is_text_line, skip=markup.is_wrapper)
    # Lines may nest (a .listitem holding a .listitem-text); read the innermost
    innermost = [el for el in candidates if el.query(markup.is_text_line) is None]
    lines = [text for text in (el.text_content.strip() for el in innermost) if text]
    return "\n".join(lines) if lines else None


def _flat_text(block: Element, markup: BlockMarkup) -> str | None:
    text = block.collect_text(skip=markup.is_wrapper)
    return text if text.strip() else None


def _code_text(block: Element, markup: BlockMarkup) -> str | None:
    tag = markup.config.code_tag
    code = block.query(lambda el: el.tag == tag, skip=markup.is_wrapper)
    if code is None:
        return None
    text = code.text_content
    return text if text.strip() else None


def extract_block_text(block: Element, markup: BlockMarkup | None = None) -> str | None:
    """Logical text of a block, or None when nothing can be read.

    Example:
        >>> from mesita.host.dom import Element
        >>> block = Element("div", classes=("listitem-block",), children=(
        ...     Element("div", classes=("listitem-text",), text=" A | B "),
        ...     Element("div", classes=("listitem-text",), text="1 | 2"),
        ... ))
        >>> extract_block_text(block)
        'A | B\\n1 | 2'
    """
    markup = markup or BlockMarkup()
    for strategy in (_structured_lines, _flat_text, _code_text):
        text = strategy(block, markup)
        if text:
            return text
    return None


__all__ = ["extract_block_text"]
