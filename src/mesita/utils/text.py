"""Text helpers shared by the renderer and the reference host.

Example:
    >>> from mesita.utils.text import escape_html
    >>> escape_html("<b>")
    '&lt;b&gt;'
"""

from __future__ import annotations

import html as html_module


def escape_html(text: str) -> str:
    """Escape HTML special characters in cell text and attribute values.

    Converts special characters to HTML entities:
    - & becomes &amp;
    - < becomes &lt;
    - > becomes &gt;
    - " becomes &quot;
    - ' becomes &#x27;

    Args:
        text: Text to escape

    Returns:
        Text safe for element content and double-quoted attribute values

    Examples:
        >>> escape_html("<script>alert('xss')</script>")
        "&lt;script&gt;alert(&#x27;xss&#x27;)&lt;/script&gt;"
    """
    if not text:
        return ""

    return html_module.escape(text, quote=True)


def format_style(styles: dict[str, str]) -> str:
    """Serialize an inline style mapping as ``prop: value; prop: value``."""
    return "; ".join(f"{prop}: {value}" for prop, value in styles.items())


def parse_style(style: str) -> dict[str, str]:
    """Parse an inline ``style`` attribute into an ordered mapping.

    Declarations without a colon are ignored.

    Examples:
        >>> parse_style("color: red; border: 1px solid #ddd")
        {'color': 'red', 'border': '1px solid #ddd'}
    """
    result: dict[str, str] = {}
    for declaration in style.split(";"):
        prop, sep, value = declaration.partition(":")
        if not sep:
            continue
        prop = prop.strip().lower()
        if prop:
            result[prop] = value.strip()
    return result
