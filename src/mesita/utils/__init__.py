"""Utility modules for Mesita.

Provides:
- text: escape_html and inline style helpers
- logger: get_logger for logging
"""

from mesita.utils.logger import get_logger
from mesita.utils.text import escape_html, format_style, parse_style

__all__ = [
    "escape_html",
    "format_style",
    "get_logger",
    "parse_style",
]
