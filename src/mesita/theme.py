"""Theme detection and painting for rendered tables.

Colors are kept out of the renderer. The theme maps to a Palette, the
palette maps to a style map (role -> inline declarations), and a paint step
applies the map to a wrapper. A theme change repaints existing wrappers
without re-parsing or re-rendering any table.

Detection order:
1. Explicit flag: body class ``dark`` or ``light``
2. Explicit attribute: ``data-theme="dark|light"`` on the body
3. Computed luminance of the body ``background-color`` (below 0.5 is dark)
4. Configured default

"""

from __future__ import annotations

from typing import TypeAlias

import re
from dataclasses import dataclass

from mesita.blocks import BlockMarkup
from mesita.config import SyncConfig, get_sync_config
from mesita.host.dom import Document, Element
from mesita.model import Theme
from mesita.utils.logger import get_logger

logger = get_logger(__name__)

_HEX_COLOR = re.compile(r"^#([0-9a-f]{3}|[0-9a-f]{6})$", re.IGNORECASE)
_RGB_COLOR = re.compile(
    r"^rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*([\d.]+)\s*)?\)$",
    re.IGNORECASE,
)

StyleMap: TypeAlias = dict[str, dict[str, str]]


@dataclass(frozen=True, slots=True)
class Palette:
    """Colors for one theme."""

    border: str
    background: str
    header_background: str
    header_text: str
    header_rule: str
    cell_text: str
    stripe: str
    hint_background: str
    hint_border: str
    hint_text: str


PALETTES: dict[Theme, Palette] = {
    Theme.DARK: Palette(
        border="#3d3d3d",
        background="#1e1e1e",
        header_background="#2d2d2d",
        header_text="#e0e0e0",
        header_rule="#4d4d4d",
        cell_text="#e0e0e0",
        stripe="rgba(255, 255, 255, 0.02)",
        hint_background="#2d2d2d",
        hint_border="#3d3d3d",
        hint_text="#888",
    ),
    Theme.LIGHT: Palette(
        border="#ddd",
        background="#fff",
        header_background="#f5f5f5",
        header_text="#333",
        header_rule="#ccc",
        cell_text="#333",
        stripe="rgba(0, 0, 0, 0.02)",
        hint_background="#f5f5f5",
        hint_border="#ddd",
        hint_text="#666",
    ),
}


def parse_color(value: str) -> tuple[float, float, float, float] | None:
    """Parse ``#rgb``, ``#rrggbb``, ``rgb()`` or ``rgba()`` into 0..1 channels."""
    value = value.strip()
    match = _HEX_COLOR.match(value)
    if match:
        digits = match.group(1)
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        r, g, b = (int(digits[i : i + 2], 16) / 255 for i in (0, 2, 4))
        return (r, g, b, 1.0)
    match = _RGB_COLOR.match(value)
    if match:
        r, g, b = (min(float(match.group(i)), 255.0) / 255 for i in (1, 2, 3))
        alpha = float(match.group(4)) if match.group(4) is not None else 1.0
        return (r, g, b, alpha)
    return None


def luminance(value: str) -> float | None:
    """Relative luminance (0 black .. 1 white), None if unknown or transparent."""
    color = parse_color(value)
    if color is None or color[3] == 0:
        return None
    r, g, b, _ = color
    return 0.2126 * r + 0.7152 * g + 0.0722 * b


def detect_theme(document: Document, config: SyncConfig | None = None) -> Theme:
    """Infer the host theme from the body element."""
    config = config or get_sync_config()
    body = document.body

    if body.has_class(config.dark_class):
        return Theme.DARK
    if body.has_class(config.light_class):
        return Theme.LIGHT

    explicit = (body.get_attribute(config.theme_attribute) or "").strip().lower()
    if explicit in (Theme.DARK.value, Theme.LIGHT.value):
        return Theme(explicit)

    background = body.style.get("background-color") or body.style.get("background")
    if background:
        lum = luminance(background)
        if lum is not None:
            return Theme.DARK if lum < config.luminance_threshold else Theme.LIGHT

    return config.default_theme


def style_map(palette: Palette) -> StyleMap:
    """Inline declarations per structural role."""
    return {
        "hint": {
            "background": palette.hint_background,
            "border": f"1px solid {palette.hint_border}",
            "color": palette.hint_text,
        },
        "container": {
            "border": f"1px solid {palette.border}",
            "background": palette.background,
        },
        "header_cell": {
            "background-color": palette.header_background,
            "color": palette.header_text,
            "border-bottom": f"2px solid {palette.header_rule}",
        },
        "cell": {
            "color": palette.cell_text,
            "border-bottom": f"1px solid {palette.border}",
        },
        "row": {},
        # Every second body row, like tr:nth-child(even)
        "row_striped": {"background-color": palette.stripe},
    }


class ThemeAdapter:
    """Detects the host theme and paints table wrappers.

    Painting only touches inline styles, which the reconciler's mutation
    stream does not observe.
    """

    __slots__ = ("_document", "_config", "_markup", "_theme")

    def __init__(self, document: Document, config: SyncConfig | None = None) -> None:
        self._document = document
        self._config = config or get_sync_config()
        self._markup = BlockMarkup(self._config)
        self._theme = detect_theme(document, self._config)

    @property
    def theme(self) -> Theme:
        return self._theme

    @property
    def styles(self) -> StyleMap:
        return style_map(PALETTES[self._theme])

    def role_of(self, element: Element) -> str | None:
        config = self._config
        if element.has_class(config.hint_class):
            return "hint"
        if element.has_class(config.container_class):
            return "container"
        if element.tag == "th":
            return "header_cell"
        if element.tag == "td":
            return "cell"
        if element.tag == "tr" and element.get_attribute("data-parity") is not None:
            return "row_striped" if element.get_attribute("data-parity") == "odd" else "row"
        return None

    def paint(self, wrapper: Element) -> None:
        """Apply the current style map to a wrapper and everything inside it."""
        styles = self.styles
        for element in wrapper.iter_elements(include_self=True):
            role = self.role_of(element)
            if role is not None:
                element.set_style(styles[role])

    def refresh(self) -> bool:
        """Re-detect the theme; repaint every wrapper if it changed.

        Returns:
            True if the theme changed
        """
        theme = detect_theme(self._document, self._config)
        if theme is self._theme:
            return False
        logger.debug("Theme changed from %s to %s", self._theme.value, theme.value)
        self._theme = theme
        for wrapper in self._document.body.query_all(self._markup.is_wrapper):
            self.paint(wrapper)
        return True


__all__ = [
    "PALETTES",
    "Palette",
    "ThemeAdapter",
    "detect_theme",
    "luminance",
    "parse_color",
    "style_map",
]
