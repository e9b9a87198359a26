"""ContextVar-based configuration for Mesita.

Provides context-local configuration using Python's ContextVars (PEP 567).
The parser reads the active delimiter from here; TableSync captures the
whole config once when it is constructed.

Usage:
    # Defaults
    sync = TableSync(document)

    # Explicit config
    sync = TableSync(document, config=SyncConfig(delimiter=";"))

    # Temporary override (tests, one-off parsing)
    with sync_config_context(SyncConfig(delimiter=";")):
        result = parse_table("a ; b\\n1 ; 2")

"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass

from mesita.model import Theme


@dataclass(frozen=True, slots=True)
class SyncConfig:
    """Immutable plugin configuration.

    Class names describe the host's markup; delays are seconds handed to the
    host scheduler.

    Attributes:
        delimiter: Cell delimiter character
        block_classes: Classes that identify a content block
        block_data_type: ``data-type`` attribute value that identifies a block
        line_classes: Classes that identify a line (cursor navigation and
            structured text extraction)
        text_line_classes: Classes of the line elements text extraction reads
            first
        editable_classes: Classes that identify an editable raw-text line,
            in addition to ``contenteditable="true"``
        code_tag: Tag of an embedded code element (last extraction fallback)
        rendered_marker: Block class set while a rendered table is attached
        editing_marker: Block class set while the block is in Edit mode
        wrapper_class: Class of the plugin-owned wrapper element
        hint_class: Class of the "click to edit" hint element
        container_class: Class of the element holding the table markup
        table_class: Class of the rendered ``<table>``
        hint_text: Text of the edit hint
        focus_delay: Delay before focusing the first line after a click
        caret_delay: Delay before placing the caret after keyboard entry
        exit_check_delay: Delay before checking whether the cursor left an
            Edit block
        arm_delay: Delay before outside clicks may end an Edit session
        dark_class: Body class that explicitly selects the dark theme
        light_class: Body class that explicitly selects the light theme
        theme_attribute: Attribute carrying an explicit theme name
        luminance_threshold: Background luminance below which the theme is dark
        default_theme: Theme used when nothing can be detected

    Raises:
        ValueError: If ``delimiter`` is empty

    """

    delimiter: str = "|"
    block_classes: tuple[str, ...] = ("listitem-block", "block-code")
    block_data_type: str = "block"
    line_classes: tuple[str, ...] = (
        "listitem",
        "listitem-text",
        "listitem-task",
        "listitem-heading",
    )
    text_line_classes: tuple[str, ...] = ("listitem-text", "listitem")
    editable_classes: tuple[str, ...] = ("listitem-text",)
    code_tag: str = "code"
    rendered_marker: str = "has-table-render"
    editing_marker: str = "editing"
    wrapper_class: str = "mesita-table-wrapper"
    hint_class: str = "mesita-table-edit-hint"
    container_class: str = "mesita-table-container"
    table_class: str = "mesita-table"
    hint_text: str = "Click to edit"
    focus_delay: float = 0.05
    caret_delay: float = 0.01
    exit_check_delay: float = 0.01
    arm_delay: float = 0.1
    dark_class: str = "dark"
    light_class: str = "light"
    theme_attribute: str = "data-theme"
    luminance_threshold: float = 0.5
    default_theme: Theme = Theme.DARK

    def __post_init__(self) -> None:
        if not self.delimiter:
            raise ValueError("delimiter must be a non-empty string")

    @classmethod
    def from_dict(cls, config_dict: dict) -> "SyncConfig":
        """Create SyncConfig from dictionary.

        Useful when settings come from a host's plugin configuration file.
        Unknown keys are silently ignored; list values are converted to
        tuples and theme names to ``Theme``.

        Example:
            >>> config = SyncConfig.from_dict({
            ...     "delimiter": ";",
            ...     "default_theme": "light",
            ...     "unknown_key": "ignored",
            ... })
            >>> config.default_theme
            <Theme.LIGHT: 'light'>

        """
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {}
        for key, value in config_dict.items():
            if key not in valid_fields:
                continue
            if isinstance(value, list):
                value = tuple(value)
            if key == "default_theme" and isinstance(value, str):
                value = Theme(value)
            filtered[key] = value
        return cls(**filtered)


# Module-level default config (reused, never recreated)
_DEFAULT_CONFIG: SyncConfig = SyncConfig()

_sync_config: ContextVar[SyncConfig] = ContextVar(
    "sync_config",
    default=_DEFAULT_CONFIG,
)


def get_sync_config() -> SyncConfig:
    """Get the active configuration for this context."""
    return _sync_config.get()


def set_sync_config(config: SyncConfig) -> None:
    """Set configuration for the current context."""
    _sync_config.set(config)


def reset_sync_config() -> None:
    """Reset to the module-level default configuration."""
    _sync_config.set(_DEFAULT_CONFIG)


@contextmanager
def sync_config_context(config: SyncConfig) -> Iterator[None]:
    """Context manager for temporary config changes.

    Restores the previous config even if an exception is raised.

    Example:
        >>> with sync_config_context(SyncConfig(delimiter=";")):
        ...     get_sync_config().delimiter
        ';'

    """
    previous = _sync_config.get()
    _sync_config.set(config)
    try:
        yield
    finally:
        _sync_config.set(previous)


__all__ = [
    "SyncConfig",
    "get_sync_config",
    "set_sync_config",
    "reset_sync_config",
    "sync_config_context",
]
