"""Exception classes for Mesita.

Provides standardized exceptions for error handling throughout Mesita.

Malformed table text is a normal editing state, so the parser and the
reconciler never raise for it. These exceptions cover programming errors:
building an invalid model by hand, breaking the host tree contract, or
driving the plugin lifecycle out of order.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mesita.model import FailureReason


class MesitaError(Exception):
    """Base exception for all Mesita errors.

    Subclass this for specific error categories.
    """

    pass


class TableParseError(MesitaError):
    """Invalid table content.

    Raised when a TableModel is constructed with content the parser would
    have rejected (for example, zero header cells).
    """

    def __init__(self, reason: FailureReason, lineno: int | None = None) -> None:
        """Initialize parse error with optional location.

        Args:
            reason: Why the content is not a table
            lineno: Line number where the problem was found (1-indexed)
        """
        self.reason = reason
        self.lineno = lineno

        location = f"{lineno}: " if lineno is not None else ""
        super().__init__(f"{location}{reason.describe()}")


class HostError(MesitaError):
    """Error in the host tree contract.

    Raised when a tree operation would corrupt the document (inserting a node
    into its own subtree, removing a node from a parent that does not own it)
    or when scheduled work never settles.
    """

    pass


class PluginError(MesitaError):
    """Error in plugin lifecycle.

    Raised when load/unload are called out of order.
    """

    def __init__(self, operation: str, message: str) -> None:
        """Initialize plugin error.

        Args:
            operation: Lifecycle operation that failed (e.g., "load")
            message: Description of the error
        """
        self.operation = operation
        super().__init__(f"Plugin {operation}: {message}")
