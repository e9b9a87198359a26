"""Event and mutation record types of the reference host."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mesita.host.dom import Element, Node


@dataclass(slots=True, eq=False)
class Event:
    """A dispatched host event (``click``, ``keydown``, ``themechange``...).

    Listeners call ``prevent_default()`` to suppress the host's default
    action and ``stop_propagation()`` to skip the remaining listeners.
    """

    type: str
    target: Element | None = None
    key: str | None = None
    default_prevented: bool = False
    propagation_stopped: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True

    def stop_propagation(self) -> None:
        self.propagation_stopped = True


class MutationKind(Enum):
    """Kinds of tree mutation a stream can subscribe to."""

    CHILD_LIST = "childList"
    ATTRIBUTES = "attributes"
    CHARACTER_DATA = "characterData"


@dataclass(frozen=True, slots=True)
class MutationRecord:
    """One tree mutation.

    Attributes:
        kind: What changed
        target: Parent for child-list changes, the changed node otherwise
        added: Nodes inserted under ``target``
        removed: Nodes removed from ``target``
        attribute: Changed attribute name (attribute records only)
        origin: Token of whoever performed the change, if tagged

    """

    kind: MutationKind
    target: Node
    added: tuple[Node, ...] = ()
    removed: tuple[Node, ...] = ()
    attribute: str | None = None
    origin: object | None = None


@dataclass(frozen=True, slots=True)
class MutationBatch:
    """Records delivered together, in the order they happened."""

    records: tuple[MutationRecord, ...]

    def __iter__(self) -> Iterator[MutationRecord]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def added_nodes(self) -> Iterator[Node]:
        for record in self.records:
            yield from record.added

    def removed_nodes(self) -> Iterator[Node]:
        for record in self.records:
            yield from record.removed


__all__ = [
    "Event",
    "MutationBatch",
    "MutationKind",
    "MutationRecord",
]
