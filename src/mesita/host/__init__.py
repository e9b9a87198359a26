"""Reference host for Mesita.

Mesita runs inside a host editor that owns the document tree. This package
models the collaborator contract the core relies on, nothing more:

- dom: elements, text, mutation streams, events, cursor and focus
- events: Event and mutation record types
- scheduler: deferred callbacks (virtual clock or asyncio)

Real integrations adapt their editor to the same surface.
"""

from mesita.host.dom import (
    Cursor,
    Document,
    Element,
    MutationStream,
    Node,
    TextNode,
    parse_fragment,
)
from mesita.host.events import Event, MutationBatch, MutationKind, MutationRecord
from mesita.host.scheduler import AsyncioScheduler, ManualScheduler, Scheduler

__all__ = [
    "AsyncioScheduler",
    "Cursor",
    "Document",
    "Element",
    "Event",
    "ManualScheduler",
    "MutationBatch",
    "MutationKind",
    "MutationRecord",
    "MutationStream",
    "Node",
    "Scheduler",
    "TextNode",
    "parse_fragment",
]
