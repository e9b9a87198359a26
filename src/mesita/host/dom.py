"""In-memory document tree for the reference host.

A deliberately small model of the live tree Mesita runs against: elements
with classes, attributes and inline styles, text nodes, a body rooted in a
Document, batched mutation streams, event listeners, a cursor and focus.

Mutation Streams:
    Every child-list, attribute and text change on a connected node produces a
    MutationRecord, tagged with the innermost active ``origin()`` token. A
    stream only queues the kinds it subscribed to and, when it has a
    ``notify`` callback, schedules one delivery per batch on the document's
    scheduler. Delivery therefore never happens in the middle of a write.

Visibility:
    Hosts hide content through stylesheet rules; here they are ``hide rules``,
    predicates registered on the Document. A node is displayed when it is
    connected and no rule matches it or an ancestor.

Default Actions:
    ``dispatch()`` runs listeners in registration order, then, unless a
    listener called ``prevent_default()``, the host default: ArrowUp/ArrowDown
    move the cursor to the adjacent displayed editable line, and a click on an
    editable line focuses it.

"""

from __future__ import annotations

from typing import TypeAlias

from collections import defaultdict
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from html.parser import HTMLParser

from mesita.errors import HostError
from mesita.host.events import Event, MutationBatch, MutationKind, MutationRecord
from mesita.host.scheduler import ManualScheduler, Scheduler
from mesita.utils.text import escape_html, format_style, parse_style

Listener: TypeAlias = Callable[[Event], None]
HideRule: TypeAlias = "Callable[[Element], bool]"
ElementPredicate: TypeAlias = "Callable[[Element], bool]"

_VOID_TAGS = frozenset(
    ("area", "base", "br", "col", "hr", "img", "input", "link", "meta", "source", "wbr")
)

_VERTICAL_KEYS = {"ArrowUp": -1, "ArrowDown": 1}


# =============================================================================
# Nodes
# =============================================================================


class Node:
    """Base class for tree nodes."""

    __slots__ = ("parent",)

    def __init__(self) -> None:
        self.parent: Element | None = None

    @property
    def document(self) -> Document | None:
        """Owning document, or None while detached."""
        node: Node = self
        while node.parent is not None:
            node = node.parent
        return node._owner if isinstance(node, Element) else None

    @property
    def is_connected(self) -> bool:
        return self.document is not None

    @property
    def text_content(self) -> str:
        raise NotImplementedError

    def remove(self) -> None:
        """Detach from the parent, if any."""
        if self.parent is not None:
            self.parent.remove_child(self)

    def _detach(self) -> None:
        parent = self.parent
        if parent is None:
            return
        parent.children.remove(self)
        self.parent = None
        parent._record_children(removed=(self,))


class TextNode(Node):
    """Character data."""

    __slots__ = ("_data",)

    def __init__(self, data: str = "") -> None:
        super().__init__()
        self._data = data

    @property
    def data(self) -> str:
        return self._data

    @data.setter
    def data(self, value: str) -> None:
        self._data = value
        doc = self.document
        if doc is not None:
            doc._record(
                MutationRecord(MutationKind.CHARACTER_DATA, self, origin=doc.current_origin)
            )

    @property
    def text_content(self) -> str:
        return self._data

    def __repr__(self) -> str:
        return f"TextNode({self._data!r})"


class Element(Node):
    """Element with classes, attributes, inline styles and children.

    Elements compare by identity and are hashable, so they can key
    registries.
    """

    __slots__ = ("tag", "children", "_classes", "_attrs", "_styles", "_owner")

    def __init__(
        self,
        tag: str,
        *,
        classes: tuple[str, ...] | list[str] = (),
        attrs: dict[str, str] | None = None,
        text: str | None = None,
        children: tuple[Node, ...] | list[Node] = (),
    ) -> None:
        super().__init__()
        self.tag = tag.lower()
        self.children: list[Node] = []
        self._classes: list[str] = []
        self._attrs: dict[str, str] = {}
        self._styles: dict[str, str] = {}
        self._owner: Document | None = None

        for name in classes:
            if name not in self._classes:
                self._classes.append(name)
        for name, value in (attrs or {}).items():
            self._store_attribute(name, value)
        if text is not None:
            self.append(TextNode(text))
        if children:
            self.append(*children)

    def __repr__(self) -> str:
        classes = "." + ".".join(self._classes) if self._classes else ""
        return f"<Element {self.tag}{classes}>"

    # -------------------------------------------------------------------------
    # Classes and attributes
    # -------------------------------------------------------------------------

    @property
    def classes(self) -> tuple[str, ...]:
        return tuple(self._classes)

    def has_class(self, name: str) -> bool:
        return name in self._classes

    def add_class(self, name: str) -> None:
        if name not in self._classes:
            self._classes.append(name)
            self._record_attribute("class")

    def remove_class(self, name: str) -> None:
        if name in self._classes:
            self._classes.remove(name)
            self._record_attribute("class")

    def toggle_class(self, name: str, on: bool) -> None:
        if on:
            self.add_class(name)
        else:
            self.remove_class(name)

    def get_attribute(self, name: str) -> str | None:
        if name == "class":
            return " ".join(self._classes) if self._classes else None
        if name == "style":
            return format_style(self._styles) if self._styles else None
        return self._attrs.get(name)

    def set_attribute(self, name: str, value: str) -> None:
        self._store_attribute(name, value)
        self._record_attribute(name)

    @property
    def attributes(self) -> dict[str, str]:
        """All attributes in serialization order (class, others, style)."""
        result: dict[str, str] = {}
        if self._classes:
            result["class"] = " ".join(self._classes)
        result.update(self._attrs)
        if self._styles:
            result["style"] = format_style(self._styles)
        return result

    @property
    def style(self) -> dict[str, str]:
        return dict(self._styles)

    def set_style(self, styles: dict[str, str]) -> None:
        """Replace the inline style declarations."""
        if styles == self._styles:
            return
        self._styles = dict(styles)
        self._record_attribute("style")

    def _store_attribute(self, name: str, value: str) -> None:
        if name == "class":
            self._classes = list(dict.fromkeys(value.split()))
        elif name == "style":
            self._styles = parse_style(value)
        else:
            self._attrs[name] = value

    def _record_attribute(self, name: str) -> None:
        doc = self.document
        if doc is not None:
            doc._record(
                MutationRecord(
                    MutationKind.ATTRIBUTES, self, attribute=name, origin=doc.current_origin
                )
            )

    # -------------------------------------------------------------------------
    # Tree mutation
    # -------------------------------------------------------------------------

    def append(self, *nodes: Node) -> None:
        """Append nodes, moving them from their current parent if needed."""
        for node in nodes:
            self._check_insertable(node)
        for node in nodes:
            node._detach()
            node.parent = self
            self.children.append(node)
        if nodes:
            self._record_children(added=nodes)

    def insert_before(self, node: Node, reference: Node | None) -> None:
        """Insert ``node`` before ``reference`` (append when None)."""
        if reference is None:
            self.append(node)
            return
        if reference.parent is not self:
            raise HostError(f"{reference!r} is not a child of {self!r}")
        self._check_insertable(node)
        node._detach()
        node.parent = self
        self.children.insert(self.children.index(reference), node)
        self._record_children(added=(node,))

    def remove_child(self, node: Node) -> None:
        if node.parent is not self:
            raise HostError(f"{node!r} is not a child of {self!r}")
        node._detach()

    def replace_children(self, *nodes: Node) -> None:
        """Replace all children in one child-list mutation."""
        for node in nodes:
            self._check_insertable(node)
        removed = tuple(self.children)
        for child in removed:
            child.parent = None
        self.children = []
        for node in nodes:
            node._detach()
            node.parent = self
            self.children.append(node)
        if removed or nodes:
            self._record_children(added=nodes, removed=removed)

    def set_text(self, text: str) -> None:
        self.replace_children(TextNode(text))

    def _check_insertable(self, node: Node) -> None:
        if isinstance(node, Element):
            if node._owner is not None:
                raise HostError("cannot insert a document root")
            if node.contains(self):
                raise HostError(f"cannot insert {node!r} into its own subtree")

    def _record_children(
        self, *, added: tuple[Node, ...] = (), removed: tuple[Node, ...] = ()
    ) -> None:
        doc = self.document
        if doc is not None:
            doc._record(
                MutationRecord(
                    MutationKind.CHILD_LIST,
                    self,
                    added=added,
                    removed=removed,
                    origin=doc.current_origin,
                )
            )

    # -------------------------------------------------------------------------
    # Markup
    # -------------------------------------------------------------------------

    @property
    def inner_html(self) -> str:
        return "".join(_serialize(child) for child in self.children)

    @property
    def outer_html(self) -> str:
        return _serialize(self)

    def set_inner_html(self, markup: str) -> None:
        """Replace children with the nodes parsed from ``markup``."""
        self.replace_children(*parse_fragment(markup))

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def element_children(self) -> list[Element]:
        return [child for child in self.children if isinstance(child, Element)]

    @property
    def next_element_sibling(self) -> Element | None:
        return self._sibling(1)

    @property
    def previous_element_sibling(self) -> Element | None:
        return self._sibling(-1)

    def _sibling(self, step: int) -> Element | None:
        if self.parent is None:
            return None
        siblings = self.parent.children
        index = siblings.index(self) + step
        while 0 <= index < len(siblings):
            candidate = siblings[index]
            if isinstance(candidate, Element):
                return candidate
            index += step
        return None

    def iter_elements(
        self,
        *,
        include_self: bool = False,
        skip: ElementPredicate | None = None,
    ) -> Iterator[Element]:
        """Walk descendant elements in document order.

        Elements matching ``skip`` are not yielded and their subtrees are not
        entered.
        """
        if include_self:
            if skip is not None and skip(self):
                return
            yield self
        stack = [c for c in reversed(self.children) if isinstance(c, Element)]
        while stack:
            element = stack.pop()
            if skip is not None and skip(element):
                continue
            yield element
            stack.extend(c for c in reversed(element.children) if isinstance(c, Element))

    def query_all(
        self, predicate: ElementPredicate, *, skip: ElementPredicate | None = None
    ) -> list[Element]:
        return [el for el in self.iter_elements(skip=skip) if predicate(el)]

    def query(
        self, predicate: ElementPredicate, *, skip: ElementPredicate | None = None
    ) -> Element | None:
        for element in self.iter_elements(skip=skip):
            if predicate(element):
                return element
        return None

    def closest(self, predicate: ElementPredicate) -> Element | None:
        """This element or the nearest ancestor matching ``predicate``."""
        element: Element | None = self
        while element is not None:
            if predicate(element):
                return element
            element = element.parent
        return None

    def contains(self, node: Node | None) -> bool:
        """True if ``node`` is this element or one of its descendants."""
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    @property
    def text_content(self) -> str:
        return self.collect_text()

    def collect_text(self, *, skip: ElementPredicate | None = None) -> str:
        """Concatenated descendant text, leaving out skipped subtrees."""
        parts: list[str] = []
        stack: list[Node] = list(reversed(self.children))
        while stack:
            node = stack.pop()
            if isinstance(node, TextNode):
                parts.append(node.data)
            elif isinstance(node, Element):
                if skip is not None and skip(node):
                    continue
                stack.extend(reversed(node.children))
        return "".join(parts)


# =============================================================================
# Markup parsing and serialization
# =============================================================================


def _serialize(node: Node) -> str:
    if isinstance(node, TextNode):
        return escape_html(node.data)
    assert isinstance(node, Element)
    attrs = "".join(f' {name}="{escape_html(value)}"' for name, value in node.attributes.items())
    if node.tag in _VOID_TAGS:
        return f"<{node.tag}{attrs}>"
    return f"<{node.tag}{attrs}>{node.inner_html}</{node.tag}>"


class _FragmentParser(HTMLParser):
    """Builds detached nodes from an HTML fragment."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.roots: list[Node] = []
        self._stack: list[Element] = []

    def _attach(self, node: Node) -> None:
        if self._stack:
            self._stack[-1].append(node)
        else:
            self.roots.append(node)

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        element = Element(tag, attrs={name: value or "" for name, value in attrs})
        self._attach(element)
        if element.tag not in _VOID_TAGS:
            self._stack.append(element)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self._attach(Element(tag, attrs={name: value or "" for name, value in attrs}))

    def handle_endtag(self, tag: str) -> None:
        for index in range(len(self._stack) - 1, -1, -1):
            if self._stack[index].tag == tag:
                del self._stack[index:]
                return

    def handle_data(self, data: str) -> None:
        if data:
            self._attach(TextNode(data))


def parse_fragment(markup: str) -> list[Node]:
    """Parse an HTML fragment into detached nodes."""
    parser = _FragmentParser()
    parser.feed(markup)
    parser.close()
    return parser.roots


# =============================================================================
# Document
# =============================================================================


@dataclass(frozen=True, slots=True)
class Cursor:
    """Caret position: an element and a character offset into its text."""

    element: Element
    offset: int = 0


class MutationStream:
    """Pull-based subscription to tree mutations.

    Records are queued as they happen; ``pull()`` drains them as one batch.
    With a ``notify`` callback, the stream schedules a single delivery per
    batch (delay 0) on the document's scheduler.
    """

    __slots__ = ("_document", "_kinds", "_filter", "_notify", "_queue", "_scheduled", "closed")

    def __init__(
        self,
        document: Document,
        kinds: frozenset[MutationKind],
        filter: Callable[[MutationRecord], bool] | None,
        notify: Callable[[], None] | None,
    ) -> None:
        self._document = document
        self._kinds = kinds
        self._filter = filter
        self._notify = notify
        self._queue: list[MutationRecord] = []
        self._scheduled = False
        self.closed = False

    @property
    def pending(self) -> bool:
        return bool(self._queue)

    def pull(self) -> MutationBatch | None:
        """Drain queued records as one batch, or None when empty."""
        if not self._queue:
            return None
        batch = MutationBatch(tuple(self._queue))
        self._queue.clear()
        return batch

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._queue.clear()
        self._document._streams.remove(self)

    def _offer(self, record: MutationRecord) -> None:
        if self.closed or record.kind not in self._kinds:
            return
        if self._filter is not None and not self._filter(record):
            return
        self._queue.append(record)
        if self._notify is not None and not self._scheduled:
            self._scheduled = True
            self._document.scheduler.call_later(0.0, self._deliver)

    def _deliver(self) -> None:
        self._scheduled = False
        if not self.closed and self._queue and self._notify is not None:
            self._notify()


class Document:
    """Root of a host tree.

    Usage:
        >>> doc = Document()
        >>> line = Element("div", attrs={"contenteditable": "true"}, text="hello")
        >>> doc.body.append(line)
        >>> doc.set_cursor(line, 5)
        >>> doc.cursor_element is line
        True

    """

    def __init__(self, scheduler: Scheduler | None = None) -> None:
        self.scheduler: Scheduler = scheduler if scheduler is not None else ManualScheduler()
        self.body = Element("body")
        self.body._owner = self
        self.cursor: Cursor | None = None
        self.focused: Element | None = None
        self._streams: list[MutationStream] = []
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._origins: list[object] = []
        self._hide_rules: list[HideRule] = []

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    @property
    def current_origin(self) -> object | None:
        return self._origins[-1] if self._origins else None

    @contextmanager
    def origin(self, token: object) -> Iterator[None]:
        """Tag every mutation made inside the block with ``token``."""
        self._origins.append(token)
        try:
            yield
        finally:
            self._origins.pop()

    def subscribe(
        self,
        *,
        kinds: frozenset[MutationKind] = frozenset((MutationKind.CHILD_LIST,)),
        filter: Callable[[MutationRecord], bool] | None = None,
        notify: Callable[[], None] | None = None,
    ) -> MutationStream:
        stream = MutationStream(self, kinds, filter, notify)
        self._streams.append(stream)
        return stream

    def _record(self, record: MutationRecord) -> None:
        for stream in list(self._streams):
            stream._offer(record)

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def add_event_listener(self, event_type: str, listener: Listener) -> None:
        self._listeners[event_type].append(listener)

    def remove_event_listener(self, event_type: str, listener: Listener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def dispatch(self, event: Event) -> bool:
        """Run listeners, then the default action unless prevented.

        Returns:
            True if the default action ran
        """
        for listener in list(self._listeners.get(event.type, ())):
            listener(event)
            if event.propagation_stopped:
                break
        if event.default_prevented:
            return False
        self._default_action(event)
        return True

    def press(self, key: str) -> bool:
        """Dispatch a keydown at the focused element."""
        return self.dispatch(Event("keydown", target=self.focused, key=key))

    def click(self, target: Element) -> bool:
        return self.dispatch(Event("click", target=target))

    def _default_action(self, event: Event) -> None:
        if event.type == "keydown" and event.key in _VERTICAL_KEYS:
            self._move_vertical(_VERTICAL_KEYS[event.key])
        elif event.type == "click" and event.target is not None:
            line = event.target.closest(self.is_editable)
            if line is not None and self.is_displayed(line):
                self.set_cursor(line, len(line.text_content))

    def _move_vertical(self, step: int) -> None:
        if self.cursor is None:
            return
        lines = self.editable_elements()
        current = self.cursor.element
        index = next((i for i, line in enumerate(lines) if line.contains(current)), None)
        if index is None:
            return
        target_index = index + step
        if not 0 <= target_index < len(lines):
            return
        self.set_cursor(lines[target_index], self.cursor.offset)

    # -------------------------------------------------------------------------
    # Visibility, cursor and focus
    # -------------------------------------------------------------------------

    def add_hide_rule(self, rule: HideRule) -> None:
        self._hide_rules.append(rule)

    def remove_hide_rule(self, rule: HideRule) -> None:
        if rule in self._hide_rules:
            self._hide_rules.remove(rule)

    def is_displayed(self, node: Node) -> bool:
        if not node.is_connected:
            return False
        element = node if isinstance(node, Element) else node.parent
        while element is not None:
            if any(rule(element) for rule in self._hide_rules):
                return False
            element = element.parent
        return True

    @staticmethod
    def is_editable(element: Element) -> bool:
        return element.get_attribute("contenteditable") == "true"

    def editable_elements(self) -> list[Element]:
        """Displayed editable elements in document order."""
        return [
            el
            for el in self.body.iter_elements()
            if self.is_editable(el) and self.is_displayed(el)
        ]

    @property
    def cursor_element(self) -> Element | None:
        return self.cursor.element if self.cursor is not None else None

    def set_cursor(self, element: Element, offset: int = 0) -> None:
        """Place the caret in ``element``, clamping the offset to its text."""
        offset = max(0, min(offset, len(element.text_content)))
        self.cursor = Cursor(element, offset)
        self.focused = element

    def focus(self, element: Element) -> None:
        """Focus ``element``; the caret moves to its start unless already inside."""
        self.focused = element
        if self.cursor is None or not element.contains(self.cursor.element):
            self.cursor = Cursor(element, 0)


__all__ = [
    "Cursor",
    "Document",
    "Element",
    "MutationStream",
    "Node",
    "TextNode",
    "parse_fragment",
]
