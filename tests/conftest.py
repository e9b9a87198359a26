"""Shared fixtures: a reference-host document and block builders."""

from __future__ import annotations

from typing import TypeAlias

from collections.abc import Callable, Iterator

import pytest

from mesita import TableSync, reset_sync_config
from mesita.host import Document, Element, ManualScheduler

LineFactory: TypeAlias = Callable[..., Element]
BlockFactory: TypeAlias = Callable[..., Element]


@pytest.fixture(autouse=True)
def _reset_config() -> Iterator[None]:
    yield
    reset_sync_config()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def document(scheduler: ManualScheduler) -> Document:
    return Document(scheduler)


@pytest.fixture
def make_line() -> LineFactory:
    """Build an editable host line."""

    def factory(text: str, *, editable: bool = True) -> Element:
        attrs = {"contenteditable": "true"} if editable else None
        return Element("div", classes=("listitem-text",), attrs=attrs, text=text)

    return factory


@pytest.fixture
def make_block(make_line: LineFactory) -> BlockFactory:
    """Build a host block with one editable line per argument."""

    def factory(*lines: str) -> Element:
        return Element("div", classes=("listitem-block",), children=[make_line(t) for t in lines])

    return factory


@pytest.fixture
def sync(document: Document) -> Iterator[TableSync]:
    """Loaded plugin, unloaded after the test if still loaded."""
    plugin = TableSync(document)
    plugin.load()
    yield plugin
    if plugin.loaded:
        plugin.unload()
