"""Tests for View/Edit transitions and exit handlers."""

from __future__ import annotations

from typing import TypeAlias

from collections.abc import Callable

import pytest

from mesita import (
    BlockMode,
    CaretPlacement,
    ExitHandler,
    ExitHandlerRegistry,
    ReconcileOutcome,
    TableSync,
)
from mesita.host import Document, Element, ManualScheduler

BlockFactory: TypeAlias = Callable[..., Element]


@pytest.fixture
def table(
    document: Document, scheduler: ManualScheduler, sync: TableSync, make_block: BlockFactory
) -> Element:
    block = make_block("A | B", "1 | 2")
    document.body.append(block)
    scheduler.run_until_idle()
    assert sync.markup.has_rendered_table(block)
    return block


@pytest.fixture
def outside(document: Document, make_block: BlockFactory) -> Element:
    block = make_block("a plain note")
    document.body.append(block)
    return block


def _cell(block: Element) -> Element:
    cell = block.query(lambda el: el.tag == "td")
    assert cell is not None
    return cell


class TestEnterEdit:
    """View -> Edit."""

    def test_click_enters_edit(self, document: Document, sync: TableSync, table: Element) -> None:
        assert not document.click(_cell(table))
        assert sync.machine.mode(table) is BlockMode.EDIT
        assert table.has_class("editing")

    def test_raw_lines_revealed(self, document: Document, sync: TableSync, table: Element) -> None:
        lines = sync.markup.editable_lines(table)
        wrapper = sync.markup.find_wrapper(table)
        assert wrapper is not None
        assert not document.is_displayed(lines[0])
        assert document.is_displayed(wrapper)

        sync.machine.enter_edit(table)

        assert document.is_displayed(lines[0])
        assert not document.is_displayed(wrapper)

    def test_focus_after_delay(
        self, document: Document, scheduler: ManualScheduler, sync: TableSync, table: Element
    ) -> None:
        document.click(_cell(table))
        assert document.focused is None

        scheduler.advance(0.05)

        first = sync.markup.editable_lines(table)[0]
        assert document.focused is first
        assert document.cursor is not None
        assert document.cursor.offset == 0

    def test_start_of_first(
        self, document: Document, scheduler: ManualScheduler, sync: TableSync, table: Element
    ) -> None:
        sync.machine.enter_edit(table, placement=CaretPlacement.START_OF_FIRST, delay=0.0)
        scheduler.advance(0.0)
        assert document.cursor is not None
        assert document.cursor.element is sync.markup.editable_lines(table)[0]
        assert document.cursor.offset == 0

    def test_end_of_last(
        self, document: Document, scheduler: ManualScheduler, sync: TableSync, table: Element
    ) -> None:
        sync.machine.enter_edit(table, placement=CaretPlacement.END_OF_LAST, delay=0.0)
        scheduler.advance(0.0)
        last = sync.markup.editable_lines(table)[-1]
        assert document.cursor is not None
        assert document.cursor.element is last
        assert document.cursor.offset == len("1 | 2")

    def test_plain_block_never_enters(
        self, sync: TableSync, outside: Element, document: Document
    ) -> None:
        assert not sync.machine.enter_edit(outside)
        assert document.click(outside.element_children[0])
        assert sync.machine.mode(outside) is BlockMode.VIEW

    def test_second_enter_is_noop(self, sync: TableSync, table: Element) -> None:
        assert sync.machine.enter_edit(table)
        assert not sync.machine.enter_edit(table)
        assert len(sync.machine.exits) == 1

    def test_caret_skipped_if_block_removed(
        self, document: Document, scheduler: ManualScheduler, sync: TableSync, table: Element
    ) -> None:
        sync.machine.enter_edit(table)
        table.remove()
        scheduler.run_until_idle()
        assert document.focused is None

    def test_caret_skipped_if_left_edit(
        self, document: Document, scheduler: ManualScheduler, sync: TableSync, table: Element
    ) -> None:
        sync.machine.enter_edit(table)
        sync.machine.exit_edit(table)
        scheduler.run_until_idle()
        assert document.focused is None

    def test_blocks_are_independent(
        self, document: Document, scheduler: ManualScheduler, sync: TableSync, table: Element,
        make_block: BlockFactory,
    ) -> None:
        other = make_block("C | D", "3 | 4")
        document.body.append(other)
        scheduler.run_until_idle()

        assert sync.machine.enter_edit(table)
        assert sync.machine.enter_edit(other)
        sync.machine.exit_edit(other)

        assert sync.machine.is_editing(table)
        assert not sync.machine.is_editing(other)


class TestExitEdit:
    """Edit -> View."""

    def test_click_outside_before_arming_is_ignored(
        self, document: Document, scheduler: ManualScheduler, sync: TableSync, table: Element,
        outside: Element,
    ) -> None:
        document.click(_cell(table))
        scheduler.advance(0.05)
        document.click(outside.element_children[0])
        assert sync.machine.is_editing(table)

    def test_click_outside_after_arming_exits(
        self, document: Document, scheduler: ManualScheduler, sync: TableSync, table: Element,
        outside: Element,
    ) -> None:
        document.click(_cell(table))
        scheduler.advance(0.1)

        document.click(outside.element_children[0])

        assert not sync.machine.is_editing(table)
        assert not table.has_class("editing")
        assert table not in sync.machine.exits

    def test_click_inside_keeps_editing(
        self, document: Document, scheduler: ManualScheduler, sync: TableSync, table: Element
    ) -> None:
        document.click(_cell(table))
        scheduler.advance(0.1)
        document.click(sync.markup.editable_lines(table)[1])
        assert sync.machine.is_editing(table)

    def test_exit_commits_text(
        self, document: Document, scheduler: ManualScheduler, sync: TableSync, table: Element
    ) -> None:
        sync.machine.enter_edit(table)
        lines = sync.markup.editable_lines(table)
        lines[1].set_text("3 | 4")
        scheduler.run_until_idle()

        assert sync.machine.exit_edit(table) is ReconcileOutcome.UPDATED
        assert _cell(table).text_content == "3"

    def test_exit_removes_table_when_text_no_longer_tabular(
        self, sync: TableSync, table: Element
    ) -> None:
        sync.machine.enter_edit(table)
        sync.markup.editable_lines(table)[1].remove()

        assert sync.machine.exit_edit(table) is ReconcileOutcome.REMOVED
        assert not sync.markup.has_rendered_table(table)
        assert not table.has_class("editing")

    def test_exit_when_not_editing(self, sync: TableSync, table: Element) -> None:
        assert sync.machine.exit_edit(table) is None

    def test_forget_drops_handler_without_commit(self, sync: TableSync, table: Element) -> None:
        sync.machine.enter_edit(table)
        calls = sync.reconciler.stats.calls
        sync.machine.forget(table)
        assert table not in sync.machine.exits
        assert sync.reconciler.stats.calls == calls


class TestExitHandlerRegistry:
    def test_register_replaces(self) -> None:
        registry = ExitHandlerRegistry()
        block = Element("div")
        first, second = ExitHandler(block), ExitHandler(block)
        registry.register(first)
        registry.register(second)
        assert registry.get(block) is second
        assert len(registry) == 1

    def test_active_only_armed(self) -> None:
        registry = ExitHandlerRegistry()
        armed = ExitHandler(Element("div"), armed=True)
        registry.register(armed)
        registry.register(ExitHandler(Element("div")))
        assert registry.active() == [armed]

    def test_should_exit(self) -> None:
        inside = Element("span")
        block = Element("div", children=(inside,))
        handler = ExitHandler(block)
        assert not handler.should_exit(Element("p"))
        handler.armed = True
        assert handler.should_exit(Element("p"))
        assert not handler.should_exit(inside)

    def test_unregister_and_clear(self) -> None:
        registry = ExitHandlerRegistry()
        block = Element("div")
        registry.register(ExitHandler(block))
        assert registry.unregister(block) is not None
        assert registry.unregister(block) is None
        registry.register(ExitHandler(block))
        registry.clear()
        assert len(registry) == 0
