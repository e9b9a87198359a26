"""Integration tests for the TableSync plugin lifecycle."""

from __future__ import annotations

from typing import TypeAlias

import asyncio
import logging
from collections.abc import Callable

import pytest

from mesita import (
    BlockMode,
    PluginError,
    ReconcileOutcome,
    SyncConfig,
    TableSync,
    sync_config_context,
)
from mesita.host import AsyncioScheduler, Document, Element, ManualScheduler

BlockFactory: TypeAlias = Callable[..., Element]


class TestLifecycle:
    """load / unload / refresh."""

    def test_load_renders_existing_blocks(
        self, document: Document, make_block: BlockFactory
    ) -> None:
        block = make_block("A | B", "1 | 2")
        document.body.append(block)
        sync = TableSync(document)

        sync.load()

        assert sync.loaded
        assert sync.markup.has_rendered_table(block)
        sync.unload()

    def test_double_load(self, sync: TableSync) -> None:
        with pytest.raises(PluginError, match="Plugin load: already loaded"):
            sync.load()

    def test_unload_before_load(self, document: Document) -> None:
        with pytest.raises(PluginError) as exc_info:
            TableSync(document).unload()
        assert exc_info.value.operation == "unload"

    def test_load_logs(self, document: Document, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="mesita"):
            sync = TableSync(document)
            sync.load()
            sync.unload()
        messages = [record.getMessage() for record in caplog.records]
        assert any(message.startswith("Table sync loaded") for message in messages)
        assert any(message.startswith("Table sync unloaded") for message in messages)

    def test_unload_detaches(
        self,
        document: Document,
        scheduler: ManualScheduler,
        sync: TableSync,
        make_block: BlockFactory,
    ) -> None:
        table = make_block("A | B", "1 | 2")
        document.body.append(table)
        scheduler.run_until_idle()
        sync.machine.enter_edit(table)

        sync.unload()

        assert len(sync.machine.exits) == 0
        later = make_block("C | D", "3 | 4")
        document.body.append(later)
        scheduler.run_until_idle()
        assert not sync.markup.has_rendered_table(later)
        # Visibility rule is gone: raw lines show even under a rendered table
        assert document.is_displayed(sync.markup.editable_lines(table)[0])

    def test_unload_commits_open_edit(
        self,
        document: Document,
        scheduler: ManualScheduler,
        sync: TableSync,
        make_block: BlockFactory,
    ) -> None:
        table = make_block("A | B", "1 | 2")
        note = make_block("a note")
        document.body.append(table, note)
        scheduler.run_until_idle()
        sync.machine.enter_edit(table)
        scheduler.run_until_idle()
        sync.markup.editable_lines(table)[1].set_text("9 | 9")

        sync.unload()

        state = sync.states.get(table)
        assert state is not None
        assert state.mode is BlockMode.VIEW
        assert not table.has_class("editing")
        cell = table.query(lambda el: el.tag == "td")
        assert cell is not None
        assert cell.text_content == "9"

        # After reloading, the block enters and leaves Edit by clicks again
        sync.load()
        document.click(cell)
        scheduler.run_until_idle()
        assert sync.machine.is_editing(table)
        document.click(note.element_children[0])
        scheduler.run_until_idle()
        assert not sync.machine.is_editing(table)
        assert not table.has_class("editing")

    def test_unload_cancels_pending_caret(
        self,
        document: Document,
        scheduler: ManualScheduler,
        sync: TableSync,
        make_block: BlockFactory,
    ) -> None:
        table = make_block("A | B", "1 | 2")
        document.body.append(table)
        scheduler.run_until_idle()
        sync.machine.enter_edit(table)

        sync.unload()
        scheduler.run_until_idle()

        assert document.focused is None
        assert not sync.machine.is_editing(table)

    def test_reload(self, document: Document, sync: TableSync) -> None:
        sync.unload()
        sync.load()
        assert sync.loaded

    def test_config_captured_at_construction(
        self, document: Document, scheduler: ManualScheduler, make_block: BlockFactory
    ) -> None:
        with sync_config_context(SyncConfig(delimiter=";")):
            sync = TableSync(document)
        sync.load()
        block = make_block("a ; b", "1 ; 2")
        document.body.append(block)
        scheduler.run_until_idle()
        assert sync.markup.has_rendered_table(block)
        sync.unload()

    def test_refresh_single_block(
        self,
        document: Document,
        scheduler: ManualScheduler,
        sync: TableSync,
        make_block: BlockFactory,
    ) -> None:
        block = make_block("A | B", "1 | 2")
        document.body.append(block)
        scheduler.run_until_idle()

        sync.markup.editable_lines(block)[1].set_text("9 | 9")
        scheduler.run_until_idle()
        cell = block.query(lambda el: el.tag == "td")
        assert cell is not None
        assert cell.text_content == "1"

        assert sync.refresh(block) == [ReconcileOutcome.UPDATED]
        cell = block.query(lambda el: el.tag == "td")
        assert cell is not None
        assert cell.text_content == "9"

    def test_refresh_all(
        self,
        document: Document,
        scheduler: ManualScheduler,
        sync: TableSync,
        make_block: BlockFactory,
    ) -> None:
        document.body.append(make_block("A | B", "1 | 2"), make_block("plain"))
        scheduler.run_until_idle()
        assert sync.refresh() == [ReconcileOutcome.UNCHANGED, ReconcileOutcome.NOT_A_TABLE]

    def test_refresh_leaves_editing_block(
        self,
        document: Document,
        scheduler: ManualScheduler,
        sync: TableSync,
        make_block: BlockFactory,
    ) -> None:
        block = make_block("A | B", "1 | 2")
        document.body.append(block)
        scheduler.run_until_idle()
        sync.machine.enter_edit(block)
        sync.markup.editable_lines(block)[1].set_text("9 | 9")

        assert sync.refresh(block) == [ReconcileOutcome.EDITING]
        assert sync.refresh() == [ReconcileOutcome.EDITING]
        cell = block.query(lambda el: el.tag == "td")
        assert cell is not None
        assert cell.text_content == "1"

        assert sync.machine.exit_edit(block) is ReconcileOutcome.UPDATED
        cell = block.query(lambda el: el.tag == "td")
        assert cell is not None
        assert cell.text_content == "9"


class TestMutationDriven:
    """Rendering driven by host insertions."""

    def test_inserted_block_rendered_once(
        self,
        document: Document,
        scheduler: ManualScheduler,
        sync: TableSync,
        make_block: BlockFactory,
    ) -> None:
        document.body.append(make_block("A | B", "1 | 2"))
        scheduler.run_until_idle(limit=100)

        stats = sync.reconciler.stats
        assert stats.batches == 1
        assert stats.count(ReconcileOutcome.RENDERED) == 1
        assert stats.calls == 1

    def test_many_insertions_settle(
        self,
        document: Document,
        scheduler: ManualScheduler,
        sync: TableSync,
        make_block: BlockFactory,
    ) -> None:
        for i in range(20):
            document.body.append(make_block(f"H{i} | X", f"{i} | y"))
            scheduler.advance(0.0)
        scheduler.run_until_idle(limit=100)

        assert sync.reconciler.stats.count(ReconcileOutcome.RENDERED) == 20
        assert not sync.reconciler.lock.held

    def test_nested_insertion(
        self,
        document: Document,
        scheduler: ManualScheduler,
        sync: TableSync,
        make_block: BlockFactory,
    ) -> None:
        block = make_block("A | B", "1 | 2")
        document.body.append(Element("section", children=(Element("div", children=(block,)),)))
        scheduler.run_until_idle()
        assert sync.markup.has_rendered_table(block)

    def test_removed_block_state_dropped(
        self,
        document: Document,
        scheduler: ManualScheduler,
        sync: TableSync,
        make_block: BlockFactory,
    ) -> None:
        block = make_block("A | B", "1 | 2")
        document.body.append(block)
        scheduler.run_until_idle()
        sync.machine.enter_edit(block)

        block.remove()
        scheduler.run_until_idle()

        assert block not in sync.states
        assert block not in sync.machine.exits

    def test_moved_block_keeps_state(
        self,
        document: Document,
        scheduler: ManualScheduler,
        sync: TableSync,
        make_block: BlockFactory,
    ) -> None:
        block = make_block("A | B", "1 | 2")
        holder = Element("section")
        document.body.append(block, holder)
        scheduler.run_until_idle()

        holder.append(block)
        scheduler.run_until_idle()

        assert block in sync.states
        assert sync.reconciler.stats.count(ReconcileOutcome.UNCHANGED) == 1

    def test_copied_edit_marker_cleared(
        self,
        document: Document,
        scheduler: ManualScheduler,
        sync: TableSync,
        make_block: BlockFactory,
    ) -> None:
        block = make_block("A | B", "1 | 2")
        block.add_class("has-table-render")
        block.add_class("editing")
        document.body.append(block)
        scheduler.run_until_idle()

        assert not block.has_class("editing")
        assert sync.markup.find_wrapper(block) is not None
        assert not sync.machine.is_editing(block)

    def test_full_edit_cycle(
        self,
        document: Document,
        scheduler: ManualScheduler,
        sync: TableSync,
        make_block: BlockFactory,
        make_line: Callable[..., Element],
    ) -> None:
        table = make_block("Name | Qty", "apple | 1")
        note = make_block("a note")
        document.body.append(table, note)
        scheduler.run_until_idle()

        cell = table.query(lambda el: el.tag == "td")
        assert cell is not None
        document.click(cell)
        scheduler.run_until_idle()
        first = sync.markup.editable_lines(table)[0]
        assert document.focused is first

        table.append(make_line("pear | 2"))
        scheduler.run_until_idle()
        document.click(note.element_children[0])
        scheduler.run_until_idle(limit=100)

        assert not sync.machine.is_editing(table)
        cells = [td.text_content for td in table.query_all(lambda el: el.tag == "td")]
        assert cells == ["apple", "1", "pear", "2"]
        assert len(table.query_all(sync.markup.is_wrapper)) == 1


class TestAsyncioHost:
    def test_renders_on_event_loop(self, make_block: BlockFactory) -> None:
        async def main() -> bool:
            document = Document(AsyncioScheduler())
            sync = TableSync(document)
            sync.load()
            block = make_block("A | B", "1 | 2")
            document.body.append(block)
            await asyncio.sleep(0.01)
            sync.unload()
            return sync.markup.has_rendered_table(block)

        assert asyncio.run(main())
