"""Reconciliation of block text with rendered tables.

The reconciler decides whether and when a block's table is re-derived from
its text. The hard part is that its own writes land in the tree it watches.
Two mechanisms keep it from feeding on itself:

UpdateLock:
    A scoped, non-blocking lock held for the whole of every write. A
    reconcile or batch that arrives while it is held is skipped, never
    queued. Release happens in ``finally``, so an exception cannot leave the
    lock stuck and silently disable reconciliation for the rest of the
    session.

Origin tagging:
    Writes happen inside ``document.origin(reconciler)``. The plugin's
    subscription filter drops records carrying that origin, and it only
    subscribes to child-list changes: painting styles or toggling markers
    is never observed.

Outcomes:
    Every call returns a ReconcileOutcome and is counted in ``stats``.

"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from mesita.blocks import BlockMarkup
from mesita.config import SyncConfig, get_sync_config
from mesita.errors import HostError
from mesita.extract import extract_block_text
from mesita.host.dom import Document, Element
from mesita.host.events import MutationBatch, MutationRecord
from mesita.model import BlockState, ParseFailure
from mesita.parser import looks_tabular, parse_table
from mesita.profiling import ReconcileOutcome, ReconcileStats
from mesita.renderers.html import TableRenderer
from mesita.theme import ThemeAdapter
from mesita.utils.logger import get_logger

logger = get_logger(__name__)


class UpdateLock:
    """Non-blocking reentrancy guard.

    Usage:
        >>> lock = UpdateLock()
        >>> with lock.hold() as acquired:
        ...     acquired, lock.held
        (True, True)
        >>> lock.held
        False

    """

    __slots__ = ("_held",)

    def __init__(self) -> None:
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    @contextmanager
    def hold(self) -> Iterator[bool]:
        """Acquire for the duration of the block.

        Yields:
            False without acquiring when already held, True otherwise
        """
        if self._held:
            yield False
            return
        self._held = True
        try:
            yield True
        finally:
            self._held = False


class BlockStates:
    """Registry of BlockState keyed by block identity."""

    __slots__ = ("_states",)

    def __init__(self) -> None:
        self._states: dict[Element, BlockState] = {}

    def get(self, block: Element) -> BlockState | None:
        return self._states.get(block)

    def ensure(self, block: Element) -> BlockState:
        state = self._states.get(block)
        if state is None:
            state = self._states[block] = BlockState(block)
        return state

    def forget(self, block: Element) -> BlockState | None:
        return self._states.pop(block, None)

    def __contains__(self, block: object) -> bool:
        return block in self._states

    def __iter__(self) -> Iterator[BlockState]:
        return iter(list(self._states.values()))

    def __len__(self) -> int:
        return len(self._states)


class Reconciler:
    """Keeps each block's rendered table in line with its text.

    Usage:
        >>> from mesita.host.dom import Document
        >>> doc = Document()
        >>> reconciler = Reconciler(doc)
        >>> reconciler.sweep()
        []

    """

    __slots__ = (
        "_document",
        "_config",
        "_markup",
        "_renderer",
        "_theme",
        "states",
        "lock",
        "stats",
    )

    def __init__(
        self,
        document: Document,
        *,
        states: BlockStates | None = None,
        theme: ThemeAdapter | None = None,
        config: SyncConfig | None = None,
    ) -> None:
        self._document = document
        self._config = config or get_sync_config()
        self._markup = BlockMarkup(self._config)
        self._renderer = TableRenderer(table_class=self._config.table_class)
        self._theme = theme or ThemeAdapter(document, self._config)
        self.states = states if states is not None else BlockStates()
        self.lock = UpdateLock()
        self.stats = ReconcileStats()

    def owns(self, record: MutationRecord) -> bool:
        """True for mutations this reconciler made."""
        return record.origin is self

    def state_for(self, block: Element) -> BlockState:
        """State of ``block``, created on first sight.

        A block first seen with an edit marker has no live edit session
        behind it (it was copied or re-inserted by the host); the marker is
        cleared and the block starts in View.
        """
        state = self.states.get(block)
        if state is None:
            state = self.states.ensure(block)
            state.has_rendered_table = self._markup.has_rendered_table(block)
            if self._markup.is_editing(block):
                logger.debug("Clearing stale edit marker on %r", block)
                self._markup.set_editing(block, False)
        return state

    # =========================================================================
    # Single block
    # =========================================================================

    def reconcile_block(self, block: Element, *, force: bool = False) -> ReconcileOutcome:
        """Re-derive and write the table for one block.

        Args:
            block: Host block element
            force: Reconcile even if the block is in Edit mode (used while
                the block is leaving Edit)

        Returns:
            What the call did
        """
        if self.lock.held:
            logger.debug("Skipping re-entrant reconcile of %r", block)
            return self.stats.record(ReconcileOutcome.BUSY)

        state = self.state_for(block)
        if state.editing and not force:
            return self.stats.record(ReconcileOutcome.EDITING)

        with self.lock.hold(), self._document.origin(self):
            return self.stats.record(self._reconcile(block, state))

    def _reconcile(self, block: Element, state: BlockState) -> ReconcileOutcome:
        delimiter = self._config.delimiter
        text = extract_block_text(block, self._markup)

        if text is None or not looks_tabular(text, delimiter=delimiter):
            return self._remove_table(block, state)

        result = parse_table(text, delimiter=delimiter)
        if isinstance(result, ParseFailure):
            logger.debug("Keeping previous render of %r: %s", block, result.message)
            return ReconcileOutcome.KEPT

        wrapper = self._markup.find_wrapper(block)
        container = self._markup.find_container(wrapper) if wrapper is not None else None

        if (
            container is not None
            and state.last_known_text == text
            and self._markup.has_rendered_table(block)
        ):
            return ReconcileOutcome.UNCHANGED

        outcome = ReconcileOutcome.UPDATED
        if wrapper is None or container is None:
            if wrapper is not None:
                wrapper.remove()
            wrapper, container = self._create_wrapper()
            block.append(wrapper)
            outcome = ReconcileOutcome.RENDERED

        self._markup.set_rendered(block, True)
        # Content is replaced in place; wrapper and container keep their identity
        container.set_inner_html(self._renderer.render(result))
        self._theme.paint(wrapper)

        state.has_rendered_table = True
        state.last_known_text = text
        logger.debug(
            "%s table in %r (%d rows)", outcome.value.capitalize(), block, len(result.rows)
        )
        return outcome

    def _remove_table(self, block: Element, state: BlockState) -> ReconcileOutcome:
        wrapper = self._markup.find_wrapper(block)
        had_table = wrapper is not None or self._markup.has_rendered_table(block)
        if wrapper is not None:
            wrapper.remove()
        self._markup.set_rendered(block, False)
        state.has_rendered_table = False
        state.last_known_text = None
        if had_table:
            logger.debug("Removed stale table from %r", block)
            return ReconcileOutcome.REMOVED
        return ReconcileOutcome.NOT_A_TABLE

    def _create_wrapper(self) -> tuple[Element, Element]:
        config = self._config
        hint = Element("div", classes=(config.hint_class,), text=config.hint_text)
        container = Element("div", classes=(config.container_class,))
        wrapper = Element("div", classes=(config.wrapper_class,), children=(hint, container))
        return wrapper, container

    # =========================================================================
    # Many blocks
    # =========================================================================

    def handle_batch(self, batch: MutationBatch) -> list[ReconcileOutcome]:
        """Reconcile every block inserted by a batch of mutations.

        Each block is reconciled once, in the order it first appears. The
        whole batch is dropped while the lock is held.
        """
        self.stats.batches += 1
        if self.lock.held:
            self.stats.skipped_batches += 1
            logger.debug("Dropping batch of %d records during update", len(batch))
            return []

        blocks: dict[Element, None] = {}
        for node in batch.added_nodes():
            if node.is_connected:
                blocks.update(dict.fromkeys(self._markup.iter_blocks(node)))

        outcomes: list[ReconcileOutcome] = []
        for block in blocks:
            try:
                outcomes.append(self.reconcile_block(block))
            except HostError:
                logger.debug("Reconciling %r failed", block, exc_info=True)
        return outcomes

    def sweep(self, root: Element | None = None) -> list[ReconcileOutcome]:
        """Reconcile every block under ``root`` (the body by default)."""
        root = root if root is not None else self._document.body
        return [self.reconcile_block(block) for block in list(self._markup.iter_blocks(root))]


__all__ = ["BlockStates", "Reconciler", "UpdateLock"]
