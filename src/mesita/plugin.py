"""Plugin entry point wiring mesita into a host document.

TableSync owns one of each component and connects them to the host:

    mutation stream (child-list, own origin filtered) -> Reconciler
    click                                            -> EditStateMachine
    keydown                                          -> NavigationMapper
    themechange                                      -> ThemeAdapter

Example:
    >>> from mesita.host import Document, Element
    >>> doc = Document()
    >>> sync = TableSync(doc)
    >>> sync.load()
    >>> doc.body.append(Element("div", classes=("listitem-block",), text="A | B\\n1 | 2"))
    >>> _ = doc.scheduler.run_until_idle()
    >>> sync.reconciler.stats.count(ReconcileOutcome.RENDERED)
    1
    >>> sync.unload()

"""

from __future__ import annotations

from mesita.blocks import BlockMarkup
from mesita.config import SyncConfig, get_sync_config
from mesita.errors import PluginError
from mesita.host.dom import Document, Element, MutationStream
from mesita.host.events import Event, MutationRecord
from mesita.navigation import NavigationMapper
from mesita.profiling import ReconcileOutcome
from mesita.reconciler import BlockStates, Reconciler
from mesita.state import EditStateMachine
from mesita.theme import ThemeAdapter
from mesita.utils.logger import get_logger

logger = get_logger(__name__)


class TableSync:
    """Pipe-table rendering for one host document.

    The active SyncConfig is captured once, at construction.
    """

    def __init__(self, document: Document, *, config: SyncConfig | None = None) -> None:
        self.document = document
        self.config = config or get_sync_config()
        self.markup = BlockMarkup(self.config)
        self.theme = ThemeAdapter(document, self.config)
        self.states = BlockStates()
        self.reconciler = Reconciler(
            document, states=self.states, theme=self.theme, config=self.config
        )
        self.machine = EditStateMachine(document, self.reconciler, config=self.config)
        self.navigation = NavigationMapper(document, self.machine, config=self.config)
        self._stream: MutationStream | None = None

    @property
    def loaded(self) -> bool:
        return self._stream is not None

    def load(self) -> None:
        """Start observing the document and render existing blocks.

        Raises:
            PluginError: If already loaded
        """
        if self._stream is not None:
            raise PluginError("load", "already loaded")

        document = self.document
        self._stream = document.subscribe(filter=self._accepts, notify=self._drain)
        document.add_event_listener("click", self.machine.on_click)
        document.add_event_listener("keydown", self.navigation.on_keydown)
        document.add_event_listener("themechange", self._on_theme_change)
        document.add_hide_rule(self.markup.hides)

        self.theme.refresh()
        outcomes = self.reconciler.sweep()
        rendered = sum(1 for outcome in outcomes if outcome.wrote)
        logger.info(
            "Table sync loaded: %d blocks, %d tables (%s theme)",
            len(outcomes),
            rendered,
            self.theme.theme.value,
        )

    def unload(self) -> None:
        """Stop observing; rendered tables stay where they are.

        Blocks still in Edit are committed and returned to View first.

        Raises:
            PluginError: If not loaded
        """
        if self._stream is None:
            raise PluginError("unload", "not loaded")

        for handler in self.machine.exits:
            self.machine.exit_edit(handler.block)
        self.machine.exits.clear()

        document = self.document
        self._stream.close()
        self._stream = None
        document.remove_event_listener("click", self.machine.on_click)
        document.remove_event_listener("keydown", self.navigation.on_keydown)
        document.remove_event_listener("themechange", self._on_theme_change)
        document.remove_hide_rule(self.markup.hides)
        logger.info("Table sync unloaded (%s)", self.reconciler.stats.summary())

    def refresh(self, block: Element | None = None) -> list[ReconcileOutcome]:
        """Reconcile one block or the whole document.

        For hosts that change block text without inserting nodes. Blocks in
        Edit are left alone; they are committed when they exit.
        """
        if block is not None:
            return [self.reconciler.reconcile_block(block)]
        return self.reconciler.sweep()

    def _accepts(self, record: MutationRecord) -> bool:
        return not self.reconciler.owns(record)

    def _drain(self) -> None:
        if self._stream is None:
            return
        batch = self._stream.pull()
        if batch is None:
            return

        for node in batch.removed_nodes():
            if node.is_connected:
                continue
            for block in self.markup.iter_blocks(node):
                self.machine.forget(block)
                self.states.forget(block)

        self.reconciler.handle_batch(batch)

    def _on_theme_change(self, event: Event) -> None:
        self.theme.refresh()


__all__ = ["TableSync"]
