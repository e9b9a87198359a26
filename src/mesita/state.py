"""View/Edit transitions for table blocks.

A block with a rendered table is in one of two modes:

    VIEW --(click inside block, or arrow key from an adjacent line)--> EDIT
    EDIT --(click outside after arming, or caret leaves by arrow key)--> VIEW

Entering Edit only flips the editing marker; the host's raw lines become
visible through the visibility rule. Leaving Edit commits: the block is
reconciled once (forced) before the marker is cleared, so the table shown on
return reflects whatever was typed.

Exit handlers live in an ExitHandlerRegistry keyed by block. A handler is
armed a short delay after entering, so the very click that entered Edit can
not also leave it.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum, auto

from mesita.blocks import BlockMarkup
from mesita.config import SyncConfig, get_sync_config
from mesita.host.dom import Document, Element, Node
from mesita.host.events import Event
from mesita.model import BlockMode
from mesita.profiling import ReconcileOutcome
from mesita.reconciler import Reconciler
from mesita.utils.logger import get_logger

logger = get_logger(__name__)


class CaretPlacement(Enum):
    """Where the caret goes once a block has entered Edit."""

    FOCUS_FIRST = auto()
    START_OF_FIRST = auto()
    END_OF_LAST = auto()


@dataclass(slots=True, eq=False)
class ExitHandler:
    """Leaves Edit on a click outside ``block`` once armed."""

    block: Element
    armed: bool = False

    def should_exit(self, target: Node | None) -> bool:
        return self.armed and not self.block.contains(target)


class ExitHandlerRegistry:
    """One exit handler per block in Edit."""

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: dict[Element, ExitHandler] = {}

    def register(self, handler: ExitHandler) -> None:
        self._handlers[handler.block] = handler

    def unregister(self, block: Element) -> ExitHandler | None:
        return self._handlers.pop(block, None)

    def get(self, block: Element) -> ExitHandler | None:
        return self._handlers.get(block)

    def active(self) -> list[ExitHandler]:
        return [handler for handler in self._handlers.values() if handler.armed]

    def clear(self) -> None:
        self._handlers.clear()

    def __contains__(self, block: object) -> bool:
        return block in self._handlers

    def __iter__(self) -> Iterator[ExitHandler]:
        return iter(list(self._handlers.values()))

    def __len__(self) -> int:
        return len(self._handlers)


class EditStateMachine:
    """Per-block View/Edit state machine.

    Transitions of different blocks are independent; several blocks may be
    in Edit at once.
    """

    __slots__ = ("_document", "_config", "_markup", "_reconciler", "exits")

    def __init__(
        self,
        document: Document,
        reconciler: Reconciler,
        *,
        exits: ExitHandlerRegistry | None = None,
        config: SyncConfig | None = None,
    ) -> None:
        self._document = document
        self._config = config or get_sync_config()
        self._markup = BlockMarkup(self._config)
        self._reconciler = reconciler
        self.exits = exits if exits is not None else ExitHandlerRegistry()

    def mode(self, block: Element) -> BlockMode:
        state = self._reconciler.states.get(block)
        return state.mode if state is not None else BlockMode.VIEW

    def is_editing(self, block: Element) -> bool:
        return self.mode(block) is BlockMode.EDIT

    # =========================================================================
    # Transitions
    # =========================================================================

    def enter_edit(
        self,
        block: Element,
        *,
        placement: CaretPlacement = CaretPlacement.FOCUS_FIRST,
        delay: float | None = None,
    ) -> bool:
        """Switch a rendered-table block to Edit.

        Args:
            block: Host block element
            placement: Where to put the caret afterwards
            delay: Seconds before the caret is placed (defaults to
                ``focus_delay``)

        Returns:
            True if the block entered Edit
        """
        if not self._markup.has_rendered_table(block):
            return False
        state = self._reconciler.state_for(block)
        if state.editing:
            return False

        state.mode = BlockMode.EDIT
        self._markup.set_editing(block, True)

        handler = ExitHandler(block)
        self.exits.register(handler)
        scheduler = self._document.scheduler
        scheduler.call_later(self._config.arm_delay, lambda: self._arm(handler))
        if delay is None:
            delay = self._config.focus_delay
        scheduler.call_later(delay, lambda: self._place_caret(block, placement))

        logger.debug("Entered edit mode for %r", block)
        return True

    def exit_edit(self, block: Element) -> ReconcileOutcome | None:
        """Commit and return a block to View.

        Returns:
            Outcome of the committing reconcile, None if the block was not
            in Edit
        """
        state = self._reconciler.states.get(block)
        if state is None or not state.editing:
            return None

        self.exits.unregister(block)
        outcome = self._reconciler.reconcile_block(block, force=True)
        state.mode = BlockMode.VIEW
        self._markup.set_editing(block, False)

        logger.debug("Left edit mode for %r (%s)", block, outcome.value)
        return outcome

    def forget(self, block: Element) -> None:
        """Drop the exit handler of a removed block without committing."""
        self.exits.unregister(block)

    def _arm(self, handler: ExitHandler) -> None:
        # A handler replaced or dropped in the meantime stays unarmed
        if self.exits.get(handler.block) is handler:
            handler.armed = True

    def _place_caret(self, block: Element, placement: CaretPlacement) -> None:
        if not block.is_connected or not self.is_editing(block):
            return
        lines = self._markup.editable_lines(block)
        if not lines:
            return

        match placement:
            case CaretPlacement.FOCUS_FIRST:
                self._document.focus(lines[0])
            case CaretPlacement.START_OF_FIRST:
                self._document.set_cursor(lines[0], 0)
            case CaretPlacement.END_OF_LAST:
                last = lines[-1]
                self._document.set_cursor(last, len(last.text_content))

    # =========================================================================
    # Events
    # =========================================================================

    def on_click(self, event: Event) -> None:
        """Leave Edit on outside clicks; enter Edit on clicks into a table."""
        target = event.target
        if target is None:
            return

        for handler in self.exits.active():
            if handler.should_exit(target):
                self.exit_edit(handler.block)

        block = target.closest(self._markup.is_table_block)
        if block is not None:
            event.prevent_default()
            event.stop_propagation()
            self.enter_edit(block)


__all__ = [
    "CaretPlacement",
    "EditStateMachine",
    "ExitHandler",
    "ExitHandlerRegistry",
]
