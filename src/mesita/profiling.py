"""Reconciliation counters.

Each Reconciler keeps a ReconcileStats. Counting is a dict increment per
call, cheap enough to leave on; hosts can log ``summary()`` when chasing a
table that will not update or a loop that will not settle.

Example:
    sync = TableSync(document)
    sync.load()
    ...
    print(sync.reconciler.stats.summary())
    # {"calls": 12, "rendered": 3, "busy": 0, ...}

"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ReconcileOutcome(Enum):
    """What a single reconcile call did."""

    BUSY = "busy"
    EDITING = "editing"
    RENDERED = "rendered"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    REMOVED = "removed"
    NOT_A_TABLE = "not-a-table"
    KEPT = "kept"

    @property
    def wrote(self) -> bool:
        """True if the call wrote table markup into the host tree."""
        return self in (ReconcileOutcome.RENDERED, ReconcileOutcome.UPDATED)


@dataclass
class ReconcileStats:
    """Accumulated reconcile outcomes.

    Attributes:
        calls: Number of reconcile calls recorded
        batches: Number of mutation batches handled
        skipped_batches: Batches dropped because the lock was held
        outcomes: Count per outcome

    """

    calls: int = 0
    batches: int = 0
    skipped_batches: int = 0
    outcomes: Counter[ReconcileOutcome] = field(default_factory=Counter)

    def record(self, outcome: ReconcileOutcome) -> ReconcileOutcome:
        self.calls += 1
        self.outcomes[outcome] += 1
        return outcome

    def count(self, outcome: ReconcileOutcome) -> int:
        return self.outcomes[outcome]

    def reset(self) -> None:
        self.calls = 0
        self.batches = 0
        self.skipped_batches = 0
        self.outcomes.clear()

    def summary(self) -> dict[str, Any]:
        """Counters as a plain dict."""
        result: dict[str, Any] = {
            "calls": self.calls,
            "batches": self.batches,
            "skipped_batches": self.skipped_batches,
        }
        for outcome in ReconcileOutcome:
            result[outcome.value] = self.outcomes[outcome]
        return result


__all__ = ["ReconcileOutcome", "ReconcileStats"]
