"""
Bounded reputation history.

The ledger appends one entry per recompute and keeps only the most recent
``capacity`` entries, evicting oldest first. It never mutates the list it is
given.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Sequence

from reputation_engine.domain.models.game_state import HistoryEntry, MetricsSnapshot

DEFAULT_HISTORY_CAPACITY = 100


class HistoryLedger:
    """Sliding window of history entries."""

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"history capacity must be >= 1, got {capacity}")
        self.capacity = capacity

    def append(
        self, history: Sequence[HistoryEntry], entry: HistoryEntry
    ) -> List[HistoryEntry]:
        """
        Return a new list with ``entry`` appended and the oldest entries
        dropped until at most ``capacity`` remain.
        """
        updated = [*history, entry]
        if len(updated) > self.capacity:
            updated = updated[-self.capacity:]
        return updated

    @staticmethod
    def build_entry(
        *,
        date: datetime,
        score: int,
        tier: str,
        previous_score: int,
        breakdown: MetricsSnapshot,
    ) -> HistoryEntry:
        """Entry describing the signed change from ``previous_score`` to ``score``."""
        change = score - previous_score
        return HistoryEntry(
            date=date,
            score=score,
            tier=tier,
            change_amount=change,
            change_reason=HistoryEntry.describe_change(change),
            breakdown=breakdown,
        )
