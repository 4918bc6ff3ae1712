"""
Unit tests for the bounded reputation history ledger.
"""

from datetime import datetime, timedelta, timezone

import pytest

from reputation_engine.domain.models import HistoryEntry, MetricsSnapshot
from reputation_engine.modules.reputation import HistoryLedger

START = datetime(2025, 1, 1, tzinfo=timezone.utc)
EMPTY_BREAKDOWN = MetricsSnapshot(activity={}, social={}, achievement={}, trust={}, consistency=0)


def entry(index: int) -> HistoryEntry:
    return HistoryLedger.build_entry(
        date=START + timedelta(days=index),
        score=index,
        tier="Bronze",
        previous_score=max(index - 1, 0),
        breakdown=EMPTY_BREAKDOWN,
    )


@pytest.mark.unit
class TestHistoryLedger:
    """Test appending and eviction."""

    def test_append_below_capacity_keeps_everything(self):
        """Entries accumulate until the capacity is reached."""
        # Arrange
        ledger = HistoryLedger(capacity=3)

        # Act
        history = ledger.append([entry(0), entry(1)], entry(2))

        # Assert
        assert [item.score for item in history] == [0, 1, 2]

    def test_full_ledger_evicts_oldest(self):
        """At capacity the oldest entry is dropped."""
        # Arrange
        ledger = HistoryLedger(capacity=100)
        history = [entry(i) for i in range(100)]

        # Act
        updated = ledger.append(history, entry(100))

        # Assert
        assert len(updated) == 100
        assert updated[0].score == 1
        assert updated[-1].score == 100

    def test_append_does_not_mutate_input(self):
        """The given list is left untouched."""
        # Arrange
        ledger = HistoryLedger(capacity=2)
        history = [entry(0), entry(1)]

        # Act
        ledger.append(history, entry(2))

        # Assert
        assert [item.score for item in history] == [0, 1]

    def test_capacity_must_be_positive(self):
        """A zero capacity is rejected."""
        with pytest.raises(ValueError):
            HistoryLedger(capacity=0)


@pytest.mark.unit
class TestHistoryEntry:
    """Test entry construction."""

    def test_positive_change_reason(self):
        """A gain is described with a plus sign."""
        # Act
        built = HistoryLedger.build_entry(
            date=START, score=130, tier="Bronze", previous_score=100, breakdown=EMPTY_BREAKDOWN
        )

        # Assert
        assert built.change_amount == 30
        assert built.change_reason == "Activity update: +30 points"

    def test_negative_change_reason(self):
        """A loss keeps its minus sign."""
        # Act
        built = HistoryLedger.build_entry(
            date=START, score=90, tier="Bronze", previous_score=100, breakdown=EMPTY_BREAKDOWN
        )

        # Assert
        assert built.change_amount == -10
        assert built.change_reason == "Activity update: -10 points"

    def test_zero_change_reason(self):
        """No change is reported as +0."""
        assert HistoryEntry.describe_change(0) == "Activity update: +0 points"

    def test_dict_round_trip(self):
        """Entries survive serialization for JSON storage."""
        # Arrange
        original = entry(5)

        # Act
        restored = HistoryEntry.from_dict(original.to_dict())

        # Assert
        assert restored == original
