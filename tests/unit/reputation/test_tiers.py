"""
Unit Tests for Tier Resolution
==============================

Purpose
-------
Pin the tier bands, their boundaries and the next-tier distance.

Test Coverage
-------------
- Band boundaries for all six default tiers
- Out-of-range scores clamped before lookup
- Next tier and points needed, None at the top
- TierTable contiguity invariants

Testing Strategy
----------------
- Parametrized boundary checks
- AAA pattern (Arrange, Act, Assert)
"""

import pytest

from reputation_engine.modules.reputation import (
    TierBand,
    TierTable,
    next_tier,
    resolve_tier,
)
from reputation_engine.modules.shared.exceptions import ConfigurationError


# ============================================================================
# RESOLUTION TESTS
# ============================================================================


@pytest.mark.unit
class TestResolveTier:
    """Test score to tier mapping."""

    @pytest.mark.parametrize(
        "score, name",
        [
            (0, "Bronze"),
            (999, "Bronze"),
            (1000, "Silver"),
            (2499, "Silver"),
            (2500, "Gold"),
            (4999, "Gold"),
            (5000, "Platinum"),
            (7499, "Platinum"),
            (7500, "Diamond"),
            (9499, "Diamond"),
            (9500, "Legendary"),
            (10000, "Legendary"),
        ],
    )
    def test_band_boundaries(self, score, name):
        """Each boundary score resolves to its band."""
        assert resolve_tier(score).name == name

    @pytest.mark.parametrize("score, name", [(-5, "Bronze"), (20000, "Legendary")])
    def test_out_of_range_scores_are_clamped(self, score, name):
        """Scores outside [0, 10000] resolve to the end bands."""
        assert resolve_tier(score).name == name

    def test_band_carries_presentation(self):
        """Bands expose multiplier, color and badge."""
        # Act
        gold = resolve_tier(3000)

        # Assert
        assert gold.multiplier == 1.2
        assert gold.color == "#FFD700"
        assert gold.to_dict()["badge"] == gold.badge


@pytest.mark.unit
class TestNextTier:
    """Test the next-tier lookup."""

    def test_points_needed(self):
        """800 points need 200 more for Silver."""
        # Act
        upcoming = next_tier(800)

        # Assert
        assert upcoming is not None
        assert upcoming.tier.name == "Silver"
        assert upcoming.points_needed == 200
        assert upcoming.to_dict()["points_needed"] == 200
        assert upcoming.to_dict()["name"] == "Silver"

    def test_top_tier_has_no_next(self):
        """Legendary has nothing above it."""
        assert next_tier(9600) is None
        assert next_tier(10000) is None


# ============================================================================
# TABLE INVARIANT TESTS
# ============================================================================


@pytest.mark.unit
class TestTierTable:
    """Test TierTable validation."""

    def test_gap_between_bands_rejected(self):
        """Bands must be contiguous."""
        with pytest.raises(ConfigurationError):
            TierTable(
                bands=(
                    TierBand("Low", 0, 4999, 1.0),
                    TierBand("High", 5001, 10000, 1.2),
                )
            )

    def test_first_band_must_start_at_zero(self):
        """The first band starts at the minimum score."""
        with pytest.raises(ConfigurationError):
            TierTable(bands=(TierBand("Only", 1, 10000, 1.0),))

    def test_last_band_must_end_at_maximum(self):
        """The last band ends at the maximum score."""
        with pytest.raises(ConfigurationError):
            TierTable(bands=(TierBand("Only", 0, 9999, 1.0),))

    def test_multiplier_must_be_positive(self):
        """A zero multiplier is rejected."""
        with pytest.raises(ConfigurationError):
            TierTable(bands=(TierBand("Only", 0, 10000, 0),))

    def test_empty_table_rejected(self):
        """At least one band is required."""
        with pytest.raises(ConfigurationError):
            TierTable(bands=())

    def test_custom_table_resolves(self):
        """A valid custom table is used for lookups."""
        # Arrange
        table = TierTable(
            bands=(
                TierBand("Low", 0, 4999, 1.0),
                TierBand("High", 5000, 10000, 2.0),
            )
        )

        # Act & Assert
        assert resolve_tier(5000, table).name == "High"
        assert next_tier(100, table).points_needed == 4900
