"""
Unit Tests for the Level and Experience Calculator
==================================================

Purpose
-------
Pin the XP award formula, the bonus multipliers and level advancement.

Test Coverage
-------------
- Base XP from minutes and session quality
- New-user, streak, verified and daily-login multipliers
- Level thresholds, multi-level gains and the level cap
- Level progress percentage

Testing Strategy
----------------
- Pure functions, no fixtures needed
- AAA pattern (Arrange, Act, Assert)
"""

import pytest

from reputation_engine.domain.models.activity import MAX_SESSION_MINUTES
from reputation_engine.domain.models.game_state import MAX_LEVEL
from reputation_engine.modules.progression import (
    LEVELING_TABLE,
    LevelingTable,
    calculate_level_and_xp,
    calculate_level_progress,
    calculate_xp_multiplier,
)
from reputation_engine.modules.shared.exceptions import ConfigurationError


# ============================================================================
# XP AWARD TESTS
# ============================================================================


@pytest.mark.unit
class TestXPAward:
    """Test the XP earned for one session."""

    def test_new_user_good_session_on_registration_day(self):
        """30 good minutes as a new user earn 144 XP and reach level 2."""
        # Act
        result = calculate_level_and_xp(
            prior_experience=0,
            prior_level=1,
            minutes_watched=30,
            session_quality="good",
            is_new_user=True,
            days_since_last_active=0,
        )

        # Assert
        assert result.earned_xp == 144
        assert result.experience == 144
        assert result.level == 2
        assert result.levels_gained == 1
        assert result.xp_to_next_level == 6

    def test_verified_user_returning_after_one_day(self):
        """Verified and daily-login bonuses stack to 31 XP for 10 average minutes."""
        # Act
        result = calculate_level_and_xp(
            prior_experience=0,
            prior_level=1,
            minutes_watched=10,
            session_quality="average",
            is_verified=True,
            days_since_last_active=1,
        )

        # Assert
        assert result.earned_xp == 31
        assert result.level == 1

    @pytest.mark.parametrize("days", [0, 2, 7])
    def test_daily_bonus_requires_exactly_one_day(self, days):
        """The daily-login bonus is skipped for any gap other than one day."""
        # Act
        result = calculate_level_and_xp(
            prior_experience=0,
            prior_level=1,
            minutes_watched=10,
            is_verified=True,
            days_since_last_active=days,
        )

        # Assert
        assert result.earned_xp == 26

    def test_unknown_quality_counts_as_average(self):
        """An unrecognized quality label uses factor 1.0."""
        # Act
        result = calculate_level_and_xp(0, 1, 10, "legendary", days_since_last_active=0)

        # Assert
        assert result.earned_xp == 20

    def test_poor_quality_floors_after_factor(self):
        """Quality is applied to the floored base XP and floored again."""
        # Act
        result = calculate_level_and_xp(0, 1, 7, "poor", days_since_last_active=0)

        # Assert
        assert result.earned_xp == 11

    def test_negative_minutes_earn_nothing(self):
        """Negative minutes are treated as zero."""
        # Act
        result = calculate_level_and_xp(50, 1, -30, "excellent", days_since_last_active=0)

        # Assert
        assert result.earned_xp == 0
        assert result.experience == 50

    def test_huge_minutes_are_capped(self):
        """Minutes beyond one day earn the same finite XP as a full day."""
        # Arrange
        full_day = calculate_level_and_xp(0, 1, MAX_SESSION_MINUTES, "excellent", days_since_last_active=0)

        # Act
        result = calculate_level_and_xp(0, 1, 1e308, "excellent", days_since_last_active=0)

        # Assert
        assert isinstance(result.earned_xp, int)
        assert result.earned_xp == full_day.earned_xp == 4320
        assert result.level == full_day.level


# ============================================================================
# MULTIPLIER TESTS
# ============================================================================


@pytest.mark.unit
class TestXPMultiplier:
    """Test the combined bonus multiplier."""

    def test_no_flags_is_neutral(self):
        """Without flags the multiplier is 1.0."""
        assert calculate_xp_multiplier(
            is_new_user=False, is_streak=False, is_verified=False, days_since_last_active=0
        ) == 1.0

    def test_all_bonuses_multiply(self):
        """All four bonuses compound."""
        # Act
        multiplier = calculate_xp_multiplier(
            is_new_user=True, is_streak=True, is_verified=True, days_since_last_active=1
        )

        # Assert
        assert multiplier == pytest.approx(2.0 * 1.5 * 1.3 * 1.2)

    def test_custom_table_multipliers(self):
        """Multipliers come from the table passed in."""
        # Arrange
        table = LevelingTable(streak_multiplier=3.0)

        # Act
        multiplier = calculate_xp_multiplier(
            is_new_user=False,
            is_streak=True,
            is_verified=False,
            days_since_last_active=0,
            table=table,
        )

        # Assert
        assert multiplier == 3.0


# ============================================================================
# LEVEL ADVANCEMENT TESTS
# ============================================================================


@pytest.mark.unit
class TestLevelAdvancement:
    """Test thresholds, multi-level gains and the cap."""

    def test_thresholds_follow_growth_curve(self):
        """threshold(L) = floor(100 * 1.5 ** (L - 1))."""
        assert [LEVELING_TABLE.threshold(level) for level in (1, 2, 3, 4)] == [
            100,
            150,
            225,
            337,
        ]

    def test_large_award_gains_several_levels(self):
        """One award can cross several thresholds."""
        # Act
        result = calculate_level_and_xp(0, 1, 200, "average", days_since_last_active=0)

        # Assert
        assert result.experience == 400
        assert result.level == 5
        assert result.levels_gained == 4

    def test_level_never_exceeds_cap(self):
        """Level stops at 100 however much XP is earned."""
        # Act
        result = calculate_level_and_xp(10**20, 99, 60, "excellent", days_since_last_active=0)

        # Assert
        assert result.level == 100
        assert result.xp_to_next_level == 0
        assert result.level_progress == 100.0

    def test_level_never_decreases(self):
        """A stored level above what the experience implies is kept."""
        # Act
        result = calculate_level_and_xp(0, 5, 0, days_since_last_active=0)

        # Assert
        assert result.level == 5
        assert result.levels_gained == 0

    def test_to_dict_shape(self):
        """The level block exposes current level and XP figures."""
        # Act
        block = calculate_level_and_xp(0, 1, 30, "good", is_new_user=True, days_since_last_active=0).to_dict()

        # Assert
        assert block == {
            "current": 2,
            "experience": 144,
            "earned_xp": 144,
            "xp_to_next_level": 6,
            "level_progress": 88.0,
            "levels_gained": 1,
        }


# ============================================================================
# PROGRESS & TABLE TESTS
# ============================================================================


@pytest.mark.unit
class TestLevelProgress:
    """Test progress through the current level band."""

    def test_level_one_band_starts_at_zero(self):
        """Level 1 progress is measured from 0 XP."""
        assert calculate_level_progress(1, 50) == 50.0

    def test_progress_within_higher_band(self):
        """Level 2 spans [100, 150)."""
        assert calculate_level_progress(2, 125) == 50.0

    def test_progress_is_clamped(self):
        """Experience below the band floor reports 0."""
        assert calculate_level_progress(3, 0) == 0.0


@pytest.mark.unit
class TestLevelingTable:
    """Test leveling table invariants."""

    def test_growth_rate_must_exceed_one(self):
        """A flat curve is rejected."""
        with pytest.raises(ConfigurationError):
            LevelingTable(growth_rate=1.0)

    def test_multipliers_must_be_positive(self):
        """Zero multipliers are rejected."""
        with pytest.raises(ConfigurationError):
            LevelingTable(verified_multiplier=0)

    def test_max_level_bounded_by_state_cap(self):
        """A cap above the level a stored state may hold is rejected."""
        with pytest.raises(ConfigurationError) as exc_info:
            LevelingTable(max_level=MAX_LEVEL + 1)

        assert exc_info.value.key == "leveling.max_level"
