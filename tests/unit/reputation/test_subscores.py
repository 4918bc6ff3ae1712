"""
Unit Tests for the Reputation Sub-Score Calculators
===================================================

Purpose
-------
Pin the five sub-score formulas and their caps.

Test Coverage
-------------
- Activity: efficiency, quality, recency ladder, capped engagement
- Social: collaboration, helpfulness, community presence
- Achievement: held, new, skills, badges and the total cap
- Trust: verification, credibility ladder, profile completeness
- Consistency: recency plus account-age bonus

Testing Strategy
----------------
- Pure functions with hand-computed expectations
- AAA pattern (Arrange, Act, Assert)
"""

import pytest

from reputation_engine.domain.models import UserProfile
from reputation_engine.modules.reputation import (
    calculate_achievement_score,
    calculate_activity_score,
    calculate_consistency_score,
    calculate_social_score,
    calculate_trust_score,
)
from reputation_engine.modules.reputation.subscores import recency_points


# ============================================================================
# ACTIVITY
# ============================================================================


@pytest.mark.unit
class TestActivityScore:
    """Test the activity sub-score."""

    def test_components_and_total(self):
        """30 of 40 good minutes today average to 71."""
        # Act
        score = calculate_activity_score(
            minutes_watched=30,
            duration_in_minutes=40,
            session_quality="good",
            days_since_last_active=0,
        )

        # Assert
        assert score.watch_time == 75
        assert score.quality == 60
        assert score.consistency == 100
        assert score.engagement == 50
        assert score.total == 71

    def test_efficiency_and_engagement_are_capped(self):
        """Watching past the duration and past an hour both cap at 100."""
        # Act
        score = calculate_activity_score(
            minutes_watched=120,
            duration_in_minutes=60,
            session_quality="excellent",
            days_since_last_active=1,
        )

        # Assert
        assert score.watch_time == 100
        assert score.engagement == 100
        assert score.quality == 75
        assert score.total == 93

    def test_zero_duration_uses_one_minute(self):
        """A zero duration does not divide by zero."""
        # Act
        score = calculate_activity_score(0, 0, "average", 40)

        # Assert
        assert score.watch_time == 0
        assert score.consistency == 20

    @pytest.mark.parametrize(
        "days, points",
        [(0, 100), (1, 100), (2, 80), (3, 80), (5, 60), (7, 60), (10, 40), (30, 40), (31, 20)],
    )
    def test_recency_ladder(self, days, points):
        """Recency points step down with inactivity."""
        assert recency_points(days) == points


# ============================================================================
# SOCIAL
# ============================================================================


@pytest.mark.unit
class TestSocialScore:
    """Test the social sub-score."""

    def test_components_and_total(self):
        """Counts scale by 10 and 5; a handle and one track give 40 community."""
        # Arrange
        profile = UserProfile(username="ada", tracks=("python",))

        # Act
        score = calculate_social_score(collaborations=3, helpfulness=4, profile=profile)

        # Assert
        assert score.collaboration == 30
        assert score.helpfulness == 20
        assert score.community == 40
        assert score.total == 30

    def test_anonymous_handle_earns_no_community_points(self):
        """The placeholder handle does not count."""
        # Act
        score = calculate_social_score(0, 0, UserProfile(username="Anonymous"))

        # Assert
        assert score.community == 0
        assert score.total == 0

    def test_tracks_and_counts_are_capped(self):
        """Track points cap at 40 and counts cap at 100."""
        # Arrange
        profile = UserProfile(
            username="ada",
            tracks=("a", "b", "c", "d", "e"),
            onboarding_completed=True,
        )

        # Act
        score = calculate_social_score(collaborations=50, helpfulness=50, profile=profile)

        # Assert
        assert score.collaboration == 100
        assert score.helpfulness == 100
        assert score.community == 100
        assert score.total == 100


# ============================================================================
# ACHIEVEMENT
# ============================================================================


@pytest.mark.unit
class TestAchievementScore:
    """Test the achievement sub-score."""

    def test_components_and_total(self):
        """Three held, one new, 40 skill points and two badges average to 50."""
        # Act
        score = calculate_achievement_score(3, 1, 40, 2)

        # Assert
        assert (score.existing, score.new, score.skills, score.badges) == (60, 50, 40, 50)
        assert score.total == 50

    def test_total_is_capped(self):
        """Many new grants cannot push the total past 100."""
        # Act
        score = calculate_achievement_score(20, 10, 100, 20)

        # Assert
        assert score.existing == 200
        assert score.badges == 200
        assert score.new == 500
        assert score.total == 100

    def test_skill_progress_is_clamped(self):
        """Skill progress is bounded to [0, 100]."""
        assert calculate_achievement_score(0, 0, 250, 0).skills == 100
        assert calculate_achievement_score(0, 0, -5, 0).skills == 0


# ============================================================================
# TRUST
# ============================================================================


@pytest.mark.unit
class TestTrustScore:
    """Test the trust sub-score."""

    @pytest.mark.parametrize(
        "days, credibility",
        [(0, 40), (29, 40), (30, 60), (180, 80), (200, 80), (365, 100), (900, 100)],
    )
    def test_credibility_ladder(self, days, credibility):
        """Credibility grows with time since verification."""
        # Act
        score = calculate_trust_score(UserProfile(is_verified=True), days)

        # Assert
        assert score.credibility == credibility

    def test_unverified_users_have_no_credibility(self):
        """Credibility needs verification even with a date on record."""
        # Act
        score = calculate_trust_score(UserProfile(is_verified=False), 400)

        # Assert
        assert score.verification == 0
        assert score.credibility == 0

    def test_verified_without_date_has_no_credibility(self):
        """A verified user with no verification date earns no credibility."""
        assert calculate_trust_score(UserProfile(is_verified=True), None).credibility == 0

    def test_complete_profile(self):
        """Every disclosed field together is worth 100."""
        # Arrange
        profile = UserProfile(
            name="Ada Lovelace",
            nationality="GB",
            gender="female",
            user_defined_data={"bio": "analyst"},
            onboarding_completed=True,
            is_verified=True,
        )

        # Act
        score = calculate_trust_score(profile, 400)

        # Assert
        assert score.profile == 100
        assert score.total == 100

    def test_anonymous_name_is_not_a_real_name(self):
        """The placeholder name earns no completeness points."""
        assert calculate_trust_score(UserProfile(name="Anonymous"), None).profile == 0


# ============================================================================
# CONSISTENCY
# ============================================================================


@pytest.mark.unit
class TestConsistencyScore:
    """Test the consistency sub-score."""

    @pytest.mark.parametrize(
        "days, age, expected",
        [(5, 200, 75), (0, 400, 100), (2, 40, 90), (40, 10, 20), (10, 365, 60)],
    )
    def test_recency_plus_account_age(self, days, age, expected):
        """The account-age bonus is added to recency and capped at 100."""
        assert calculate_consistency_score(days, age) == expected
