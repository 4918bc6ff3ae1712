"""
Unit Tests for the ActivityInput Value Object
============================================

Purpose
-------
Verify the boundary parser that turns a transport payload into an
ActivityInput.

Test Coverage
-------------
- Defaults for absent fields
- snake_case and camelCase keys
- Clamping of negative counts and oversized minutes
- Type validation errors

Testing Strategy
----------------
- Unit tests (fast, no database)
- AAA pattern (Arrange, Act, Assert)
"""

import pytest

from reputation_engine.domain.models import ActivityInput
from reputation_engine.domain.models.activity import MAX_SESSION_MINUTES
from reputation_engine.modules.shared.exceptions import ValidationError


# ============================================================================
# PARSING TESTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestActivityInputParsing:
    """Test ActivityInput.from_payload."""

    def test_empty_payload_uses_defaults(self):
        """Absent fields take neutral defaults."""
        # Act
        activity = ActivityInput.from_payload({})

        # Assert
        assert activity.minutes_watched == 0
        assert activity.duration_in_minutes == 1
        assert activity.session_quality == "average"
        assert activity.is_streak is False
        assert activity.new_achievements == ()

    def test_camel_case_keys(self):
        """Legacy camelCase keys map onto the snake_case fields."""
        # Act
        activity = ActivityInput.from_payload(
            {
                "minutesWatched": 30,
                "durationInMinutes": 45,
                "sessionQuality": "good",
                "isNewUser": True,
                "newAchievements": ["first-session"],
                "skillProgress": 12.5,
                "socialActions": {"comments": 2},
            }
        )

        # Assert
        assert activity.minutes_watched == 30
        assert activity.duration_in_minutes == 45
        assert activity.session_quality == "good"
        assert activity.is_new_user is True
        assert activity.new_achievements == ("first-session",)
        assert activity.skill_progress == 12.5
        assert activity.social_actions == {"comments": 2}

    def test_snake_case_keys(self):
        """snake_case keys are accepted as is."""
        # Act
        activity = ActivityInput.from_payload({"collaborations": 2, "helpfulness": 3})

        # Assert
        assert activity.collaborations == 2
        assert activity.helpfulness == 3

    def test_unknown_keys_and_nulls_are_ignored(self):
        """Extra keys are dropped and null values fall back to defaults."""
        # Act
        activity = ActivityInput.from_payload({"platform": "web", "sessionQuality": None})

        # Assert
        assert activity.session_quality == "average"

    def test_negative_counts_are_clamped(self):
        """Negative minutes and counts become zero."""
        # Act
        activity = ActivityInput.from_payload({"minutes_watched": -10, "collaborations": -2})

        # Assert
        assert activity.minutes_watched == 0
        assert activity.collaborations == 0

    def test_minutes_watched_capped_at_one_day(self):
        """Oversized minutes are capped at MAX_SESSION_MINUTES."""
        # Act
        activity = ActivityInput.from_payload({"minutesWatched": 1e308})

        # Assert
        assert activity.minutes_watched == MAX_SESSION_MINUTES

    def test_to_dict_uses_plain_containers(self):
        """Serialized form uses lists and dicts."""
        # Act
        data = ActivityInput(new_achievements=("a", "b")).to_dict()

        # Assert
        assert data["new_achievements"] == ["a", "b"]
        assert data["social_actions"] == {}


# ============================================================================
# VALIDATION TESTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestActivityInputValidation:
    """Test rejection of malformed payloads."""

    @pytest.mark.parametrize(
        "payload, field",
        [
            ({"minutesWatched": "thirty"}, "minutes_watched"),
            ({"minutesWatched": True}, "minutes_watched"),
            ({"minutesWatched": float("nan")}, "minutes_watched"),
            ({"sessionQuality": 5}, "session_quality"),
            ({"isStreak": "yes"}, "is_streak"),
            ({"socialActions": ["like"]}, "social_actions"),
            ({"newAchievements": "badge"}, "new_achievements"),
            ({"newAchievements": [1, 2]}, "new_achievements"),
        ],
    )
    def test_wrong_types_raise(self, payload, field):
        """Present fields of the wrong type raise ValidationError."""
        # Act & Assert
        with pytest.raises(ValidationError) as exc_info:
            ActivityInput.from_payload(payload)

        assert exc_info.value.field == field

    def test_payload_must_be_mapping(self):
        """A non-mapping payload is rejected."""
        with pytest.raises(ValidationError):
            ActivityInput.from_payload(["minutesWatched", 30])
