"""
Activity input value object.

One recompute call carries one ``ActivityInput``: the engagement signals of
a single session plus any social counts and newly granted achievements. It is
transient and never persisted verbatim.

``from_payload`` is the boundary parser used by transport layers. Absent
fields take neutral defaults; present fields of the wrong type raise
``ValidationError``. Negative counts and minutes are clamped to zero rather
than rejected, and watched minutes are capped at one day. Both snake_case and
the camelCase keys of the legacy HTTP API are accepted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Tuple

from reputation_engine.domain.models.base import is_number
from reputation_engine.modules.shared.exceptions import ValidationError

DEFAULT_SESSION_QUALITY = "average"

# Upper bound for minutes_watched in a single session
MAX_SESSION_MINUTES = 24 * 60

_CAMEL_CASE_ALIASES: Dict[str, str] = {
    "minutesWatched": "minutes_watched",
    "durationInMinutes": "duration_in_minutes",
    "sessionQuality": "session_quality",
    "isStreak": "is_streak",
    "isNewUser": "is_new_user",
    "socialActions": "social_actions",
    "newAchievements": "new_achievements",
    "skillProgress": "skill_progress",
}


@dataclass(frozen=True)
class ActivityInput:
    """
    Signals for one recompute.

    Attributes
    ----------
    minutes_watched : float
        Engaged minutes in the session, in [0, MAX_SESSION_MINUTES]
    duration_in_minutes : float
        Total session length; efficiency is minutes_watched / duration
    session_quality : str
        Quality label; unknown labels score as "average"
    is_streak, is_new_user : bool
        XP multiplier flags
    collaborations, helpfulness : int
        Social counts (>= 0)
    social_actions : Mapping[str, Any]
        Free-form counts, echoed back in the result only
    new_achievements : Tuple[str, ...]
        Achievement identifiers granted by this session
    skill_progress : float
        Skill progress points, clamped to [0, 100] by the achievement score
    """

    minutes_watched: float = 0
    duration_in_minutes: float = 1
    session_quality: str = DEFAULT_SESSION_QUALITY
    is_streak: bool = False
    is_new_user: bool = False
    collaborations: int = 0
    helpfulness: int = 0
    social_actions: Mapping[str, Any] = field(default_factory=dict)
    new_achievements: Tuple[str, ...] = ()
    skill_progress: float = 0

    def __post_init__(self) -> None:
        for name in (
            "minutes_watched",
            "duration_in_minutes",
            "collaborations",
            "helpfulness",
            "skill_progress",
        ):
            value = getattr(self, name)
            if not is_number(value):
                raise ValidationError(name, f"expected a number, got {value!r}")

        for name in ("minutes_watched", "duration_in_minutes", "collaborations", "helpfulness"):
            if getattr(self, name) < 0:
                object.__setattr__(self, name, 0)
        if self.minutes_watched > MAX_SESSION_MINUTES:
            object.__setattr__(self, "minutes_watched", MAX_SESSION_MINUTES)

        if not isinstance(self.session_quality, str):
            raise ValidationError(
                "session_quality", f"expected a label, got {self.session_quality!r}"
            )
        for name in ("is_streak", "is_new_user"):
            if not isinstance(getattr(self, name), bool):
                raise ValidationError(name, f"expected a boolean, got {getattr(self, name)!r}")
        if not isinstance(self.social_actions, Mapping):
            raise ValidationError("social_actions", "expected a mapping of counts")

        if isinstance(self.new_achievements, (str, bytes)) or not isinstance(
            self.new_achievements, (list, tuple)
        ):
            raise ValidationError("new_achievements", "expected a list of identifiers")
        if not all(isinstance(item, str) for item in self.new_achievements):
            raise ValidationError("new_achievements", "identifiers must be strings")
        object.__setattr__(self, "new_achievements", tuple(self.new_achievements))

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ActivityInput":
        """
        Build an input from a transport payload.

        Example
        -------
        >>> ActivityInput.from_payload({"minutesWatched": 30, "sessionQuality": "good"})
        ActivityInput(minutes_watched=30, duration_in_minutes=1, session_quality='good', ...)
        """
        if not isinstance(payload, Mapping):
            raise ValidationError("payload", "activity payload must be a mapping")

        known = {f for f in cls.__dataclass_fields__}
        kwargs: Dict[str, Any] = {}
        for key, value in payload.items():
            name = _CAMEL_CASE_ALIASES.get(key, key)
            if name not in known or value is None:
                continue
            kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "minutes_watched": self.minutes_watched,
            "duration_in_minutes": self.duration_in_minutes,
            "session_quality": self.session_quality,
            "is_streak": self.is_streak,
            "is_new_user": self.is_new_user,
            "collaborations": self.collaborations,
            "helpfulness": self.helpfulness,
            "social_actions": dict(self.social_actions),
            "new_achievements": list(self.new_achievements),
            "skill_progress": self.skill_progress,
        }
