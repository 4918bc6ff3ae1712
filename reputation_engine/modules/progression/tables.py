"""
Leveling and session tables.

Frozen value objects passed by value into the calculators. The defaults here
are the production balance; ``reputation_engine.modules.reputation.tables``
can build replacements from YAML.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from reputation_engine.domain.models.game_state import MAX_LEVEL
from reputation_engine.modules.shared.exceptions import ConfigurationError

DEFAULT_QUALITY_FACTORS: Mapping[str, float] = MappingProxyType(
    {
        "excellent": 1.5,
        "good": 1.2,
        "average": 1.0,
        "poor": 0.8,
    }
)

# Minutes at which a session is considered short, medium, long and extended
DEFAULT_SESSION_THRESHOLDS: Mapping[str, int] = MappingProxyType(
    {
        "short": 5,
        "medium": 15,
        "long": 30,
        "extended": 60,
    }
)


@dataclass(frozen=True)
class LevelingTable:
    """
    XP curve and bonus multipliers.

    ``threshold(level)`` is the cumulative experience at which a user leaves
    ``level``: ``floor(base_xp * growth_rate ** (level - 1))``.
    """

    base_xp: int = 100
    growth_rate: float = 1.5
    max_level: int = 100
    xp_per_minute: int = 2
    new_user_multiplier: float = 2.0
    streak_multiplier: float = 1.5
    verified_multiplier: float = 1.3
    daily_login_multiplier: float = 1.2

    def __post_init__(self) -> None:
        if self.base_xp <= 0:
            raise ConfigurationError("leveling.base_xp", "must be positive")
        if self.growth_rate <= 1:
            raise ConfigurationError("leveling.growth_rate", "must be greater than 1")
        if self.max_level < 1:
            raise ConfigurationError("leveling.max_level", "must be at least 1")
        if self.max_level > MAX_LEVEL:
            raise ConfigurationError("leveling.max_level", f"must not exceed {MAX_LEVEL}")
        for name in (
            "new_user_multiplier",
            "streak_multiplier",
            "verified_multiplier",
            "daily_login_multiplier",
        ):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"leveling.{name}", "must be positive")

    def threshold(self, level: int) -> int:
        return math.floor(self.base_xp * self.growth_rate ** (level - 1))


@dataclass(frozen=True)
class SessionTable:
    """Session quality factors and length thresholds."""

    quality_factors: Mapping[str, float] = field(
        default_factory=lambda: DEFAULT_QUALITY_FACTORS
    )
    thresholds: Mapping[str, int] = field(
        default_factory=lambda: DEFAULT_SESSION_THRESHOLDS
    )
    default_quality_factor: float = 1.0

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "quality_factors", MappingProxyType(dict(self.quality_factors))
        )
        object.__setattr__(self, "thresholds", MappingProxyType(dict(self.thresholds)))
        if any(factor < 0 for factor in self.quality_factors.values()):
            raise ConfigurationError("session.quality_factors", "factors must be >= 0")

    def quality_factor(self, label: str) -> float:
        """Factor for a quality label; unknown labels score as average."""
        return self.quality_factors.get(label, self.default_quality_factor)

    def classify(self, minutes: float) -> Optional[str]:
        """
        Longest threshold name the session reaches, or None below the shortest.

        Example
        -------
        >>> SessionTable().classify(20)
        'medium'
        """
        reached = None
        for name, minimum in sorted(self.thresholds.items(), key=lambda item: item[1]):
            if minutes >= minimum:
                reached = name
        return reached


LEVELING_TABLE = LevelingTable()
SESSION_TABLE = SessionTable()
