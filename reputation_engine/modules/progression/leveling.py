"""
Level and experience calculation.

Pure functions only: no clock, no store, no config lookups. Every input is
passed explicitly, including the number of whole days since the user was
last active, so results are deterministic and testable.

Usage
-----
    from reputation_engine.modules.progression.leveling import calculate_level_and_xp

    result = calculate_level_and_xp(
        prior_experience=0,
        prior_level=1,
        minutes_watched=30,
        session_quality="good",
        is_new_user=True,
        days_since_last_active=0,
    )
    result.level  # 2
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from reputation_engine.domain.models.activity import MAX_SESSION_MINUTES
from reputation_engine.modules.progression.tables import (
    LEVELING_TABLE,
    SESSION_TABLE,
    LevelingTable,
    SessionTable,
)


@dataclass(frozen=True)
class LevelResult:
    """Outcome of one XP award."""

    level: int
    experience: int
    earned_xp: int
    xp_to_next_level: int
    level_progress: float
    levels_gained: int
    xp_multiplier: float

    def to_dict(self) -> dict:
        return {
            "current": self.level,
            "experience": self.experience,
            "earned_xp": self.earned_xp,
            "xp_to_next_level": self.xp_to_next_level,
            "level_progress": self.level_progress,
            "levels_gained": self.levels_gained,
        }


def calculate_xp_multiplier(
    *,
    is_new_user: bool,
    is_streak: bool,
    is_verified: bool,
    days_since_last_active: int,
    table: LevelingTable = LEVELING_TABLE,
) -> float:
    """
    Combined bonus multiplier for an XP award.

    The daily-login bonus applies only when the gap is exactly one day.

    Example:
        >>> round(calculate_xp_multiplier(
        ...     is_new_user=False, is_streak=False, is_verified=True,
        ...     days_since_last_active=1,
        ... ), 2)
        1.56
    """
    multiplier = 1.0
    if is_new_user:
        multiplier *= table.new_user_multiplier
    if is_streak:
        multiplier *= table.streak_multiplier
    if is_verified:
        multiplier *= table.verified_multiplier
    if days_since_last_active == 1:
        multiplier *= table.daily_login_multiplier
    return multiplier


def calculate_level_progress(
    level: int, experience: int, table: LevelingTable = LEVELING_TABLE
) -> float:
    """
    Percentage through the current level band, in [0, 100].

    The band for ``level`` is ``[threshold(level - 1), threshold(level))``
    with a floor of 0 for level 1. At the level cap progress is 100.
    """
    if level >= table.max_level:
        return 100.0
    ceiling = table.threshold(level)
    floor_ = table.threshold(level - 1) if level > 1 else 0
    span = ceiling - floor_
    if span <= 0:
        return 100.0
    progress = (experience - floor_) / span * 100
    return round(min(max(progress, 0.0), 100.0), 2)


def calculate_level_and_xp(
    prior_experience: int,
    prior_level: int,
    minutes_watched: float,
    session_quality: str = "average",
    is_streak: bool = False,
    is_new_user: bool = False,
    is_verified: bool = False,
    days_since_last_active: int = 1,
    table: LevelingTable = LEVELING_TABLE,
    session_table: SessionTable = SESSION_TABLE,
) -> LevelResult:
    """
    Award XP for one session and advance the level.

    Args:
        prior_experience: Cumulative experience before this session
        prior_level: Level before this session
        minutes_watched: Engaged minutes, clamped to [0, MAX_SESSION_MINUTES]
        session_quality: Quality label; unknown labels count as average
        is_streak: Streak bonus flag
        is_new_user: New-user bonus flag
        is_verified: Verified-user bonus flag
        days_since_last_active: Whole days since the previous activity
        table: Leveling curve and multipliers
        session_table: Quality factors

    Returns:
        LevelResult with the new level and experience. Level never decreases
        and never exceeds ``table.max_level``.

    Example:
        >>> r = calculate_level_and_xp(0, 1, 30, "good", is_new_user=True, days_since_last_active=0)
        >>> (r.earned_xp, r.experience, r.level)
        (144, 144, 2)
    """
    minutes = min(max(minutes_watched, 0), MAX_SESSION_MINUTES)
    experience_before = max(prior_experience, 0)
    level = min(max(prior_level, 1), table.max_level)

    base_xp = math.floor(minutes * table.xp_per_minute)
    base_xp = math.floor(base_xp * session_table.quality_factor(session_quality))

    multiplier = calculate_xp_multiplier(
        is_new_user=is_new_user,
        is_streak=is_streak,
        is_verified=is_verified,
        days_since_last_active=days_since_last_active,
        table=table,
    )
    earned_xp = math.floor(base_xp * multiplier)
    experience = experience_before + earned_xp

    starting_level = level
    while level < table.max_level and experience >= table.threshold(level):
        level += 1

    xp_to_next = table.threshold(level) - experience if level < table.max_level else 0

    return LevelResult(
        level=level,
        experience=experience,
        earned_xp=earned_xp,
        xp_to_next_level=xp_to_next,
        level_progress=calculate_level_progress(level, experience, table),
        levels_gained=level - starting_level,
        xp_multiplier=multiplier,
    )
