"""
Reputation sub-score calculators.

Five independent, side-effect free calculators. Each returns points in
[0, 100]; the four composite ones also report their components. Day counts
are passed in explicitly so the calculators never read a clock.

Usage
-----
    activity = calculate_activity_score(
        minutes_watched=30, duration_in_minutes=40,
        session_quality="good", days_since_last_active=0,
    )
    activity.total  # 71
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Dict, Optional

from reputation_engine.domain.models.game_state import MetricsSnapshot, UserProfile
from reputation_engine.modules.progression.tables import SESSION_TABLE, SessionTable

MAX_POINTS = 100

# (max days since last active, points), checked in order
RECENCY_LADDER = ((1, 100), (3, 80), (7, 60), (30, 40))
RECENCY_FLOOR = 20

# (min account age in days, bonus), checked in order
ACCOUNT_AGE_BONUSES = ((365, 20), (180, 15), (30, 10))

# (min days since verification, credibility), checked in order
CREDIBILITY_LADDER = ((365, 100), (180, 80), (30, 60))
CREDIBILITY_FLOOR = 40

PROFILE_FIELD_POINTS = {
    "name": 20,
    "nationality": 15,
    "gender": 10,
    "user_defined_data": 25,
    "onboarding": 30,
}


def _cap(points: float, cap: int = MAX_POINTS) -> int:
    return int(min(points, cap))


def recency_points(days_since_last_active: int) -> int:
    """
    Ladder shared by the activity and consistency scores.

    Example:
        >>> [recency_points(d) for d in (0, 1, 2, 5, 10, 31)]
        [100, 100, 80, 60, 40, 20]
    """
    for max_days, points in RECENCY_LADDER:
        if days_since_last_active <= max_days:
            return points
    return RECENCY_FLOOR


# ============================================================================
# Breakdowns
# ============================================================================


@dataclass(frozen=True)
class ActivityBreakdown:
    total: int
    watch_time: int
    quality: int
    consistency: int
    engagement: int

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class SocialBreakdown:
    total: int
    collaboration: int
    helpfulness: int
    community: int

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class AchievementBreakdown:
    total: int
    existing: int
    new: int
    skills: int
    badges: int

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class TrustBreakdown:
    total: int
    verification: int
    credibility: int
    profile: int

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class SubScores:
    """The five sub-scores of one recompute."""

    activity: ActivityBreakdown
    social: SocialBreakdown
    achievement: AchievementBreakdown
    trust: TrustBreakdown
    consistency: int

    def to_snapshot(self) -> MetricsSnapshot:
        return MetricsSnapshot(
            activity=self.activity.to_dict(),
            social=self.social.to_dict(),
            achievement=self.achievement.to_dict(),
            trust=self.trust.to_dict(),
            consistency=self.consistency,
        )


# ============================================================================
# Calculators
# ============================================================================


def calculate_activity_score(
    minutes_watched: float,
    duration_in_minutes: float,
    session_quality: str,
    days_since_last_active: int,
    session_table: SessionTable = SESSION_TABLE,
) -> ActivityBreakdown:
    """
    Average of watch efficiency, session quality, recency and engagement depth.

    Engagement is capped at 100 before it is averaged.
    """
    minutes = max(minutes_watched, 0)
    efficiency = min(minutes / max(duration_in_minutes, 1), 1.0)
    watch_time = math.floor(efficiency * 100)
    quality = math.floor(session_table.quality_factor(session_quality) * 50)
    consistency = recency_points(days_since_last_active)
    engagement = math.floor(min(minutes / 60 * 100, 100))

    return ActivityBreakdown(
        total=_cap(math.floor((watch_time + quality + consistency + engagement) / 4)),
        watch_time=watch_time,
        quality=quality,
        consistency=consistency,
        engagement=engagement,
    )


def calculate_social_score(
    collaborations: int,
    helpfulness: int,
    profile: UserProfile,
) -> SocialBreakdown:
    """Average of collaboration, helpfulness and community presence."""
    collaboration = _cap(max(collaborations, 0) * 10)
    helpful = _cap(max(helpfulness, 0) * 5)

    community = 0
    if profile.has_real_username:
        community += 30
    if profile.tracks:
        community += min(len(profile.tracks) * 10, 40)
    if profile.onboarding_completed:
        community += 30
    community = _cap(community)

    return SocialBreakdown(
        total=math.floor((collaboration + helpful + community) / 3),
        collaboration=collaboration,
        helpfulness=helpful,
        community=community,
    )


def calculate_achievement_score(
    existing_count: int,
    new_count: int,
    skill_progress: float,
    badge_count: int,
) -> AchievementBreakdown:
    """
    Average of achievements held, achievements granted now, skills and badges.

    Held achievements and badges are capped at 200 points each; new grants
    are not capped before averaging, so the total is capped at 100 instead.

    Example:
        >>> calculate_achievement_score(3, 1, 40, 2).total
        50
    """
    existing = min(existing_count * 20, 200)
    new = new_count * 50
    skills = math.floor(min(max(skill_progress, 0), 100))
    badges = min(badge_count * 25, 200)

    return AchievementBreakdown(
        total=_cap(math.floor((existing + new + skills + badges) / 4)),
        existing=existing,
        new=new,
        skills=skills,
        badges=badges,
    )


def calculate_trust_score(
    profile: UserProfile,
    days_since_verification: Optional[int],
) -> TrustBreakdown:
    """
    Average of verification, credibility and profile completeness.

    Credibility counts only for verified users with a known verification
    date; ``days_since_verification`` is None when there is none.
    """
    verification = 100 if profile.is_verified else 0

    credibility = 0
    if profile.is_verified and days_since_verification is not None:
        credibility = CREDIBILITY_FLOOR
        for min_days, points in CREDIBILITY_LADDER:
            if days_since_verification >= min_days:
                credibility = points
                break

    completeness = 0
    if profile.has_real_name:
        completeness += PROFILE_FIELD_POINTS["name"]
    if profile.nationality:
        completeness += PROFILE_FIELD_POINTS["nationality"]
    if profile.gender:
        completeness += PROFILE_FIELD_POINTS["gender"]
    if profile.user_defined_data:
        completeness += PROFILE_FIELD_POINTS["user_defined_data"]
    if profile.onboarding_completed:
        completeness += PROFILE_FIELD_POINTS["onboarding"]
    completeness = _cap(completeness)

    return TrustBreakdown(
        total=math.floor((verification + credibility + completeness) / 3),
        verification=verification,
        credibility=credibility,
        profile=completeness,
    )


def calculate_consistency_score(days_since_last_active: int, account_age_days: int) -> int:
    """
    Recency ladder plus an account-age bonus, capped at 100.

    Example:
        >>> calculate_consistency_score(days_since_last_active=5, account_age_days=200)
        75
    """
    points = recency_points(days_since_last_active)
    for min_age, bonus in ACCOUNT_AGE_BONUSES:
        if account_age_days >= min_age:
            points += bonus
            break
    return _cap(points)
