"""
Result payloads returned by the progression service.

Payloads are plain dicts holding native values (datetimes stay datetimes).
``to_jsonable`` converts one into JSON-ready primitives for a transport layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping

from reputation_engine.domain.models import ActivityInput, UserGameState, whole_days_between
from reputation_engine.modules.progression import LevelResult
from reputation_engine.modules.reputation import (
    ReputationResult,
    ScoringTables,
    TierTable,
    next_tier,
    resolve_tier,
    round_half_up,
)

RECENT_ACHIEVEMENTS = 5


@dataclass(frozen=True)
class RecomputeOutcome:
    """Everything one recompute produced, before it is shaped into a payload."""

    state: UserGameState
    previous_score: int
    level: LevelResult
    reputation: ReputationResult
    activity: ActivityInput
    calculated_at: datetime


def session_efficiency(minutes_watched: float, duration_in_minutes: float) -> int:
    """
    Watched minutes as a percentage of the session length.

    Example:
        >>> session_efficiency(45, 60)
        75
    """
    return round_half_up(minutes_watched / max(duration_in_minutes, 1) * 100)


def _next_tier_block(score: int, tiers: TierTable) -> Any:
    upcoming = next_tier(score, tiers)
    return upcoming.to_dict() if upcoming is not None else None


def build_recompute_payload(outcome: RecomputeOutcome, tables: ScoringTables) -> Dict[str, Any]:
    state = outcome.state
    tiers = tables.tiers
    activity = outcome.activity
    score = state.reputation_score
    current_tier = resolve_tier(score, tiers)
    previous_tier = resolve_tier(outcome.previous_score, tiers)

    return {
        "user_identifier": state.user_identifier,
        "username": state.profile.username,
        "level": outcome.level.to_dict(),
        "reputation": {
            "score": score,
            "previous_score": outcome.previous_score,
            "score_change": score - outcome.previous_score,
            "tier": {
                "current": current_tier.to_dict(),
                "previous": previous_tier.to_dict(),
                "changed": current_tier.name != previous_tier.name,
            },
            "next_tier": _next_tier_block(score, tiers),
            "breakdown": outcome.reputation.breakdown.to_snapshot().to_dict(),
            "weighted": outcome.reputation.weighted,
            "tier_multiplier": outcome.reputation.tier_multiplier,
        },
        "activity": {
            "session_duration": activity.minutes_watched,
            "session_quality": activity.session_quality,
            "session_length": tables.session.classify(activity.minutes_watched),
            "efficiency": session_efficiency(
                activity.minutes_watched, activity.duration_in_minutes
            ),
            "last_active": state.last_active,
            "social_actions": dict(activity.social_actions),
        },
        "achievements": {
            "total": len(state.achievements),
            "new": list(activity.new_achievements),
            "recent": state.achievements[-RECENT_ACHIEVEMENTS:],
        },
        "status": {
            "is_verified": state.profile.is_verified,
            "onboarding_completed": state.profile.onboarding_completed,
            "account_age": whole_days_between(outcome.calculated_at, state.created_at),
            "tracks": list(state.profile.tracks),
        },
        "calculated_at": outcome.calculated_at,
    }


def build_get_payload(state: UserGameState, tiers: TierTable) -> Dict[str, Any]:
    """Read view of a stored state with its resolved and next tier."""
    data = state.to_dict()
    game_data = {
        key: data[key]
        for key in (
            "level",
            "experience",
            "reputation_score",
            "reputation_tier",
            "achievements",
            "metrics",
            "last_active",
            "reputation_history",
            "version",
        )
    }
    return {
        "user_identifier": state.user_identifier,
        "username": state.profile.username,
        "game_data": game_data,
        "reputation": state.reputation_score,
        "tier": resolve_tier(state.reputation_score, tiers).to_dict(),
        "next_tier": _next_tier_block(state.reputation_score, tiers),
        "badges": list(state.badges),
        "is_verified": state.profile.is_verified,
        "created_at": state.created_at,
    }


def to_jsonable(value: Any) -> Any:
    """
    Recursively convert datetimes to ISO-8601 strings and tuples to lists.

    Example:
        >>> to_jsonable({"when": datetime(2024, 1, 1), "tags": ("a",)})
        {'when': '2024-01-01T00:00:00', 'tags': ['a']}
    """
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value
