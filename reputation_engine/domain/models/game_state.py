"""
User game state domain model.

Purpose
-------
Represent the persisted progression state of one user: level, experience,
reputation score and tier, achievements, the last computed metrics and a
bounded reputation history. Profile fields owned by the registration and
verification collaborator ride along read-only because the trust and social
sub-scores depend on them.

This is separate from the database record (``UserGameStateRecord``). Stores
convert between the two with ``to_dict`` / ``from_dict``.

Invariants
----------
- ``level`` in [1, 100], ``experience`` >= 0
- ``reputation_score`` in [0, 10000]
- ``version`` >= 0, bumped by the store on each save
- ``user_identifier`` non-empty and never changed

Usage Example
-------------
>>> state = UserGameState.new("u-1", profile=UserProfile(username="ada"))
>>> working = state.copy()  # mutate the copy, save it, discard on failure
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from reputation_engine.domain.models.base import (
    DomainValidationError,
    parse_datetime,
    validate_non_negative,
    validate_not_empty,
    validate_range,
)

ANONYMOUS_NAME = "Anonymous"

MIN_LEVEL = 1
MAX_LEVEL = 100
MIN_SCORE = 0
MAX_SCORE = 10_000


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


# ============================================================================
# VALUE OBJECTS
# ============================================================================


@dataclass(frozen=True)
class UserProfile:
    """
    Registration and verification fields consulted by the sub-scores.

    Attributes
    ----------
    username : Optional[str]
        Display handle; "Anonymous" counts as no handle
    name : Optional[str]
        Real name; "Anonymous" counts as no name
    nationality, gender : Optional[str]
        Optional disclosed attributes
    user_defined_data : Any
        Free-form data the user attached during verification
    tracks : Tuple[str, ...]
        Learning tracks the user follows
    onboarding_completed : bool
    is_verified : bool
    verification_date : Optional[datetime]
    """

    username: Optional[str] = None
    name: Optional[str] = None
    nationality: Optional[str] = None
    gender: Optional[str] = None
    user_defined_data: Any = None
    tracks: Tuple[str, ...] = ()
    onboarding_completed: bool = False
    is_verified: bool = False
    verification_date: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not isinstance(self.tracks, tuple):
            object.__setattr__(self, "tracks", tuple(self.tracks))
        if self.verification_date is not None:
            object.__setattr__(
                self, "verification_date", parse_datetime(self.verification_date)
            )

    @property
    def has_real_username(self) -> bool:
        return bool(self.username) and self.username != ANONYMOUS_NAME

    @property
    def has_real_name(self) -> bool:
        return bool(self.name) and self.name != ANONYMOUS_NAME

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "name": self.name,
            "nationality": self.nationality,
            "gender": self.gender,
            "user_defined_data": self.user_defined_data,
            "tracks": list(self.tracks),
            "onboarding_completed": self.onboarding_completed,
            "is_verified": self.is_verified,
            "verification_date": _isoformat(self.verification_date),
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "UserProfile":
        if not data:
            return cls()
        return cls(
            username=data.get("username"),
            name=data.get("name"),
            nationality=data.get("nationality"),
            gender=data.get("gender"),
            user_defined_data=data.get("user_defined_data"),
            tracks=tuple(data.get("tracks") or ()),
            onboarding_completed=bool(data.get("onboarding_completed", False)),
            is_verified=bool(data.get("is_verified", False)),
            verification_date=parse_datetime(data.get("verification_date")),
        )


@dataclass(frozen=True)
class MetricsSnapshot:
    """
    Last computed breakdown of the five sub-scores.

    Each of ``activity``, ``social``, ``achievement`` and ``trust`` maps
    component names (plus ``total``) to integer points; ``consistency`` is a
    single integer.
    """

    activity: Mapping[str, int]
    social: Mapping[str, int]
    achievement: Mapping[str, int]
    trust: Mapping[str, int]
    consistency: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "activity": dict(self.activity),
            "social": dict(self.social),
            "achievement": dict(self.achievement),
            "trust": dict(self.trust),
            "consistency": self.consistency,
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional["MetricsSnapshot"]:
        if not data:
            return None
        return cls(
            activity=dict(data.get("activity") or {}),
            social=dict(data.get("social") or {}),
            achievement=dict(data.get("achievement") or {}),
            trust=dict(data.get("trust") or {}),
            consistency=int(data.get("consistency", 0)),
        )


@dataclass(frozen=True)
class HistoryEntry:
    """One reputation history record, appended by every recompute."""

    date: datetime
    score: int
    tier: str
    change_amount: int
    change_reason: str
    breakdown: MetricsSnapshot

    @staticmethod
    def describe_change(change_amount: int) -> str:
        """
        Example
        -------
        >>> HistoryEntry.describe_change(12)
        'Activity update: +12 points'
        >>> HistoryEntry.describe_change(-3)
        'Activity update: -3 points'
        """
        sign = "+" if change_amount >= 0 else ""
        return f"Activity update: {sign}{change_amount} points"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "score": self.score,
            "tier": self.tier,
            "change_amount": self.change_amount,
            "change_reason": self.change_reason,
            "breakdown": self.breakdown.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HistoryEntry":
        breakdown = MetricsSnapshot.from_dict(data.get("breakdown"))
        if breakdown is None:
            raise DomainValidationError(
                "history entry is missing its breakdown", field="reputation_history"
            )
        return cls(
            date=parse_datetime(data["date"]),
            score=int(data["score"]),
            tier=str(data["tier"]),
            change_amount=int(data["change_amount"]),
            change_reason=str(data["change_reason"]),
            breakdown=breakdown,
        )


# ============================================================================
# AGGREGATE
# ============================================================================


@dataclass
class UserGameState:
    """
    Mutable progression state for one user.

    The orchestrator never mutates a loaded state in place; it works on
    ``copy()`` and hands the copy to the store.
    """

    user_identifier: str
    level: int = MIN_LEVEL
    experience: int = 0
    reputation_score: int = 0
    reputation_tier: str = "Bronze"
    achievements: List[str] = field(default_factory=list)
    badges: List[str] = field(default_factory=list)
    metrics: Optional[MetricsSnapshot] = None
    last_active: Optional[datetime] = None
    reputation_history: List[HistoryEntry] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utc_now)
    version: int = 0
    profile: UserProfile = field(default_factory=UserProfile)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check the state invariants; raises DomainValidationError."""
        validate_not_empty(self.user_identifier, "user_identifier")
        validate_range(self.level, MIN_LEVEL, MAX_LEVEL, "level")
        validate_non_negative(self.experience, "experience")
        validate_range(self.reputation_score, MIN_SCORE, MAX_SCORE, "reputation_score")
        validate_non_negative(self.version, "version")

    @classmethod
    def new(
        cls,
        user_identifier: str,
        *,
        profile: Optional[UserProfile] = None,
        badges: Optional[List[str]] = None,
        created_at: Optional[datetime] = None,
    ) -> "UserGameState":
        """
        Zeroed state as created by registration.

        ``last_active`` starts at the creation time, so the first recompute
        on the day of registration earns no daily-login bonus.
        """
        created = created_at or _utc_now()
        return cls(
            user_identifier=user_identifier,
            profile=profile or UserProfile(),
            badges=list(badges or []),
            last_active=created,
            created_at=created,
        )

    def copy(self) -> "UserGameState":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_identifier": self.user_identifier,
            "level": self.level,
            "experience": self.experience,
            "reputation_score": self.reputation_score,
            "reputation_tier": self.reputation_tier,
            "achievements": list(self.achievements),
            "badges": list(self.badges),
            "metrics": self.metrics.to_dict() if self.metrics else None,
            "last_active": _isoformat(self.last_active),
            "reputation_history": [entry.to_dict() for entry in self.reputation_history],
            "created_at": self.created_at.isoformat(),
            "version": self.version,
            "profile": self.profile.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UserGameState":
        return cls(
            user_identifier=data["user_identifier"],
            level=int(data.get("level", MIN_LEVEL)),
            experience=int(data.get("experience", 0)),
            reputation_score=int(data.get("reputation_score", 0)),
            reputation_tier=str(data.get("reputation_tier", "Bronze")),
            achievements=list(data.get("achievements") or []),
            badges=list(data.get("badges") or []),
            metrics=MetricsSnapshot.from_dict(data.get("metrics")),
            last_active=parse_datetime(data.get("last_active")),
            reputation_history=[
                HistoryEntry.from_dict(entry)
                for entry in data.get("reputation_history") or []
            ],
            created_at=parse_datetime(data.get("created_at")) or _utc_now(),
            version=int(data.get("version", 0)),
            profile=UserProfile.from_dict(data.get("profile")),
        )
