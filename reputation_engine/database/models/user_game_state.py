"""
UserGameStateRecord: persisted progression state, one row per user.
Schema only; conversion to and from ``UserGameState`` lives in the SQL store.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from reputation_engine.core.database.base import Base, ExactInteger, IdMixin, TimestampMixin


class UserGameStateRecord(Base, IdMixin, TimestampMixin):
    """
    Progression state row.

    Schema:
    - user_identifier (unique, the engine's lookup key)
    - level, experience, reputation_score, reputation_tier
    - last_active (null until the first recompute)
    - version (optimistic concurrency counter)
    - achievements, badges, metrics, reputation_history, profile (JSON)

    ``created_at`` from ``TimestampMixin`` is the user's account creation time
    and drives the account-age bonus; ``updated_at`` tracks the last save.
    """

    __tablename__ = "user_game_state"

    user_identifier: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        unique=True,
        index=True,
        doc="Opaque user identifier",
    )

    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    experience: Mapped[int] = mapped_column(
        ExactInteger(40),
        nullable=False,
        default=0,
        doc="Cumulative XP; exceeds BIGINT near the level cap",
    )
    reputation_score: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, index=True
    )
    reputation_tier: Mapped[str] = mapped_column(
        String(32), nullable=False, default="Bronze", index=True
    )

    last_active: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        doc="Time of the last recompute",
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Bumped on every save; compared before writing",
    )

    achievements: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    badges: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    metrics: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON, doc="Last computed sub-score breakdown"
    )
    reputation_history: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list, doc="Most recent history entries"
    )
    profile: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict, doc="Registration and verification fields"
    )

    def __repr__(self) -> str:
        return (
            f"<UserGameStateRecord("
            f"user={self.user_identifier}, "
            f"level={self.level}, "
            f"score={self.reputation_score}, "
            f"version={self.version}"
            f")>"
        )
