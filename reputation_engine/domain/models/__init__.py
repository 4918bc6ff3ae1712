"""
Domain models package.

Domain models are separate from database models:
- Database models (reputation_engine/database/models/): SQLAlchemy schemas
- Domain models (reputation_engine/domain/models/): dataclasses with invariants

Stores convert between database records and domain models.
"""

from .activity import ActivityInput
from .base import (
    DomainValidationError,
    ensure_utc,
    parse_datetime,
    validate_non_negative,
    validate_not_empty,
    validate_range,
    whole_days_between,
)
from .game_state import (
    HistoryEntry,
    MetricsSnapshot,
    UserGameState,
    UserProfile,
)

__all__ = [
    "ActivityInput",
    "DomainValidationError",
    "HistoryEntry",
    "MetricsSnapshot",
    "UserGameState",
    "UserProfile",
    "ensure_utc",
    "parse_datetime",
    "validate_non_negative",
    "validate_not_empty",
    "validate_range",
    "whole_days_between",
]
