"""
Base domain helpers for the engine's models.

Purpose
-------
Provide the validation framework and time helpers shared by the domain
models. Domain models are plain dataclasses, separate from the SQLAlchemy
records; stores convert between the two.

Non-Responsibilities
--------------------
- Persistence (handled by stores)
- Database schema (handled by SQLAlchemy models)
- Scoring (handled by the progression and reputation modules)
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Optional

from reputation_engine.modules.shared.exceptions import ValidationError


# ============================================================================
# DOMAIN MODEL VALIDATION
# ============================================================================


class DomainValidationError(ValidationError):
    """
    Raised when a domain model invariant is violated.

    A `ValidationError`, so callers that handle invalid input handle
    invariant violations the same way.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(field or "model", message)


def validate_non_negative(value: int, field_name: str) -> None:
    """
    Validate that a value is non-negative.

    Raises
    ------
    DomainValidationError
        If value is negative
    """
    if value < 0:
        raise DomainValidationError(
            f"{field_name} must be non-negative, got {value}",
            field=field_name,
        )


def validate_range(value: int, min_val: int, max_val: int, field_name: str) -> None:
    """
    Validate that a value is within a range (inclusive).

    Raises
    ------
    DomainValidationError
        If value is outside the range
    """
    if not (min_val <= value <= max_val):
        raise DomainValidationError(
            f"{field_name} must be between {min_val} and {max_val}, got {value}",
            field=field_name,
        )


def validate_not_empty(value: str, field_name: str) -> None:
    """
    Validate that a string is not empty.

    Raises
    ------
    DomainValidationError
        If value is empty or whitespace-only
    """
    if not isinstance(value, str) or not value.strip():
        raise DomainValidationError(
            f"{field_name} cannot be empty",
            field=field_name,
        )


def is_number(value: Any) -> bool:
    """True for finite ints and floats. Booleans are not numbers here."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


# ============================================================================
# TIME HELPERS
# ============================================================================


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and normalize aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string or pass a datetime through, always returning UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str):
        try:
            return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError as exc:
            raise DomainValidationError(
                f"not an ISO-8601 timestamp: {value!r}", field="timestamp"
            ) from exc
    raise DomainValidationError(
        f"expected datetime or ISO string, got {type(value).__name__}",
        field="timestamp",
    )


def whole_days_between(later: datetime, earlier: datetime) -> int:
    """
    Whole days elapsed from ``earlier`` to ``later``, floored.

    Example
    -------
    >>> whole_days_between(datetime(2024, 1, 3, 1), datetime(2024, 1, 1, 23))
    1
    """
    return (ensure_utc(later) - ensure_utc(earlier)).days
