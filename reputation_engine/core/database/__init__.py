"""
Database subsystem.

Async SQLAlchemy engine and session management, the retry policy, and the
ORM base classes and mixins for model definitions.
"""

from reputation_engine.core.database.base import Base, IdMixin, TimestampMixin, utc_now
from reputation_engine.core.database.retry_policy import RetryConfig, RetryPolicy
from reputation_engine.core.database.service import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    DatabaseService,
)

__all__ = [
    # ORM Base & Mixins
    "Base",
    "IdMixin",
    "TimestampMixin",
    "utc_now",
    # Main service
    "DatabaseService",
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
    # Retry
    "RetryConfig",
    "RetryPolicy",
]
