"""
Shared module foundations.

- BaseService: Foundation for service classes (logging, config, events)
- BaseRepository: Type-safe database access patterns
- Domain exceptions: errors raised by services, stores and calculators

Usage
-----
    from reputation_engine.modules.shared import (
        BaseService,
        NotFoundError,
        ValidationError,
    )
"""

from __future__ import annotations

# Base patterns
from .base_repository import BaseRepository
from .base_service import BaseService

# Domain exceptions
from .exceptions import (
    ConcurrencyConflictError,
    ConfigurationError,
    EngineDomainException,
    ErrorSeverity,
    InvalidOperationError,
    LockTimeoutError,
    NotFoundError,
    PersistenceError,
    ResetNotConfirmedError,
    TransientError,
    ValidationError,
    get_error_severity,
)

__all__ = [
    "BaseRepository",
    "BaseService",
    "ConcurrencyConflictError",
    "ConfigurationError",
    "EngineDomainException",
    "ErrorSeverity",
    "InvalidOperationError",
    "LockTimeoutError",
    "NotFoundError",
    "PersistenceError",
    "ResetNotConfirmedError",
    "TransientError",
    "ValidationError",
    "get_error_severity",
]
