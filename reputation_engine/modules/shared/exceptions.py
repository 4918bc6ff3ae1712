"""
Domain exceptions for the Reputation & Progression Engine.

Purpose
-------
Define the structured, domain-specific exception hierarchy for engine logic.
These exceptions are raised by services and stores for missing state, invalid
input, concurrency conflicts, and persistence failures. Callers (an HTTP
layer, a worker) translate them into their own responses.

Design Notes
------------
- All domain exceptions inherit from `EngineDomainException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict-like)
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier for programmatic use
- `get_error_severity` maps any exception to a severity; `BaseService.log_error`
  uses it to choose the log level.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"  # conflicts that are retried
    INFO = "info"  # caller mistakes: missing user, bad input
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"  # broken scoring tables or config


class EngineDomainException(Exception):
    """
    Base exception for all engine domain-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error (dict-like)
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise EngineDomainException(
        ...     "Recompute failed",
        ...     {"user_identifier": "u-1"}
        ... )
    """

    # Default severity and retry behavior (subclasses can override)
    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class NotFoundError(EngineDomainException):
    """
    Raised when no game state exists for the requested user.

    Args:
        resource_type: Type of resource (e.g., "UserGameState")
        identifier: Optional identifier for the missing resource
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier

        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"

        super().__init__(
            message,
            details={
                "resource_type": resource_type,
                "identifier": identifier,
            },
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


class ValidationError(EngineDomainException):
    """
    Raised when activity input or a domain value fails validation.

    Args:
        field: Name of the field that failed validation
        message: Explanation of why validation failed
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        error_message = f"Validation error for {field}: {message}"
        super().__init__(
            error_message,
            details={
                "field": field,
                "validation_message": message,
            },
            error_code=f"VALIDATION_{field.upper()}",
        )


class ConcurrencyConflictError(EngineDomainException):
    """
    Raised by a store when the persisted version moved since the state was loaded.

    The orchestrator retries the whole load-compute-store sequence on this
    error; callers only see it wrapped in `TransientError`.

    Args:
        user_identifier: Owner of the conflicting state
        expected_version: Version the writer loaded
        actual_version: Version currently stored
    """

    DEFAULT_SEVERITY = ErrorSeverity.DEBUG
    DEFAULT_RETRYABLE = True

    def __init__(
        self,
        user_identifier: str,
        expected_version: int,
        actual_version: Optional[int],
    ) -> None:
        self.user_identifier = user_identifier
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Version conflict for {user_identifier}: "
            f"expected {expected_version}, found {actual_version}",
            details={
                "user_identifier": user_identifier,
                "expected_version": expected_version,
                "actual_version": actual_version,
            },
            error_code="CONCURRENCY_CONFLICT",
        )


class TransientError(EngineDomainException):
    """
    Raised when an operation failed for a reason that may clear on retry.

    Args:
        operation: Name of the failed operation
        reason: Explanation of the failure
        attempts: How many attempts were made before giving up
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(self, operation: str, reason: str, attempts: int = 1) -> None:
        self.operation = operation
        self.reason = reason
        self.attempts = attempts
        super().__init__(
            f"{operation} failed transiently after {attempts} attempt(s): {reason}",
            details={
                "operation": operation,
                "reason": reason,
                "attempts": attempts,
            },
            error_code="TRANSIENT_FAILURE",
        )


class LockTimeoutError(TransientError):
    """
    Raised when the per-user lock could not be acquired in time.

    Args:
        key: Lock key that was contended
        wait_seconds: How long the caller waited
    """

    def __init__(self, key: str, wait_seconds: float) -> None:
        self.key = key
        self.wait_seconds = wait_seconds
        super().__init__(
            "acquire_lock",
            f"lock '{key}' not acquired within {wait_seconds:.2f}s",
        )
        self.details.update({"key": key, "wait_seconds": wait_seconds})
        self.error_code = "LOCK_TIMEOUT"


class PersistenceError(EngineDomainException):
    """
    Raised when the store fails to read or write state.

    Args:
        operation: Store operation that failed (e.g., "save_state")
        reason: Underlying error description
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = False

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(
            f"Persistence failure during {operation}: {reason}",
            details={
                "operation": operation,
                "reason": reason,
            },
            error_code="PERSISTENCE_FAILURE",
        )


class InvalidOperationError(EngineDomainException):
    """
    Raised when a caller attempts an action that the engine refuses.

    Args:
        action: Description of the invalid action
        reason: Explanation of why it's not allowed

    Example:
        >>> raise InvalidOperationError("reset", "confirmation required")
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        message = f"Invalid operation '{action}': {reason}"
        super().__init__(
            message,
            details={
                "action": action,
                "reason": reason,
            },
            error_code=f"INVALID_{action.upper()}",
        )


class ResetNotConfirmedError(InvalidOperationError):
    """Raised when `reset` is called without explicit confirmation."""

    def __init__(self, user_identifier: str) -> None:
        self.user_identifier = user_identifier
        super().__init__("reset", "explicit confirmation is required")
        self.details["user_identifier"] = user_identifier


class ConfigurationError(EngineDomainException):
    """
    Raised when a required configuration value or scoring table is malformed.

    Args:
        key: Configuration key or file that failed
        reason: Explanation of the problem
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL
    DEFAULT_RETRYABLE = False

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(
            f"Configuration error for '{key}': {reason}",
            details={"key": key, "reason": reason},
            error_code="CONFIGURATION_ERROR",
        )


def get_error_severity(exc: Exception) -> ErrorSeverity:
    """Get the severity level of an exception for logging."""
    if isinstance(exc, EngineDomainException):
        return exc.severity
    return ErrorSeverity.ERROR  # Default for unknown exceptions
