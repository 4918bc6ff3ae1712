"""
Base Service Foundation

Purpose
-------
Foundation class for the engine's domain services. Services implement the
business sequence, enforce business rules and emit domain events.

Design Notes
------------
This base class provides:
- Structured logging with operation context
- Safe config access
- Event emission helpers

What this class does NOT do:
- Manage database transactions (that's the store's job)
- Hold per-user state between calls

Usage
-----
    class ProgressionService(BaseService):
        def __init__(self, store, config, event_bus, logger):
            super().__init__(config, event_bus, logger)
            self.store = store

        async def recompute(self, user_identifier: str, activity):
            # Service logic here, using self.log, self.get_config, self.emit_event
            ...
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from reputation_engine.modules.shared.exceptions import (
    ConfigurationError,
    EngineDomainException,
    ErrorSeverity,
    get_error_severity,
)

if TYPE_CHECKING:
    from logging import Logger

    from reputation_engine.core.event_bus import EventBus


_SEVERITY_LEVELS = {
    ErrorSeverity.DEBUG: logging.DEBUG,
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


class BaseService:
    """
    Base class for all domain services.

    Attributes:
        log: Structured logger instance
    """

    def __init__(
        self,
        config: Any,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        """
        Args:
            config: Object exposing settings as attributes (normally ``Config``)
            event_bus: Bus used for domain events
            logger: Structured logger instance
        """
        self._config = config
        self._events = event_bus
        self.log = logger

    @property
    def events(self) -> EventBus:
        return self._events

    def get_config(
        self,
        key: str,
        default: Any = None,
        required: bool = False,
    ) -> Any:
        """
        Read a setting.

        Args:
            key: Attribute name, e.g. "HISTORY_CAPACITY"
            default: Returned when the setting is absent
            required: If True, raise when the setting is absent

        Raises:
            ConfigurationError: If required and missing
        """
        value = getattr(self._config, key, None)
        if value is None:
            if required:
                raise ConfigurationError(key, "required configuration value is missing")
            return default
        return value

    async def emit_event(
        self,
        event_type: str,
        data: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Publish a domain event.

        Args:
            event_type: Event name, e.g. "progression.recomputed"
            data: Event payload
            context: Extra fields merged into the payload
        """
        await self._events.publish(event_type, {**data, **(context or {})})

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(
        self,
        operation: str,
        error: Exception,
        **context: Any,
    ) -> None:
        """
        Log a service error at the level its severity implies.

        Unknown exceptions log at ERROR with a traceback.
        """
        severity = get_error_severity(error)
        self.log.log(
            _SEVERITY_LEVELS[severity],
            f"Service error during {operation}: {error}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_code": getattr(error, "error_code", None),
                "severity": severity.value,
                **context,
            },
            exc_info=not isinstance(error, EngineDomainException),
        )
