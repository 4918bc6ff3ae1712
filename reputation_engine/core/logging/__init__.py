"""
Logging infrastructure for the engine.

JSON or text output through a queue listener, with ``LogContext`` binding
user and correlation fields onto every record.
"""

from reputation_engine.core.logging.logger import (
    LogContext,
    LoggerConfig,
    get_log_context,
    get_logger,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "setup_logging",
    "shutdown_logging",
    "get_logger",
    "get_log_context",
    "LogContext",
    "LoggerConfig",
]
