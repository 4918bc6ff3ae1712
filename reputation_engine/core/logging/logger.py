"""
Structured logging for the reputation engine.

Every record passes through a ``QueueHandler`` on the root logger and is
written by a ``QueueListener`` thread, so handlers never block the event
loop. ``ContextFilter`` stamps each record with the operation context bound
by ``LogContext`` (user, correlation id, component, operation). Fields given
through ``extra={...}`` take precedence over the bound context.

Output
------
- Console: JSON when ``LOG_JSON`` is on or in production, plain text otherwise
- File (``LOG_FILE_ENABLED``): JSON, rotated at UTC midnight under ``LOGS_DIR``

Usage
-----
>>> from reputation_engine.core.logging import LogContext, get_logger
>>> logger = get_logger(__name__)
>>> async with LogContext(user_identifier="u-1", operation="recompute"):
...     logger.info("Recompute started", extra={"attempt": 1})
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from typing import Any, Dict, List, Optional

from reputation_engine.core.config.config import Config


_log_context: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})

PLACEHOLDER = "N/A"
CONTEXT_FIELDS = ("user_identifier", "correlation_id", "component", "operation")

_INITIALIZED_FLAG = "_reputation_engine_logging"


@dataclass(frozen=True, slots=True)
class LoggerConfig:
    """Formatting constants plus environment-derived switches."""

    TEXT_FORMAT: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"
    FILE_NAME: str = "reputation_engine.json.log"
    FILE_BACKUPS: int = 7
    QUEUE_SIZE: int = 10_000

    @property
    def level(self) -> int:
        level = getattr(logging, str(Config.LOG_LEVEL).upper(), None)
        return level if isinstance(level, int) else logging.INFO

    @property
    def use_json(self) -> bool:
        if Config.LOG_JSON is None:
            return Config.is_production()
        return bool(Config.LOG_JSON)


LOGGER_CONFIG = LoggerConfig()


# ============================================================================
# Filters & Formatters
# ============================================================================


class ContextFilter(logging.Filter):
    """Copy the bound ``LogContext`` onto records that lack those fields."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context = _log_context.get()
        fallbacks = {"component": record.name.split(".", 1)[0]}
        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                continue
            value = context.get(field) or fallbacks.get(field, PLACEHOLDER)
            setattr(record, field, value)
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record; unknown attributes are grouped under ``extra``."""

    RESERVED = frozenset(
        vars(logging.LogRecord("", 0, "", 0, "", (), None))
    ) | {"message", "asctime", "taskName"}

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value not in (None, PLACEHOLDER):
                payload[field] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in self.RESERVED
            and key not in CONTEXT_FIELDS
            and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        return json.dumps(payload, ensure_ascii=False, default=str)


# ============================================================================
# Setup & Teardown
# ============================================================================

_listener: Optional[QueueListener] = None


class _DroppingQueueHandler(QueueHandler):
    """Drop records instead of blocking when the queue is full."""

    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            sys.stderr.write("reputation_engine: log queue full, record dropped\n")


def _build_handlers() -> List[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    if LOGGER_CONFIG.use_json:
        console.setFormatter(JSONFormatter())
    else:
        console.setFormatter(
            logging.Formatter(LOGGER_CONFIG.TEXT_FORMAT, LOGGER_CONFIG.DATE_FORMAT)
        )
    handlers: List[logging.Handler] = [console]

    if Config.LOG_FILE_ENABLED:
        Config.LOGS_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            filename=str(Config.LOGS_DIR / LOGGER_CONFIG.FILE_NAME),
            when="midnight",
            backupCount=LOGGER_CONFIG.FILE_BACKUPS,
            encoding="utf-8",
            utc=True,
        )
        file_handler.setFormatter(JSONFormatter())
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(LOGGER_CONFIG.level)
    return handlers


def setup_logging() -> None:
    """Attach the queue handler to the root logger. Safe to call repeatedly."""
    global _listener

    root = logging.getLogger()
    if getattr(root, _INITIALIZED_FLAG, None) is not None:
        return

    log_queue: "queue.Queue[logging.LogRecord]" = queue.Queue(LOGGER_CONFIG.QUEUE_SIZE)
    _listener = QueueListener(log_queue, *_build_handlers(), respect_handler_level=True)
    _listener.start()

    queue_handler = _DroppingQueueHandler(log_queue)
    queue_handler.addFilter(ContextFilter())
    root.addHandler(queue_handler)
    root.setLevel(LOGGER_CONFIG.level)
    setattr(root, _INITIALIZED_FLAG, queue_handler)

    for noisy in ("asyncio", "aiosqlite", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging initialized",
        extra={"json": LOGGER_CONFIG.use_json, "file": Config.LOG_FILE_ENABLED},
    )


def shutdown_logging() -> None:
    """Flush pending records and detach the queue handler."""
    global _listener

    root = logging.getLogger()
    queue_handler = getattr(root, _INITIALIZED_FLAG, None)
    if queue_handler is None:
        return

    root.removeHandler(queue_handler)
    queue_handler.close()
    setattr(root, _INITIALIZED_FLAG, None)

    if _listener is not None:
        _listener.stop()
        for handler in _listener.handlers:
            handler.close()
        _listener = None


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


def get_log_context() -> Dict[str, Any]:
    """Copy of the context bound to the current task."""
    return dict(_log_context.get())


class LogContext:
    """
    Bind operation context for every record logged inside the block.

    Works with ``with`` and ``async with``. Nested blocks replace the outer
    context and restore it on exit. A correlation id is generated when none
    is given.
    """

    def __init__(
        self,
        user_identifier: Optional[str] = None,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        correlation_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        self.context: Dict[str, Any] = {
            "user_identifier": user_identifier or PLACEHOLDER,
            "component": component,
            "operation": operation,
            "correlation_id": correlation_id or uuid.uuid4().hex[:8],
            **extra,
        }
        self._token: Optional[Token[Dict[str, Any]]] = None

    @property
    def correlation_id(self) -> str:
        return self.context["correlation_id"]

    def __enter__(self) -> "LogContext":
        self._token = _log_context.set(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


setup_logging()
