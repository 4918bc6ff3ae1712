"""
Static configuration for the Reputation & Progression Engine.

Values live as class attributes on ``Config`` and are read from the process
environment (plus an optional ``.env`` file) once at import. A malformed or
out-of-range value never aborts startup: the default is used instead and the
problem is kept in ``Config.get_load_report()`` and logged by ``validate()``.

Groups
------
- Environment and logging: ENVIRONMENT, DEBUG, LOG_LEVEL, LOG_JSON,
  LOG_FILE_ENABLED, LOGS_DIR
- Database: DATABASE_URL and pool settings
- Redis: REDIS_URL, connection limits
- Locking: LOCK_BACKEND (local | redis | none) and its timeouts
- Recompute: retry budget and backoff for version conflicts
- Engine: HISTORY_CAPACITY, SCORING_TABLES_PATH

Scoring tables themselves (weights, tiers, leveling constants) are not
read here; see ``reputation_engine.modules.reputation.tables``.
"""

import logging
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

from dotenv import load_dotenv

load_dotenv()

T = TypeVar("T")

_TRUE = frozenset({"true", "yes", "1", "on"})
_FALSE = frozenset({"false", "no", "0", "off"})


class Environment(Enum):
    """Deployment environments."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        Parse an environment name, falling back to development.

        >>> Environment.from_string("Production") is Environment.PRODUCTION
        True
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            logging.warning(f"Unknown environment '{value}', defaulting to development")
            return cls.DEVELOPMENT


class LockBackend(Enum):
    """Per-user serialization backends for recompute."""

    LOCAL = "local"
    REDIS = "redis"
    NONE = "none"


class Config:
    """
    Engine configuration.

    Infrastructure services read attributes directly, often through
    ``getattr(Config, KEY, default)``, so nothing here needs instantiating.

    >>> Config.LOCK_BACKEND
    'local'
    """

    # Keys read from the environment vs. defaulted, and values rejected
    _from_env: Dict[str, bool] = {}
    _rejected: Dict[str, str] = {}
    _loaded_at: Optional[str] = None
    _validated: bool = False

    # Environment & logging
    ENVIRONMENT: str = Environment.DEVELOPMENT.value
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None
    LOG_FILE_ENABLED: bool = False

    PROJECT_ROOT = Path(__file__).resolve().parents[3]
    LOGS_DIR = PROJECT_ROOT / "logs"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./reputation.db"
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 10
    DATABASE_ECHO: bool = False
    DATABASE_POOL_RECYCLE: int = 1800
    DATABASE_POOL_TIMEOUT: int = 30
    DATABASE_STATEMENT_TIMEOUT_MS: int = 30_000

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 50
    REDIS_SOCKET_TIMEOUT: int = 5

    # Locking
    LOCK_BACKEND: str = LockBackend.LOCAL.value
    LOCK_TIMEOUT_SECONDS: int = 10
    LOCK_WAIT_TIMEOUT_SECONDS: int = 10
    LOCK_RETRY_INTERVAL_SECONDS: float = 0.05

    # Recompute retry budget
    RECOMPUTE_MAX_ATTEMPTS: int = 3
    RECOMPUTE_INITIAL_BACKOFF_MS: int = 25
    RECOMPUTE_MAX_BACKOFF_MS: int = 500
    RECOMPUTE_JITTER_MS: int = 25

    # Engine
    HISTORY_CAPACITY: int = 100
    SCORING_TABLES_PATH: Optional[str] = None

    # =========================================================================
    # Environment Parsing
    # =========================================================================

    @classmethod
    def _read(
        cls,
        key: str,
        default: T,
        parse: Callable[[str], T],
        check: Optional[Callable[[T], Optional[str]]] = None,
    ) -> T:
        """
        Parse ``key`` from the environment.

        ``parse`` raises ValueError for malformed input; ``check`` returns a
        reason string when a parsed value is out of bounds. Either way the
        default is returned and the reason recorded.
        """
        raw = os.getenv(key)
        cls._from_env[key] = raw is not None
        if raw is None:
            return default

        try:
            value = parse(raw)
            reason = check(value) if check is not None else None
        except ValueError:
            reason = f"'{raw}' cannot be parsed"

        if reason is not None:
            cls._from_env[key] = False
            cls._rejected[key] = reason
            logging.warning(f"{key}: {reason}, using default {default!r}")
            return default
        return value

    @staticmethod
    def _bounds(min_val: Any, max_val: Any) -> Callable[[Any], Optional[str]]:
        def check(value: Any) -> Optional[str]:
            if min_val is not None and value < min_val:
                return f"{value} is below minimum {min_val}"
            if max_val is not None and value > max_val:
                return f"{value} exceeds maximum {max_val}"
            return None

        return check

    @classmethod
    def _safe_int(
        cls,
        key: str,
        default: int,
        min_val: Optional[int] = None,
        max_val: Optional[int] = None,
    ) -> int:
        """
        Integer from the environment within ``[min_val, max_val]``.

        >>> Config._safe_int("DATABASE_POOL_SIZE", 10, min_val=1, max_val=200)
        10
        """
        return cls._read(key, default, int, cls._bounds(min_val, max_val))

    @classmethod
    def _safe_float(cls, key: str, default: float, min_val: Optional[float] = None) -> float:
        return cls._read(key, default, float, cls._bounds(min_val, None))

    @classmethod
    def _safe_bool(cls, key: str, default: Optional[bool]) -> Optional[bool]:
        """Boolean from true/false, yes/no, 1/0 or on/off, case-insensitive."""

        def parse(raw: str) -> bool:
            normalized = raw.strip().lower()
            if normalized in _TRUE:
                return True
            if normalized in _FALSE:
                return False
            raise ValueError(raw)

        return cls._read(key, default, parse)

    @classmethod
    def _safe_str(cls, key: str, default: str) -> str:
        return cls._read(key, default, str)

    @classmethod
    def _safe_choice(cls, key: str, default: str, choices: set[str]) -> str:
        """Lower-cased string restricted to ``choices``."""

        def check(value: str) -> Optional[str]:
            return None if value in choices else f"not one of {sorted(choices)}"

        return cls._read(key, default, lambda raw: raw.strip().lower(), check)

    # =========================================================================
    # Loading & Validation
    # =========================================================================

    @classmethod
    def load(cls) -> None:
        """Read every key from the environment. Safe to call again to reload."""
        cls._from_env = {}
        cls._rejected = {}

        cls.ENVIRONMENT = Environment.from_string(
            cls._safe_str("ENVIRONMENT", Environment.DEVELOPMENT.value)
        ).value
        cls.DEBUG = bool(cls._safe_bool("DEBUG", False))
        cls.LOG_LEVEL = cls._safe_str("LOG_LEVEL", "INFO").upper()
        cls.LOG_JSON = cls._safe_bool("LOG_JSON", None)
        cls.LOG_FILE_ENABLED = bool(cls._safe_bool("LOG_FILE_ENABLED", False))
        cls.LOGS_DIR = Path(cls._safe_str("LOGS_DIR", str(cls.PROJECT_ROOT / "logs")))

        cls.DATABASE_URL = cls._safe_str("DATABASE_URL", "sqlite+aiosqlite:///./reputation.db")
        cls.DATABASE_POOL_SIZE = cls._safe_int("DATABASE_POOL_SIZE", 10, 1, 200)
        cls.DATABASE_MAX_OVERFLOW = cls._safe_int("DATABASE_MAX_OVERFLOW", 10, 0, 200)
        cls.DATABASE_ECHO = bool(cls._safe_bool("DATABASE_ECHO", False))
        cls.DATABASE_POOL_RECYCLE = cls._safe_int("DATABASE_POOL_RECYCLE", 1800, 60)
        cls.DATABASE_POOL_TIMEOUT = cls._safe_int("DATABASE_POOL_TIMEOUT", 30, 1)
        cls.DATABASE_STATEMENT_TIMEOUT_MS = cls._safe_int(
            "DATABASE_STATEMENT_TIMEOUT_MS", 30_000, 100
        )

        cls.REDIS_URL = cls._safe_str("REDIS_URL", "redis://localhost:6379/0")
        cls.REDIS_MAX_CONNECTIONS = cls._safe_int("REDIS_MAX_CONNECTIONS", 50, 1, 500)
        cls.REDIS_SOCKET_TIMEOUT = cls._safe_int("REDIS_SOCKET_TIMEOUT", 5, 1, 60)

        cls.LOCK_BACKEND = cls._safe_choice(
            "LOCK_BACKEND",
            LockBackend.LOCAL.value,
            {backend.value for backend in LockBackend},
        )
        cls.LOCK_TIMEOUT_SECONDS = cls._safe_int("LOCK_TIMEOUT_SECONDS", 10, 1, 300)
        cls.LOCK_WAIT_TIMEOUT_SECONDS = cls._safe_int("LOCK_WAIT_TIMEOUT_SECONDS", 10, 0, 300)
        cls.LOCK_RETRY_INTERVAL_SECONDS = cls._safe_float(
            "LOCK_RETRY_INTERVAL_SECONDS", 0.05, min_val=0.001
        )

        cls.RECOMPUTE_MAX_ATTEMPTS = cls._safe_int("RECOMPUTE_MAX_ATTEMPTS", 3, 1, 10)
        cls.RECOMPUTE_INITIAL_BACKOFF_MS = cls._safe_int("RECOMPUTE_INITIAL_BACKOFF_MS", 25, 0)
        cls.RECOMPUTE_MAX_BACKOFF_MS = cls._safe_int("RECOMPUTE_MAX_BACKOFF_MS", 500, 0)
        cls.RECOMPUTE_JITTER_MS = cls._safe_int("RECOMPUTE_JITTER_MS", 25, 0)

        cls.HISTORY_CAPACITY = cls._safe_int("HISTORY_CAPACITY", 100, 1, 10_000)
        cls.SCORING_TABLES_PATH = os.getenv("SCORING_TABLES_PATH") or None

        cls._loaded_at = datetime.now(timezone.utc).isoformat()

    @classmethod
    def validate(cls) -> None:
        """
        Load once and check settings that are legal but suspicious.

        Raises:
            ValueError: If DATABASE_URL is empty and ENVIRONMENT is production
        """
        if cls._validated:
            return

        logger = logging.getLogger(__name__)
        cls.load()

        if cls.LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            logger.warning(f"Invalid LOG_LEVEL '{cls.LOG_LEVEL}', using INFO")
            cls.LOG_LEVEL = "INFO"

        if not cls.DATABASE_URL:
            if cls.is_production():
                raise ValueError("DATABASE_URL is required in production")
            logger.warning("DATABASE_URL is empty; database access will fail")

        if cls.is_production():
            if cls.DATABASE_URL.startswith("sqlite"):
                logger.warning("Production environment is configured with SQLite")
            if cls.LOCK_BACKEND == LockBackend.NONE.value:
                logger.warning(
                    "LOCK_BACKEND=none in production; recompute relies on "
                    "optimistic versioning alone"
                )

        report = cls.get_load_report()
        logger.info(f"Configuration loaded: {report}")
        cls._validated = True

    # =========================================================================
    # Environment Checks & Reporting
    # =========================================================================

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT == Environment.PRODUCTION.value

    @classmethod
    def is_testing(cls) -> bool:
        return cls.ENVIRONMENT == Environment.TESTING.value

    @classmethod
    def get_load_report(cls) -> Dict[str, Any]:
        """Which keys came from the environment and which values were rejected."""
        defaulted: List[str] = sorted(k for k, from_env in cls._from_env.items() if not from_env)
        return {
            "from_environment": sum(cls._from_env.values()),
            "defaulted": defaulted,
            "rejected": dict(cls._rejected),
            "loaded_at": cls._loaded_at,
        }

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """Non-sensitive summary; URLs are reduced to their scheme."""
        return {
            "environment": cls.ENVIRONMENT,
            "debug": cls.DEBUG,
            "log_level": cls.LOG_LEVEL,
            "database_url_scheme": cls.DATABASE_URL.split(":", 1)[0],
            "database_pool_size": cls.DATABASE_POOL_SIZE,
            "lock_backend": cls.LOCK_BACKEND,
            "recompute_max_attempts": cls.RECOMPUTE_MAX_ATTEMPTS,
            "history_capacity": cls.HISTORY_CAPACITY,
            "scoring_tables_path_set": bool(cls.SCORING_TABLES_PATH),
        }


Config.validate()
