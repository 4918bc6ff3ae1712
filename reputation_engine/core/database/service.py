"""
Async database engine and session management.

Purpose
-------
Owns the single SQLAlchemy ``AsyncEngine`` and session factory for the
process and hands out sessions through two context managers:

- ``get_session()`` for reads and caller-managed work
- ``get_transaction()`` for atomic writes (commit on success, rollback on
  any exception)

Configuration
-------------
All values come from ``Config``:

- DATABASE_URL (sqlite+aiosqlite or postgresql+asyncpg)
- DATABASE_POOL_SIZE, DATABASE_MAX_OVERFLOW
- DATABASE_POOL_RECYCLE, DATABASE_POOL_TIMEOUT
- DATABASE_STATEMENT_TIMEOUT_MS (PostgreSQL only)
- DATABASE_ECHO

``NullPool`` is used when testing and for SQLite, where a pooled file
connection gains nothing.

Usage
-----
>>> await DatabaseService.initialize()
>>> async with DatabaseService.get_transaction() as session:
...     record = await session.get(UserGameStateRecord, 1, with_for_update=True)
...     record.level += 1
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Optional, Type

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool, Pool

from reputation_engine.core.config import Config
from reputation_engine.core.database.base import Base
from reputation_engine.core.logging import get_logger

logger = get_logger(__name__)


class DatabaseInitializationError(RuntimeError):
    """Raised when database engine initialization fails."""


class DatabaseNotInitializedError(RuntimeError):
    """Raised when database operations are attempted before initialization."""


@dataclass(frozen=True)
class _DatabaseConfigSnapshot:
    """Configuration captured once per engine lifetime."""

    url: str
    echo: bool
    pool_class: Type[Pool]
    pool_size: int
    max_overflow: int
    pool_recycle: int
    pool_timeout: int
    statement_timeout_ms: int

    @property
    def is_postgres(self) -> bool:
        return self.url.startswith(("postgresql://", "postgresql+asyncpg://"))

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def url_scheme(self) -> str:
        return self.url.split(":", 1)[0] if ":" in self.url else "unknown"


class DatabaseService:
    """
    Centralized async database engine and session management.

    Public API
    ----------
    - initialize(database_url=None) / shutdown()
    - get_session() / get_transaction()
    - create_schema() / drop_schema()
    - health_check()

    All classmethods are safe for concurrent use; initialization and
    shutdown are serialized by ``_init_lock``.
    """

    _engine: Optional[AsyncEngine] = None
    _session_factory: Optional[async_sessionmaker[AsyncSession]] = None
    _config_snapshot: Optional[_DatabaseConfigSnapshot] = None
    _init_lock: asyncio.Lock = asyncio.Lock()

    # ========================================================================
    # Initialization & Shutdown
    # ========================================================================

    @classmethod
    def _build_config_snapshot(
        cls, database_url: Optional[str] = None
    ) -> _DatabaseConfigSnapshot:
        """
        Build the configuration snapshot from Config.

        Raises:
            DatabaseInitializationError: If DATABASE_URL is missing or invalid
        """
        url = database_url or getattr(Config, "DATABASE_URL", None)
        if not url or not isinstance(url, str):
            logger.error("DATABASE_URL is not configured or invalid")
            raise DatabaseInitializationError(
                "DATABASE_URL must be configured as a non-empty string"
            )

        is_testing = Config.is_testing()
        use_null_pool = is_testing or url.startswith("sqlite")
        pool_class: Type[Pool] = NullPool if use_null_pool else AsyncAdaptedQueuePool

        snapshot = _DatabaseConfigSnapshot(
            url=url,
            echo=bool(getattr(Config, "DATABASE_ECHO", False)),
            pool_class=pool_class,
            pool_size=int(getattr(Config, "DATABASE_POOL_SIZE", 10)),
            max_overflow=int(getattr(Config, "DATABASE_MAX_OVERFLOW", 10)),
            pool_recycle=int(getattr(Config, "DATABASE_POOL_RECYCLE", 1800)),
            pool_timeout=int(getattr(Config, "DATABASE_POOL_TIMEOUT", 30)),
            statement_timeout_ms=int(
                getattr(Config, "DATABASE_STATEMENT_TIMEOUT_MS", 30_000)
            ),
        )

        logger.debug(
            "Database configuration snapshot created",
            extra={
                "url_scheme": snapshot.url_scheme,
                "pool_class": pool_class.__name__,
                "pool_size": snapshot.pool_size,
                "max_overflow": snapshot.max_overflow,
                "is_testing": is_testing,
            },
        )
        return snapshot

    @classmethod
    async def initialize(cls, database_url: Optional[str] = None) -> None:
        """
        Create the engine and session factory.

        Idempotent: a second call while initialized returns immediately.

        Args:
            database_url: Overrides ``Config.DATABASE_URL`` (tests point this
                at a temporary SQLite file)

        Raises:
            DatabaseInitializationError: If configuration is invalid or
                engine creation fails
        """
        async with cls._init_lock:
            if cls._engine is not None:
                logger.debug("DatabaseService already initialized; skipping")
                return

            logger.info("Initializing DatabaseService")

            try:
                config = cls._build_config_snapshot(database_url)
                cls._config_snapshot = config

                engine_kwargs: dict[str, Any] = {
                    "echo": config.echo,
                    "poolclass": config.pool_class,
                }
                if config.pool_class is AsyncAdaptedQueuePool:
                    engine_kwargs.update(
                        {
                            "pool_size": config.pool_size,
                            "max_overflow": config.max_overflow,
                            "pool_recycle": config.pool_recycle,
                            "pool_timeout": config.pool_timeout,
                        }
                    )

                cls._engine = create_async_engine(config.url, **engine_kwargs)
                cls._session_factory = async_sessionmaker(
                    bind=cls._engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                )

                logger.info(
                    "DatabaseService initialized successfully",
                    extra={
                        "url_scheme": config.url_scheme,
                        "pool_class": config.pool_class.__name__,
                    },
                )

            except Exception as exc:
                logger.error(
                    "DatabaseService initialization failed",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "config_error": isinstance(exc, DatabaseInitializationError),
                    },
                    exc_info=True,
                )
                cls._engine = None
                cls._session_factory = None
                cls._config_snapshot = None
                if isinstance(exc, DatabaseInitializationError):
                    raise
                raise DatabaseInitializationError(
                    f"Database initialization failed: {exc}"
                ) from exc

    @classmethod
    async def shutdown(cls) -> None:
        """Dispose the engine. No-op when not initialized."""
        async with cls._init_lock:
            if cls._engine is None:
                logger.debug("DatabaseService not initialized; nothing to shutdown")
                return

            logger.info("Shutting down DatabaseService")
            try:
                await cls._engine.dispose()
                logger.info("DatabaseService shutdown complete")
            finally:
                cls._engine = None
                cls._session_factory = None
                cls._config_snapshot = None

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._engine is not None

    @classmethod
    def _require_engine(cls) -> AsyncEngine:
        if cls._engine is None:
            raise DatabaseNotInitializedError(
                "DatabaseService.initialize() must be called before use"
            )
        return cls._engine

    @classmethod
    def _require_session_factory(cls) -> async_sessionmaker[AsyncSession]:
        if cls._session_factory is None:
            raise DatabaseNotInitializedError(
                "DatabaseService.initialize() must be called before use"
            )
        return cls._session_factory

    # ========================================================================
    # Schema
    # ========================================================================

    @classmethod
    async def create_schema(cls) -> None:
        """Create every table registered on ``Base.metadata``."""
        engine = cls._require_engine()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema created")

    @classmethod
    async def drop_schema(cls) -> None:
        engine = cls._require_engine()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.info("Database schema dropped")

    # ========================================================================
    # Sessions
    # ========================================================================

    @classmethod
    @asynccontextmanager
    async def get_session(cls) -> AsyncGenerator[AsyncSession, None]:
        """
        Session without automatic commit.

        Use for reads; writes belong in ``get_transaction()``.

        Raises:
            DatabaseNotInitializedError: If called before initialize()
        """
        factory = cls._require_session_factory()
        async with factory() as session:
            yield session

    @classmethod
    @asynccontextmanager
    async def get_transaction(cls) -> AsyncGenerator[AsyncSession, None]:
        """
        Atomic transaction: commit on success, rollback on any exception.

        On PostgreSQL a ``SET LOCAL statement_timeout`` bounds every
        statement in the transaction.

        Raises:
            DatabaseNotInitializedError: If called before initialize()
        """
        factory = cls._require_session_factory()
        config = cls._config_snapshot

        async with factory() as session:
            async with session.begin():
                if config is not None and config.is_postgres:
                    await session.execute(
                        text(
                            f"SET LOCAL statement_timeout = {int(config.statement_timeout_ms)}"
                        )
                    )
                try:
                    yield session
                except (OperationalError, DBAPIError) as exc:
                    logger.error(
                        "Database transaction failed; rolling back",
                        extra={"error": str(exc), "error_type": type(exc).__name__},
                        exc_info=True,
                    )
                    raise
                except Exception as exc:
                    logger.debug(
                        "Transaction aborted by caller exception; rolling back",
                        extra={"error_type": type(exc).__name__},
                    )
                    raise

    # ========================================================================
    # Health
    # ========================================================================

    @classmethod
    async def health_check(cls) -> bool:
        """
        Run ``SELECT 1``.

        Returns:
            True if the database answered, False on a connection-level error
        """
        if cls._engine is None:
            return False
        try:
            async with cls._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (OperationalError, DBAPIError) as exc:
            logger.warning(
                "Database health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False
