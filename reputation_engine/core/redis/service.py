"""
Async Redis client lifecycle.

Holds the process-wide ``redis.asyncio`` client used by the distributed
per-user lock. Configuration comes from ``Config``: REDIS_URL,
REDIS_SOCKET_TIMEOUT and REDIS_MAX_CONNECTIONS.
"""

from __future__ import annotations

import asyncio
import time
from typing import Optional

from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError

from reputation_engine.core.config import Config
from reputation_engine.core.logging import get_logger

logger = get_logger(__name__)


class RedisService:
    """Singleton async Redis client with idempotent initialize/shutdown."""

    _client: Optional[AsyncRedis] = None
    _init_lock: asyncio.Lock = asyncio.Lock()
    _is_healthy: bool = False

    @classmethod
    async def initialize(cls, url: Optional[str] = None) -> None:
        """
        Connect and PING.

        Raises:
            RuntimeError: If the connection cannot be established
        """
        if cls._client is not None:
            logger.debug("RedisService already initialized, skipping")
            return

        async with cls._init_lock:
            if cls._client is not None:
                return

            url = url or Config.REDIS_URL
            socket_timeout = int(getattr(Config, "REDIS_SOCKET_TIMEOUT", 5))
            max_connections = int(getattr(Config, "REDIS_MAX_CONNECTIONS", 50))
            url_scheme = url.split("://")[0] if "://" in url else "unknown"
            start_time = time.monotonic()

            client: AsyncRedis = AsyncRedis.from_url(
                url,
                socket_timeout=socket_timeout,
                decode_responses=True,
                max_connections=max_connections,
                retry_on_timeout=False,
                health_check_interval=30,
            )
            try:
                await client.ping()  # type: ignore[misc]
            except RedisError as exc:
                await client.aclose()
                logger.critical(
                    "Failed to initialize RedisService",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "url_scheme": url_scheme,
                    },
                    exc_info=True,
                )
                raise RuntimeError(f"Failed to initialize RedisService: {exc}") from exc

            cls._client = client
            cls._is_healthy = True
            logger.info(
                "RedisService initialized successfully",
                extra={
                    "url_scheme": url_scheme,
                    "socket_timeout_seconds": socket_timeout,
                    "max_connections": max_connections,
                    "initialization_time_ms": round((time.monotonic() - start_time) * 1000, 2),
                },
            )

    @classmethod
    async def shutdown(cls) -> None:
        """Close the client. Safe to call when not initialized."""
        client = cls._client
        if client is None:
            logger.debug("RedisService not initialized, nothing to shutdown")
            return

        cls._client = None
        cls._is_healthy = False
        await client.aclose()
        logger.info("RedisService shutdown complete")

    @classmethod
    async def health_check(cls) -> bool:
        if cls._client is None:
            cls._is_healthy = False
            return False
        try:
            cls._is_healthy = bool(await cls._client.ping())  # type: ignore[misc]
        except RedisError as exc:
            logger.warning(
                "Redis health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            cls._is_healthy = False
        return cls._is_healthy

    @classmethod
    def client(cls) -> AsyncRedis:
        """
        The active client.

        Raises:
            RuntimeError: If RedisService has not been initialized
        """
        if cls._client is None:
            raise RuntimeError(
                "RedisService not initialized. "
                "Call `await RedisService.initialize()` first."
            )
        return cls._client
