"""
Per-user mutual exclusion.

``UserLockProvider`` is the port the progression service uses to serialize
the load-compute-store sequence for one user. Three adapters:

- ``LocalLockProvider``: one ``asyncio.Lock`` per key inside this process.
  Entries are dropped as soon as nobody holds or waits on them, so the map
  does not grow with the number of users ever seen.
- ``RedisLockProvider``: ``SET key token NX EX ttl`` polled until acquired,
  released by a Lua compare-and-delete so an expired lock taken over by
  another process is never deleted. Works across processes.
- ``NoLockProvider``: no serialization. Only safe when the store's version
  check is the sole guard.

``build_lock_provider()`` picks the adapter named by ``Config.LOCK_BACKEND``.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncContextManager, AsyncIterator, Dict, Optional, Protocol, runtime_checkable

from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError

from reputation_engine.core.config import Config, LockBackend
from reputation_engine.core.logging import get_logger
from reputation_engine.core.redis import RedisService
from reputation_engine.modules.shared.exceptions import LockTimeoutError

logger = get_logger(__name__)

LOCK_KEY_PREFIX = "reputation:lock:user:"


def user_lock_key(user_identifier: str) -> str:
    return f"{LOCK_KEY_PREFIX}{user_identifier}"


@runtime_checkable
class UserLockProvider(Protocol):
    """Async context manager factory keyed by user identifier."""

    def lock(self, key: str) -> AsyncContextManager[None]:
        ...


# ============================================================================
# In-process
# ============================================================================


@dataclass
class _LocalEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class LocalLockProvider:
    """
    Keyed ``asyncio.Lock`` map for a single process.

    Args:
        wait_timeout: Seconds to wait for the lock before raising
            LockTimeoutError; None waits forever
    """

    def __init__(self, wait_timeout: Optional[float] = None) -> None:
        self.wait_timeout = wait_timeout
        self._entries: Dict[str, _LocalEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @asynccontextmanager
    async def lock(self, key: str) -> AsyncIterator[None]:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _LocalEntry()
        entry.users += 1

        try:
            if self.wait_timeout is None:
                await entry.lock.acquire()
            else:
                try:
                    await asyncio.wait_for(entry.lock.acquire(), self.wait_timeout)
                except asyncio.TimeoutError:
                    logger.warning(
                        "Timed out waiting for local lock",
                        extra={"lock_key": key, "wait_timeout_seconds": self.wait_timeout},
                    )
                    raise LockTimeoutError(key, self.wait_timeout) from None

            try:
                yield
            finally:
                entry.lock.release()
        finally:
            entry.users -= 1
            if entry.users == 0 and self._entries.get(key) is entry:
                del self._entries[key]


# ============================================================================
# Distributed
# ============================================================================


class RedisLockProvider:
    """
    Distributed lock on Redis.

    Args:
        client: Async Redis client; defaults to ``RedisService.client()`` at
            first use
        ttl_seconds: Lock expiry, bounds how long a crashed holder blocks others
        wait_timeout: Seconds to keep polling before LockTimeoutError
        retry_interval: Sleep between SET NX attempts
    """

    _LUA_UNLOCK_SCRIPT = """
    if redis.call("GET", KEYS[1]) == ARGV[1] then
        return redis.call("DEL", KEYS[1])
    else
        return 0
    end
    """

    def __init__(
        self,
        client: Optional[AsyncRedis] = None,
        *,
        ttl_seconds: int = 10,
        wait_timeout: float = 10.0,
        retry_interval: float = 0.05,
    ) -> None:
        self._client = client
        self.ttl_seconds = ttl_seconds
        self.wait_timeout = wait_timeout
        self.retry_interval = retry_interval

    def _get_client(self) -> AsyncRedis:
        if self._client is None:
            self._client = RedisService.client()
        return self._client

    async def _try_acquire(self, client: AsyncRedis, key: str, token: str) -> bool:
        try:
            return bool(await client.set(name=key, value=token, nx=True, ex=self.ttl_seconds))
        except RedisError as exc:
            logger.error(
                "Redis lock acquisition error",
                extra={"lock_key": key, "error": str(exc), "error_type": type(exc).__name__},
                exc_info=True,
            )
            return False

    @asynccontextmanager
    async def lock(self, key: str) -> AsyncIterator[None]:
        client = self._get_client()
        token = str(uuid.uuid4())
        start = time.monotonic()
        deadline = start + max(0.0, self.wait_timeout)

        while not await self._try_acquire(client, key, token):
            if time.monotonic() >= deadline:
                logger.warning(
                    "Failed to acquire Redis lock within timeout",
                    extra={
                        "lock_key": key,
                        "wait_timeout_seconds": self.wait_timeout,
                        "actual_wait_ms": round((time.monotonic() - start) * 1000, 2),
                    },
                )
                raise LockTimeoutError(key, self.wait_timeout)
            await asyncio.sleep(self.retry_interval)

        logger.debug(
            "Redis lock acquired",
            extra={
                "lock_key": key,
                "ttl_seconds": self.ttl_seconds,
                "wait_ms": round((time.monotonic() - start) * 1000, 2),
            },
        )
        hold_start = time.monotonic()

        try:
            yield
        finally:
            hold_ms = round((time.monotonic() - hold_start) * 1000, 2)
            try:
                released = await client.eval(self._LUA_UNLOCK_SCRIPT, 1, key, token)  # type: ignore[misc]
            except RedisError as exc:
                # The key still carries its TTL
                logger.warning(
                    "Failed to release Redis lock (will expire automatically)",
                    extra={
                        "lock_key": key,
                        "ttl_seconds": self.ttl_seconds,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                    exc_info=True,
                )
            else:
                if released:
                    logger.debug("Redis lock released", extra={"lock_key": key, "hold_ms": hold_ms})
                else:
                    logger.warning(
                        "Redis lock already expired or taken over",
                        extra={"lock_key": key, "hold_ms": hold_ms},
                    )


# ============================================================================
# None
# ============================================================================


class NoLockProvider:
    """Grants every request immediately."""

    @asynccontextmanager
    async def lock(self, key: str) -> AsyncIterator[None]:
        yield


def build_lock_provider(backend: Optional[str] = None) -> UserLockProvider:
    """
    Lock provider for ``backend`` (defaults to ``Config.LOCK_BACKEND``).

    Example:
        >>> isinstance(build_lock_provider("none"), NoLockProvider)
        True
    """
    backend = LockBackend(backend or Config.LOCK_BACKEND)
    wait_timeout = float(Config.LOCK_WAIT_TIMEOUT_SECONDS)

    if backend is LockBackend.REDIS:
        return RedisLockProvider(
            ttl_seconds=int(Config.LOCK_TIMEOUT_SECONDS),
            wait_timeout=wait_timeout,
            retry_interval=float(Config.LOCK_RETRY_INTERVAL_SECONDS),
        )
    if backend is LockBackend.NONE:
        logger.warning("Per-user locking disabled; relying on store version checks")
        return NoLockProvider()
    return LocalLockProvider(wait_timeout=wait_timeout)
