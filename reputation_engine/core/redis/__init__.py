"""Redis client lifecycle for the distributed per-user lock."""

from reputation_engine.core.redis.service import RedisService

__all__ = ["RedisService"]
