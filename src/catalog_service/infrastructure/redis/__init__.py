"""Redis infrastructure with graceful degradation.

Provides the attribute metadata cache and the per-store sync run lock.
Both no-op when Redis is unreachable.
"""

from typing import Any

import orjson
import redis.asyncio as aioredis
import structlog
from redis.exceptions import LockError

from catalog_service.config import get_settings
from shared.constants import SYNC_LOCK_PREFIX

logger = structlog.get_logger()

_redis_client: aioredis.Redis | None = None


async def get_redis_client() -> aioredis.Redis | None:
    """Get or create the global async Redis client."""
    global _redis_client
    if _redis_client is None:
        settings = get_settings()
        try:
            _redis_client = aioredis.from_url(
                settings.redis_url,
                decode_responses=False,
                socket_connect_timeout=2,
                socket_timeout=2,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("Redis connection established")
        except Exception as e:
            logger.warning("Redis unavailable, caching disabled", error=str(e))
            _redis_client = None
    return _redis_client


async def close_redis() -> None:
    """Close the Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


class CacheService:
    """Async Redis cache with orjson serialization. No-ops if Redis is unavailable."""

    def __init__(self, client: aioredis.Redis | None):
        self.client = client

    async def get(self, key: str) -> Any | None:
        if not self.client:
            return None
        try:
            data = await self.client.get(key)
            if data:
                return orjson.loads(data)
        except Exception as e:
            logger.warning("Cache get failed", key=key, error=str(e))
        return None

    async def set(self, key: str, value: Any, ttl_seconds: int = 300) -> None:
        if not self.client:
            return
        try:
            await self.client.set(key, orjson.dumps(value), ex=ttl_seconds)
        except Exception as e:
            logger.warning("Cache set failed", key=key, error=str(e))

    async def health_check(self) -> bool:
        if not self.client:
            return False
        try:
            return await self.client.ping()
        except Exception:
            return False


class SyncLock:
    """Per-store mutual exclusion for sync passes.

    Backed by redis-py's ``Lock``: the key holds a random token, so a run
    whose lock expired cannot release the lock of the run that took over.
    Without Redis the lock always succeeds and the scheduler is trusted to
    avoid overlapping runs.
    """

    def __init__(self, client: aioredis.Redis | None, store_id: str, ttl_seconds: int):
        self.client = client
        self.key = f"{SYNC_LOCK_PREFIX}{store_id}"
        self.ttl_seconds = ttl_seconds
        self._lock = (
            client.lock(self.key, timeout=ttl_seconds, blocking=False) if client else None
        )

    async def acquire(self) -> bool:
        if self._lock is None:
            logger.warning("Redis unavailable, running sync without lock", key=self.key)
            return True
        try:
            return bool(await self._lock.acquire())
        except Exception as e:
            logger.warning("Sync lock acquire failed, running without lock", error=str(e))
            return True

    async def release(self) -> None:
        if self._lock is None:
            return
        try:
            await self._lock.release()
        except LockError as e:
            logger.warning(
                "Sync lock no longer owned, leaving it to the current holder",
                key=self.key,
                error=str(e),
            )
        except Exception as e:
            logger.warning("Sync lock release failed", key=self.key, error=str(e))
