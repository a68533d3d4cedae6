"""Redis infrastructure with graceful degradation.

Provides the per-website sync lock and the report cache. Both work without
Redis: the lock falls back to an in-process registry and the cache no-ops.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

import orjson
import redis.asyncio as aioredis
import structlog
from redis.asyncio.lock import Lock
from redis.exceptions import LockError

from profit_service.config import get_settings
from profit_service.exceptions import SyncAlreadyRunningError

logger = structlog.get_logger()

_redis_client: aioredis.Redis | None = None

# Website ids currently syncing in this process (used when Redis is down)
_local_sync_locks: set[int] = set()


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
            logger.warning("Redis unavailable, using in-process locks and no cache", error=str(e))
            _redis_client = None
    return _redis_client


async def close_redis() -> None:
    """Close the Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.close()
        _redis_client = None


class SyncLock:
    """Per-website mutual exclusion for sync runs.

    With Redis this is a redis-py ``Lock``, so it also excludes other worker
    processes. The lock stores a per-holder token and only the holder's
    token can release it; the TTL bounds how long a crashed holder blocks
    the website.
    """

    KEY_PREFIX = "sync-lock:website:"

    def __init__(self, client: aioredis.Redis | None, ttl_seconds: int | None = None):
        self.client = client
        self.ttl_seconds = ttl_seconds or get_settings().sync_lock_ttl_seconds
        self._held: dict[int, Lock] = {}

    def _key(self, website_id: int) -> str:
        return f"{self.KEY_PREFIX}{website_id}"

    async def acquire(self, website_id: int) -> bool:
        if self.client is not None:
            try:
                lock = self.client.lock(
                    self._key(website_id),
                    timeout=self.ttl_seconds,
                    blocking=False,
                    thread_local=False,
                )
                if not await lock.acquire():
                    return False
                self._held[website_id] = lock
                return True
            except Exception as e:
                logger.warning(
                    "Redis lock failed, falling back to local lock",
                    website_id=website_id,
                    error=str(e),
                )
        if website_id in _local_sync_locks:
            return False
        _local_sync_locks.add(website_id)
        return True

    async def release(self, website_id: int) -> None:
        lock = self._held.pop(website_id, None)
        if lock is None:
            _local_sync_locks.discard(website_id)
            return
        try:
            await lock.release()
        except LockError as e:
            # Expired and possibly taken over by another run; leave it alone
            logger.warning("Sync lock no longer owned", website_id=website_id, error=str(e))
        except Exception as e:
            logger.warning("Redis lock release failed", website_id=website_id, error=str(e))

    @asynccontextmanager
    async def hold(self, website_id: int) -> AsyncGenerator[None, None]:
        """Hold the lock for the duration of the block.

        Raises:
            SyncAlreadyRunningError: if another sync holds it.
        """
        if not await self.acquire(website_id):
            raise SyncAlreadyRunningError(website_id)
        try:
            yield
        finally:
            await self.release(website_id)


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

    async def delete_prefix(self, prefix: str) -> None:
        """Delete every key starting with ``prefix``."""
        if not self.client:
            return
        try:
            keys = [key async for key in self.client.scan_iter(match=f"{prefix}*")]
            if keys:
                await self.client.delete(*keys)
        except Exception as e:
            logger.warning("Cache delete failed", prefix=prefix, error=str(e))

    async def health_check(self) -> bool:
        if not self.client:
            return False
        try:
            return await self.client.ping()
        except Exception:
            return False


async def get_redis() -> aioredis.Redis | None:
    """Dependency for FastAPI to get the shared Redis client (or None)."""
    return await get_redis_client()
