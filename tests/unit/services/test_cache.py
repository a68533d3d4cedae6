"""Unit tests for the Redis-backed cache and sync lock."""

import uuid

import pytest
from redis.exceptions import LockNotOwnedError

from profit_service.exceptions import SyncAlreadyRunningError
from profit_service.infrastructure.redis import CacheService, SyncLock


class FakeRedis:
    """Just enough of ``redis.asyncio.Redis`` for locks and the cache."""

    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}
        self.expiries: dict[str, int | None] = {}

    async def set(self, key: str, value: bytes, nx: bool = False, ex: int | None = None) -> bool | None:
        if nx and key in self.data:
            return None
        self.data[key] = value
        self.expiries[key] = ex
        return True

    async def get(self, key: str) -> bytes | None:
        return self.data.get(key)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    async def scan_iter(self, match: str):
        prefix = match.rstrip("*")
        for key in list(self.data):
            if key.startswith(prefix):
                yield key

    async def ping(self) -> bool:
        return True

    def lock(
        self, name: str, timeout: int, blocking: bool = True, thread_local: bool = True
    ) -> "FakeRedisLock":
        return FakeRedisLock(self, name, timeout)

    def expire_now(self, key: str) -> None:
        self.data.pop(key, None)
        self.expiries.pop(key, None)


class FakeRedisLock:
    """Token-owning lock with the semantics of ``redis.asyncio.lock.Lock``."""

    def __init__(self, redis: FakeRedis, name: str, timeout: int) -> None:
        self.redis = redis
        self.name = name
        self.timeout = timeout
        self.token: bytes | None = None

    async def acquire(self) -> bool:
        token = uuid.uuid4().hex.encode()
        if not await self.redis.set(self.name, token, nx=True, ex=self.timeout):
            return False
        self.token = token
        return True

    async def release(self) -> None:
        if self.redis.data.get(self.name) != self.token:
            raise LockNotOwnedError("Cannot release a lock that's no longer owned")
        await self.redis.delete(self.name)


class BrokenRedis:
    def lock(self, *args, **kwargs):
        raise ConnectionError("redis down")

    async def set(self, *args, **kwargs):
        raise ConnectionError("redis down")

    async def delete(self, *keys):
        raise ConnectionError("redis down")


class TestCacheServiceGracefulDegradation:
    """CacheService should no-op safely when Redis is unavailable."""

    @pytest.fixture
    def cache(self) -> CacheService:
        return CacheService(None)

    @pytest.mark.asyncio
    async def test_get_returns_none(self, cache: CacheService) -> None:
        assert await cache.get("any-key") is None

    @pytest.mark.asyncio
    async def test_set_is_noop(self, cache: CacheService) -> None:
        await cache.set("key", {"data": "value"})  # should not raise

    @pytest.mark.asyncio
    async def test_delete_prefix_is_noop(self, cache: CacheService) -> None:
        await cache.delete_prefix("profit-summary:")  # should not raise

    @pytest.mark.asyncio
    async def test_health_check_returns_false(self, cache: CacheService) -> None:
        assert await cache.health_check() is False


class TestCacheServiceWithRedis:
    @pytest.mark.asyncio
    async def test_set_then_get_round_trips_json(self) -> None:
        redis = FakeRedis()
        cache = CacheService(redis)

        await cache.set("profit-summary:1", {"total": "10.00"}, ttl_seconds=60)

        assert await cache.get("profit-summary:1") == {"total": "10.00"}
        assert redis.expiries["profit-summary:1"] == 60

    @pytest.mark.asyncio
    async def test_delete_prefix_only_removes_matching_keys(self) -> None:
        redis = FakeRedis()
        cache = CacheService(redis)
        await cache.set("profit-summary:1", {"a": 1})
        await cache.set("profit-summary:all", {"a": 2})
        await cache.set("other:1", {"a": 3})

        await cache.delete_prefix("profit-summary:")

        assert list(redis.data) == ["other:1"]


class TestSyncLock:
    @pytest.mark.asyncio
    async def test_redis_lock_is_exclusive_per_website(self) -> None:
        redis = FakeRedis()
        lock = SyncLock(redis, ttl_seconds=30)

        assert await lock.acquire(1) is True
        assert await lock.acquire(1) is False
        assert await lock.acquire(2) is True
        assert redis.expiries["sync-lock:website:1"] == 30

        await lock.release(1)
        assert await lock.acquire(1) is True
        await lock.release(1)
        await lock.release(2)

    @pytest.mark.asyncio
    async def test_expired_holder_cannot_release_newer_holder(self) -> None:
        redis = FakeRedis()
        first = SyncLock(redis, ttl_seconds=30)
        second = SyncLock(redis, ttl_seconds=30)

        assert await first.acquire(1) is True
        redis.expire_now("sync-lock:website:1")
        assert await second.acquire(1) is True

        await first.release(1)

        assert await SyncLock(redis, ttl_seconds=30).acquire(1) is False
        await second.release(1)
        assert "sync-lock:website:1" not in redis.data

    @pytest.mark.asyncio
    async def test_local_lock_without_redis(self) -> None:
        lock = SyncLock(None, ttl_seconds=30)

        async with lock.hold(42):
            with pytest.raises(SyncAlreadyRunningError):
                async with lock.hold(42):
                    pass

        # released on exit
        async with lock.hold(42):
            pass

    @pytest.mark.asyncio
    async def test_falls_back_to_local_lock_when_redis_errors(self) -> None:
        lock = SyncLock(BrokenRedis(), ttl_seconds=30)

        assert await lock.acquire(7) is True
        assert await lock.acquire(7) is False

        await lock.release(7)
        assert await lock.acquire(7) is True
        await lock.release(7)
