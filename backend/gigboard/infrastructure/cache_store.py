"""Redis Cache Store — JSON values with per-key TTL over redis.asyncio.

Invariants:
    - The cache is never authoritative: every backend failure degrades to a miss
      (get -> None, set/delete -> logged no-op); nothing here raises to callers
    - Values are JSON documents; set() always writes with an expiry (SETEX)
    - delete_many() issues chunked multi-key DELs sequentially, so one invalidation holds
      at most one pooled connection however many keys it plans
    - ttl() returns the remaining seconds, or None when the key is absent or has no expiry

Design Decisions:
    - Client injected, not constructed: tests pass fakeredis.FakeAsyncRedis, production
      passes redis.asyncio.from_url(settings.redis_url)
    - decode_responses=True on the client so values come back as str
"""

import json
import logging
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

# Keys per DEL command; a full invalidation plan fits in a handful of round trips.
DELETE_CHUNK_SIZE = 500


class RedisCacheStore:
    """CacheStore implementation (core/repository_protocols.py) backed by Redis."""

    def __init__(self, client: Redis):
        self.client = client

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self.client.get(key)
        except (RedisError, OSError) as e:
            logger.warning(f"Cache get failed: {e}", extra={"cache_key": key})
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Cache entry is not valid JSON", extra={"cache_key": key})
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        try:
            await self.client.setex(key, ttl_seconds, json.dumps(value, default=str))
        except (RedisError, OSError) as e:
            logger.warning(f"Cache set failed: {e}", extra={"cache_key": key})

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except (RedisError, OSError) as e:
            logger.warning(f"Cache delete failed: {e}", extra={"cache_key": key})

    async def delete_many(self, keys: list[str]) -> list[str]:
        """DEL in chunks, one connection per chunk. Returns the keys not deleted."""
        failed: list[str] = []
        for start in range(0, len(keys), DELETE_CHUNK_SIZE):
            chunk = keys[start:start + DELETE_CHUNK_SIZE]
            try:
                await self.client.delete(*chunk)
            except (RedisError, OSError) as e:
                logger.warning(
                    f"Cache delete of {len(chunk)} keys failed: {e}",
                    extra={"cache_key": chunk[0], "key_count": len(chunk)},
                )
                failed.extend(chunk)
        return failed

    async def incr(self, key: str, ttl_seconds: int) -> int | None:
        """Atomic INCR; the key expires ttl_seconds after the latest increment."""
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                count, _ = await pipe.incr(key).expire(key, ttl_seconds).execute()
        except (RedisError, OSError) as e:
            logger.warning(f"Cache incr failed: {e}", extra={"cache_key": key})
            return None
        return int(count)

    async def ttl(self, key: str) -> int | None:
        try:
            remaining = await self.client.ttl(key)
        except (RedisError, OSError) as e:
            logger.warning(f"Cache ttl failed: {e}", extra={"cache_key": key})
            return None
        return remaining if remaining is not None and remaining > 0 else None

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except (RedisError, OSError) as e:
            logger.error(f"Cache health check failed: {e}")
            return False

    async def close(self) -> None:
        await self.client.aclose()


# Singleton (initialized on startup)
cache_store: RedisCacheStore | None = None


def init_cache(redis_url: str) -> RedisCacheStore:
    global cache_store
    cache_store = RedisCacheStore(Redis.from_url(redis_url, decode_responses=True))
    return cache_store


def get_cache_store() -> RedisCacheStore:
    """FastAPI dependency for the cache store."""
    if not cache_store:
        raise RuntimeError("Cache not initialized")
    return cache_store
