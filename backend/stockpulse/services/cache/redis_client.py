"""
Redis store for the provider response cache.

Shares cached provider envelopes across worker processes. Redis enforces
the TTL itself; values are the envelopes' JSON (provider field names) and
are re-validated through the endpoint schema on read.
"""

import json
import logging
from typing import Optional

import redis.asyncio as redis

from stockpulse.core.config import settings
from stockpulse.services.cache.response_cache import CacheEntry, CacheKey, MemoryCacheStore
from stockpulse.services.provider.endpoints import Endpoint, get_endpoint_spec

logger = logging.getLogger(__name__)

# Global Redis connection pool
_redis_pool: Optional[redis.Redis] = None


async def init_redis(url: Optional[str] = None) -> Optional[redis.Redis]:
    """
    Initialize Redis connection pool.
    Called on application startup. Returns None when Redis is not configured
    or unreachable, in which case the memory store is used.
    """
    global _redis_pool

    if _redis_pool is not None:
        return _redis_pool

    url = url or settings.redis_url
    if not url:
        return None

    try:
        _redis_pool = redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
        )
        # Test connection
        await _redis_pool.ping()
        logger.info(f"Redis connected: {url}")
        return _redis_pool
    except Exception as e:
        logger.warning(f"Redis connection failed: {e}. Using in-memory fallback.")
        _redis_pool = None
        return None


async def close_redis() -> None:
    """Close Redis connection pool."""
    global _redis_pool
    if _redis_pool:
        await _redis_pool.close()
        _redis_pool = None
        logger.info("Redis connection closed")


def get_redis() -> Optional[redis.Redis]:
    """Get the Redis connection pool."""
    return _redis_pool


class RedisCacheStore:
    """
    Redis-backed CacheStore.

    Falls back to process memory for any operation Redis fails on.
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None):
        self._redis = redis_client
        self._fallback = MemoryCacheStore()

    @property
    def redis(self) -> Optional[redis.Redis]:
        return self._redis or _redis_pool

    @staticmethod
    def _decode(key: CacheKey, raw: str):
        schema = get_endpoint_spec(Endpoint(key.endpoint)).schema
        return schema.model_validate(json.loads(raw))

    async def get(self, key: CacheKey) -> Optional[CacheEntry]:
        if self.redis:
            try:
                raw = await self.redis.get(key.value)
                if raw is None:
                    return None
                # Redis drops expired keys itself
                return CacheEntry(key=key, value=self._decode(key, raw), expires_at=float("inf"))
            except Exception as e:
                logger.debug(f"Redis cache get failed: {e}")

        return await self._fallback.get(key)

    async def set(self, entry: CacheEntry, ttl_seconds: int) -> None:
        if self.redis:
            try:
                raw = entry.value.model_dump_json(by_alias=True)
                await self.redis.set(entry.key.value, raw, ex=ttl_seconds)
                return
            except Exception as e:
                logger.debug(f"Redis cache set failed: {e}")

        await self._fallback.set(entry, ttl_seconds)

    async def delete(self, key: CacheKey) -> int:
        removed = await self._fallback.delete(key)
        if self.redis:
            try:
                removed += await self.redis.delete(key.value)
            except Exception as e:
                logger.debug(f"Redis cache delete failed: {e}")
        return removed

    async def delete_tag(self, tag: str) -> int:
        removed = await self._fallback.delete_tag(tag)
        if self.redis:
            try:
                doomed = set()
                for pattern in (f"av:{tag}:*", f"av:*:{tag}:*"):
                    async for name in self.redis.scan_iter(match=pattern):
                        doomed.add(name)
                if doomed:
                    removed += await self.redis.delete(*doomed)
            except Exception as e:
                logger.debug(f"Redis cache delete_tag failed: {e}")
        return removed
