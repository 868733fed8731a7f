"""
Cache module for StockPulse.

TTL memoisation of provider responses, in process memory or Redis.
"""

from stockpulse.services.cache.response_cache import (
    CacheKey,
    CacheEntry,
    MemoryCacheStore,
    ResponseCache,
    get_response_cache,
    reset_response_cache,
)
from stockpulse.services.cache.redis_client import (
    RedisCacheStore,
    init_redis,
    close_redis,
)

__all__ = [
    "CacheKey",
    "CacheEntry",
    "MemoryCacheStore",
    "ResponseCache",
    "get_response_cache",
    "reset_response_cache",
    "RedisCacheStore",
    "init_redis",
    "close_redis",
]
