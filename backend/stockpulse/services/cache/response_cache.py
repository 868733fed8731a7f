"""
TTL response cache for provider calls.

Keys:
- av:{endpoint}:{symbol}:{sorted k=v params} → validated provider envelope

Only successful fetches are stored. Expiry is checked when an entry is read;
nothing is evicted in the background.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

from stockpulse.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheKey:
    """(endpoint, symbol, canonical params) identity of one provider call."""

    endpoint: str
    symbol: str
    params: str = ""

    @classmethod
    def build(cls, endpoint: Any, symbol: str, params: Optional[dict[str, Any]] = None) -> "CacheKey":
        endpoint_name = getattr(endpoint, "value", endpoint)
        canonical = "&".join(f"{k}={v}" for k, v in sorted((params or {}).items()))
        return cls(endpoint=str(endpoint_name), symbol=symbol, params=canonical)

    @property
    def value(self) -> str:
        return f"av:{self.endpoint}:{self.symbol}:{self.params}"

    def matches(self, tag: str) -> bool:
        """Tags select every key for an endpoint or for a symbol."""
        return tag in (self.endpoint, self.symbol)


@dataclass(frozen=True)
class CacheEntry:
    key: CacheKey
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class CacheStore(Protocol):
    async def get(self, key: CacheKey) -> Optional[CacheEntry]: ...

    async def set(self, entry: CacheEntry, ttl_seconds: int) -> None: ...

    async def delete(self, key: CacheKey) -> int: ...

    async def delete_tag(self, tag: str) -> int: ...


class MemoryCacheStore:
    """In-process store. Entries are replaced, never mutated."""

    def __init__(self):
        self._entries: dict[str, CacheEntry] = {}

    async def get(self, key: CacheKey) -> Optional[CacheEntry]:
        return self._entries.get(key.value)

    async def set(self, entry: CacheEntry, ttl_seconds: int) -> None:
        self._entries[entry.key.value] = entry

    async def delete(self, key: CacheKey) -> int:
        return 1 if self._entries.pop(key.value, None) is not None else 0

    async def delete_tag(self, tag: str) -> int:
        doomed = [k for k, entry in self._entries.items() if entry.key.matches(tag)]
        for k in doomed:
            del self._entries[k]
        return len(doomed)

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class _Flight:
    """One in-progress fetch shared by every concurrent miss on a key."""

    task: asyncio.Task
    waiters: int = field(default=0)


class ResponseCache:
    """
    get_or_fetch() memoisation with a single fixed TTL.

    Concurrent misses on the same key share one fetch. The shared fetch is
    cancelled only once every waiter on it has been cancelled.
    """

    def __init__(
        self,
        store: Optional[CacheStore] = None,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._store = store or MemoryCacheStore()
        self._ttl = ttl_seconds if ttl_seconds is not None else settings.cache_ttl_seconds
        self._clock = clock
        self._inflight: dict[str, _Flight] = {}

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    @property
    def store(self) -> CacheStore:
        return self._store

    async def get(self, key: CacheKey) -> Optional[Any]:
        """Live value for key, or None."""
        entry = await self._store.get(key)
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry.value

    async def get_or_fetch(self, key: CacheKey, fetcher: Callable[[], Awaitable[Any]]) -> Any:
        """
        Return the cached value for key, calling fetcher once on a miss.

        Fetch failures propagate unchanged and leave the cache untouched.
        A waiter whose shared fetch was cancelled by others starts a new one.
        """
        while True:
            entry = await self._store.get(key)
            if entry is not None and not entry.is_expired(self._clock()):
                logger.debug(f"Cache hit: {key.value}")
                return entry.value

            flight = self._inflight.get(key.value)
            if flight is None or flight.task.done():
                logger.debug(f"Cache miss: {key.value}")
                flight = _Flight(task=asyncio.ensure_future(self._fetch_and_store(key, fetcher)))
                self._inflight[key.value] = flight
                flight.task.add_done_callback(lambda task, k=key.value: self._finish_flight(k, task))
            else:
                logger.debug(f"Joining in-flight fetch: {key.value}")

            flight.waiters += 1
            try:
                return await asyncio.shield(flight.task)
            except asyncio.CancelledError:
                if flight.task.cancelled() and not asyncio.current_task().cancelling():
                    logger.debug(f"Shared fetch cancelled under waiter, refetching: {key.value}")
                    continue
                if flight.waiters == 1 and not flight.task.done():
                    flight.task.cancel()
                    # Unwinding may take several loop steps; new callers must not join it
                    self._drop_flight(key.value, flight)
                raise
            finally:
                flight.waiters -= 1

    async def _fetch_and_store(self, key: CacheKey, fetcher: Callable[[], Awaitable[Any]]) -> Any:
        value = await fetcher()
        entry = CacheEntry(key=key, value=value, expires_at=self._clock() + self._ttl)
        await self._store.set(entry, self._ttl)
        return value

    def _drop_flight(self, key: str, flight: _Flight) -> None:
        if self._inflight.get(key) is flight:
            del self._inflight[key]

    def _finish_flight(self, key: str, task: asyncio.Task) -> None:
        flight = self._inflight.get(key)
        if flight is not None and flight.task is task:
            del self._inflight[key]
        # Every waiter may be gone; mark the outcome as observed
        if not task.cancelled():
            task.exception()

    async def invalidate(self, tag_or_key: Union[CacheKey, str]) -> int:
        """
        Drop one key, or every key for an endpoint or symbol tag.

        Returns the number of entries removed.
        """
        if isinstance(tag_or_key, CacheKey):
            removed = await self._store.delete(tag_or_key)
        else:
            removed = await self._store.delete_tag(tag_or_key)
        logger.debug(f"Invalidated {removed} cache entries for {tag_or_key}")
        return removed


# Singleton instance
_response_cache: Optional[ResponseCache] = None


def get_response_cache() -> ResponseCache:
    """
    Get the response cache singleton.

    Uses the Redis store when init_redis() connected, else process memory.
    """
    global _response_cache
    if _response_cache is None:
        from stockpulse.services.cache.redis_client import RedisCacheStore, get_redis

        store: CacheStore = RedisCacheStore() if get_redis() is not None else MemoryCacheStore()
        _response_cache = ResponseCache(store=store)
    return _response_cache


def reset_response_cache() -> None:
    """Forget the singleton (used on shutdown)."""
    global _response_cache
    _response_cache = None
