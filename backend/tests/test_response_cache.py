import asyncio
import fnmatch
import unittest

from stockpulse.schemas.provider import GlobalQuoteResponse
from stockpulse.services.base import ProviderTimeoutError, RateLimitError
from stockpulse.services.cache import CacheEntry, CacheKey, MemoryCacheStore, RedisCacheStore, ResponseCache

from payloads import FakeClock, global_quote


class CountingFetcher:
    """Returns successive values; optionally blocks until released."""

    def __init__(self, *results, gate=None):
        self.results = list(results) or ["value"]
        self.calls = 0
        self.cancelled = False
        self.gate = gate

    async def __call__(self):
        self.calls += 1
        result = self.results[min(self.calls, len(self.results)) - 1]
        if self.gate is not None:
            try:
                await self.gate.wait()
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if isinstance(result, BaseException):
            raise result
        return result


class TestCacheKey(unittest.TestCase):
    def test_params_are_canonicalised(self):
        a = CacheKey.build("rsi", "AAPL", {"time_period": "14", "interval": "daily"})
        b = CacheKey.build("rsi", "AAPL", {"interval": "daily", "time_period": "14"})
        self.assertEqual(a, b)
        self.assertEqual(a.value, "av:rsi:AAPL:interval=daily&time_period=14")

    def test_distinct_dimensions_give_distinct_keys(self):
        keys = {
            CacheKey.build("rsi", "AAPL", {"time_period": "14"}).value,
            CacheKey.build("rsi", "MSFT", {"time_period": "14"}).value,
            CacheKey.build("adx", "AAPL", {"time_period": "14"}).value,
            CacheKey.build("rsi", "AAPL", {"time_period": "20"}).value,
        }
        self.assertEqual(len(keys), 4)

    def test_entry_expiry_boundary(self):
        entry = CacheEntry(key=CacheKey.build("quote", "AAPL"), value=1, expires_at=1300.0)
        self.assertFalse(entry.is_expired(1299.9))
        self.assertTrue(entry.is_expired(1300.0))


class TestGetOrFetch(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.cache = ResponseCache(MemoryCacheStore(), ttl_seconds=300, clock=self.clock)
        self.key = CacheKey.build("quote", "AAPL")

    async def test_hit_within_ttl_skips_fetcher(self):
        fetcher = CountingFetcher("first", "second")
        self.assertEqual(await self.cache.get_or_fetch(self.key, fetcher), "first")
        self.clock.advance(299)
        self.assertEqual(await self.cache.get_or_fetch(self.key, fetcher), "first")
        self.assertEqual(fetcher.calls, 1)

    async def test_expired_entry_is_never_returned(self):
        fetcher = CountingFetcher("first", "second")
        await self.cache.get_or_fetch(self.key, fetcher)
        self.clock.advance(300)

        self.assertIsNone(await self.cache.get(self.key))
        self.assertEqual(await self.cache.get_or_fetch(self.key, fetcher), "second")
        self.assertEqual(fetcher.calls, 2)

    async def test_failures_are_not_cached(self):
        fetcher = CountingFetcher(RateLimitError("quota"), "recovered")

        with self.assertRaises(RateLimitError):
            await self.cache.get_or_fetch(self.key, fetcher)
        self.assertEqual(len(self.cache.store), 0)

        self.assertEqual(await self.cache.get_or_fetch(self.key, fetcher), "recovered")
        self.assertEqual(await self.cache.get_or_fetch(self.key, fetcher), "recovered")
        self.assertEqual(fetcher.calls, 2)

    async def test_failure_propagates_unchanged(self):
        original = ProviderTimeoutError("slow")
        with self.assertRaises(ProviderTimeoutError) as ctx:
            await self.cache.get_or_fetch(self.key, CountingFetcher(original))
        self.assertIs(ctx.exception, original)

    async def test_keys_are_isolated(self):
        other = CacheKey.build("quote", "MSFT")
        await self.cache.get_or_fetch(self.key, CountingFetcher("aapl"))
        self.assertEqual(await self.cache.get_or_fetch(other, CountingFetcher("msft")), "msft")
        self.assertEqual(await self.cache.get(self.key), "aapl")


class TestConcurrentMisses(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.cache = ResponseCache(MemoryCacheStore(), ttl_seconds=300, clock=FakeClock())
        self.key = CacheKey.build("daily", "MSFT", {"outputsize": "compact"})

    async def test_concurrent_misses_share_one_fetch(self):
        gate = asyncio.Event()
        fetcher = CountingFetcher("bars", gate=gate)

        waiters = [asyncio.ensure_future(self.cache.get_or_fetch(self.key, fetcher)) for _ in range(3)]
        await asyncio.sleep(0)
        gate.set()

        self.assertEqual(await asyncio.gather(*waiters), ["bars", "bars", "bars"])
        self.assertEqual(fetcher.calls, 1)

    async def test_shared_failure_reaches_every_waiter_and_is_not_cached(self):
        gate = asyncio.Event()
        fetcher = CountingFetcher(RateLimitError("quota"), "bars", gate=gate)

        waiters = [asyncio.ensure_future(self.cache.get_or_fetch(self.key, fetcher)) for _ in range(2)]
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(*waiters, return_exceptions=True)

        self.assertTrue(all(isinstance(r, RateLimitError) for r in results))
        self.assertEqual(await self.cache.get_or_fetch(self.key, fetcher), "bars")
        self.assertEqual(fetcher.calls, 2)

    async def test_cancelling_one_waiter_keeps_shared_fetch_alive(self):
        gate = asyncio.Event()
        fetcher = CountingFetcher("bars", gate=gate)

        first = asyncio.ensure_future(self.cache.get_or_fetch(self.key, fetcher))
        second = asyncio.ensure_future(self.cache.get_or_fetch(self.key, fetcher))
        await asyncio.sleep(0)

        first.cancel()
        await asyncio.sleep(0)
        gate.set()

        self.assertEqual(await second, "bars")
        self.assertTrue(first.cancelled())
        self.assertFalse(fetcher.cancelled)

    async def test_cancelling_last_waiter_cancels_fetch(self):
        gate = asyncio.Event()
        fetcher = CountingFetcher("bars", gate=gate)

        waiter = asyncio.ensure_future(self.cache.get_or_fetch(self.key, fetcher))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        waiter.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await waiter
        await asyncio.sleep(0)

        self.assertTrue(fetcher.cancelled)
        self.assertIsNone(await self.cache.get(self.key))

    async def test_caller_arriving_during_cancelled_fetch_cleanup_gets_fresh_value(self):
        gate = asyncio.Event()
        cleanup_done = asyncio.Event()

        async def slow_to_unwind():
            try:
                await gate.wait()
            except asyncio.CancelledError:
                # e.g. an HTTP connection being released
                await asyncio.sleep(0.05)
                cleanup_done.set()
                raise
            return "stale"

        async def quick():
            return "fresh"

        abandoned = asyncio.ensure_future(self.cache.get_or_fetch(self.key, slow_to_unwind))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        abandoned.cancel()
        await asyncio.sleep(0)

        self.assertFalse(cleanup_done.is_set())
        self.assertEqual(await self.cache.get_or_fetch(self.key, quick), "fresh")

        with self.assertRaises(asyncio.CancelledError):
            await abandoned
        await asyncio.wait_for(cleanup_done.wait(), 1)
        self.assertEqual(await self.cache.get(self.key), "fresh")

    async def test_waiter_restarts_fetch_cancelled_out_from_under_it(self):
        fetcher = CountingFetcher(asyncio.CancelledError(), "fresh")

        self.assertEqual(await self.cache.get_or_fetch(self.key, fetcher), "fresh")
        self.assertEqual(fetcher.calls, 2)


class TestInvalidate(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.cache = ResponseCache(MemoryCacheStore(), ttl_seconds=300, clock=FakeClock())
        for endpoint in ("quote", "overview", "rsi"):
            for symbol in ("AAPL", "MSFT"):
                key = CacheKey.build(endpoint, symbol)
                await self.cache.get_or_fetch(key, CountingFetcher(f"{endpoint}-{symbol}"))

    async def test_invalidate_single_key(self):
        removed = await self.cache.invalidate(CacheKey.build("quote", "AAPL"))
        self.assertEqual(removed, 1)
        self.assertIsNone(await self.cache.get(CacheKey.build("quote", "AAPL")))
        self.assertEqual(await self.cache.get(CacheKey.build("quote", "MSFT")), "quote-MSFT")

    async def test_invalidate_symbol_tag(self):
        self.assertEqual(await self.cache.invalidate("AAPL"), 3)
        self.assertEqual(len(self.cache.store), 3)

    async def test_invalidate_endpoint_tag(self):
        self.assertEqual(await self.cache.invalidate("rsi"), 2)
        self.assertIsNone(await self.cache.get(CacheKey.build("rsi", "MSFT")))
        self.assertEqual(await self.cache.get(CacheKey.build("overview", "MSFT")), "overview-MSFT")

    async def test_invalidate_unknown_tag(self):
        self.assertEqual(await self.cache.invalidate("ZZZZ"), 0)


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the store."""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    async def get(self, name):
        return self.data.get(name)

    async def set(self, name, value, ex=None):
        self.data[name] = value
        self.ttls[name] = ex

    async def delete(self, *names):
        return sum(1 for name in names if self.data.pop(name, None) is not None)

    async def scan_iter(self, match=None):
        for name in list(self.data):
            if fnmatch.fnmatchcase(name, match):
                yield name


class TestRedisCacheStore(unittest.IsolatedAsyncioTestCase):
    async def test_envelope_round_trips_through_redis(self):
        fake = FakeRedis()
        cache = ResponseCache(RedisCacheStore(fake), ttl_seconds=300, clock=FakeClock())
        key = CacheKey.build("quote", "AAPL")
        envelope = GlobalQuoteResponse.model_validate(global_quote())

        await cache.get_or_fetch(key, CountingFetcher(envelope))

        self.assertEqual(fake.ttls[key.value], 300)
        cached = await cache.get(key)
        self.assertIsInstance(cached, GlobalQuoteResponse)
        self.assertEqual(cached, envelope)

    async def test_tag_invalidation_scans_both_positions(self):
        fake = FakeRedis()
        store = RedisCacheStore(fake)
        cache = ResponseCache(store, ttl_seconds=300, clock=FakeClock())
        for symbol in ("AAPL", "MSFT"):
            envelope = GlobalQuoteResponse.model_validate(global_quote(symbol))
            await cache.get_or_fetch(CacheKey.build("quote", symbol), CountingFetcher(envelope))

        self.assertEqual(await cache.invalidate("MSFT"), 1)
        self.assertEqual(list(fake.data), ["av:quote:AAPL:"])
        self.assertEqual(await cache.invalidate("quote"), 1)
        self.assertEqual(fake.data, {})

    async def test_falls_back_to_memory_without_redis(self):
        cache = ResponseCache(RedisCacheStore(), ttl_seconds=300, clock=FakeClock())
        key = CacheKey.build("quote", "AAPL")
        await cache.get_or_fetch(key, CountingFetcher("value"))
        self.assertEqual(await cache.get(key), "value")


if __name__ == "__main__":
    unittest.main()
