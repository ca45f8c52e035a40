import tempfile
import unittest
from pathlib import Path

from wikimind.cache import MemoryCache, NullCache, SQLiteCache, build_cache, cache_key
from wikimind.config import Settings


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class Producer:
    def __init__(self, value):
        self.value = value
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.value


class CacheKeyTests(unittest.TestCase):
    def test_stable_and_distinct(self) -> None:
        self.assertEqual(cache_key("labels:en", ["Q1", "Q2"]), cache_key("labels:en", ["Q1", "Q2"]))
        self.assertNotEqual(cache_key("labels:en", ["Q1", "Q2"]), cache_key("labels:en", ["Q2", "Q1"]))
        self.assertNotEqual(cache_key("labels:en", ["Q1"]), cache_key("labels:fa", ["Q1"]))
        self.assertTrue(cache_key("labels:en", ["Q1"]).startswith("labels:en:"))


class MemoryCacheTests(unittest.TestCase):
    def test_remember_within_ttl(self) -> None:
        clock = FakeClock()
        cache = MemoryCache(clock=clock)
        producer = Producer({"Q5": "human"})
        self.assertEqual(cache.remember("k", 10, producer), {"Q5": "human"})
        clock.now += 9
        self.assertEqual(cache.remember("k", 10, producer), {"Q5": "human"})
        self.assertEqual(producer.calls, 1)
        self.assertEqual(cache.hits, 1)

    def test_expired_entries_are_recomputed(self) -> None:
        clock = FakeClock()
        cache = MemoryCache(clock=clock)
        producer = Producer("v")
        cache.remember("k", 10, producer)
        clock.now += 10
        cache.remember("k", 10, producer)
        self.assertEqual(producer.calls, 2)

    def test_lru_eviction(self) -> None:
        cache = MemoryCache(max_entries=2, clock=FakeClock())
        cache.put("a", 1, 60)
        cache.put("b", 2, 60)
        self.assertEqual(cache.get("a"), 1)
        cache.put("c", 3, 60)
        self.assertIsNone(cache.get("b"))
        self.assertEqual(cache.get("a"), 1)
        self.assertEqual(cache.get("c"), 3)

    def test_zero_ttl_is_not_stored(self) -> None:
        cache = MemoryCache(clock=FakeClock())
        producer = Producer("v")
        cache.remember("k", 0, producer)
        cache.remember("k", 0, producer)
        self.assertEqual(producer.calls, 2)
        self.assertEqual(len(cache), 0)

    def test_callers_cannot_mutate_cached_values(self) -> None:
        cache = MemoryCache(clock=FakeClock())
        stored = cache.remember("k", 60, Producer({"instance of": ["human"]}))
        stored["instance of"].append("changed")
        hit = cache.remember("k", 60, Producer(None))
        self.assertEqual(hit, {"instance of": ["human"]})
        hit["extra"] = ["x"]
        self.assertEqual(cache.get("k"), {"instance of": ["human"]})

    def test_falsy_values_are_cached(self) -> None:
        cache = MemoryCache(clock=FakeClock())
        producer = Producer({})
        cache.remember("k", 5, producer)
        cache.remember("k", 5, producer)
        self.assertEqual(producer.calls, 1)


class SQLiteCacheTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.clock = FakeClock()
        self.cache = SQLiteCache(Path(self._tmp.name) / "nested" / "cache.sqlite", clock=self.clock)

    def tearDown(self) -> None:
        self.cache.close()
        self._tmp.cleanup()

    def test_round_trip_keeps_order_and_unicode(self) -> None:
        value = {"نمونه از": ["انسان"], "date of birth": ["1879-03-14"]}
        self.cache.put("structured:Q937:fa:20", value, 60)
        restored = self.cache.get("structured:Q937:fa:20")
        self.assertEqual(restored, value)
        self.assertEqual(list(restored), list(value))

    def test_expiry_and_purge(self) -> None:
        self.cache.put("short", 1, 5)
        self.cache.put("long", 2, 500)
        self.clock.now += 10
        self.assertEqual(self.cache.purge_expired(), 1)
        self.assertIsNone(self.cache.get("short"))
        self.assertEqual(self.cache.get("long"), 2)

    def test_remember(self) -> None:
        producer = Producer(["a", "b"])
        self.assertEqual(self.cache.remember("k", 30, producer), ["a", "b"])
        self.assertEqual(self.cache.remember("k", 30, producer), ["a", "b"])
        self.assertEqual(producer.calls, 1)
        self.clock.now += 31
        self.cache.remember("k", 30, producer)
        self.assertEqual(producer.calls, 2)


class BackendSelectionTests(unittest.TestCase):
    def test_null_cache_always_produces(self) -> None:
        producer = Producer(1)
        cache = NullCache()
        cache.remember("k", 60, producer)
        cache.remember("k", 60, producer)
        self.assertEqual(producer.calls, 2)

    def test_build_cache(self) -> None:
        self.assertIsInstance(build_cache(Settings()), MemoryCache)
        self.assertIsInstance(build_cache(Settings(cache_backend="none")), NullCache)
        with tempfile.TemporaryDirectory() as tmp:
            cache = build_cache(Settings(cache_backend="sqlite", cache_path=Path(tmp) / "c.sqlite"))
            self.assertIsInstance(cache, SQLiteCache)
            cache.close()


if __name__ == "__main__":
    unittest.main()
