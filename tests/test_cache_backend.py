from dataroom_ai.core.cache import stats as cache_stats
from dataroom_ai.core.cache.memory_backend import MemoryCacheBackend
from dataroom_ai.core.cache.noop_backend import NoOpCacheBackend


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_memory_cache_ttl_expiry() -> None:
    clock = _Clock()
    cache = MemoryCacheBackend(max_entries=10, clock=clock)
    cache.set("k", b"v", ttl_seconds=1)
    assert cache.get("k") == b"v"

    clock.now += 1.0
    assert cache.get("k") is None


def test_expired_entries_are_swept_on_write() -> None:
    clock = _Clock()
    cache = MemoryCacheBackend(max_entries=10, namespace="sweep", clock=clock)
    cache.set("old", b"1", ttl_seconds=5)
    clock.now += 10
    cache.set("new", b"2", ttl_seconds=5)

    assert cache.keys() == ["new"]
    assert cache_stats.snapshot()["sweep"]["evict"] == 1


def test_memory_cache_lru_eviction() -> None:
    cache = MemoryCacheBackend(max_entries=2, namespace="lru")

    cache.set("a", b"1", ttl_seconds=60)
    cache.set("b", b"2", ttl_seconds=60)

    # Touch 'a' so it becomes most-recently-used.
    assert cache.get("a") == b"1"

    cache.set("c", b"3", ttl_seconds=60)

    assert cache.get("b") is None
    assert cache.get("a") == b"1"
    assert cache.get("c") == b"3"
    assert cache_stats.snapshot()["lru"]["evict"] == 1


def test_memory_cache_non_positive_ttl_drops_entry() -> None:
    cache = MemoryCacheBackend(max_entries=10)
    cache.set("k", b"v", ttl_seconds=60)
    cache.set("k", b"w", ttl_seconds=0)
    assert cache.get("k") is None


def test_memory_cache_keys_and_clear() -> None:
    cache = MemoryCacheBackend(max_entries=10)
    cache.set("a", b"1", ttl_seconds=60)
    cache.set("b", b"2", ttl_seconds=60)

    assert cache.keys() == ["a", "b"]
    assert len(cache) == 2

    cache.clear()
    assert cache.keys() == []
    assert cache.get("a") is None


def test_noop_backend_never_stores() -> None:
    cache = NoOpCacheBackend()
    cache.set("k", b"v", ttl_seconds=60)
    assert cache.get("k") is None
    assert cache.keys() == []


def test_stats_diff_reports_only_changed_events() -> None:
    cache_stats.increment(namespace="embed", cache_event="hit")
    cache_stats.increment(namespace="llm", cache_event="miss")
    before = cache_stats.snapshot()

    cache_stats.increment(namespace="embed", cache_event="hit")
    cache_stats.increment(namespace="embed", cache_event="miss")
    cache_stats.increment(namespace="tenant_status", cache_event="set")

    assert cache_stats.diff(before, cache_stats.snapshot()) == {
        "embed": {"hit": 1, "miss": 1},
        "tenant_status": {"set": 1},
    }
    assert cache_stats.diff(before, before) == {}
