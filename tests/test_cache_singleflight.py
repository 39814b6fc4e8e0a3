import asyncio

import pytest

from dataroom_ai.config import settings
from dataroom_ai.core.cache import provider as cache_provider
from dataroom_ai.core.cache import stats as cache_stats
from dataroom_ai.core.cache.cache import Cache
from dataroom_ai.core.cache.memory_backend import MemoryCacheBackend
from dataroom_ai.core.cache.noop_backend import NoOpCacheBackend
from dataroom_ai.core.cache.singleflight import SingleFlight
from dataroom_ai.core.cache.types import CachePolicy


def _cache(namespace: str = "test", singleflight: SingleFlight | None = None) -> Cache:
    backend = MemoryCacheBackend(max_entries=10)
    policy = CachePolicy(namespace=namespace, default_ttl_seconds=60, max_entries=10)
    return Cache(backend=backend, policy=policy, _singleflight=singleflight or SingleFlight())


@pytest.mark.asyncio
async def test_singleflight_factory_runs_once() -> None:
    cache = _cache()
    calls = 0

    async def factory() -> bytes:
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.05)
        return b"value"

    results = await asyncio.gather(*[cache.get_or_set("k", factory) for _ in range(20)])

    assert results == [b"value"] * 20
    assert calls == 1


@pytest.mark.asyncio
async def test_singleflight_releases_gates() -> None:
    singleflight = SingleFlight()
    cache = _cache(singleflight=singleflight)

    async def factory() -> bytes:
        await asyncio.sleep(0.01)
        return b"v"

    await asyncio.gather(cache.get_or_set("a", factory), cache.get_or_set("b", factory))

    assert singleflight.in_flight() == 0


@pytest.mark.asyncio
async def test_factory_error_propagates_and_is_not_cached() -> None:
    cache = _cache()

    async def failing() -> bytes:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await cache.get_or_set("k", failing)

    async def working() -> bytes:
        return b"ok"

    assert await cache.get_or_set("k", working) == b"ok"


@pytest.mark.asyncio
async def test_get_or_set_counts_hits_and_misses() -> None:
    cache = _cache(namespace="counted")

    async def factory() -> bytes:
        return b"v"

    await cache.get_or_set("k", factory)
    await cache.get_or_set("k", factory)

    counts = cache_stats.snapshot()["counted"]
    assert counts["miss"] == 1
    assert counts["hit"] == 1
    assert cache_stats.hit_ratio("counted") == 0.5


def test_provider_uses_noop_backend_when_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "cache_enabled", False)
    cache_provider.reset_caches()

    assert isinstance(cache_provider.get_cache("embed").backend, NoOpCacheBackend)


def test_provider_namespace_ttls(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "cache_tenant_status_ttl_seconds", 60)
    monkeypatch.setattr(settings, "cache_embed_ttl_seconds", 3600)

    assert cache_provider.get_cache("tenant_status").policy.default_ttl_seconds == 60
    assert cache_provider.get_cache("embed").policy.default_ttl_seconds == 3600
    assert cache_provider.get_cache("embed") is cache_provider.get_cache("embed")
