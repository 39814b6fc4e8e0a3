from __future__ import annotations

from threading import Lock

from dataroom_ai.config import settings

from .cache import Cache
from .memory_backend import MemoryCacheBackend
from .noop_backend import NoOpCacheBackend
from .singleflight import SingleFlight
from .types import CachePolicy

# Namespace -> settings attribute holding its default TTL
NAMESPACE_TTL_SETTINGS: dict[str, str] = {
    "tenant_status": "cache_tenant_status_ttl_seconds",
    "embed": "cache_embed_ttl_seconds",
    "llm": "cache_llm_ttl_seconds",
}

_singleflight = SingleFlight()
_provider_lock = Lock()
_caches: dict[str, Cache] = {}


def policy_for(namespace: str) -> CachePolicy:
    ttl_setting = NAMESPACE_TTL_SETTINGS.get(namespace, "cache_default_ttl_seconds")
    return CachePolicy(
        namespace=namespace,
        default_ttl_seconds=getattr(settings, ttl_setting),
        max_entries=settings.cache_max_entries,
    )


def get_cache(namespace: str) -> Cache:
    """Return the process-wide cache for a namespace, creating it on first use.

    Settings are read at creation; call ``reset_caches`` after changing them.
    """
    with _provider_lock:
        cache = _caches.get(namespace)
        if cache is None:
            policy = policy_for(namespace)
            if settings.cache_enabled:
                backend = MemoryCacheBackend(max_entries=policy.max_entries, namespace=namespace)
            else:
                backend = NoOpCacheBackend()
            cache = Cache(backend=backend, policy=policy, _singleflight=_singleflight)
            _caches[namespace] = cache
        return cache


def reset_caches() -> None:
    with _provider_lock:
        _caches.clear()
