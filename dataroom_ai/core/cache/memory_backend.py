from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable
from threading import Lock

from .logging import log_cache_event
from .types import CacheBackend


class MemoryCacheBackend(CacheBackend):
    """
    Process-local TTL cache bounded by entry count.

    Entries are ``(expires_at, value)`` pairs kept in recency order, so the
    least recently read or written key is evicted first once ``max_entries``
    is exceeded. Expired entries are dropped lazily on read and swept on write.
    """

    def __init__(
        self,
        *,
        max_entries: int,
        namespace: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be > 0")
        self._max_entries = max_entries
        self._namespace = namespace
        self._clock = clock
        self._lock = Lock()
        self._entries: OrderedDict[str, tuple[float, bytes]] = OrderedDict()

    def get(self, key: str) -> bytes | None:
        with self._lock:
            found = self._entries.get(key)
            if found is None:
                return None
            expires_at, value = found
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: bytes, *, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            self.delete(key)
            return

        with self._lock:
            now = self._clock()
            self._entries[key] = (now + ttl_seconds, value)
            self._entries.move_to_end(key)
            expired = self._sweep_locked(now)
            evicted = 0
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)
                evicted += 1

        self._log_eviction("expired", expired)
        self._log_eviction("lru", evicted)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> list[str]:
        """Live keys, least recently used first."""
        with self._lock:
            now = self._clock()
            return [k for k, (expires_at, _) in self._entries.items() if expires_at > now]

    def __len__(self) -> int:
        return len(self.keys())

    def _sweep_locked(self, now: float) -> int:
        stale = [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]
        for k in stale:
            del self._entries[k]
        return len(stale)

    def _log_eviction(self, reason: str, count: int) -> None:
        if count and self._namespace:
            log_cache_event(
                namespace=self._namespace,
                cache_event="evict",
                detail=f"reason={reason} count={count}",
            )
