from __future__ import annotations

from .types import CacheBackend


class NoOpCacheBackend(CacheBackend):
    """Stands in for every namespace when ``cache_enabled`` is off."""

    def get(self, key: str) -> bytes | None:
        return None

    def set(self, key: str, value: bytes, *, ttl_seconds: int) -> None:
        return None

    def delete(self, key: str) -> None:
        return None

    def clear(self) -> None:
        return None

    def keys(self) -> list[str]:
        return []
