"""
Tenant Status Cache.

Fast, cached tenant status lookups used to check that a tenant is active
before allowing API access.

- Entries live for ``cache_tenant_status_ttl_seconds`` (60 s by default)
- Unknown tenants are cached too, so a bad slug cannot hammer the source
- Admin actions call ``invalidate`` so a suspension takes effect immediately
"""

from __future__ import annotations

from dataroom_ai.config import settings
from dataroom_ai.core.cache import Cache, get_cache
from dataroom_ai.logger import get_logger
from dataroom_ai.tenancy.sources import (
    HttpTenantStatusSource,
    StaticTenantStatusSource,
    TenantStatus,
    TenantStatusSource,
)

logger = get_logger(__name__)

NOT_FOUND = "NOT_FOUND"


class TenantStatusCache:
    """TTL cache in front of a ``TenantStatusSource``."""

    def __init__(self, source: TenantStatusSource, cache: Cache | None = None) -> None:
        self.source = source
        self._cache = cache or get_cache("tenant_status")

    async def get_tenant_status(self, tenant_slug: str) -> str | None:
        """Return the tenant's status, or None if the tenant does not exist."""

        async def _fetch() -> bytes:
            status = await self.source.fetch_status(tenant_slug)
            logger.debug(
                "tenant_status_fetched",
                tenant=tenant_slug,
                status=status or NOT_FOUND,
            )
            return (status or NOT_FOUND).encode("utf-8")

        raw = await self._cache.get_or_set(tenant_slug, _fetch)
        status = raw.decode("utf-8")
        return None if status == NOT_FOUND else status

    async def is_tenant_active(self, tenant_slug: str) -> bool:
        """True only for ACTIVE tenants; unknown tenants are not active."""
        return await self.get_tenant_status(tenant_slug) == TenantStatus.ACTIVE.value

    def invalidate(self, tenant_slug: str) -> None:
        """Drop one tenant's entry. Call this when an admin changes its status."""
        self._cache.delete(tenant_slug)
        logger.info("tenant_status_cache_invalidated", tenant=tenant_slug)

    def clear(self) -> None:
        """Drop every cached entry."""
        self._cache.clear()
        logger.info("tenant_status_cache_cleared")

    def stats(self) -> dict[str, object]:
        entries = self._cache.keys()
        return {"size": len(entries), "entries": entries}


def build_tenant_status_source() -> TenantStatusSource:
    if settings.tenant_status_source == "http":
        return HttpTenantStatusSource(
            settings.tenant_admin_base_url,
            api_key=settings.tenant_admin_api_key,
        )
    if settings.tenant_status_source != "static":
        raise ValueError(f"Unknown tenant_status_source: {settings.tenant_status_source}")
    return StaticTenantStatusSource(settings.tenant_statuses)


_tenant_status_cache: TenantStatusCache | None = None


def get_tenant_status_cache() -> TenantStatusCache:
    """Get or create the global tenant status cache."""
    global _tenant_status_cache
    if _tenant_status_cache is None:
        _tenant_status_cache = TenantStatusCache(build_tenant_status_source())
    return _tenant_status_cache
