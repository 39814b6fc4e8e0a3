"""Tenant status cache administration."""

from typing import Annotated

from fastapi import APIRouter, Depends

from dataroom_ai.tenancy.status import TenantStatusCache, get_tenant_status_cache

router = APIRouter()

StatusCacheDep = Annotated[TenantStatusCache, Depends(get_tenant_status_cache)]


@router.get("/cache")
async def cache_stats(status_cache: StatusCacheDep) -> dict:
    """Cached tenant slugs and entry count."""
    return status_cache.stats()


@router.delete("/cache/{customer_slug}")
async def invalidate_tenant(customer_slug: str, status_cache: StatusCacheDep) -> dict:
    """Forget one tenant's status so the next request re-reads it."""
    status_cache.invalidate(customer_slug)
    return {"invalidated": customer_slug}


@router.delete("/cache")
async def clear_cache(status_cache: StatusCacheDep) -> dict:
    status_cache.clear()
    return {"cleared": True}
