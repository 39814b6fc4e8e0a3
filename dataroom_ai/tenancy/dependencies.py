"""FastAPI dependencies for tenant-scoped routes."""

from typing import Annotated

import structlog
from fastapi import Depends, Path

from dataroom_ai.errors import TenantInactiveError, TenantNotFoundError
from dataroom_ai.tenancy.sources import TenantStatus
from dataroom_ai.tenancy.status import TenantStatusCache, get_tenant_status_cache


async def require_active_tenant(
    customer_slug: Annotated[str, Path(min_length=1, max_length=255)],
    status_cache: Annotated[TenantStatusCache, Depends(get_tenant_status_cache)],
) -> str:
    """Resolve the tenant slug from the path and reject inactive tenants."""
    status = await status_cache.get_tenant_status(customer_slug)
    if status is None:
        raise TenantNotFoundError(customer_slug)
    if status != TenantStatus.ACTIVE.value:
        raise TenantInactiveError(customer_slug, status)

    structlog.contextvars.bind_contextvars(tenant=customer_slug)
    return customer_slug


ActiveTenant = Annotated[str, Depends(require_active_tenant)]
