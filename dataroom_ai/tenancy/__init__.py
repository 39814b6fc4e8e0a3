"""Tenant status lookups and gating."""

from dataroom_ai.tenancy.sources import (
    HttpTenantStatusSource,
    StaticTenantStatusSource,
    TenantStatus,
    TenantStatusSource,
)
from dataroom_ai.tenancy.status import (
    NOT_FOUND,
    TenantStatusCache,
    get_tenant_status_cache,
)

__all__ = [
    "NOT_FOUND",
    "HttpTenantStatusSource",
    "StaticTenantStatusSource",
    "TenantStatus",
    "TenantStatusCache",
    "TenantStatusSource",
    "get_tenant_status_cache",
]
