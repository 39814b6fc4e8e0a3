"""Where tenant status comes from when the cache misses.

The master tenant table lives in the admin console's database; this service
only ever reads the status string for a slug.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Protocol

import httpx

from dataroom_ai.http_client import get_http_client
from dataroom_ai.logger import get_logger

logger = get_logger(__name__)


class TenantStatus(str, Enum):
    """Lifecycle states a tenant row can be in."""

    PENDING_ONBOARDING = "PENDING_ONBOARDING"
    PROVISIONING = "PROVISIONING"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    CANCELLED = "CANCELLED"


class TenantStatusSource(Protocol):
    async def fetch_status(self, tenant_slug: str) -> str | None:
        """Return the tenant's status, or None when no such tenant exists."""
        ...


class StaticTenantStatusSource:
    """Dict-backed source, seeded from settings or by tests."""

    def __init__(self, statuses: dict[str, str] | None = None) -> None:
        self._statuses: dict[str, str] = dict(statuses or {})

    async def fetch_status(self, tenant_slug: str) -> str | None:
        return self._statuses.get(tenant_slug)

    def set_status(self, tenant_slug: str, status: str | TenantStatus) -> None:
        self._statuses[tenant_slug] = status.value if isinstance(status, TenantStatus) else status

    def remove(self, tenant_slug: str) -> None:
        self._statuses.pop(tenant_slug, None)


class HttpTenantStatusSource:
    """Reads tenant status from the admin console's status endpoint.

    ``GET {base_url}/api/tenants/{slug}/status`` answers ``{"status": "ACTIVE"}``
    or 404 for unknown tenants.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str = "",
        client_factory: Callable[[], Awaitable[httpx.AsyncClient]] = get_http_client,
    ) -> None:
        if not base_url:
            raise ValueError("tenant_admin_base_url must be set for the http tenant source")
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._client_factory = client_factory

    async def fetch_status(self, tenant_slug: str) -> str | None:
        client = await self._client_factory()
        headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}
        url = f"{self._base_url}/api/tenants/{tenant_slug}/status"

        response = await client.get(url, headers=headers)
        if response.status_code == 404:
            return None
        response.raise_for_status()

        status = response.json().get("status")
        if not status:
            logger.warning("tenant_status_missing_in_response", tenant=tenant_slug)
            return None
        return str(status)
