"""
Process-wide httpx client for outbound calls (tenant admin console).

One pooled HTTP/2 client is created lazily and closed in the app lifespan.
"""

from __future__ import annotations

import httpx

from dataroom_ai import __version__
from dataroom_ai.config import settings
from dataroom_ai.logger import get_logger

logger = get_logger(__name__)

_client: httpx.AsyncClient | None = None

POOL_LIMITS = httpx.Limits(max_connections=50, max_keepalive_connections=10, keepalive_expiry=30.0)


async def _log_upstream_error(response: httpx.Response) -> None:
    if response.status_code >= 500:
        logger.warning(
            "upstream_http_error",
            method=response.request.method,
            host=response.request.url.host,
            status_code=response.status_code,
        )


def _build_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_request_timeout_seconds, connect=5.0),
        limits=POOL_LIMITS,
        http2=True,
        headers={"User-Agent": f"dataroom-ai/{__version__}"},
        event_hooks={"response": [_log_upstream_error]},
    )


async def get_http_client() -> httpx.AsyncClient:
    """Return the shared client, recreating it after shutdown."""
    global _client
    if _client is None or _client.is_closed:
        _client = _build_client()
        logger.info("http_client_created", max_connections=POOL_LIMITS.max_connections)
    return _client


async def close_http_client() -> None:
    global _client
    if _client is not None and not _client.is_closed:
        await _client.aclose()
        logger.info("http_client_closed")
    _client = None
