"""Access log middleware."""

import re
import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from dataroom_ai.logger import get_logger

logger = get_logger(__name__)

_QUIET_PATHS = frozenset({"/", "/health"})
_TENANT_PATH = re.compile(r"^/api/v1/tenants/([^/]+)/")


class AccessLogMiddleware(BaseHTTPMiddleware):
    """
    Log each request with status, response size and duration.

    Request-scoped structlog context is reset here, so a tenant bound by one
    request never shows up in another request's log lines.

    Produces lines like:
    INFO:     [hostname:pid] http_request tenant=acme client=10.0.0.4:33194 request="POST /api/v1/tenants/acme/rag/query HTTP/1.1" status=200 size=1234B duration=45.2ms
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        structlog.contextvars.clear_contextvars()
        path = request.url.path
        if path in _QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client = f"{request.client.host}:{request.client.port}" if request.client else "-"
        query = request.url.query
        target = f"{path}?{query}" if query else path
        http_version = request.scope.get("http_version", "1.1")
        tenant_match = _TENANT_PATH.match(path)

        response: Response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        size = response.headers.get("content-length")

        logger.info(
            "http_request",
            tenant=tenant_match.group(1) if tenant_match else "-",
            client=client,
            request=f'"{request.method} {target} HTTP/{http_version}"',
            status=response.status_code,
            size=f"{size}B" if size else "-",
            duration=f"{duration_ms:.1f}ms",
        )
        return response
