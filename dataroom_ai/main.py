"""
FastAPI application for Dataroom AI.

Tenant-scoped financial question answering over uploaded spreadsheets.
"""

import inspect
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import psutil
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dataroom_ai import __version__
from dataroom_ai.config import settings
from dataroom_ai.core.cache import stats as cache_stats
from dataroom_ai.errors import ApiError, RAGPipelineError
from dataroom_ai.http_client import close_http_client
from dataroom_ai.logger import get_logger, setup_logging
from dataroom_ai.middleware.access_log_middleware import AccessLogMiddleware
from dataroom_ai.routers import api_router
from dataroom_ai.services.openai_clients import get_openai_client, shutdown_clients
from dataroom_ai.services.vector_store import dispose_vector_stores
from dataroom_ai.tenancy.status import get_tenant_status_cache


def _format_bytes(num: float) -> str:
    """Return a human-friendly string for a byte count."""
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if num < 1024:
            return f"{num:.2f} {unit}"
        num /= 1024
    return f"{num:.2f} PB"


def _collect_process_metrics() -> dict:
    """CPU and memory usage of this process."""
    proc = psutil.Process()
    mem_info = proc.memory_info()
    return {
        "pid": proc.pid,
        "cpu_percent": proc.cpu_percent(interval=None),
        "num_threads": proc.num_threads(),
        "memory": {
            "rss_bytes": mem_info.rss,
            "rss_human": _format_bytes(mem_info.rss),
            "memory_percent": round(proc.memory_percent(), 2),
        },
    }


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup and shutdown."""
    logger = get_logger(__name__)
    logger.info("Starting up Dataroom AI", vector_store=settings.vector_store_provider)

    async def _safe_init(name: str, func):
        """Run initializer and log a warning instead of failing startup."""
        try:
            result = func()
            if inspect.isawaitable(result):
                await result
            logger.info("service_initialized", service=name)
        except Exception as exc:  # noqa: BLE001 - startup warmup must not crash the app
            logger.warning("service_init_failed", service=name, error=str(exc))

    await _safe_init("tenant_status_cache", get_tenant_status_cache)
    await _safe_init("openai_client", get_openai_client)

    yield

    logger.info("Shutting down Dataroom AI")
    await dispose_vector_stores()
    await close_http_client()
    await shutdown_clients()
    logger.info("Dataroom AI shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    setup_logging()

    app = FastAPI(
        title=settings.app_name,
        description="Financial question answering over tenant data rooms",
        version=__version__,
        lifespan=lifespan,
    )

    @app.exception_handler(ApiError)
    async def _api_error_handler(_request: Request, exc: ApiError):
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_payload(),
            headers=exc.headers,
        )

    @app.exception_handler(RAGPipelineError)
    async def _rag_pipeline_error_handler(_request: Request, exc: RAGPipelineError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    app.add_middleware(AccessLogMiddleware)

    @app.get("/health")
    async def health():
        """Health check with process and cache counters."""
        return {
            "status": "healthy",
            "service": settings.app_name,
            "process": _collect_process_metrics(),
            "cache": cache_stats.snapshot(),
        }

    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()
