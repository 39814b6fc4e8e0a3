"""Structured logging configuration using structlog."""

import logging
import os
import socket

import structlog

from dataroom_ai.config import settings

_HOSTNAME = socket.gethostname()
_PID = os.getpid()

# Events whose key=value pairs are printed first in console mode
_LEADING_KEYS = ("tenant", "file_id", "category")


def _render_console(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict,
) -> str:
    """
    Render one line in the same shape as uvicorn's own output.

    ``INFO:     [host:pid] [module:func:line] rag_query_processed tenant=acme ...``
    """
    level = event_dict.pop("level", method_name).upper()
    event = event_dict.pop("event", "")

    module = event_dict.pop("module", None)
    func = event_dict.pop("func_name", None)
    lineno = event_dict.pop("lineno", None)

    ordered = [k for k in _LEADING_KEYS if k in event_dict]
    ordered += [k for k in event_dict if k not in _LEADING_KEYS]
    pairs = " ".join(f"{k}={event_dict[k]}" for k in ordered)

    line = f"{level}:{' ' * max(1, 9 - len(level))}[{_HOSTNAME}:{_PID}]"
    if module:
        line = f"{line} [{module}:{func}:{lineno}]"
    line = f"{line} {event}"
    return f"{line} {pairs}" if pairs else line


def _processors() -> list:
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
    ]
    if settings.debug:
        # Walking the stack costs a few microseconds per call
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                {
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                }
            )
        )
    if settings.log_format == "json":
        processors += [
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(_render_console)
    return processors


def setup_logging() -> None:
    """
    Configure structlog for the application.

    - Request context (tenant slug) is merged from contextvars
    - DEBUG adds call-site info and lowers the level
    - ``log_format=json`` switches to one JSON object per line
    """
    log_level = logging.DEBUG if settings.debug else logging.INFO

    # Access lines come from our own middleware
    uvicorn_access = logging.getLogger("uvicorn.access")
    uvicorn_access.handlers = []
    uvicorn_access.propagate = False
    uvicorn_access.disabled = True

    structlog.configure(
        processors=_processors(),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structlog logger, usually for ``__name__``."""
    return structlog.get_logger(name)


def query_preview(query: str, length: int = 50) -> str:
    """Short, single-line preview of user query text for log lines."""
    flat = " ".join(query.split())
    if len(flat) <= length:
        return flat
    return f"{flat[:length]}..."
