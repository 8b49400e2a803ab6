"""
Structured logging configuration using structlog.

Development gets a colored console renderer, production gets JSON lines.
Every event carries the service name, and free-text query fields are
clipped so a pasted paragraph in the search box cannot flood the logs.

Usage:
    from core.logging import configure_logging, get_logger

    configure_logging(json_logs=False)  # Development
    configure_logging(json_logs=True)   # Production

    logger = get_logger(__name__)
    logger.info("Search completed", query="red dress", total=12)
"""

import logging
import sys
from typing import Any, Callable, Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

SERVICE_NAME = "catalog-search"

# Event keys holding user-typed search text
QUERY_FIELDS = ("q", "query", "search_query")
MAX_QUERY_LOG_LENGTH = 120


def add_service_name(service: str) -> Callable[[WrappedLogger, str, EventDict], EventDict]:
    def processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service)
        return event_dict
    return processor


def clip_query_fields(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Truncate query text fields to MAX_QUERY_LOG_LENGTH characters."""
    for key in QUERY_FIELDS:
        value = event_dict.get(key)
        if isinstance(value, str) and len(value) > MAX_QUERY_LOG_LENGTH:
            event_dict[key] = value[:MAX_QUERY_LOG_LENGTH] + "..."
    return event_dict


def configure_logging(
    json_logs: bool = False,
    log_level: str = "INFO",
    service: str = SERVICE_NAME,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        json_logs: JSON lines (production) instead of colored console output
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        service: Value of the ``service`` key stamped on every event
    """
    processors: list[Processor] = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        add_service_name(service),
        clip_query_fields,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_logs:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(
            colors=sys.stdout.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        ))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
        force=True,
    )

    # Supabase/postgrest chatter
    for noisy in ("httpx", "httpcore", "hpack", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """
    Bind context variables to all subsequent logs in the current context.

    Used by the request middleware for request_id / path and by the search
    routes for user_id.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables (end of request)."""
    structlog.contextvars.clear_contextvars()
