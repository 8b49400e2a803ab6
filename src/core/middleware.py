"""
Request tracing middleware.

Each request gets an id (taken from X-Request-ID when the caller sends
one) that is bound to the structlog context together with method, path
and the search text, and echoed back in the X-Request-ID header.
Health probes are traced but only logged when they fail or are slow.
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from core.logging import bind_context, clear_context, get_logger


logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
QUIET_PATH_PREFIX = "/health"
SLOW_REQUEST_MS = 1000.0


def _new_request_id() -> str:
    return uuid.uuid4().hex[:12]


class RequestTracingMiddleware(BaseHTTPMiddleware):
    """
    Usage:
        app = FastAPI()
        app.add_middleware(RequestTracingMiddleware)
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or _new_request_id()
        path = request.url.path
        quiet = path.startswith(QUIET_PATH_PREFIX)

        bind_context(request_id=request_id, method=request.method, path=path)
        query = request.query_params.get("q")
        if query:
            bind_context(q=query)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            raise
        else:
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            if not quiet or response.status_code >= 500 or duration_ms >= SLOW_REQUEST_MS:
                logger.info(
                    "Request completed",
                    status_code=response.status_code,
                    duration_ms=duration_ms,
                )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_context()
