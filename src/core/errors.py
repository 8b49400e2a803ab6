"""
Error taxonomy and FastAPI exception handlers.

Every error leaves the API in the same envelope:

    {"success": false, "message": "...", "error": "..."}

``error`` carries internal detail and is only populated in debug mode.
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.logging import get_logger

logger = get_logger(__name__)


class SearchServiceError(Exception):
    """Base class for errors surfaced by the search service."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(SearchServiceError):
    """Malformed pagination, sort or filter input. Raised before any side effects."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(SearchServiceError):
    """A referenced record does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class TrackingFailure(SearchServiceError):
    """A trending/history update failed. Logged, never returned to the caller."""


class SearchFailure(SearchServiceError):
    """Candidate retrieval failed; the search cannot produce results."""


def error_envelope(
    message: str,
    detail: Optional[str] = None,
    debug: bool = False,
    **extra: Any,
) -> Dict[str, Any]:
    """Build the uniform failure body."""
    body: Dict[str, Any] = {"success": False, "message": message}
    if debug and detail:
        body["error"] = detail
    body.update(extra)
    return body


def _empty_search_body() -> Dict[str, Any]:
    return {
        "products": [],
        "pagination": {
            "current": 1,
            "pages": 0,
            "total": 0,
            "hasNext": False,
            "hasPrev": False,
        },
    }


def register_exception_handlers(app: FastAPI, debug: bool = False) -> None:
    """Install handlers that render errors in the success/message envelope."""

    @app.exception_handler(SearchFailure)
    async def _search_failure_handler(request: Request, exc: SearchFailure) -> JSONResponse:
        logger.error("Search failed", error=exc.detail or exc.message, path=request.url.path)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(exc.message, exc.detail, debug, **_empty_search_body()),
        )

    @app.exception_handler(SearchServiceError)
    async def _service_error_handler(request: Request, exc: SearchServiceError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Request failed", error=exc.detail or exc.message, path=request.url.path)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(exc.message, exc.detail, debug),
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(str(exc.detail), None, debug),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def _request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(p) for p in first.get("loc", ()) if p not in ("query", "body"))
        message = f"Invalid {location}: {first.get('msg', 'invalid value')}" if location else "Invalid request"
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_envelope(message, str(errors), debug),
        )
