"""
Core module for cross-cutting concerns.

This module provides:
- Structured logging configuration
- Error taxonomy and exception handlers
- Request tracing middleware
- Authentication utilities
- Common utilities
"""

from core.logging import configure_logging, get_logger
from core.auth import require_auth, optional_auth, SupabaseUser
from core.errors import (
    NotFoundError,
    SearchFailure,
    SearchServiceError,
    TrackingFailure,
    ValidationError,
)
from core.utils import normalize_string_set, safe_get, split_csv

__all__ = [
    "configure_logging",
    "get_logger",
    "require_auth",
    "optional_auth",
    "SupabaseUser",
    "SearchServiceError",
    "ValidationError",
    "NotFoundError",
    "TrackingFailure",
    "SearchFailure",
    "normalize_string_set",
    "safe_get",
    "split_csv",
]
