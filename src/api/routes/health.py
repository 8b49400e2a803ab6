"""
Health check endpoints.

Provides endpoints for monitoring application health and status.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from api.dependencies import get_services
from search.container import SearchServices


router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> Dict[str, Any]:
    """
    Basic health check endpoint.

    Returns:
        Health status with basic info
    """
    return {
        "status": "healthy",
        "service": "catalog-search",
    }


@router.get("/health/detailed")
def detailed_health_check(services: SearchServices = Depends(get_services)) -> Dict[str, Any]:
    """
    Detailed health check with dependency status.

    Checks:
    - Catalog backend reachable and item count
    - Tracking stores sizes

    Returns:
        Detailed health status
    """
    settings = services.settings

    catalog_status = "ok"
    catalog_error = None
    items = 0
    try:
        items = len(services.catalog.list_items())
        if items == 0:
            catalog_status = "empty"
    except Exception as e:
        catalog_status = "error"
        catalog_error = str(e)

    return {
        "status": "healthy" if catalog_status == "ok" else "degraded",
        "service": "catalog-search",
        "environment": settings.environment,
        "checks": {
            "config": "ok",
            "catalog": {
                "backend": settings.catalog_backend,
                "status": catalog_status,
                "activeItems": items,
                "error": catalog_error,
            },
            "tracking": {
                "trendingQueries": len(services.trending),
                "users": len(services.history),
                "windowing": settings.trending_windowing,
                "executor": "thread_pool" if services.executor is not None else "inline",
            },
        },
    }
