"""
FastAPI Application Factory.

Usage:
    # Development
    uvicorn api.app:create_app --factory --reload

    # Production (or: catalog-search)
    uvicorn api.app:create_app --factory --host 0.0.0.0 --port 8080

    # Tests
    from api.app import create_app
    app = create_app(get_settings_for_testing(), catalog=InMemoryCatalog(items))
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import Settings, get_settings
from core.errors import register_exception_handlers
from core.logging import configure_logging, get_logger
from core.middleware import RequestTracingMiddleware
from search.catalog import CatalogReader
from search.container import build_services


logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    catalog: Optional[CatalogReader] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use (defaults to get_settings())
        catalog: Catalog reader overriding the configured backend

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        Application lifespan handler.

        Runs on startup:
        - Initialize logging
        - Build search services (catalog, trending, history, executor)

        Runs on shutdown:
        - Drain the tracking executor
        """
        configure_logging(
            json_logs=settings.is_production,
            log_level="DEBUG" if settings.debug else "INFO",
        )

        logger.info(
            "Starting catalog search API",
            environment=settings.environment,
            port=settings.port,
        )

        app.state.services = build_services(settings, catalog=catalog)

        yield  # Application is running

        logger.info("Shutting down catalog search API")
        app.state.services.shutdown()

    app = FastAPI(
        title="Catalog Search API",
        description="""
        Catalog search, ranking, trending and suggestions.

        ## Main Endpoints

        - `/search` - Ranked, filtered, paginated search
        - `/search/suggestions` - Completions, products, brands, trending, personal
        - `/search/trending` - Trending queries by timeframe
        - `/search/history` - The caller's search history (auth)
        - `/search/track` - Click/purchase attribution (auth)
        - `/search/analytics` - Platform search analytics (auth)

        ## Health Checks

        - `/health` - Basic health check
        - `/health/detailed` - Catalog and tracking status
        """,
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.settings = settings

    # =========================================================================
    # Middleware (order matters - first added = outermost)
    # =========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request tracing (adds X-Request-ID, logs timing)
    app.add_middleware(RequestTracingMiddleware)

    register_exception_handlers(app, debug=settings.debug)

    # =========================================================================
    # Routes
    # =========================================================================

    from api.routes.health import router as health_router
    app.include_router(health_router)

    from api.routes.search import router as search_router
    app.include_router(search_router)

    return app


def main() -> None:
    """Run the API with uvicorn using the server settings."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "api.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        workers=settings.workers,
        reload=settings.is_development and settings.workers == 1,
    )


if __name__ == "__main__":
    main()
