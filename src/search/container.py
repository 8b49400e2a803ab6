"""
Service wiring.

Builds the search services from Settings. The host application owns the
result (stored on ``app.state.services``) and calls ``shutdown()`` on exit;
nothing here is a module-level singleton.
"""

from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from config.constants import HistoryConfig
from config.settings import Settings
from core.logging import get_logger
from search.analytics import SearchAnalytics
from search.catalog import CatalogReader, InMemoryCatalog, SupabaseCatalog
from search.history import SearchHistoryStore
from search.orchestrator import SearchOrchestrator
from search.ranker import Ranker
from search.suggestions import CompletionStore, SuggestionEngine
from search.trending import TrendingTracker

logger = get_logger(__name__)


@dataclass
class SearchServices:
    """Everything the routes need, built once per application."""
    settings: Settings
    catalog: CatalogReader
    trending: TrendingTracker
    history: SearchHistoryStore
    completions: CompletionStore
    suggestions: SuggestionEngine
    analytics: SearchAnalytics
    orchestrator: SearchOrchestrator
    executor: Optional[Executor] = None

    def shutdown(self) -> None:
        if self.executor is not None:
            self.executor.shutdown(wait=True)
            logger.info("Tracking executor stopped")


def build_catalog(settings: Settings) -> CatalogReader:
    """Catalog reader for ``settings.catalog_backend``."""
    if settings.catalog_backend == "supabase":
        from config.database import create_supabase_client
        return SupabaseCatalog(create_supabase_client(settings), table=settings.catalog_table)

    if settings.catalog_seed_path is not None:
        return InMemoryCatalog.from_json_file(settings.catalog_seed_path)

    logger.warning("No catalog seed configured, starting with an empty catalog")
    return InMemoryCatalog()


def build_services(
    settings: Settings,
    catalog: Optional[CatalogReader] = None,
    executor: Optional[Executor] = None,
) -> SearchServices:
    """
    Wire the search services.

    Args:
        settings: application settings
        catalog: overrides the configured catalog backend (tests)
        executor: overrides the tracking executor; when None one is created
            with ``settings.tracking_workers`` threads (0 = run inline)
    """
    catalog = catalog if catalog is not None else build_catalog(settings)

    if executor is None and settings.tracking_workers > 0:
        executor = ThreadPoolExecutor(
            max_workers=settings.tracking_workers,
            thread_name_prefix="search-tracking",
        )

    trending = TrendingTracker(windowing=settings.trending_windowing)
    history = SearchHistoryStore(HistoryConfig(
        CAPACITY=settings.history_capacity,
        POPULAR_QUERY_CAP=settings.popular_query_cap,
        CORRELATION_WINDOW_SECONDS=settings.correlation_window_seconds,
    ))
    completions = CompletionStore()
    suggestions = SuggestionEngine(catalog, trending, history, completions)

    orchestrator = SearchOrchestrator(
        catalog=catalog,
        ranker=Ranker(),
        trending=trending,
        history=history,
        suggestions=suggestions,
        completions=completions,
        executor=executor,
        suggestion_limit=settings.suggestion_limit_in_results,
    )

    logger.info(
        "Search services ready",
        catalog_backend=settings.catalog_backend,
        trending_windowing=settings.trending_windowing,
        tracking_workers=settings.tracking_workers,
    )

    return SearchServices(
        settings=settings,
        catalog=catalog,
        trending=trending,
        history=history,
        completions=completions,
        suggestions=suggestions,
        analytics=SearchAnalytics(history, trending),
        orchestrator=orchestrator,
        executor=executor,
    )
