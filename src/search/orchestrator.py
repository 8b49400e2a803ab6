"""
Search Orchestrator.

One call per search request:

1. tokenize the query and pick the sort (relevance with text, newest without)
2. load the active catalog and rank it (filters, text gate, score, sort, page)
3. decorate the page (highlights, quick stats) and attach suggestions
4. after the result exists, fire the tracking updates:
   trending occurrence, completion bump, user history

Tracking is detached: each update is submitted on its own to the executor
(or run inline when there is none) and its failure is logged, never raised.
"""

import time
from concurrent.futures import Executor, Future
from typing import Callable, List, Optional

from core.errors import NotFoundError, SearchFailure, SearchServiceError, TrackingFailure, ValidationError
from core.logging import get_logger
from search.catalog import CatalogReader
from search.enhance import to_product_result
from search.history import SearchHistoryStore
from search.models import (
    Pagination,
    ProductResult,
    QueryFilters,
    SearchableItem,
    SearchMeta,
    SearchResult,
    SortBy,
    SortOrder,
)
from search.ranker import Ranker
from search.suggestions import CompletionStore, SuggestionEngine
from search.tokenizer import normalize_query, tokenize
from search.trending import TrendingTracker

logger = get_logger(__name__)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class SearchOrchestrator:
    """
    Wires ranking, suggestions and tracking together for one request.

    Holds no per-request state. All mutable state lives in the injected
    trending tracker, history store and completion store.
    """

    def __init__(
        self,
        catalog: CatalogReader,
        ranker: Ranker,
        trending: TrendingTracker,
        history: SearchHistoryStore,
        suggestions: SuggestionEngine,
        completions: Optional[CompletionStore] = None,
        executor: Optional[Executor] = None,
        suggestion_limit: int = 5,
    ):
        self.catalog = catalog
        self.ranker = ranker
        self.trending = trending
        self.history = history
        self.suggestions = suggestions
        self.completions = completions if completions is not None else suggestions.completions
        self.executor = executor
        self.suggestion_limit = suggestion_limit

    # =========================================================================
    # Search
    # =========================================================================

    def search(
        self,
        query: Optional[str],
        filters: Optional[QueryFilters] = None,
        page: int = 1,
        page_size: int = 12,
        sort_by: Optional[SortBy] = None,
        sort_order: SortOrder = SortOrder.DESC,
        user_id: Optional[str] = None,
    ) -> SearchResult:
        """
        Rank the catalog for ``query`` and ``filters``.

        Raises:
            ValidationError: bad pagination (before any side effects)
            SearchFailure: the catalog could not be read
        """
        filters = filters or QueryFilters()
        text = normalize_query(query)
        terms = tokenize(text)
        effective_sort = sort_by or (SortBy.RELEVANCE if terms else SortBy.NEWEST)

        candidates = self._load_candidates()
        ranked = self.ranker.rank(
            candidates,
            filters,
            terms,
            sort_by=effective_sort,
            sort_order=sort_order,
            page=page,
            page_size=page_size,
        )

        products = [to_product_result(s.item, terms, s.score) for s in ranked.items]

        # Short or empty input falls back to trending queries
        suggestions = []
        try:
            suggestions = self.suggestions.suggest(text, self.suggestion_limit)
        except SearchServiceError as e:
            logger.warning("Suggestions unavailable", query=text, error=str(e))

        result = SearchResult(
            products=products,
            pagination=ranked.pagination(),
            search_meta=SearchMeta(
                query=text,
                filters=filters.summary(),
                results_count=ranked.total,
                search_time=_epoch_ms(),
                suggestions=suggestions,
            ),
        )

        if text:
            self._track(text, filters, ranked.total, effective_sort, sort_order, user_id)

        logger.info(
            "Search completed",
            query=text,
            sort_by=effective_sort.value,
            total=ranked.total,
            page=page,
            user_id=user_id,
        )
        return result

    def _load_candidates(self) -> List[SearchableItem]:
        try:
            return self.catalog.list_items()
        except SearchFailure:
            raise
        except Exception as e:
            raise SearchFailure("Search failed", detail=str(e)) from e

    # =========================================================================
    # Similar Items
    # =========================================================================

    def similar(self, product_id: Optional[str], limit: int = 8) -> SearchResult:
        """
        Active items sharing category, subcategory, brand or a tag with the
        reference item, most viewed first.

        Raises:
            ValidationError: missing product id
            NotFoundError: unknown or inactive reference item
        """
        if not product_id:
            raise ValidationError("productId is required")
        if limit <= 0:
            raise ValidationError(f"limit must be a positive integer, got {limit}")

        reference = self.catalog.get_item(product_id)
        if reference is None:
            raise NotFoundError("Product not found", detail=f"No active product with id {product_id}")

        ref_tags = {t.lower() for t in reference.tags}

        def related(item: SearchableItem) -> bool:
            if item.id == reference.id:
                return False
            return bool(
                (reference.category and item.category == reference.category)
                or (reference.subcategory and item.subcategory == reference.subcategory)
                or (reference.brand and item.brand == reference.brand)
                or ref_tags & {t.lower() for t in item.tags}
            )

        matches = [item for item in self._load_candidates() if related(item)]
        matches.sort(key=lambda item: (item.views, item.rating_average), reverse=True)
        products: List[ProductResult] = [to_product_result(item) for item in matches[:limit]]

        return SearchResult(
            products=products,
            pagination=Pagination(
                current=1,
                pages=1 if matches else 0,
                total=len(products),
                has_next=False,
                has_prev=False,
            ),
            search_meta=SearchMeta(
                query="",
                filters={"similarTo": reference.id},
                results_count=len(products),
                search_time=_epoch_ms(),
            ),
        )

    # =========================================================================
    # Tracking
    # =========================================================================

    def _track(
        self,
        text: str,
        filters: QueryFilters,
        result_count: int,
        sort_by: SortBy,
        sort_order: SortOrder,
        user_id: Optional[str],
    ) -> None:
        self._detach(
            "trending",
            lambda: self.trending.record_occurrence(text, user_id=user_id, result_count=result_count),
        )
        self._detach("completions", lambda: self.completions.register(text))
        if user_id:
            self._detach(
                "history",
                lambda: self.history.record_search(
                    user_id,
                    text,
                    filters,
                    result_count,
                    sort_by=sort_by.value,
                    sort_order=sort_order.value,
                ),
            )

    def _detach(self, name: str, update: Callable[[], object]) -> None:
        """Run one tracking update in isolation; failures are logged only."""

        def run() -> None:
            try:
                update()
            except Exception as e:
                raise TrackingFailure(f"{name} update failed", detail=str(e)) from e

        def report(future: Future) -> None:
            if future.cancelled():
                return
            exc = future.exception()
            if isinstance(exc, TrackingFailure):
                logger.warning("Tracking update failed", update=name, error=exc.detail)

        if self.executor is None:
            try:
                run()
            except TrackingFailure as e:
                logger.warning("Tracking update failed", update=name, error=e.detail)
            return

        try:
            future = self.executor.submit(run)
        except RuntimeError as e:
            # Executor already shut down
            logger.warning("Tracking update dropped", update=name, error=str(e))
            return
        future.add_done_callback(report)
