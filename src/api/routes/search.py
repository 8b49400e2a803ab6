"""
Search API Routes.

Catalog search, suggestions, trending, per-user history and analytics.

Search, suggestions, trending and similar items are public (activity is
attributed to the caller when a valid token is sent). History, tracking,
insights and analytics require JWT authentication.

NOTE: Routes use `def` (not `async def`) because ranking is CPU-bound and
the Supabase client is synchronous. FastAPI runs sync handlers in a
thread pool, so they never block the event loop.
"""

from typing import Optional

import pydantic
from fastapi import APIRouter, Depends, Query

from api.dependencies import get_services
from core.auth import SupabaseUser, optional_auth, require_auth
from core.errors import ValidationError
from core.logging import bind_context, get_logger
from core.utils import split_csv, utcnow
from search.container import SearchServices
from search.history import empty_analytics
from search.models import (
    AnalyticsResponse,
    HistoryResponse,
    HistoryScope,
    InsightsResponse,
    MessageResponse,
    ProductListResponse,
    QueryFilters,
    SearchResponse,
    SortBy,
    SortOrder,
    SuggestionSource,
    SuggestionsResponse,
    Timeframe,
    TrackRequest,
    TrendingEntry,
    TrendingResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/search", tags=["Search"])


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


def _build_filters(
    category: Optional[str],
    subcategory: Optional[str],
    brand: Optional[str],
    min_price: Optional[float],
    max_price: Optional[float],
    rating: Optional[float],
    in_stock: Optional[str],
    on_sale: Optional[str],
    colors: Optional[str],
    sizes: Optional[str],
    tags: Optional[str],
) -> QueryFilters:
    try:
        return QueryFilters(
            category=category or None,
            subcategory=subcategory or None,
            brand=brand or None,
            min_price=min_price,
            max_price=max_price,
            rating=rating,
            in_stock=_flag(in_stock),
            on_sale=_flag(on_sale),
            colors=split_csv(colors),
            sizes=split_csv(sizes),
            tags=split_csv(tags),
        )
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        raise ValidationError(f"Invalid filters: {first['msg']}", detail=str(e)) from e


def _user_id(user: Optional[SupabaseUser]) -> Optional[str]:
    if user is None:
        return None
    bind_context(user_id=user.id)
    return user.id


# =============================================================================
# Search
# =============================================================================

@router.get(
    "",
    response_model=SearchResponse,
    summary="Search the catalog",
)
def search(
    q: str = Query("", max_length=500, description="Free-text query"),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, description="Results per page"),
    sort_by: Optional[SortBy] = Query(None, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
    category: Optional[str] = Query(None),
    subcategory: Optional[str] = Query(None),
    brand: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None, ge=0, alias="minPrice"),
    max_price: Optional[float] = Query(None, ge=0, alias="maxPrice"),
    rating: Optional[float] = Query(None, ge=0, le=5),
    in_stock: Optional[str] = Query(None, alias="inStock"),
    on_sale: Optional[str] = Query(None, alias="onSale"),
    colors: Optional[str] = Query(None, description="Comma-separated"),
    sizes: Optional[str] = Query(None, description="Comma-separated"),
    tags: Optional[str] = Query(None, description="Comma-separated"),
    services: SearchServices = Depends(get_services),
    user: Optional[SupabaseUser] = Depends(optional_auth),
) -> SearchResponse:
    """
    Ranked, filtered, paginated catalog search.

    - With text: items must contain every term; default sort is relevance
    - Without text: filter-only browsing; default sort is newest
    """
    settings = services.settings
    page_size = limit or settings.search_default_page_size
    if page_size > settings.search_max_page_size:
        raise ValidationError(f"limit must be <= {settings.search_max_page_size}")

    filters = _build_filters(
        category, subcategory, brand, min_price, max_price, rating,
        in_stock, on_sale, colors, sizes, tags,
    )

    result = services.orchestrator.search(
        q,
        filters,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        sort_order=sort_order,
        user_id=_user_id(user),
    )
    return SearchResponse(**dict(result))


# =============================================================================
# Suggestions
# =============================================================================

@router.get(
    "/suggestions",
    response_model=SuggestionsResponse,
    summary="Search suggestions",
)
def suggestions(
    q: str = Query("", max_length=200),
    limit: int = Query(10, ge=1, le=50),
    source: SuggestionSource = Query(SuggestionSource.ALL, alias="type"),
    services: SearchServices = Depends(get_services),
    user: Optional[SupabaseUser] = Depends(optional_auth),
) -> SuggestionsResponse:
    """Completions, products, brands, personal and trending suggestions."""
    items = services.suggestions.compose(q, user_id=_user_id(user), limit=limit, source=source)
    return SuggestionsResponse(suggestions=items, query=q)


@router.get(
    "/smart-suggestions",
    response_model=SuggestionsResponse,
    summary="Suggestions boosted by the caller's own history",
)
def smart_suggestions(
    q: str = Query("", max_length=200),
    services: SearchServices = Depends(get_services),
    user: Optional[SupabaseUser] = Depends(optional_auth),
) -> SuggestionsResponse:
    items = services.suggestions.smart_suggestions(q, user_id=_user_id(user))
    return SuggestionsResponse(suggestions=items, query=q)


# =============================================================================
# Trending
# =============================================================================

@router.get(
    "/trending",
    response_model=TrendingResponse,
    summary="Trending queries",
)
def trending(
    limit: int = Query(10, ge=1, le=100),
    timeframe: Timeframe = Query(Timeframe.LAST_24H),
    services: SearchServices = Depends(get_services),
) -> TrendingResponse:
    """Queries ordered by their count within ``timeframe``."""
    records = services.trending.top_trending(limit=limit, window=timeframe.value)
    return TrendingResponse(
        trending=[
            TrendingEntry(
                query=r.query,
                searches=r.window_count(timeframe.value),
                trending_score=r.trending_score,
            )
            for r in records
        ],
        timeframe=timeframe,
        timestamp=utcnow(),
    )


# =============================================================================
# Similar Items
# =============================================================================

@router.get(
    "/similar",
    response_model=ProductListResponse,
    summary="Items similar to a product",
)
def similar(
    product_id: Optional[str] = Query(None, alias="productId"),
    limit: int = Query(8, ge=1, le=50),
    services: SearchServices = Depends(get_services),
) -> ProductListResponse:
    result = services.orchestrator.similar(product_id, limit=limit)
    return ProductListResponse(**dict(result))


# =============================================================================
# History
# =============================================================================

@router.get(
    "/history",
    response_model=HistoryResponse,
    summary="The caller's search history",
)
def get_history(
    limit: int = Query(20, ge=1, le=100),
    scope: HistoryScope = Query(HistoryScope.RECENT, alias="type"),
    services: SearchServices = Depends(get_services),
    user: SupabaseUser = Depends(require_auth),
) -> HistoryResponse:
    """Recent searches or popular queries, plus analytics and preferences."""
    if scope == HistoryScope.ALL:
        raise ValidationError("type must be 'recent' or 'popular'")

    user_id = _user_id(user)
    profile = services.history.get_profile(user_id)
    if profile is None:
        return HistoryResponse(searches=[], analytics=empty_analytics(), preferences={})

    if scope == HistoryScope.RECENT:
        searches = services.history.recent_searches(user_id, limit)
    else:
        searches = services.history.popular_queries(user_id, limit)

    return HistoryResponse(
        searches=searches,
        analytics=profile.analytics(),
        preferences=profile.preferences(),
    )


@router.delete(
    "/history",
    response_model=MessageResponse,
    summary="Clear the caller's search history",
)
def clear_history(
    scope: HistoryScope = Query(HistoryScope.ALL, alias="type"),
    services: SearchServices = Depends(get_services),
    user: SupabaseUser = Depends(require_auth),
) -> MessageResponse:
    services.history.clear_history(_user_id(user), scope)
    logger.info("Search history cleared", scope=scope.value)
    return MessageResponse(message=f"Search history ({scope.value}) cleared successfully")


# =============================================================================
# Interaction Tracking
# =============================================================================

@router.post(
    "/track",
    response_model=MessageResponse,
    summary="Track a click, purchase or refinement on a search",
)
def track(
    request: TrackRequest,
    services: SearchServices = Depends(get_services),
    user: SupabaseUser = Depends(require_auth),
) -> MessageResponse:
    """
    Attribute an interaction to the caller's matching search from the last
    hour. Succeeds even when no search matches.
    """
    services.history.record_interaction(
        _user_id(user),
        request.search_query,
        request.product_id,
        request.action,
        position=request.position,
        metadata=request.metadata,
    )
    return MessageResponse(message="Search interaction tracked successfully")


# =============================================================================
# Analytics
# =============================================================================

@router.get(
    "/analytics",
    response_model=AnalyticsResponse,
    summary="Platform search analytics",
)
def analytics(
    timeframe: Timeframe = Query(Timeframe.LAST_7D),
    limit: int = Query(10, ge=1, le=100),
    services: SearchServices = Depends(get_services),
    user: SupabaseUser = Depends(require_auth),
) -> AnalyticsResponse:
    _user_id(user)
    return AnalyticsResponse(analytics=services.analytics.overview(timeframe.value, limit))


@router.get(
    "/insights",
    response_model=InsightsResponse,
    summary="The caller's search insights",
)
def insights(
    services: SearchServices = Depends(get_services),
    user: SupabaseUser = Depends(require_auth),
) -> InsightsResponse:
    return InsightsResponse(insights=services.analytics.user_insights(_user_id(user)))
