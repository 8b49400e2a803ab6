"""
Pydantic models for catalog search.

Wire shapes use camelCase (the storefront and admin clients depend on
them); Python attributes stay snake_case via an alias generator.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from core.utils import safe_get, utcnow


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Enums
# ============================================================================

class SortBy(str, Enum):
    RELEVANCE = "relevance"
    PRICE = "price"
    RATING = "rating"
    POPULARITY = "popularity"
    NEWEST = "newest"
    NAME = "name"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class Timeframe(str, Enum):
    LAST_24H = "24h"
    LAST_7D = "7d"
    LAST_30D = "30d"


class SuggestionType(str, Enum):
    COMPLETION = "completion"
    PRODUCT = "product"
    BRAND = "brand"
    TRENDING = "trending"
    PERSONAL = "personal"
    CATEGORY_SUGGESTION = "category_suggestion"


class SuggestionSource(str, Enum):
    """Which suggestion sources the suggestions endpoint should consult."""
    ALL = "all"
    AUTOCOMPLETE = "autocomplete"
    PERSONALIZED = "personalized"
    TRENDING = "trending"


class InteractionAction(str, Enum):
    CLICK = "click"
    PURCHASE = "purchase"
    VIEW_DURATION = "view_duration"
    FILTER_CHANGE = "filter_change"


class HistoryScope(str, Enum):
    ALL = "all"
    RECENT = "recent"
    POPULAR = "popular"


# ============================================================================
# Catalog
# ============================================================================

class SearchableItem(CamelModel):
    """A product as seen by search. Read-only; owned by the catalog."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    description: str = ""
    brand: str = ""
    category: str = ""
    subcategory: str = ""
    tags: List[str] = Field(default_factory=list)
    colors: List[str] = Field(default_factory=list)
    sizes: List[str] = Field(default_factory=list)

    price: float = Field(0.0, ge=0)
    sale_price: Optional[float] = None

    rating_average: float = Field(0.0, ge=0)
    rating_count: int = Field(0, ge=0)
    inventory_quantity: int = 0

    views: int = Field(0, ge=0)
    likes: int = Field(0, ge=0)
    purchases: int = Field(0, ge=0)

    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # Naive and aware timestamps must stay comparable for the newest sort
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def in_stock(self) -> bool:
        return self.inventory_quantity > 0

    @property
    def on_sale(self) -> bool:
        return self.sale_price is not None and self.sale_price < self.price

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "SearchableItem":
        """
        Build an item from a catalog row.

        Accepts flat rows (``ratingAverage`` / ``rating_average``) as well as
        the nested product document shape (``rating.average``,
        ``analytics.views``, ``inventory.quantity``, ``colors[].name``).
        """
        def first(*candidates, default=None):
            for value in candidates:
                if value is not None:
                    return value
            return default

        def names(values) -> List[str]:
            out = []
            for v in values or []:
                if isinstance(v, dict):
                    v = v.get("name") or v.get("size") or v.get("color")
                if isinstance(v, str) and v:
                    out.append(v)
            return out

        return cls(
            id=str(first(record.get("id"), record.get("_id"), default="")),
            name=record.get("name") or "",
            description=record.get("description") or "",
            brand=record.get("brand") or "",
            category=record.get("category") or "",
            subcategory=record.get("subcategory") or "",
            tags=names(record.get("tags")),
            colors=names(record.get("colors")),
            sizes=names(record.get("sizes")),
            price=float(first(record.get("price"), default=0.0)),
            sale_price=first(record.get("sale_price"), record.get("salePrice")),
            rating_average=float(first(
                record.get("rating_average"), record.get("ratingAverage"),
                safe_get(record, "rating", "average"), default=0.0,
            )),
            rating_count=int(first(
                record.get("rating_count"), record.get("ratingCount"),
                safe_get(record, "rating", "count"), default=0,
            )),
            inventory_quantity=int(first(
                record.get("inventory_quantity"), record.get("inventoryQuantity"),
                safe_get(record, "inventory", "quantity"), default=0,
            )),
            views=int(first(record.get("views"), safe_get(record, "analytics", "views"), default=0)),
            likes=int(first(record.get("likes"), safe_get(record, "analytics", "likes"), default=0)),
            purchases=int(first(
                record.get("purchases"), safe_get(record, "analytics", "purchases"), default=0,
            )),
            is_active=bool(first(record.get("is_active"), record.get("isActive"), default=True)),
            created_at=first(record.get("created_at"), record.get("createdAt"), default=utcnow()),
        )


# ============================================================================
# Filters
# ============================================================================

class QueryFilters(CamelModel):
    """
    Structured filter set for one request. All present fields are ANDed.

    ``in_stock`` / ``on_sale`` only constrain results when True.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    category: Optional[str] = None
    subcategory: Optional[str] = None
    brand: Optional[str] = Field(None, description="Case-insensitive substring match")
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)
    rating: Optional[float] = Field(None, ge=0, le=5, description="Minimum average rating")
    in_stock: bool = False
    on_sale: bool = False
    colors: Optional[List[str]] = None
    sizes: Optional[List[str]] = None
    tags: Optional[List[str]] = None

    @model_validator(mode="after")
    def validate_price_range(self):
        """Ensure min_price <= max_price when both are set."""
        if self.min_price is not None and self.max_price is not None:
            if self.min_price > self.max_price:
                raise ValueError(f"minPrice ({self.min_price}) must be <= maxPrice ({self.max_price})")
        return self

    @property
    def has_price_range(self) -> bool:
        return self.min_price is not None or self.max_price is not None

    def summary(self) -> Dict[str, Any]:
        """Present filters only, camelCase keys (as echoed in searchMeta)."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        if not self.in_stock:
            data.pop("inStock", None)
        if not self.on_sale:
            data.pop("onSale", None)
        return data

    def is_empty(self) -> bool:
        return not self.summary()


# ============================================================================
# Results
# ============================================================================

class QuickStats(CamelModel):
    is_popular: bool = False
    is_high_rated: bool = False
    is_in_stock: bool = False
    is_on_sale: bool = False


class ProductResult(SearchableItem):
    """A catalog item decorated with search-specific data."""

    relevance_score: Optional[float] = None
    search_highlights: Optional[Dict[str, str]] = None
    quick_stats: QuickStats = Field(default_factory=QuickStats)


class Pagination(CamelModel):
    current: int
    pages: int
    total: int
    has_next: bool
    has_prev: bool


class Suggestion(CamelModel):
    text: str
    type: SuggestionType
    popularity: float = 0


class SearchMeta(CamelModel):
    query: str
    filters: Dict[str, Any] = Field(default_factory=dict)
    results_count: int
    search_time: int = Field(..., description="Epoch milliseconds when the search completed")
    suggestions: List[Suggestion] = Field(default_factory=list)


class SearchResult(CamelModel):
    """What the orchestrator returns for one search."""
    products: List[ProductResult]
    pagination: Pagination
    search_meta: SearchMeta


# ============================================================================
# API envelopes
# ============================================================================

class SearchResponse(SearchResult):
    success: bool = True


class SuggestionsResponse(CamelModel):
    success: bool = True
    suggestions: List[Suggestion]
    query: str


class TrendingEntry(CamelModel):
    query: str
    searches: int
    trending_score: float


class TrendingResponse(CamelModel):
    success: bool = True
    trending: List[TrendingEntry]
    timeframe: Timeframe
    timestamp: datetime


class HistoryResponse(CamelModel):
    success: bool = True
    searches: List[Dict[str, Any]]
    analytics: Dict[str, Any]
    preferences: Dict[str, Any]


class MessageResponse(CamelModel):
    success: bool = True
    message: str


class TrackRequest(CamelModel):
    """Body of POST /search/track."""
    search_query: str = Field(..., min_length=1, max_length=500)
    product_id: Optional[str] = None
    action: InteractionAction
    position: Optional[int] = Field(None, ge=0)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class AnalyticsResponse(CamelModel):
    success: bool = True
    analytics: Dict[str, Any]


class InsightsResponse(CamelModel):
    success: bool = True
    insights: Dict[str, Any]


class ProductListResponse(CamelModel):
    """Non-ranked product listings (similar items) in the search envelope."""
    success: bool = True
    products: List[ProductResult]
    pagination: Pagination
    search_meta: SearchMeta
