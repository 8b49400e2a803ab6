"""
Search constants and algorithm configuration.

These are values that don't change based on environment but may need
to be tuned or referenced across the codebase.
"""

from dataclasses import dataclass, field
from typing import Dict


# =============================================================================
# Relevance Scoring
# =============================================================================

@dataclass(frozen=True)
class RelevanceWeights:
    """Per-field weights applied for every query term found in the field."""

    FIELD_WEIGHTS: Dict[str, float] = field(default_factory=lambda: {
        "name": 3.0,
        "brand": 2.5,
        "category": 2.0,
        "tags": 2.0,          # per matching tag
        "subcategory": 1.5,
        "description": 1.5,
    })

    # Name bonuses (case-insensitive)
    EXACT_NAME_BONUS: float = 2.0
    NAME_PREFIX_BONUS: float = 1.0

    # Popularity boost coefficients
    VIEWS_WEIGHT: float = 0.001
    LIKES_WEIGHT: float = 0.01
    PURCHASES_WEIGHT: float = 0.1
    RATING_WEIGHT: float = 0.5

    # Availability boosts
    IN_STOCK_BOOST: float = 0.5
    ON_SALE_BOOST: float = 0.3


DEFAULT_RELEVANCE_WEIGHTS = RelevanceWeights()


# =============================================================================
# Trending
# =============================================================================

@dataclass(frozen=True)
class TrendingConfig:
    """Trending score coefficients and rolling window sizes."""

    WEIGHT_24H: float = 10.0
    WEIGHT_7D: float = 2.0
    WEIGHT_30D: float = 0.5

    WINDOW_HOURS: Dict[str, int] = field(default_factory=lambda: {
        "24h": 24,
        "7d": 24 * 7,
        "30d": 24 * 30,
    })


DEFAULT_TRENDING_CONFIG = TrendingConfig()

TIMEFRAMES = ("24h", "7d", "30d")


# =============================================================================
# Search History
# =============================================================================

@dataclass(frozen=True)
class HistoryConfig:
    """Caps and windows for per-user search history."""

    CAPACITY: int = 100
    POPULAR_QUERY_CAP: int = 20
    CORRELATION_WINDOW_SECONDS: int = 3600

    # Price preference defaults (used when only one bound is given)
    DEFAULT_MIN_PRICE: float = 0.0
    DEFAULT_MAX_PRICE: float = 10000.0


DEFAULT_HISTORY_CONFIG = HistoryConfig()


# =============================================================================
# Suggestions
# =============================================================================

@dataclass(frozen=True)
class SuggestionConfig:
    """Per-source caps for suggestion composition."""

    MIN_QUERY_LENGTH: int = 2
    MAX_COMPLETIONS: int = 5
    MAX_PRODUCTS: int = 3
    MAX_BRANDS: int = 2

    # Personalized suggestions
    MAX_PERSONAL_QUERIES: int = 5
    MAX_PREFERRED_CATEGORIES: int = 3
    ITEMS_PER_CATEGORY: int = 2

    # Smart suggestions
    MAX_SMART_PERSONAL: int = 3
    MAX_SMART_TOTAL: int = 10


DEFAULT_SUGGESTION_CONFIG = SuggestionConfig()


# =============================================================================
# Result Enhancement
# =============================================================================

POPULAR_VIEWS_THRESHOLD = 100
HIGH_RATING_THRESHOLD = 4.0
