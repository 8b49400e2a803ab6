"""
Catalog Search Module.

Provides:
- Ranker / RelevanceScorer: filter, score, sort and paginate catalog items
- TrendingTracker: per-query counters and trending scores
- SearchHistoryStore: per-user history, popular queries and preferences
- SuggestionEngine: completions, products, brands, trending, personal
- SearchAnalytics: platform overview and per-user insights
- SearchOrchestrator: one search request end to end
"""

from search.analytics import SearchAnalytics
from search.catalog import CatalogReader, InMemoryCatalog, SupabaseCatalog
from search.container import SearchServices, build_services
from search.history import SearchHistoryStore
from search.orchestrator import SearchOrchestrator
from search.ranker import Ranker
from search.scorer import RelevanceScorer
from search.suggestions import CompletionStore, SuggestionEngine
from search.trending import TrendingTracker

__all__ = [
    "CatalogReader",
    "CompletionStore",
    "InMemoryCatalog",
    "Ranker",
    "RelevanceScorer",
    "SearchAnalytics",
    "SearchHistoryStore",
    "SearchOrchestrator",
    "SearchServices",
    "SuggestionEngine",
    "SupabaseCatalog",
    "TrendingTracker",
    "build_services",
]
