"""
Search Analytics.

Read-only aggregations over the history store and trending tracker:

- overview(): platform-wide totals for a timeframe plus the queries that
  trended within it
- user_insights(): one user's totals and their most used categories,
  brands and filters
"""

from collections import Counter
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from core.logging import get_logger
from core.utils import percentage, utcnow
from search.history import SearchHistoryEntry, SearchHistoryStore
from search.trending import TrendingTracker, window_start

logger = get_logger(__name__)

TOP_CATEGORIES = 5
TOP_BRANDS = 5
TOP_FILTERS = 8


def _ranked_counts(counter: Counter, total: int, label: str, limit: int) -> List[Dict[str, Any]]:
    return [
        {label: key, "count": count, "percentage": percentage(count, total)}
        for key, count in counter.most_common(limit)
    ]


class SearchAnalytics:
    """
    Aggregates search activity.

    Args:
        history: per-user search history
        trending: trending query tracker
        clock: returns the current UTC time (injectable for tests)
    """

    def __init__(
        self,
        history: SearchHistoryStore,
        trending: TrendingTracker,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.history = history
        self.trending = trending
        self._clock = clock

    # =========================================================================
    # Platform Overview
    # =========================================================================

    def overview(self, timeframe: str = "7d", limit: int = 10) -> Dict[str, Any]:
        """
        Totals over every user's searches made within ``timeframe``.

        Raises:
            ValidationError: unknown timeframe
        """
        now = self._clock()
        start = window_start(timeframe, self.trending.config, now)
        entries: List[SearchHistoryEntry] = list(self.history.iter_entries(since=start))

        total = len(entries)
        clicks = sum(len(e.clicks) for e in entries)
        purchases = sum(len(e.purchases) for e in entries)
        avg_results = sum(e.result_count for e in entries) / total if total else 0.0

        trending = self.trending.top_by_score(limit=limit, updated_since=start)

        logger.debug("Computed search overview", timeframe=timeframe, searches=total)

        return {
            "overview": {
                "totalSearches": total,
                "uniqueQueries": len({e.query for e in entries}),
                "avgResultsCount": round(avg_results, 2),
                "totalClicks": clicks,
                "totalPurchases": purchases,
                "clickThroughRate": percentage(clicks, total),
                "conversionRate": percentage(purchases, total),
            },
            "trendingSearches": [
                {
                    "query": r.query,
                    "searches": r.total_searches,
                    "trendingScore": r.trending_score,
                    "growth": r.searches_last_24h,
                }
                for r in trending
            ],
            "period": {
                "timeframe": timeframe,
                "start": start.isoformat(),
                "end": now.isoformat(),
            },
        }

    # =========================================================================
    # Per-user Insights
    # =========================================================================

    def user_insights(self, user_id: str) -> Dict[str, Any]:
        """Totals and top categories/brands/filters from the user's history."""
        profile = self.history.get_profile(user_id)
        if profile is None:
            return {
                "totals": {
                    "totalSearches": 0,
                    "uniqueQueries": 0,
                    "averageResultsPerSearch": 0.0,
                    "clickThroughRate": 0.0,
                    "conversionRate": 0.0,
                },
                "topCategories": [],
                "topBrands": [],
                "topFilters": [],
            }

        analytics = profile.analytics(self._clock())
        entries = list(profile.searches)
        categories: Counter = Counter()
        brands: Counter = Counter()
        filters: Counter = Counter()
        for entry in entries:
            if entry.filters.category:
                categories[entry.filters.category] += 1
            if entry.filters.brand:
                brands[entry.filters.brand] += 1
            filters.update(entry.filters.summary().keys())

        total = len(entries)
        return {
            "totals": {
                key: analytics[key]
                for key in (
                    "totalSearches",
                    "uniqueQueries",
                    "averageResultsPerSearch",
                    "clickThroughRate",
                    "conversionRate",
                )
            },
            "topCategories": _ranked_counts(categories, total, "category", TOP_CATEGORIES),
            "topBrands": _ranked_counts(brands, total, "brand", TOP_BRANDS),
            "topFilters": _ranked_counts(filters, total, "filter", TOP_FILTERS),
        }
