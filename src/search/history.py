"""
Per-user search history and preference learning.

Each user gets one UserSearchProfile, created lazily on the first search:

- searches: ring buffer of the last 100 entries, newest first
- popular_queries: top 20 queries by count (sorted desc after every update)
- preferences: incremental category/brand scores, a smoothed price range
  and the last used sort mode
- analytics counters: total searches, running mean of result counts

Clicks and purchases are attributed back to the most recent entry for the
same query made within the correlation window (1 hour). Attribution is
best-effort: an interaction without a matching entry is dropped silently.

Every read-modify-write of a profile happens under that user's lock.
"""

import copy
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Deque, Dict, Iterator, List, Optional

from config.constants import DEFAULT_HISTORY_CONFIG, HistoryConfig
from core.logging import get_logger
from core.utils import KeyedLocks, percentage, utcnow
from search.models import HistoryScope, InteractionAction, QueryFilters
from search.tokenizer import normalize_query

logger = get_logger(__name__)


# =============================================================================
# Data Model
# =============================================================================

@dataclass
class ClickRecord:
    product_id: str
    position: int
    clicked_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "position": self.position,
            "clickedAt": self.clicked_at.isoformat(),
        }


@dataclass
class PurchaseRecord:
    product_id: str
    purchased_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {"productId": self.product_id, "purchasedAt": self.purchased_at.isoformat()}


@dataclass
class SessionMetadata:
    source: str = "search_bar"
    session_id: Optional[str] = None
    device_type: Optional[str] = None
    duration: Optional[float] = None
    refinements: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "sessionId": self.session_id,
            "deviceType": self.device_type,
            "duration": self.duration,
            "refinements": self.refinements,
        }


@dataclass
class SearchHistoryEntry:
    """One search made by one user."""
    query: str
    filters: QueryFilters
    result_count: int
    timestamp: datetime
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None
    clicks: List[ClickRecord] = field(default_factory=list)
    purchases: List[PurchaseRecord] = field(default_factory=list)
    metadata: SessionMetadata = field(default_factory=SessionMetadata)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "filters": self.filters.summary(),
            "results": {
                "count": self.result_count,
                "clicked": [c.to_dict() for c in self.clicks],
                "purchased": [p.to_dict() for p in self.purchases],
            },
            "metadata": self.metadata.to_dict(),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class PopularQuery:
    query: str
    count: int
    last_searched: datetime
    avg_results_count: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "count": self.count,
            "lastSearched": self.last_searched.isoformat(),
            "avgResultsCount": self.avg_results_count,
        }


@dataclass
class PreferenceScore:
    """Learned affinity for one category or brand."""
    name: str
    score: float = 0.0
    search_count: int = 0


@dataclass
class PriceRangePreference:
    min: float = DEFAULT_HISTORY_CONFIG.DEFAULT_MIN_PRICE
    max: float = DEFAULT_HISTORY_CONFIG.DEFAULT_MAX_PRICE


@dataclass
class SortPreference:
    field: str = "relevance"
    order: str = "desc"
    usage: int = 0


@dataclass
class UserSearchProfile:
    """Everything search remembers about one user."""
    user_id: str
    capacity: int = DEFAULT_HISTORY_CONFIG.CAPACITY
    searches: Deque[SearchHistoryEntry] = field(default_factory=deque)
    popular_queries: List[PopularQuery] = field(default_factory=list)
    preferred_categories: List[PreferenceScore] = field(default_factory=list)
    preferred_brands: List[PreferenceScore] = field(default_factory=list)
    price_range: PriceRangePreference = field(default_factory=PriceRangePreference)
    sort_preference: SortPreference = field(default_factory=SortPreference)
    total_searches: int = 0
    average_results: float = 0.0
    last_search_date: Optional[datetime] = None

    def __post_init__(self) -> None:
        # Ring buffer: appendleft evicts the oldest entry once full
        self.searches = deque(self.searches, maxlen=self.capacity)

    # -------------------------------------------------------------------------
    # Derived analytics
    # -------------------------------------------------------------------------

    def analytics(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        entries = list(self.searches)
        clicks = sum(len(e.clicks) for e in entries)
        purchases = sum(len(e.purchases) for e in entries)

        def searches_since(delta: timedelta) -> int:
            return sum(1 for e in entries if e.timestamp >= now - delta)

        return {
            "totalSearches": self.total_searches,
            "uniqueQueries": len({e.query for e in entries}),
            "averageResultsPerSearch": round(self.average_results, 2),
            "clickThroughRate": percentage(clicks, len(entries)),
            "conversionRate": percentage(purchases, len(entries)),
            "lastSearchDate": self.last_search_date.isoformat() if self.last_search_date else None,
            "searchFrequency": {
                "daily": searches_since(timedelta(days=1)),
                "weekly": searches_since(timedelta(days=7)),
                "monthly": searches_since(timedelta(days=30)),
            },
        }

    def preferences(self) -> Dict[str, Any]:
        return {
            "preferredCategories": [
                {"category": p.name, "score": p.score, "searchCount": p.search_count}
                for p in self.preferred_categories
            ],
            "preferredBrands": [
                {"brand": p.name, "score": p.score, "searchCount": p.search_count}
                for p in self.preferred_brands
            ],
            "priceRangePreference": {"min": self.price_range.min, "max": self.price_range.max},
            "sortPreference": {
                "field": self.sort_preference.field,
                "order": self.sort_preference.order,
                "usage": self.sort_preference.usage,
            },
        }

    def top_categories(self, limit: int) -> List[PreferenceScore]:
        return sorted(self.preferred_categories, key=lambda p: p.score, reverse=True)[:limit]


def _bump_preference(prefs: List[PreferenceScore], name: str) -> None:
    for pref in prefs:
        if pref.name == name:
            pref.score += 1
            pref.search_count += 1
            return
    prefs.append(PreferenceScore(name=name, score=1, search_count=1))


def empty_analytics() -> Dict[str, Any]:
    return {"totalSearches": 0, "uniqueQueries": 0}


# =============================================================================
# Store
# =============================================================================

class SearchHistoryStore:
    """
    Owns every UserSearchProfile.

    Args:
        config: capacity, popular-query cap and correlation window
        clock: returns the current UTC time (injectable for tests)
    """

    def __init__(
        self,
        config: Optional[HistoryConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.config = config or DEFAULT_HISTORY_CONFIG
        self._clock = clock
        self._profiles: Dict[str, UserSearchProfile] = {}
        self._profiles_lock = threading.Lock()
        self._locks = KeyedLocks()

    def _get_or_create(self, user_id: str) -> UserSearchProfile:
        profile = self._profiles.get(user_id)
        if profile is None:
            with self._profiles_lock:
                profile = self._profiles.get(user_id)
                if profile is None:
                    profile = UserSearchProfile(user_id=user_id, capacity=self.config.CAPACITY)
                    self._profiles[user_id] = profile
        return profile

    # =========================================================================
    # Writes
    # =========================================================================

    def record_search(
        self,
        user_id: str,
        query: str,
        filters: Optional[QueryFilters],
        result_count: int,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
        metadata: Optional[SessionMetadata] = None,
    ) -> None:
        """Append a search to the user's history and update derived aggregates."""
        filters = filters or QueryFilters()
        now = self._clock()
        entry = SearchHistoryEntry(
            query=normalize_query(query),
            filters=filters,
            result_count=result_count,
            timestamp=now,
            sort_by=sort_by,
            sort_order=sort_order,
            metadata=metadata or SessionMetadata(),
        )

        with self._locks.get(user_id):
            profile = self._get_or_create(user_id)
            profile.searches.appendleft(entry)

            profile.total_searches += 1
            profile.average_results += (result_count - profile.average_results) / profile.total_searches
            profile.last_search_date = now

            self._update_popular_query(profile, entry.query, result_count, now)
            self._update_preferences(profile, entry)

    def _update_popular_query(
        self,
        profile: UserSearchProfile,
        query: str,
        result_count: int,
        now: datetime,
    ) -> None:
        for pq in profile.popular_queries:
            if pq.query == query:
                pq.count += 1
                pq.last_searched = now
                # (old + new) / 2 smoothing
                pq.avg_results_count = (pq.avg_results_count + result_count) / 2
                break
        else:
            profile.popular_queries.append(PopularQuery(
                query=query, count=1, last_searched=now, avg_results_count=result_count,
            ))

        profile.popular_queries.sort(key=lambda pq: pq.count, reverse=True)
        del profile.popular_queries[self.config.POPULAR_QUERY_CAP:]

    def _update_preferences(self, profile: UserSearchProfile, entry: SearchHistoryEntry) -> None:
        filters = entry.filters

        if filters.category:
            _bump_preference(profile.preferred_categories, filters.category)
        if filters.brand:
            _bump_preference(profile.preferred_brands, filters.brand)

        if filters.has_price_range:
            new_min = filters.min_price if filters.min_price is not None else self.config.DEFAULT_MIN_PRICE
            new_max = filters.max_price if filters.max_price is not None else self.config.DEFAULT_MAX_PRICE
            # (old + new) / 2 per call, not a true mean
            profile.price_range.min = (profile.price_range.min + new_min) / 2
            profile.price_range.max = (profile.price_range.max + new_max) / 2

        if entry.sort_by:
            profile.sort_preference.field = entry.sort_by
            profile.sort_preference.order = entry.sort_order or profile.sort_preference.order
            profile.sort_preference.usage += 1

    def record_interaction(
        self,
        user_id: str,
        query: str,
        item_id: Optional[str],
        action: InteractionAction,
        position: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Attach an interaction to the most recent matching search.

        Returns True when an entry was found and updated, False when the
        interaction was dropped (unknown user, no matching query within the
        correlation window).
        """
        profile = self._profiles.get(user_id)
        if profile is None:
            return False

        query = normalize_query(query)
        now = self._clock()
        window = timedelta(seconds=self.config.CORRELATION_WINDOW_SECONDS)

        with self._locks.get(user_id):
            entry = next(
                (e for e in profile.searches if e.query == query and now - e.timestamp < window),
                None,
            )
            if entry is None:
                logger.debug("No search to attribute interaction to", user_id=user_id, action=action.value)
                return False

            if action == InteractionAction.CLICK:
                entry.clicks.append(ClickRecord(
                    product_id=item_id or "", position=position or 0, clicked_at=now,
                ))
            elif action == InteractionAction.PURCHASE:
                entry.purchases.append(PurchaseRecord(product_id=item_id or "", purchased_at=now))
            elif action == InteractionAction.VIEW_DURATION:
                entry.metadata.duration = (metadata or {}).get("duration") or 0
            elif action == InteractionAction.FILTER_CHANGE:
                entry.metadata.refinements += 1
            return True

    def clear_history(self, user_id: str, scope: HistoryScope = HistoryScope.ALL) -> None:
        """Reset recent searches, popular queries, or both plus the counters."""
        with self._locks.get(user_id):
            profile = self._get_or_create(user_id)
            if scope in (HistoryScope.ALL, HistoryScope.RECENT):
                profile.searches.clear()
            if scope in (HistoryScope.ALL, HistoryScope.POPULAR):
                profile.popular_queries.clear()
            if scope == HistoryScope.ALL:
                profile.total_searches = 0
                profile.average_results = 0.0

    # =========================================================================
    # Reads
    # =========================================================================

    def get_profile(self, user_id: str) -> Optional[UserSearchProfile]:
        """Deep copy of the user's profile, None when the user never searched."""
        profile = self._profiles.get(user_id)
        if profile is None:
            return None
        with self._locks.get(user_id):
            return copy.deepcopy(profile)

    def recent_searches(self, user_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        profile = self.get_profile(user_id)
        if profile is None:
            return []
        return [
            {
                "query": e.query,
                "timestamp": e.timestamp.isoformat(),
                "resultsCount": e.result_count,
                "filters": e.filters.summary(),
            }
            for e in list(profile.searches)[:limit]
        ]

    def popular_queries(self, user_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        profile = self.get_profile(user_id)
        if profile is None:
            return []
        return [pq.to_dict() for pq in profile.popular_queries[:limit]]

    def iter_entries(self, since: Optional[datetime] = None) -> Iterator[SearchHistoryEntry]:
        """Snapshots of every user's entries, optionally only those at/after ``since``."""
        with self._profiles_lock:
            user_ids = list(self._profiles.keys())

        for user_id in user_ids:
            with self._locks.get(user_id):
                entries = [
                    copy.deepcopy(e) for e in self._profiles[user_id].searches
                    if since is None or e.timestamp >= since
                ]
            yield from entries

    def __len__(self) -> int:
        return len(self._profiles)
