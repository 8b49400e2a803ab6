"""
Search suggestions.

Sources, in the order they are composed:

1. completion store: remembered queries starting with the input
2. products: item names containing the input
3. brands: distinct brands containing the input
4. trending: top queries by 24h count (also the fallback for short input)
5. personal: the user's own popular queries and preferred categories

Every composed list is de-duplicated by text (first occurrence wins) and
truncated to the requested limit.
"""

import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from config.constants import DEFAULT_SUGGESTION_CONFIG, SuggestionConfig
from core.logging import get_logger
from search.catalog import CatalogReader
from search.history import SearchHistoryStore
from search.models import Suggestion, SuggestionSource, SuggestionType
from search.tokenizer import normalize_query
from search.trending import TrendingTracker

logger = get_logger(__name__)


def dedupe_by_text(suggestions: Iterable[Suggestion], limit: Optional[int] = None) -> List[Suggestion]:
    """Drop repeated texts (first wins), then truncate to ``limit``."""
    seen = set()
    out = []
    for s in suggestions:
        if s.text in seen:
            continue
        seen.add(s.text)
        out.append(s)
    return out[:limit] if limit is not None else out


# =============================================================================
# Completion Store
# =============================================================================

@dataclass
class CompletionEntry:
    query: str
    popularity: int = 0
    active: bool = True


class CompletionStore:
    """
    Remembered completions keyed by lowercase query.

    The text of the first registration is kept; later registrations of the
    same query (any case) only bump its popularity.
    """

    def __init__(self, entries: Optional[Iterable[CompletionEntry]] = None):
        self._entries: Dict[str, CompletionEntry] = {}
        self._lock = threading.Lock()
        for entry in entries or []:
            self._entries[entry.query.lower()] = entry

    def register(self, query: str, popularity: int = 1) -> None:
        text = normalize_query(query)
        if not text:
            return
        key = text.lower()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._entries[key] = CompletionEntry(query=text, popularity=popularity)
            else:
                entry.popularity += popularity

    def deactivate(self, query: str) -> None:
        with self._lock:
            entry = self._entries.get(normalize_query(query).lower())
            if entry is not None:
                entry.active = False

    def matching(self, prefix: str, limit: int) -> List[CompletionEntry]:
        """Active entries starting with ``prefix`` (case-insensitive), most popular first."""
        prefix = prefix.lower()
        with self._lock:
            hits = [
                CompletionEntry(e.query, e.popularity, e.active)
                for key, e in self._entries.items()
                if e.active and key.startswith(prefix)
            ]
        hits.sort(key=lambda e: e.popularity, reverse=True)
        return hits[:limit]

    def __len__(self) -> int:
        return len(self._entries)


# =============================================================================
# Suggestion Engine
# =============================================================================

class SuggestionEngine:
    """Composes suggestions from the catalog, trending, history and completions."""

    def __init__(
        self,
        catalog: CatalogReader,
        trending: TrendingTracker,
        history: SearchHistoryStore,
        completions: Optional[CompletionStore] = None,
        config: Optional[SuggestionConfig] = None,
    ):
        self.catalog = catalog
        self.trending = trending
        self.history = history
        self.completions = completions if completions is not None else CompletionStore()
        self.config = config or DEFAULT_SUGGESTION_CONFIG

    # =========================================================================
    # Single sources
    # =========================================================================

    def trending_suggestions(self, limit: int, window: str = "24h") -> List[Suggestion]:
        return [
            Suggestion(text=r.query, type=SuggestionType.TRENDING, popularity=r.total_searches)
            for r in self.trending.top_trending(limit=limit, window=window)
        ]

    def _completion_suggestions(self, query: str) -> List[Suggestion]:
        return [
            Suggestion(text=e.query, type=SuggestionType.COMPLETION, popularity=e.popularity)
            for e in self.completions.matching(query, self.config.MAX_COMPLETIONS)
        ]

    def _catalog_suggestions(self, query: str) -> List[Suggestion]:
        needle = query.lower()
        products: List[Suggestion] = []
        brand_counts: Dict[str, int] = {}

        for item in self.catalog.list_items():
            if len(products) < self.config.MAX_PRODUCTS and needle in item.name.lower():
                products.append(Suggestion(
                    text=item.name, type=SuggestionType.PRODUCT, popularity=item.views,
                ))
            if item.brand and needle in item.brand.lower():
                brand_counts[item.brand] = brand_counts.get(item.brand, 0) + 1

        # Brands keep first-seen order; popularity is the number of matching items
        brands = [
            Suggestion(text=brand, type=SuggestionType.BRAND, popularity=count)
            for brand, count in list(brand_counts.items())[:self.config.MAX_BRANDS]
        ]
        return products + brands

    # =========================================================================
    # Composite sources
    # =========================================================================

    def suggest(self, query: str, limit: int = 10) -> List[Suggestion]:
        """
        Basic suggestions for a partial query.

        Input shorter than the minimum length yields trending queries;
        otherwise completions, then product names, then brands.
        """
        if limit <= 0:
            return []
        text = normalize_query(query)
        if len(text) < self.config.MIN_QUERY_LENGTH:
            return self.trending_suggestions(limit)

        combined = self._completion_suggestions(text) + self._catalog_suggestions(text)
        return dedupe_by_text(combined, limit)

    def personalized_suggestions(self, user_id: str, limit: int = 10) -> List[Suggestion]:
        """
        The user's own popular queries, then items from their preferred
        categories. Users without history get trending queries instead.
        """
        if limit <= 0:
            return []
        profile = self.history.get_profile(user_id)
        if profile is None or not (profile.popular_queries or profile.preferred_categories):
            return self.trending_suggestions(limit)

        suggestions = [
            Suggestion(text=pq.query, type=SuggestionType.PERSONAL, popularity=pq.count)
            for pq in profile.popular_queries[:self.config.MAX_PERSONAL_QUERIES]
        ]

        categories = profile.top_categories(self.config.MAX_PREFERRED_CATEGORIES)
        if categories:
            items = self.catalog.list_items()
            for pref in categories:
                in_category = sorted(
                    (item for item in items if item.category == pref.name),
                    key=lambda item: (item.views, item.likes),
                    reverse=True,
                )
                suggestions.extend(
                    Suggestion(
                        text=item.name,
                        type=SuggestionType.CATEGORY_SUGGESTION,
                        popularity=item.views,
                    )
                    for item in in_category[:self.config.ITEMS_PER_CATEGORY]
                )

        return dedupe_by_text(suggestions, limit)

    def compose(
        self,
        query: str,
        user_id: Optional[str] = None,
        limit: int = 10,
        source: SuggestionSource = SuggestionSource.ALL,
    ) -> List[Suggestion]:
        """Suggestions for the suggestions endpoint, by requested source."""
        if source == SuggestionSource.AUTOCOMPLETE:
            return self.suggest(query, limit)
        if source == SuggestionSource.TRENDING:
            return self.trending_suggestions(limit)
        if source == SuggestionSource.PERSONALIZED:
            if user_id:
                return self.personalized_suggestions(user_id, limit)
            return self.trending_suggestions(limit)

        combined = list(self.suggest(query, limit))
        if user_id:
            combined.extend(self.personalized_suggestions(user_id, self.config.MAX_COMPLETIONS))
        combined.extend(self.trending_suggestions(self.config.MAX_COMPLETIONS))
        return dedupe_by_text(combined, limit)

    def smart_suggestions(self, query: str, user_id: Optional[str] = None) -> List[Suggestion]:
        """
        Basic suggestions preceded by the user's own past queries that
        contain the input. Input shorter than the minimum length yields [].
        """
        text = normalize_query(query)
        if len(text) < self.config.MIN_QUERY_LENGTH:
            return []

        personal: List[Suggestion] = []
        if user_id:
            profile = self.history.get_profile(user_id)
            needle = text.lower()
            seen = set()
            for entry in profile.searches if profile else []:
                if len(personal) >= self.config.MAX_SMART_PERSONAL:
                    break
                if needle in entry.query.lower() and entry.query not in seen:
                    seen.add(entry.query)
                    personal.append(Suggestion(
                        text=entry.query,
                        type=SuggestionType.PERSONAL,
                        popularity=entry.result_count,
                    ))

        basic = self.suggest(text, self.config.MAX_COMPLETIONS)
        return dedupe_by_text(personal + basic, self.config.MAX_SMART_TOTAL)
