"""
Ranker: filter -> (match + score) -> order -> paginate.

Pure with respect to its inputs; many requests may rank concurrently.

Sort modes:
- relevance:  score desc, views desc (default when the query has text)
- price:      price, per sort order
- rating:     rating average desc, rating count desc
- popularity: views desc, likes desc
- newest:     creation time desc
- name:       case-insensitive name, per sort order
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from core.errors import ValidationError
from search.filters import build_predicate, matches_terms
from search.models import Pagination, QueryFilters, SearchableItem, SortBy, SortOrder
from search.scorer import RelevanceScorer


@dataclass
class ScoredItem:
    """An item plus its ephemeral relevance score (None when not scored)."""
    item: SearchableItem
    score: Optional[float] = None


@dataclass
class RankedPage:
    """One page of ranked items plus the totals needed for pagination."""
    items: List[ScoredItem] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 12

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0

    def pagination(self) -> Pagination:
        return Pagination(
            current=self.page,
            pages=self.pages,
            total=self.total,
            has_next=self.page < self.pages,
            has_prev=self.page > 1,
        )


def validate_page(page: int, page_size: int) -> None:
    """Reject impossible pagination before any work is done."""
    if page_size is None or page_size <= 0:
        raise ValidationError(f"pageSize must be a positive integer, got {page_size}")
    if page is None or page < 1:
        raise ValidationError(f"page must be >= 1, got {page}")


def sort_items(
    scored: List[ScoredItem],
    sort_by: SortBy,
    sort_order: SortOrder = SortOrder.DESC,
) -> List[ScoredItem]:
    """Order scored items by ``sort_by``. Stable for equal keys."""
    descending = sort_order == SortOrder.DESC

    if sort_by == SortBy.RELEVANCE:
        return sorted(scored, key=lambda s: (s.score or 0.0, s.item.views), reverse=True)
    if sort_by == SortBy.PRICE:
        return sorted(scored, key=lambda s: s.item.price, reverse=descending)
    if sort_by == SortBy.RATING:
        return sorted(
            scored, key=lambda s: (s.item.rating_average, s.item.rating_count), reverse=True,
        )
    if sort_by == SortBy.POPULARITY:
        return sorted(scored, key=lambda s: (s.item.views, s.item.likes), reverse=True)
    if sort_by == SortBy.NEWEST:
        return sorted(scored, key=lambda s: s.item.created_at, reverse=True)
    if sort_by == SortBy.NAME:
        return sorted(scored, key=lambda s: s.item.name.lower(), reverse=descending)
    raise ValidationError(f"Unsupported sortBy: {sort_by}")


class Ranker:
    """Applies filters, scoring, ordering and pagination to a candidate set."""

    def __init__(self, scorer: Optional[RelevanceScorer] = None) -> None:
        self.scorer = scorer or RelevanceScorer()

    def rank(
        self,
        candidates: Sequence[SearchableItem],
        filters: QueryFilters,
        terms: Sequence[str],
        sort_by: SortBy = SortBy.RELEVANCE,
        sort_order: SortOrder = SortOrder.DESC,
        page: int = 1,
        page_size: int = 12,
    ) -> RankedPage:
        """
        Rank ``candidates`` and return the requested page.

        ``total`` is the size of the filtered (and text-matched) set before
        pagination. A page past the end is empty but keeps the totals.

        Raises:
            ValidationError: page_size <= 0 or page < 1
        """
        validate_page(page, page_size)

        predicate = build_predicate(filters)
        survivors = [
            item for item in candidates
            if predicate(item) and matches_terms(item, terms)
        ]

        # Relevance without text falls back to the popularity part of the score
        if terms or sort_by == SortBy.RELEVANCE:
            scored = [ScoredItem(item, self.scorer.score(item, terms)) for item in survivors]
        else:
            scored = [ScoredItem(item) for item in survivors]

        ordered = sort_items(scored, sort_by, sort_order)

        start = (page - 1) * page_size
        return RankedPage(
            items=ordered[start:start + page_size],
            total=len(ordered),
            page=page,
            page_size=page_size,
        )
