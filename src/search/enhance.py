"""
Decorate ranked items for the response: highlights and quick stats.
"""

import re
from typing import Dict, Optional, Sequence

from config.constants import HIGH_RATING_THRESHOLD, POPULAR_VIEWS_THRESHOLD
from search.models import ProductResult, QuickStats, SearchableItem


def highlight(text: str, terms: Sequence[str]) -> str:
    """
    Wrap every case-insensitive occurrence of each term in ``<mark>`` tags.

    >>> highlight("Red Silk Dress", ["red"])
    '<mark>Red</mark> Silk Dress'
    """
    # Longest first so "dress" wins over "dre" inside the same match
    words = sorted({t for t in terms if t}, key=len, reverse=True)
    if not text or not words:
        return text
    pattern = re.compile("|".join(re.escape(w) for w in words), re.IGNORECASE)
    return pattern.sub(lambda m: f"<mark>{m.group(0)}</mark>", text)


def search_highlights(item: SearchableItem, terms: Sequence[str]) -> Optional[Dict[str, str]]:
    if not terms:
        return None
    return {
        "name": highlight(item.name, terms),
        "description": highlight(item.description, terms),
    }


def quick_stats(item: SearchableItem) -> QuickStats:
    return QuickStats(
        is_popular=item.views > POPULAR_VIEWS_THRESHOLD,
        is_high_rated=item.rating_average >= HIGH_RATING_THRESHOLD,
        is_in_stock=item.in_stock,
        is_on_sale=item.on_sale,
    )


def to_product_result(
    item: SearchableItem,
    terms: Sequence[str] = (),
    score: Optional[float] = None,
) -> ProductResult:
    """Copy ``item`` into a ProductResult with search-only fields filled in."""
    return ProductResult(
        **item.model_dump(),
        relevance_score=round(score, 4) if score is not None else None,
        search_highlights=search_highlights(item, terms),
        quick_stats=quick_stats(item),
    )
