"""
RelevanceScorer -- deterministic weighted-sum relevance.

For each query term (already lowercased by the tokenizer):

    name        +3.0   (+2.0 if the whole name equals the term,
                         +1.0 if the name starts with the term)
    brand       +2.5
    category    +2.0
    tags        +2.0   per matching tag
    subcategory +1.5
    description +1.5

Matching is case-insensitive substring. After the term loop a popularity
boost is added:

    views*0.001 + likes*0.01 + purchases*0.1 + ratingAverage*0.5
    + 0.5 if in stock + 0.3 if on sale

Every component is non-negative and the sum is independent of term order,
so with no terms the scorer degrades to a pure popularity ranker.

Stateless -- safe to share across threads / reuse across requests.
"""

from typing import Iterable, Optional

from config.constants import DEFAULT_RELEVANCE_WEIGHTS, RelevanceWeights
from search.models import SearchableItem


class RelevanceScorer:
    """Scores one item against a list of query terms."""

    def __init__(self, weights: Optional[RelevanceWeights] = None) -> None:
        self.weights = weights or DEFAULT_RELEVANCE_WEIGHTS

    def term_score(self, item: SearchableItem, term: str) -> float:
        """Field-weighted hits for a single term."""
        w = self.weights.FIELD_WEIGHTS
        term = term.lower()
        score = 0.0

        name = item.name.lower()
        if term in name:
            score += w["name"]
            if name == term:
                score += self.weights.EXACT_NAME_BONUS
            if name.startswith(term):
                score += self.weights.NAME_PREFIX_BONUS

        if term in item.brand.lower():
            score += w["brand"]
        if term in item.category.lower():
            score += w["category"]
        if term in item.subcategory.lower():
            score += w["subcategory"]
        if term in item.description.lower():
            score += w["description"]

        for tag in item.tags:
            if term in tag.lower():
                score += w["tags"]

        return score

    def popularity_boost(self, item: SearchableItem) -> float:
        """Popularity and availability boost, independent of the query."""
        boost = (
            item.views * self.weights.VIEWS_WEIGHT
            + item.likes * self.weights.LIKES_WEIGHT
            + item.purchases * self.weights.PURCHASES_WEIGHT
            + item.rating_average * self.weights.RATING_WEIGHT
        )
        if item.in_stock:
            boost += self.weights.IN_STOCK_BOOST
        if item.on_sale:
            boost += self.weights.ON_SALE_BOOST
        return boost

    def score(self, item: SearchableItem, terms: Iterable[str]) -> float:
        """Total relevance of ``item`` for ``terms``."""
        total = sum(self.term_score(item, term) for term in terms)
        return total + self.popularity_boost(item)
