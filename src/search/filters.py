"""
Filter predicates over searchable items.

``build_predicate`` turns a QueryFilters value into a pure function
``SearchableItem -> bool``. Every present filter adds one conjunctive
condition; an empty filter set accepts everything.

``matches_terms`` is the free-text gate applied before scoring: each term
must appear (substring, case-insensitive) in at least one searchable field.
"""

from typing import Callable, List, Sequence

from core.utils import normalize_string_set
from search.models import QueryFilters, SearchableItem

Predicate = Callable[[SearchableItem], bool]


def _intersects(item_values: Sequence[str], wanted: Sequence[str]) -> bool:
    return bool(normalize_string_set(item_values) & normalize_string_set(wanted))


def build_predicate(filters: QueryFilters) -> Predicate:
    """
    Build the conjunctive predicate for ``filters``.

    The returned callable has no side effects and can be applied to any
    candidate stream, any number of times.
    """
    conditions: List[Predicate] = []

    if filters.category:
        category = filters.category
        conditions.append(lambda item: item.category == category)

    if filters.subcategory:
        subcategory = filters.subcategory
        conditions.append(lambda item: item.subcategory == subcategory)

    if filters.brand:
        brand = filters.brand.lower()
        conditions.append(lambda item: brand in item.brand.lower())

    if filters.min_price is not None:
        min_price = filters.min_price
        conditions.append(lambda item: item.price >= min_price)

    if filters.max_price is not None:
        max_price = filters.max_price
        conditions.append(lambda item: item.price <= max_price)

    if filters.rating is not None:
        rating = filters.rating
        conditions.append(lambda item: item.rating_average >= rating)

    if filters.in_stock:
        conditions.append(lambda item: item.in_stock)

    if filters.on_sale:
        conditions.append(lambda item: item.on_sale)

    # Set filters: empty lists are treated as absent
    if filters.tags:
        tags = list(filters.tags)
        conditions.append(lambda item: _intersects(item.tags, tags))

    if filters.colors:
        colors = list(filters.colors)
        conditions.append(lambda item: _intersects(item.colors, colors))

    if filters.sizes:
        sizes = list(filters.sizes)
        conditions.append(lambda item: _intersects(item.sizes, sizes))

    if not conditions:
        return lambda item: True

    def predicate(item: SearchableItem) -> bool:
        return all(condition(item) for condition in conditions)

    return predicate


def apply_filters(items: Sequence[SearchableItem], filters: QueryFilters) -> List[SearchableItem]:
    """Items surviving ``filters``, original order preserved."""
    predicate = build_predicate(filters)
    return [item for item in items if predicate(item)]


def _searchable_fields(item: SearchableItem) -> List[str]:
    fields = [item.name, item.description, item.brand, item.category, item.subcategory]
    fields.extend(item.tags)
    return [f.lower() for f in fields if f]


def matches_terms(item: SearchableItem, terms: Sequence[str]) -> bool:
    """
    True if every term occurs in at least one searchable field.

    An empty term list matches everything.
    """
    if not terms:
        return True
    fields = _searchable_fields(item)
    return all(any(term in field for field in fields) for term in terms)
