"""
Tests for the Ranker: filtering, text gate, ordering and pagination.
"""

import math

import pytest
from hypothesis import given, settings, strategies as st

from conftest import make_item


@pytest.fixture
def ranker():
    from search.ranker import Ranker
    return Ranker()


def _ids(page):
    return [s.item.id for s in page.items]


class TestRelevance:

    def test_relevance_puts_best_match_first(self, ranker):
        from search.models import QueryFilters, SortBy

        items = [
            make_item("shirt", "Blue Cotton Shirt", brand="Zara", description="red stitching dress code"),
            make_item("dress", "Red Silk Dress", brand="Zara", tags=["red", "silk"]),
        ]
        page = ranker.rank(items, QueryFilters(), ["red", "dress"], sort_by=SortBy.RELEVANCE)

        assert _ids(page) == ["dress", "shirt"]
        assert page.items[0].score > page.items[1].score

    def test_text_gate_drops_non_matching_items(self, ranker, sample_items):
        from search.models import QueryFilters

        page = ranker.rank(sample_items, QueryFilters(), ["red", "dress"])
        assert set(_ids(page)) == {"item-1", "item-4"}
        assert page.total == 2

    def test_relevance_ties_break_on_views(self, ranker):
        from search.models import QueryFilters

        items = [
            make_item("a", "Plain Tee", views=5),
            make_item("b", "Plain Tee", views=50),
        ]
        # Same text score; popularity boost differs only by views
        page = ranker.rank(items, QueryFilters(), ["tee"])
        assert _ids(page) == ["b", "a"]

    def test_relevance_without_text_scores_by_popularity(self, ranker, sample_items):
        from search.models import QueryFilters, SortBy

        page = ranker.rank(sample_items[:4], QueryFilters(), [], sort_by=SortBy.RELEVANCE)
        assert _ids(page)[0] == "item-1"
        assert all(s.score is not None for s in page.items)


class TestSortModes:

    def test_price_follows_sort_order(self, ranker, sample_items):
        from search.models import QueryFilters, SortBy, SortOrder

        asc = ranker.rank(sample_items[:4], QueryFilters(), [], sort_by=SortBy.PRICE, sort_order=SortOrder.ASC)
        desc = ranker.rank(sample_items[:4], QueryFilters(), [], sort_by=SortBy.PRICE, sort_order=SortOrder.DESC)

        assert _ids(asc) == ["item-2", "item-4", "item-1", "item-3"]
        assert _ids(desc) == list(reversed(_ids(asc)))

    def test_rating_breaks_ties_on_count(self, ranker):
        from search.models import QueryFilters, SortBy

        items = [
            make_item("few", "A", rating_average=4.5, rating_count=3),
            make_item("many", "B", rating_average=4.5, rating_count=300),
            make_item("low", "C", rating_average=2.0, rating_count=900),
        ]
        page = ranker.rank(items, QueryFilters(), [], sort_by=SortBy.RATING)
        assert _ids(page) == ["many", "few", "low"]

    def test_popularity_is_views_then_likes(self, ranker):
        from search.models import QueryFilters, SortBy

        items = [
            make_item("a", "A", views=10, likes=1),
            make_item("b", "B", views=10, likes=9),
            make_item("c", "C", views=99),
        ]
        page = ranker.rank(items, QueryFilters(), [], sort_by=SortBy.POPULARITY)
        assert _ids(page) == ["c", "b", "a"]

    def test_newest_first(self, ranker, sample_items):
        from search.models import QueryFilters, SortBy

        page = ranker.rank(sample_items[:4], QueryFilters(), [], sort_by=SortBy.NEWEST)
        assert _ids(page) == ["item-4", "item-2", "item-1", "item-3"]

    def test_name_follows_sort_order(self, ranker, sample_items):
        from search.models import QueryFilters, SortBy, SortOrder

        page = ranker.rank(sample_items[:4], QueryFilters(), [], sort_by=SortBy.NAME, sort_order=SortOrder.ASC)
        assert _ids(page) == ["item-3", "item-2", "item-4", "item-1"]

    def test_text_with_non_relevance_sort_keeps_scores(self, ranker, sample_items):
        from search.models import QueryFilters, SortBy, SortOrder

        page = ranker.rank(
            sample_items, QueryFilters(), ["dress"], sort_by=SortBy.PRICE, sort_order=SortOrder.ASC,
        )
        assert _ids(page) == ["item-4", "item-1"]
        assert all(s.score is not None for s in page.items)


class TestPagination:

    def test_slices_and_reports_totals(self, ranker, sample_items):
        from search.models import QueryFilters, SortBy

        page = ranker.rank(sample_items, QueryFilters(), [], sort_by=SortBy.NEWEST, page=2, page_size=2)
        pagination = page.pagination()

        assert len(page.items) == 2
        assert pagination.total == 5
        assert pagination.pages == 3
        assert pagination.current == 2
        assert pagination.has_next is True
        assert pagination.has_prev is True

    def test_page_beyond_range_is_empty(self, ranker, sample_items):
        from search.models import QueryFilters

        page = ranker.rank(sample_items, QueryFilters(), [], page=9, page_size=2)
        assert page.items == []
        assert page.total == 5
        assert page.pagination().has_next is False

    @pytest.mark.parametrize("page_size", [0, -3])
    def test_non_positive_page_size_is_rejected(self, ranker, sample_items, page_size):
        from core.errors import ValidationError
        from search.models import QueryFilters

        with pytest.raises(ValidationError):
            ranker.rank(sample_items, QueryFilters(), [], page_size=page_size)

    def test_page_below_one_is_rejected(self, ranker, sample_items):
        from core.errors import ValidationError
        from search.models import QueryFilters

        with pytest.raises(ValidationError):
            ranker.rank(sample_items, QueryFilters(), [], page=0)

    def test_empty_result_has_zero_pages(self, ranker):
        from search.models import QueryFilters

        pagination = ranker.rank([], QueryFilters(), ["anything"]).pagination()
        assert pagination.pages == 0
        assert pagination.total == 0
        assert pagination.has_next is False
        assert pagination.has_prev is False


# =============================================================================
# Properties
# =============================================================================

@settings(max_examples=60, deadline=None)
@given(n=st.integers(min_value=0, max_value=60), page_size=st.integers(min_value=1, max_value=25))
def test_pages_partition_the_result_set(n, page_size):
    from search.models import QueryFilters, SortBy
    from search.ranker import Ranker

    ranker = Ranker()
    items = [make_item(f"i{k}", f"Item {k}", views=k) for k in range(n)]
    expected_pages = math.ceil(n / page_size)

    seen = []
    for page_no in range(1, expected_pages + 1):
        page = ranker.rank(items, QueryFilters(), [], sort_by=SortBy.POPULARITY, page=page_no, page_size=page_size)
        assert page.pages == expected_pages
        assert page.total == n
        seen.extend(_ids(page))

    assert len(seen) == n
    assert len(set(seen)) == n

    beyond = ranker.rank(items, QueryFilters(), [], page=expected_pages + 1, page_size=page_size)
    assert beyond.items == []
    assert beyond.total == n
