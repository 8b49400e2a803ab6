"""
Tests for RelevanceScorer.
"""

import pytest
from hypothesis import given, settings, strategies as st

from conftest import make_item


@pytest.fixture
def scorer():
    from search.scorer import RelevanceScorer
    return RelevanceScorer()


class TestTermScore:

    def test_field_weights(self, scorer):
        item = make_item(
            "x", "Linen Blazer", brand="Mango", category="women",
            subcategory="jackets", description="light blazer", tags=["linen", "summer"],
        )
        # name 3.0 + prefix 1.0 + tag 2.0
        assert scorer.term_score(item, "linen") == pytest.approx(6.0)
        # name 3.0 + description 1.5
        assert scorer.term_score(item, "blazer") == pytest.approx(4.5)
        assert scorer.term_score(item, "mango") == pytest.approx(2.5)
        assert scorer.term_score(item, "women") == pytest.approx(2.0)
        assert scorer.term_score(item, "jackets") == pytest.approx(1.5)
        assert scorer.term_score(item, "velvet") == 0.0

    def test_exact_name_bonus(self, scorer):
        item = make_item("x", "Scarf")
        # name 3.0 + exact 2.0 + prefix 1.0
        assert scorer.term_score(item, "scarf") == pytest.approx(6.0)

    def test_each_matching_tag_counts(self, scorer):
        item = make_item("x", "Top", tags=["red", "dark red", "blue"])
        assert scorer.term_score(item, "red") == pytest.approx(4.0)


class TestPopularityBoost:

    def test_boost_formula(self, scorer):
        item = make_item(
            "x", "Top", views=1000, likes=10, purchases=5, rating_average=4.0,
            inventory_quantity=1, price=100, sale_price=80,
        )
        # 1.0 + 0.1 + 0.5 + 2.0 + in stock 0.5 + on sale 0.3
        assert scorer.popularity_boost(item) == pytest.approx(4.4)

    def test_sale_price_above_list_price_is_not_on_sale(self, scorer):
        item = make_item("x", "Top", price=100, sale_price=120)
        assert scorer.popularity_boost(item) == 0.0

    def test_empty_terms_is_pure_popularity(self, scorer, sample_items):
        for item in sample_items:
            assert scorer.score(item, []) == pytest.approx(scorer.popularity_boost(item))


class TestScenario:

    def test_red_dress_outscores_blue_shirt(self, scorer):
        dress = make_item("d", "Red Silk Dress", brand="Zara", tags=["red", "silk"])
        shirt = make_item("s", "Blue Cotton Shirt", brand="Zara")

        terms = ["red", "dress"]
        assert scorer.score(dress, terms) > scorer.score(shirt, terms)

    def test_term_order_does_not_matter(self, scorer, sample_items):
        for item in sample_items:
            assert scorer.score(item, ["red", "silk", "dress"]) == pytest.approx(
                scorer.score(item, ["dress", "red", "silk"])
            )


# =============================================================================
# Properties
# =============================================================================

words = st.sampled_from(["red", "silk", "dress", "zara", "cotton", "shirt", "blue"])


@settings(max_examples=100, deadline=None)
@given(
    name_words=st.lists(words, min_size=1, max_size=3),
    terms=st.lists(words, min_size=1, max_size=4),
    extra_tag=words,
    views=st.integers(min_value=0, max_value=10_000),
)
def test_score_is_non_negative_and_grows_with_matches(name_words, terms, extra_tag, views):
    from search.scorer import RelevanceScorer

    scorer = RelevanceScorer()
    item = make_item("x", " ".join(name_words), views=views)
    richer = make_item("x", " ".join(name_words), views=views, tags=[extra_tag])

    assert scorer.score(item, terms) >= 0
    # Adding a field that may match never lowers the score
    assert scorer.score(richer, terms) >= scorer.score(item, terms)
