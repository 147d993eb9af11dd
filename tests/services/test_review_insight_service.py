"""
Tests for ReviewInsightService - rating mapping, quote rewriting,
aggregation into pain points / delight factors, and persistence.
"""

import pytest
from unittest.mock import MagicMock, call, patch

from creatorscook.services.models import InsightSet, Review, ThemeInsight
from creatorscook.services.review_insight_service import (
    ReviewInsightService,
    rating_to_sentiment,
    transform_quote,
)


def _review(rating, content, title=None):
    return Review(rating=rating, content=content, title=title)


@pytest.fixture
def service():
    return ReviewInsightService(supabase=MagicMock())


# ============================================================================
# rating_to_sentiment
# ============================================================================

class TestRatingToSentiment:

    @pytest.mark.parametrize("rating,expected", [
        (1, -1.0), (2, -0.5), (3, 0.0), (4, 0.5), (5, 1.0),
    ])
    def test_mapping(self, rating, expected):
        assert rating_to_sentiment(rating) == expected

    def test_out_of_range_ratings_are_clamped(self):
        assert rating_to_sentiment(0) == -1.0
        assert rating_to_sentiment(9) == 1.0


# ============================================================================
# transform_quote
# ============================================================================

class TestTransformQuote:

    def test_capitalized_pair_becomes_this_product(self):
        assert transform_quote("I bought Super Greens yesterday") == "I bought this product yesterday"

    def test_all_caps_becomes_this_brand(self):
        assert transform_quote("my NIKE shoes") == "my this brand shoes"

    def test_softens_superlatives(self):
        assert transform_quote("i highly recommend it") == "i would recommend it"
        assert transform_quote("total waste of money") == "total not worth the price"

    def test_title_prefix(self):
        assert transform_quote("works well", title="Great") == "Great: works well"

    def test_empty_content(self):
        assert transform_quote("") == ""


# ============================================================================
# aggregate
# ============================================================================

class TestAggregate:

    def test_taste_scenario(self, service):
        insights = service.aggregate([
            _review(1, "The taste is awful"),
            _review(2, "Taste was gross"),
            _review(5, "Delicious flavor"),
        ])

        assert len(insights.pain_points) == 1
        pain = insights.pain_points[0]
        assert pain.theme == "taste_quality"
        assert pain.mentions == 2
        assert pain.sentiment == pytest.approx(-0.75)

        assert len(insights.delight_factors) == 1
        delight = insights.delight_factors[0]
        assert delight.theme == "taste_quality"
        assert delight.mentions == 1
        assert delight.sentiment == pytest.approx(1.0)

    def test_neutral_reviews_contribute_to_neither_bucket(self, service):
        insights = service.aggregate([_review(3, "The taste is fine")])
        assert insights.is_empty

    def test_empty_input(self, service):
        insights = service.aggregate([])
        assert insights == InsightSet()

    def test_delight_average_is_not_refiltered(self, service):
        insights = service.aggregate([
            _review(4, "Delicious"),
            _review(5, "Delicious"),
            _review(4, "Delicious"),
        ])
        delight = insights.delight_factors[0]
        assert delight.mentions == 3
        assert delight.sentiment == pytest.approx((0.5 + 1.0 + 0.5) / 3)

    def test_at_most_three_quotes(self, service):
        reviews = [_review(1, f"awful taste {i}") for i in range(5)]
        pain = service.aggregate(reviews).pain_points[0]
        assert pain.mentions == 5
        assert pain.example_quotes == ["awful taste 0", "awful taste 1", "awful taste 2"]

    def test_quotes_are_transformed(self, service):
        insights = service.aggregate([_review(1, "I highly recommend avoiding this taste", title="Nope")])
        assert insights.pain_points[0].example_quotes == ["Nope: I would recommend avoiding this taste"]

    def test_sorted_by_mentions_desc_with_stable_ties(self, service):
        insights = service.aggregate([
            _review(1, "awful"),              # taste_quality
            _review(1, "too expensive"),      # price_value
            _review(1, "so expensive"),       # price_value
            _review(1, "the color is ugly"),  # appearance
        ])
        themes = [p.theme for p in insights.pain_points]
        assert themes == ["price_value", "taste_quality", "appearance"]

    def test_unmatched_review_goes_to_general_experience(self, service):
        insights = service.aggregate([_review(5, "Nice")])
        assert [d.theme for d in insights.delight_factors] == ["general_experience"]

    def test_review_counts_once_per_theme(self, service):
        insights = service.aggregate([_review(1, "awful price")])
        themes = {p.theme: p.mentions for p in insights.pain_points}
        assert themes == {"taste_quality": 1, "price_value": 1}

    def test_invariants(self, service):
        reviews = [_review(r, text) for r, text in [
            (1, "Broke after a week, cheap build"),
            (2, "Shipping was slow and the box was damaged"),
            (4, "Easy to use, looks great"),
            (5, "Worth every penny, works great"),
            (5, "Smells fresh"),
            (3, "It is ok"),
        ]]
        insights = service.aggregate(reviews)

        for item in insights.pain_points:
            assert item.sentiment < 0
            assert item.mentions >= 1
            assert len(item.example_quotes) <= 3
        for item in insights.delight_factors:
            assert item.sentiment > 0.3
            assert len(item.example_quotes) <= 3

        for bucket in (insights.pain_points, insights.delight_factors):
            mentions = [i.mentions for i in bucket]
            assert mentions == sorted(mentions, reverse=True)


# ============================================================================
# Persistence
# ============================================================================

class TestStoreInsights:

    def test_replaces_both_tables(self, service):
        insights = InsightSet(
            pain_points=[ThemeInsight(theme="taste_quality", sentiment=-0.75, mentions=2, example_quotes=["gross"])],
            delight_factors=[],
        )

        service.store_insights("container-1", insights)

        db = service.supabase
        assert call("pain_points") in db.table.call_args_list
        assert call("delight_factors") in db.table.call_args_list
        # Both tables are cleared
        assert db.table.return_value.delete.return_value.eq.call_count == 2
        db.table.return_value.delete.return_value.eq.assert_called_with("product_container_id", "container-1")

        # Only the non-empty bucket is inserted
        db.table.return_value.insert.assert_called_once_with([{
            "product_container_id": "container-1",
            "theme": "taste_quality",
            "sentiment": -0.75,
            "mentions": 2,
            "example_quotes": ["gross"],
        }])


class TestGetInsights:

    @pytest.mark.asyncio
    async def test_reads_both_tables(self, service):
        rows = [{"theme": "taste_quality", "sentiment": -0.5, "mentions": 4, "example_quotes": ["a", "b"]}]
        service.supabase.table.return_value.select.return_value.eq.return_value.order.return_value.execute.return_value = MagicMock(data=rows)

        insights = await service.get_insights("container-1")

        assert insights.pain_points[0].theme == "taste_quality"
        assert insights.delight_factors[0].mentions == 4
        service.supabase.table.return_value.select.return_value.eq.return_value.order.assert_called_with("mentions", desc=True)

    def test_falls_back_to_shared_client(self):
        with patch("creatorscook.services.review_insight_service.get_supabase_client") as mock_get:
            service = ReviewInsightService()
            assert service.supabase is mock_get.return_value
