"""
Tests for the product ingestion graph - each node in isolation and
full runs with mocked services.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from creatorscook.pipelines.dependencies import IngestionDependencies
from creatorscook.pipelines.product_ingestion import (
    AggregateInsightsNode,
    GenerateAnglesNode,
    ScrapeProductNode,
    run_product_ingestion,
)
from creatorscook.pipelines.states import ProductIngestionState
from creatorscook.services.angle_generation_service import fallback_analysis
from creatorscook.services.models import (
    ContainerStatus,
    InsightSet,
    Platform,
    Review,
    ScrapedProductData,
    ScrapingResult,
    ThemeInsight,
)
from creatorscook.services.product_container_service import InvalidStatusTransitionError
from creatorscook.services.review_insight_service import ReviewInsightService
from pydantic_graph import End


URL = "https://www.amazon.com/dp/B0DJWSV1J3"


def _scrape_ok(reviews=None, warning=None):
    return ScrapingResult(
        success=True,
        product_data=ScrapedProductData(
            name="Super Greens",
            description="Daily greens powder",
            images=["https://img/1.png", "https://img/2.png"],
            platform=Platform.AMAZON,
            original_url=URL,
        ),
        reviews=reviews if reviews is not None else [
            Review(rating=1, content="Tastes like grass and it is gross"),
            Review(rating=5, content="Gave me so much energy, love it"),
        ],
        warning=warning,
    )


def _make_deps():
    """Mocked services; aggregation uses the real ReviewInsightService logic."""
    insights = ReviewInsightService(supabase=MagicMock())
    insights.store_insights = MagicMock()

    deps = IngestionDependencies(
        containers=MagicMock(),
        scraper=MagicMock(),
        insights=insights,
        angles=MagicMock(),
    )
    deps.scraper.scrape_product.return_value = _scrape_ok()
    deps.angles.generate_for_container = AsyncMock(return_value=fallback_analysis())
    return deps


def _make_state(**overrides):
    defaults = {"container_id": "container-1", "product_url": URL, "job_id": "job-1"}
    defaults.update(overrides)
    return ProductIngestionState(**defaults)


def _make_ctx(state, deps=None):
    """Create a mock GraphRunContext."""
    ctx = MagicMock()
    ctx.state = state
    ctx.deps = deps or _make_deps()
    return ctx


def _status_calls(deps):
    return [c.args[1] for c in deps.containers.update_status.call_args_list]


# ============================================================================
# ScrapeProductNode
# ============================================================================

class TestScrapeProductNode:

    @pytest.mark.asyncio
    async def test_success_moves_to_analyzing(self):
        ctx = _make_ctx(_make_state())

        next_node = await ScrapeProductNode().run(ctx)

        assert isinstance(next_node, AggregateInsightsNode)
        assert ctx.state.review_count == 2
        assert ctx.state.reviews[0]["rating"] == 1
        ctx.deps.containers.update_status.assert_called_once_with(
            "container-1",
            ContainerStatus.ANALYZING,
            extra={
                "product_name": "Super Greens",
                "product_description": "Daily greens powder",
                "product_image_url": "https://img/1.png",
            },
        )

    @pytest.mark.asyncio
    async def test_scrape_failure_marks_failed(self):
        ctx = _make_ctx(_make_state())
        ctx.deps.scraper.scrape_product.return_value = ScrapingResult(success=False, error="Amazon blocked the request")

        result = await ScrapeProductNode().run(ctx)

        assert isinstance(result, End)
        assert result.data == {
            "status": "error",
            "container_id": "container-1",
            "error": "Amazon blocked the request",
            "step": "scrape",
        }
        ctx.deps.containers.update_status.assert_called_once_with(
            "container-1", ContainerStatus.FAILED, error_message="Amazon blocked the request"
        )
        assert ctx.state.current_step == "failed"

    @pytest.mark.asyncio
    async def test_scraper_exception_marks_failed(self):
        ctx = _make_ctx(_make_state())
        ctx.deps.scraper.scrape_product.side_effect = RuntimeError("network down")

        result = await ScrapeProductNode().run(ctx)

        assert result.data["error"] == "network down"
        assert _status_calls(ctx.deps) == [ContainerStatus.FAILED]

    @pytest.mark.asyncio
    async def test_keeps_warning(self):
        ctx = _make_ctx(_make_state())
        ctx.deps.scraper.scrape_product.return_value = _scrape_ok(warning="Limited scraping capabilities")

        await ScrapeProductNode().run(ctx)

        assert ctx.state.warning == "Limited scraping capabilities"


# ============================================================================
# AggregateInsightsNode
# ============================================================================

class TestAggregateInsightsNode:

    @pytest.mark.asyncio
    async def test_stores_insights_and_drops_reviews(self):
        reviews = [r.model_dump() for r in _scrape_ok().reviews]
        ctx = _make_ctx(_make_state(reviews=reviews, review_count=2))

        next_node = await AggregateInsightsNode().run(ctx)

        assert isinstance(next_node, GenerateAnglesNode)
        assert ctx.state.pain_point_count == 1
        assert ctx.state.delight_factor_count == 1
        assert ctx.state.reviews == []
        stored_id, stored = ctx.deps.insights.store_insights.call_args.args
        assert stored_id == "container-1"
        assert stored.pain_points[0].theme == "taste_quality"
        assert InsightSet(**ctx.state.insights) == stored

    @pytest.mark.asyncio
    async def test_no_reviews_is_insufficient_data(self):
        ctx = _make_ctx(_make_state(reviews=[]))

        result = await AggregateInsightsNode().run(ctx)

        assert result.data["error"] == "Insufficient customer data to generate insights"
        assert result.data["step"] == "aggregate"
        ctx.deps.insights.store_insights.assert_not_called()

    @pytest.mark.asyncio
    async def test_only_neutral_reviews_is_insufficient_data(self):
        reviews = [Review(rating=3, content="It is fine").model_dump()]
        ctx = _make_ctx(_make_state(reviews=reviews))

        result = await AggregateInsightsNode().run(ctx)

        assert result.data["status"] == "error"
        assert _status_calls(ctx.deps) == [ContainerStatus.FAILED]


# ============================================================================
# GenerateAnglesNode
# ============================================================================

class TestGenerateAnglesNode:

    def _insights(self):
        return InsightSet(pain_points=[ThemeInsight(theme="taste_quality", sentiment=-1.0, mentions=1)])

    @pytest.mark.asyncio
    async def test_completes_container(self):
        state = _make_state(insights=self._insights().model_dump(), review_count=4, pain_point_count=1)
        ctx = _make_ctx(state)

        result = await GenerateAnglesNode().run(ctx)

        assert result.data["status"] == "success"
        assert result.data["pack_count"] == 1
        assert result.data["used_fallback"] is True
        assert result.data["review_count"] == 4

        call = ctx.deps.angles.generate_for_container.call_args
        assert call.args == ("container-1",)
        assert call.kwargs["insights"] == self._insights()

        status_call = ctx.deps.containers.update_status.call_args
        assert status_call.args == ("container-1", ContainerStatus.COMPLETED)
        assert status_call.kwargs["error_message"] is None
        assert status_call.kwargs["extra"]["analysis_job_id"]

    @pytest.mark.asyncio
    async def test_generation_error_marks_failed(self):
        ctx = _make_ctx(_make_state(insights=self._insights().model_dump()))
        ctx.deps.angles.generate_for_container.side_effect = RuntimeError("Completion timed out after 90s")

        result = await GenerateAnglesNode().run(ctx)

        assert result.data["step"] == "generate_angles"
        assert result.data["error"] == "Completion timed out after 90s"
        assert _status_calls(ctx.deps) == [ContainerStatus.FAILED]

    @pytest.mark.asyncio
    async def test_cancelled_container_keeps_its_message(self):
        ctx = _make_ctx(_make_state(insights=self._insights().model_dump()))
        ctx.deps.containers.update_status.side_effect = InvalidStatusTransitionError(
            ContainerStatus.FAILED, ContainerStatus.COMPLETED
        )

        result = await GenerateAnglesNode().run(ctx)

        # COMPLETED is rejected, then FAILED is rejected too; neither raises
        assert result.data["status"] == "error"
        assert ctx.deps.containers.update_status.call_count == 2


# ============================================================================
# Full graph runs
# ============================================================================

class TestRunProductIngestion:

    @pytest.mark.asyncio
    async def test_success(self):
        deps = _make_deps()

        result = await run_product_ingestion("container-1", URL, job_id="job-1", deps=deps)

        assert result == {
            "status": "success",
            "container_id": "container-1",
            "review_count": 2,
            "pain_points": 1,
            "delight_factors": 1,
            "pack_count": 1,
            "used_fallback": True,
            "warning": None,
        }
        assert _status_calls(deps) == [ContainerStatus.ANALYZING, ContainerStatus.COMPLETED]
        deps.scraper.scrape_product.assert_called_once_with(URL)

    @pytest.mark.asyncio
    async def test_warning_is_kept_on_completion(self):
        deps = _make_deps()
        deps.scraper.scrape_product.return_value = _scrape_ok(warning="Results may be incomplete.")

        result = await run_product_ingestion("container-1", URL, deps=deps)

        assert result["warning"] == "Results may be incomplete."
        assert deps.containers.update_status.call_args.kwargs["error_message"] == "Results may be incomplete."

    @pytest.mark.asyncio
    async def test_no_reviews_stops_before_generation(self):
        deps = _make_deps()
        deps.scraper.scrape_product.return_value = _scrape_ok(reviews=[])

        result = await run_product_ingestion("container-1", URL, deps=deps)

        assert result["status"] == "error"
        assert result["error"] == "Insufficient customer data to generate insights"
        assert _status_calls(deps) == [ContainerStatus.ANALYZING, ContainerStatus.FAILED]
        deps.angles.generate_for_container.assert_not_called()

    @pytest.mark.asyncio
    async def test_scrape_failure_stops_immediately(self):
        deps = _make_deps()
        deps.scraper.scrape_product.return_value = ScrapingResult(success=False, error="Invalid URL protocol")

        result = await run_product_ingestion("container-1", URL, deps=deps)

        assert result["step"] == "scrape"
        assert _status_calls(deps) == [ContainerStatus.FAILED]
        deps.insights.store_insights.assert_not_called()
