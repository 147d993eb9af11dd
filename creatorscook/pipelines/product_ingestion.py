"""
Product Ingestion Pipeline - Pydantic Graph workflow.

Pipeline: ScrapeProduct → AggregateInsights → GenerateAngles

This pipeline:
1. Scrapes the product page and its reviews (Apify or FireCrawl)
2. Aggregates reviews into per-theme pain points and delight factors
   and replaces the container's stored insights
3. Generates virality packs from the insights and replaces stored packs

The container is expected to be in `scraping` when the graph starts
(see IngestionService.start_ingestion). Any failure marks the container
`failed` with the error message. Work already stored by an earlier node
is not rolled back.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Union

import logfire
from pydantic_graph import BaseNode, End, Graph, GraphRunContext

from ..services.angle_reasoning_service import INSUFFICIENT_DATA_MESSAGE
from ..services.models import ContainerStatus, InsightSet, Review
from ..services.product_container_service import InvalidStatusTransitionError
from .dependencies import IngestionDependencies
from .states import ProductIngestionState

logger = logging.getLogger(__name__)


def _fail(ctx: GraphRunContext[ProductIngestionState, IngestionDependencies], step: str, message: str) -> End[dict]:
    """Record a failure on the state and the container, and end the run."""
    ctx.state.error = message
    ctx.state.current_step = "failed"
    logger.error(f"Ingestion of {ctx.state.container_id} failed at {step}: {message}")

    try:
        ctx.deps.containers.update_status(ctx.state.container_id, ContainerStatus.FAILED, error_message=message)
    except InvalidStatusTransitionError as e:
        # Cancelled while running; keep the cancellation message
        logger.warning(f"Not marking {ctx.state.container_id} failed: {e}")

    return End({
        "status": "error",
        "container_id": ctx.state.container_id,
        "error": message,
        "step": step,
    })


@dataclass
class ScrapeProductNode(BaseNode[ProductIngestionState]):
    """
    Step 1: Scrape product details and reviews.

    On success the container moves to `analyzing` with the scraped
    name, description and first image.
    """

    async def run(
        self,
        ctx: GraphRunContext[ProductIngestionState, IngestionDependencies]
    ) -> Union["AggregateInsightsNode", End[dict]]:
        logger.info(f"Step 1: Scraping {ctx.state.product_url}")
        ctx.state.current_step = "scraping"

        try:
            with logfire.span("ingestion.scrape", container_id=ctx.state.container_id):
                result = await asyncio.to_thread(ctx.deps.scraper.scrape_product, ctx.state.product_url)

            if not result.success or result.product_data is None:
                return _fail(ctx, "scrape", result.error or "Scraping failed")

            product = result.product_data
            ctx.state.reviews = [r.model_dump() for r in result.reviews]
            ctx.state.review_count = len(result.reviews)
            ctx.state.warning = result.warning

            ctx.deps.containers.update_status(
                ctx.state.container_id,
                ContainerStatus.ANALYZING,
                extra={
                    "product_name": product.name,
                    "product_description": product.description,
                    "product_image_url": product.images[0] if product.images else None,
                },
            )

            logger.info(f"Scraped {ctx.state.review_count} reviews for {product.name}")
            return AggregateInsightsNode()

        except Exception as e:
            return _fail(ctx, "scrape", str(e))


@dataclass
class AggregateInsightsNode(BaseNode[ProductIngestionState]):
    """
    Step 2: Aggregate reviews into pain points and delight factors.

    No reviews, or reviews that produce no insights, fail the run as
    insufficient data.
    """

    async def run(
        self,
        ctx: GraphRunContext[ProductIngestionState, IngestionDependencies]
    ) -> Union["GenerateAnglesNode", End[dict]]:
        logger.info(f"Step 2: Aggregating {ctx.state.review_count} reviews")
        ctx.state.current_step = "aggregating"

        try:
            reviews = [Review(**r) for r in ctx.state.reviews]
            if not reviews:
                return _fail(ctx, "aggregate", INSUFFICIENT_DATA_MESSAGE)

            with logfire.span("ingestion.aggregate", review_count=len(reviews)):
                insights = ctx.deps.insights.aggregate(reviews)

            if insights.is_empty:
                return _fail(ctx, "aggregate", INSUFFICIENT_DATA_MESSAGE)

            ctx.deps.insights.store_insights(ctx.state.container_id, insights)

            ctx.state.insights = insights.model_dump()
            ctx.state.pain_point_count = len(insights.pain_points)
            ctx.state.delight_factor_count = len(insights.delight_factors)
            # Reviews are not kept past aggregation
            ctx.state.reviews = []

            logger.info(
                f"Stored {ctx.state.pain_point_count} pain points and "
                f"{ctx.state.delight_factor_count} delight factors"
            )
            return GenerateAnglesNode()

        except Exception as e:
            return _fail(ctx, "aggregate", str(e))


@dataclass
class GenerateAnglesNode(BaseNode[ProductIngestionState]):
    """
    Step 3: Generate virality packs and complete the container.

    The scraper warning, if any, is kept in error_message on the
    completed container.
    """

    async def run(
        self,
        ctx: GraphRunContext[ProductIngestionState, IngestionDependencies]
    ) -> End[dict]:
        logger.info(f"Step 3: Generating angles for {ctx.state.container_id}")
        ctx.state.current_step = "generating"

        try:
            with logfire.span("ingestion.generate_angles", container_id=ctx.state.container_id):
                analysis = await ctx.deps.angles.generate_for_container(
                    ctx.state.container_id,
                    insights=InsightSet(**ctx.state.insights),
                )

            ctx.state.pack_count = len(analysis.virality_packs)
            ctx.state.used_fallback = analysis.used_fallback

            ctx.deps.containers.update_status(
                ctx.state.container_id,
                ContainerStatus.COMPLETED,
                error_message=ctx.state.warning,
                extra={"analysis_job_id": str(uuid.uuid4())},
            )

            ctx.state.current_step = "complete"
            logger.info(f"Ingestion complete: {ctx.state.pack_count} packs for {ctx.state.container_id}")

            return End({
                "status": "success",
                "container_id": ctx.state.container_id,
                "review_count": ctx.state.review_count,
                "pain_points": ctx.state.pain_point_count,
                "delight_factors": ctx.state.delight_factor_count,
                "pack_count": ctx.state.pack_count,
                "used_fallback": ctx.state.used_fallback,
                "warning": ctx.state.warning,
            })

        except Exception as e:
            return _fail(ctx, "generate_angles", str(e))


# Build the graph
product_ingestion_graph = Graph(
    nodes=(
        ScrapeProductNode,
        AggregateInsightsNode,
        GenerateAnglesNode,
    ),
    name="product_ingestion"
)


async def run_product_ingestion(
    container_id: str,
    product_url: str,
    job_id: str = None,
    deps: IngestionDependencies = None,
) -> dict:
    """
    Run the product ingestion pipeline for one container.

    Args:
        container_id: Product container UUID (already in `scraping`)
        product_url: Product URL to scrape
        job_id: scraping_job_id of this run
        deps: Pipeline dependencies (defaults to IngestionDependencies.create())

    Returns:
        Pipeline result dict with "status" of "success" or "error"
    """
    deps = deps or IngestionDependencies.create()

    result = await product_ingestion_graph.run(
        ScrapeProductNode(),
        state=ProductIngestionState(
            container_id=container_id,
            product_url=product_url,
            job_id=job_id,
        ),
        deps=deps
    )

    return result.output
