"""
AngleReasoningService - Derive and manage virality packs for a container.

Reads a container's stored insights, asks AngleGenerationService for a
virality analysis, and replaces the container's packs with the result.
Regeneration re-derives packs from the existing insights (optionally
narrowed to some themes, with tone/length guidance); it never re-scrapes
or re-aggregates reviews.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from ..core.database import get_supabase_client
from .angle_generation_service import AngleGenerationService, build_custom_instructions
from .models import (
    ContainerStatus,
    InsightSet,
    ProductContainer,
    ProductContext,
    ViralityAnalysis,
    ViralityPack,
)
from .product_container_service import ProductContainerService
from .review_insight_service import ReviewInsightService

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA_MESSAGE = "Insufficient customer data to generate insights"

# (keywords, audience) checked in order against the product's themes and description
AUDIENCE_RULES = [
    (("health", "wellness", "fitness"), "Health-conscious individuals looking to improve their wellness"),
    (("beauty", "skin", "makeup"), "Beauty enthusiasts seeking effective skincare solutions"),
    (("tech", "gadget", "electronic", "battery"), "Tech-savvy consumers interested in innovative gadgets"),
    (("workout", "gym"), "Fitness enthusiasts and gym-goers"),
    (("home", "kitchen", "decor"), "Homeowners interested in lifestyle improvements"),
]
DEFAULT_AUDIENCE = "General consumers looking for quality products"


class InsufficientDataError(Exception):
    """Raised when a container has no insights to generate angles from."""

    def __init__(self, message: str = INSUFFICIENT_DATA_MESSAGE):
        super().__init__(message)


class AngleReasoningError(Exception):
    """Raised when a container is not in a state that allows the operation."""
    pass


def infer_target_audience(container: ProductContainer, insights: InsightSet) -> str:
    """Guess a target audience from the product's themes and description."""
    haystack = " ".join(
        [i.theme for i in insights.pain_points]
        + [i.theme for i in insights.delight_factors]
        + [container.product_name or "", container.product_description or ""]
    ).lower()

    for keywords, audience in AUDIENCE_RULES:
        if any(k in haystack for k in keywords):
            return audience
    return DEFAULT_AUDIENCE


def filter_by_focus(insights: InsightSet, focus_areas: Optional[List[str]]) -> InsightSet:
    """Keep only insights whose theme contains one of the focus areas (case-insensitive)."""
    areas = [a.lower() for a in focus_areas or [] if a and a.strip()]
    if not areas:
        return insights

    def keep(theme: str) -> bool:
        return any(area in theme.lower() for area in areas)

    return InsightSet(
        pain_points=[i for i in insights.pain_points if keep(i.theme)],
        delight_factors=[i for i in insights.delight_factors if keep(i.theme)],
    )


class AngleReasoningService:
    """Generates, stores and summarizes virality packs per container."""

    def __init__(
        self,
        generator: AngleGenerationService,
        containers: Optional[ProductContainerService] = None,
        insights: Optional[ReviewInsightService] = None,
        supabase: Optional[Client] = None,
    ):
        self.supabase = supabase or get_supabase_client()
        self.generator = generator
        self.containers = containers or ProductContainerService(self.supabase)
        self.insights = insights or ReviewInsightService(self.supabase)

    def _product_context(self, container: ProductContainer, insights: InsightSet) -> ProductContext:
        return ProductContext(
            name=container.product_name or "Unknown product",
            description=container.product_description or "",
            platform="tiktok",
            target_audience=infer_target_audience(container, insights),
        )

    async def generate_for_container(
        self,
        container_id: str,
        insights: Optional[InsightSet] = None,
        custom_instructions: Optional[str] = None,
    ) -> ViralityAnalysis:
        """
        Generate virality packs for a container and replace its stored packs.

        Args:
            container_id: Container UUID
            insights: Insights to use; fetched from storage when omitted
            custom_instructions: Extra prompt instructions

        Raises:
            InsufficientDataError: No pain points and no delight factors
            CompletionError: The completion provider failed
        """
        if insights is None:
            container, insights = await asyncio.gather(
                asyncio.to_thread(self.containers.get_container, container_id),
                self.insights.get_insights(container_id),
            )
        else:
            container = self.containers.get_container(container_id)

        if insights.is_empty:
            raise InsufficientDataError()

        analysis = await self.generator.generate(
            insights,
            self._product_context(container, insights),
            custom_instructions=custom_instructions,
        )

        self.store_packs(container_id, analysis.virality_packs)
        return analysis

    def store_packs(self, container_id: str, packs: List[ViralityPack]) -> None:
        """Replace all packs for a container (delete, then insert)."""
        self.supabase.table("virality_packs").delete().eq("product_container_id", container_id).execute()

        if packs:
            rows = [{"product_container_id": container_id, **pack.model_dump()} for pack in packs]
            self.supabase.table("virality_packs").insert(rows).execute()

        logger.info(f"Stored {len(packs)} virality packs for container {container_id}")

    def get_virality_packs(self, container_id: str) -> List[ViralityPack]:
        result = self.supabase.table("virality_packs")\
            .select("*")\
            .eq("product_container_id", container_id)\
            .order("virality_score", desc=True)\
            .execute()

        return [ViralityPack(**row) for row in result.data or []]

    async def regenerate_packs(
        self,
        container_id: str,
        focus_areas: Optional[List[str]] = None,
        tone: Optional[str] = None,
        target_length: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> ViralityAnalysis:
        """
        Re-derive packs from existing insights.

        Args:
            container_id: Container UUID
            focus_areas: Theme substrings to restrict the insights to
            tone: e.g. humorous, serious, educational, inspirational
            target_length: short, medium or long
            user_id: When given, the container must belong to this user

        Raises:
            AngleReasoningError: Container has not completed ingestion
            InsufficientDataError: Nothing left after focus filtering
        """
        container = self.containers.get_container(container_id, user_id)
        if container.status != ContainerStatus.COMPLETED:
            raise AngleReasoningError(
                f"Product analysis must be completed before regenerating packs (status: {container.status.value})"
            )

        insights = filter_by_focus(await self.insights.get_insights(container_id), focus_areas)
        if insights.is_empty:
            raise InsufficientDataError("No insights match the requested focus areas")

        logger.info(f"Regenerating packs for {container_id} (focus={focus_areas}, tone={tone}, length={target_length})")
        return await self.generate_for_container(
            container_id,
            insights=insights,
            custom_instructions=build_custom_instructions(tone, target_length),
        )

    def get_virality_analytics(self, container_id: str) -> Dict[str, Any]:
        """Summarize a container's packs: averages, top angles, sentiment split."""
        packs = self.supabase.table("virality_packs")\
            .select("angle_name, sentiment_score, virality_score")\
            .eq("product_container_id", container_id)\
            .execute().data or []

        distribution = {"positive": 0, "neutral": 0, "negative": 0}
        if not packs:
            return {
                "total_packs": 0,
                "average_sentiment_score": 0.0,
                "average_virality_score": 0.0,
                "top_performing_angles": [],
                "sentiment_distribution": distribution,
            }

        for pack in packs:
            sentiment = pack.get("sentiment_score") or 0
            if sentiment > 0.1:
                distribution["positive"] += 1
            elif sentiment < -0.1:
                distribution["negative"] += 1
            else:
                distribution["neutral"] += 1

        ranked = sorted(packs, key=lambda p: p.get("virality_score") or 0, reverse=True)

        return {
            "total_packs": len(packs),
            "average_sentiment_score": sum(p.get("sentiment_score") or 0 for p in packs) / len(packs),
            "average_virality_score": sum(p.get("virality_score") or 0 for p in packs) / len(packs),
            "top_performing_angles": [p["angle_name"] for p in ranked[:3]],
            "sentiment_distribution": distribution,
        }
