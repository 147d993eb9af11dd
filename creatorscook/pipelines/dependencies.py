"""
Dependencies injected into the product ingestion pipeline.
"""

from dataclasses import dataclass
from typing import Optional

from supabase import Client

from ..core.database import get_supabase_client
from ..services.angle_generation_service import AngleGenerationService
from ..services.angle_reasoning_service import AngleReasoningService
from ..services.completion_provider import CompletionProvider
from ..services.product_container_service import ProductContainerService
from ..services.review_insight_service import ReviewInsightService
from ..services.scraping_service import ScrapingManager


@dataclass
class IngestionDependencies:
    """Services used by the ingestion nodes."""

    containers: ProductContainerService
    scraper: ScrapingManager
    insights: ReviewInsightService
    angles: AngleReasoningService

    @classmethod
    def create(
        cls,
        supabase: Optional[Client] = None,
        scraper: Optional[ScrapingManager] = None,
        provider: Optional[CompletionProvider] = None,
    ) -> "IngestionDependencies":
        """
        Build the dependency set sharing one Supabase client.

        Args:
            supabase: Supabase client (defaults to get_supabase_client())
            scraper: Scraping manager (defaults to Apify + FireCrawl)
            provider: Completion provider for angle generation
        """
        supabase = supabase or get_supabase_client()
        containers = ProductContainerService(supabase)
        insights = ReviewInsightService(supabase)

        return cls(
            containers=containers,
            scraper=scraper or ScrapingManager(),
            insights=insights,
            angles=AngleReasoningService(
                generator=AngleGenerationService(provider=provider),
                containers=containers,
                insights=insights,
                supabase=supabase,
            ),
        )
