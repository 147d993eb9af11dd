"""
Pipeline state dataclasses for Pydantic Graph workflows.

State is passed through pipeline nodes, accumulating data at each step.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class ProductIngestionState:
    """
    State for the product ingestion pipeline.

    Tracks data through the pipeline:
    ScrapeProduct → AggregateInsights → GenerateAngles

    Attributes:
        container_id: Product container UUID
        product_url: URL to scrape
        job_id: scraping_job_id assigned when the run started
        reviews: Scraped reviews as dicts (transient, never persisted)
        warning: Scraper warning, recorded on the container when done
        review_count: Number of reviews scraped
        insights: Aggregated InsightSet as a dict
        pain_point_count: Number of pain-point themes stored
        delight_factor_count: Number of delight themes stored
        pack_count: Number of virality packs stored
        used_fallback: True when the generator fell back to its default pack
        current_step: Current pipeline step for tracking
        error: Error message if pipeline failed
    """

    # Input parameters
    container_id: str
    product_url: str
    job_id: Optional[str] = None

    # Populated by ScrapeProductNode
    reviews: List[Dict] = field(default_factory=list)
    warning: Optional[str] = None
    review_count: int = 0

    # Populated by AggregateInsightsNode
    insights: Optional[Dict] = None
    pain_point_count: int = 0
    delight_factor_count: int = 0

    # Populated by GenerateAnglesNode
    pack_count: int = 0
    used_fallback: bool = False

    # Tracking
    current_step: str = "pending"
    error: Optional[str] = None
