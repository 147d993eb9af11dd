"""
Pydantic Graph Pipelines for CreatorsCook.

This package contains state-driven workflows using pydantic-graph:
- product_ingestion: Scrape a product, aggregate review insights, generate virality packs
"""

from .states import ProductIngestionState
from .dependencies import IngestionDependencies
from .product_ingestion import (
    product_ingestion_graph,
    run_product_ingestion,
    ScrapeProductNode,
    AggregateInsightsNode,
    GenerateAnglesNode,
)

__all__ = [
    # States
    "ProductIngestionState",
    "IngestionDependencies",
    # Product Ingestion
    "product_ingestion_graph",
    "run_product_ingestion",
    "ScrapeProductNode",
    "AggregateInsightsNode",
    "GenerateAnglesNode",
]
