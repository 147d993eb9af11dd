"""
Services layer for CreatorsCook.

Provides separation between scraping (ScrapingManager), review insight
aggregation (ReviewInsightService), AI generation (AngleGenerationService),
compliance checks (ComplianceService) and persistence of containers,
scripts and credits.
"""

from .models import (
    Review,
    ScrapingResult,
    ThemeInsight,
    InsightSet,
    ComplianceFlag,
    BrandRuleSet,
    ScriptAnalysisResult,
    ScriptSuggestion,
    ViralityPack,
    ViralityAnalysis,
    ProductContainer,
    ContainerStatus,
    Platform,
)

from .review_insight_service import ReviewInsightService
from .compliance_service import ComplianceService
from .angle_generation_service import AngleGenerationService
from .scraping_service import ScrapingManager
from .product_container_service import ProductContainerService
from .script_service import ScriptService
from .credit_service import CreditService
from .angle_reasoning_service import AngleReasoningService

__all__ = [
    "Review",
    "ScrapingResult",
    "ThemeInsight",
    "InsightSet",
    "ComplianceFlag",
    "BrandRuleSet",
    "ScriptAnalysisResult",
    "ScriptSuggestion",
    "ViralityPack",
    "ViralityAnalysis",
    "ProductContainer",
    "ContainerStatus",
    "Platform",
    "ReviewInsightService",
    "ComplianceService",
    "AngleGenerationService",
    "ScrapingManager",
    "ProductContainerService",
    "ScriptService",
    "CreditService",
    "AngleReasoningService",
]
