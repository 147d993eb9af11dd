"""
Pydantic models for CreatorsCook services.

These models provide validated data structures for:
- Scraped product data and customer reviews (Review, ScrapingResult)
- Aggregated review insights (ThemeInsight, InsightSet)
- Script compliance (ComplianceFlag, BrandRuleSet, ScriptAnalysisResult)
- Generated creative angles (ViralityPack, ViralityAnalysis, ScriptSuggestion)
- Product containers and their lifecycle (ProductContainer, ContainerStatus)

All models use Pydantic v2.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


# ============================================================================
# Enums
# ============================================================================

class Theme(str, Enum):
    """Fixed review-theme taxonomy."""
    TASTE_QUALITY = "taste_quality"
    PRICE_VALUE = "price_value"
    EFFECTIVENESS = "effectiveness"
    BUILD_QUALITY = "build_quality"
    CUSTOMER_SERVICE = "customer_service"
    SHIPPING_DELIVERY = "shipping_delivery"
    EASE_OF_USE = "ease_of_use"
    SIZE_FIT = "size_fit"
    BATTERY_LIFE = "battery_life"
    APPEARANCE = "appearance"
    SMELL_AROMA = "smell_aroma"
    GENERAL_EXPERIENCE = "general_experience"


class Platform(str, Enum):
    """Source platform of a product URL."""
    TIKTOK_SHOP = "tiktok_shop"
    AMAZON = "amazon"
    ALIEXPRESS = "aliexpress"
    EXTERNAL = "external"


class ContainerStatus(str, Enum):
    """Lifecycle of a product container's ingestion run."""
    PENDING = "pending"
    SCRAPING = "scraping"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    FAILED = "failed"


class FlagType(str, Enum):
    PLATFORM_VIOLATION = "platform_violation"
    BRAND_RULE = "brand_rule"
    SUGGESTION = "suggestion"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ScriptStatus(str, Enum):
    DRAFT = "draft"
    REVIEWING = "reviewing"
    APPROVED = "approved"
    REJECTED = "rejected"


class SuggestionType(str, Enum):
    HOOK = "hook"
    TRANSITION = "transition"
    CALL_TO_ACTION = "call_to_action"
    COMPLIANCE_FIX = "compliance_fix"


# ============================================================================
# Reviews & Scraping
# ============================================================================

class Review(BaseModel):
    """
    A single customer review as returned by a scraper.

    Consumed once per ingestion run and never persisted; only the
    derived insights are stored.
    """
    rating: int = Field(..., description="Star rating, 1-5")
    content: str = Field(default="", description="Review body")
    title: Optional[str] = Field(None, description="Review headline")
    author: Optional[str] = Field(None, description="Reviewer display name")
    verified: bool = Field(default=False, description="Verified purchase")
    date: Optional[str] = Field(None, description="Review date as reported by the source")
    helpful_count: int = Field(default=0, ge=0, description="Helpful votes")


class ScrapedProductData(BaseModel):
    """Product page details returned by a scraper."""
    name: str
    description: str = ""
    images: List[str] = Field(default_factory=list)
    price: Optional[float] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    platform: Platform = Platform.EXTERNAL
    original_url: str = ""


class ScrapingResult(BaseModel):
    """Outcome of scraping one product URL."""
    success: bool
    product_data: Optional[ScrapedProductData] = None
    reviews: List[Review] = Field(default_factory=list)
    error: Optional[str] = None
    warning: Optional[str] = None


# ============================================================================
# Review Insights
# ============================================================================

class ThemeInsight(BaseModel):
    """
    Aggregated pain point or delight factor for one theme.

    Pain points carry negative sentiment and delight factors positive;
    the routing threshold is applied per review during aggregation.
    """
    theme: str = Field(..., description="Theme tag, see Theme")
    sentiment: float = Field(..., ge=-1.0, le=1.0, description="Average sentiment of contributing reviews")
    mentions: int = Field(..., ge=1, description="Number of contributing reviews")
    example_quotes: List[str] = Field(default_factory=list, max_length=3)


class InsightSet(BaseModel):
    """Pain points and delight factors from one ingestion run."""
    pain_points: List[ThemeInsight] = Field(default_factory=list)
    delight_factors: List[ThemeInsight] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.pain_points and not self.delight_factors


# ============================================================================
# Compliance
# ============================================================================

class FlagPosition(BaseModel):
    """Character span of a flagged match in the scanned text."""
    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)


class ComplianceFlag(BaseModel):
    """A policy or brand-rule concern, optionally anchored to a text span."""
    type: FlagType
    severity: Severity
    message: str
    suggestion: Optional[str] = None
    position: Optional[FlagPosition] = None


class BrandRuleSet(BaseModel):
    """Brand-specific keyword rules owned by a product container."""
    forbidden_keywords: List[str] = Field(default_factory=list)
    required_keywords: List[str] = Field(default_factory=list)
    custom_rules: List[str] = Field(default_factory=list)

    @field_validator("forbidden_keywords", "required_keywords", "custom_rules", mode="before")
    @classmethod
    def drop_blank_entries(cls, v):
        if v is None:
            return []
        return [k for k in v if isinstance(k, str) and k.strip()]


class ScriptSuggestion(BaseModel):
    """AI-generated replacement suggestion for a flagged script."""
    type: SuggestionType = SuggestionType.COMPLIANCE_FIX
    content: str
    reason: str
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)


class ScriptAnalysisResult(BaseModel):
    """Full compliance analysis of a script."""
    compliance_flags: List[ComplianceFlag] = Field(default_factory=list)
    suggestions: List[ScriptSuggestion] = Field(default_factory=list)
    overall_compliance_score: float = Field(..., ge=0.0, le=1.0)
    risk_level: RiskLevel


class Script(BaseModel):
    """A creator script attached to a product container."""
    id: Optional[str] = None
    product_container_id: str
    virality_pack_id: Optional[str] = None
    user_id: str
    title: str
    content: str
    status: ScriptStatus = ScriptStatus.DRAFT
    compliance_flags: List[ComplianceFlag] = Field(default_factory=list)


# ============================================================================
# Virality Packs
# ============================================================================

class ViralityPack(BaseModel):
    """A generated creative angle for short-form video."""
    angle_name: str
    core_angle: str
    hook_options: List[str] = Field(..., min_length=3, max_length=3)
    full_script: str
    visual_pacing_notes: str = ""
    audio_suggestion: str = ""
    sentiment_score: float = Field(default=0.0, ge=-1.0, le=1.0)
    virality_score: float = Field(default=0.5, ge=0.0, le=1.0)


class ViralityAnalysis(BaseModel):
    """
    Result of one angle generation request.

    used_fallback is True when the model output could not be parsed and
    the built-in fallback analysis was returned instead.
    """
    overall_sentiment: float = Field(..., ge=-1.0, le=1.0)
    overall_virality: float = Field(..., ge=0.0, le=1.0)
    key_insights: List[str] = Field(default_factory=list)
    virality_packs: List[ViralityPack] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    used_fallback: bool = False


class ProductContext(BaseModel):
    """Product details embedded in generation prompts."""
    name: str
    description: str = ""
    platform: str = "tiktok"
    target_audience: Optional[str] = None


# ============================================================================
# Product Containers
# ============================================================================

class ProductContainer(BaseModel):
    """A submitted product URL and the state of its analysis."""
    id: str
    user_id: str
    product_url: str
    platform: Platform
    status: ContainerStatus = ContainerStatus.PENDING
    product_name: Optional[str] = None
    product_description: Optional[str] = None
    product_image_url: Optional[str] = None
    error_message: Optional[str] = None
    scraping_job_id: Optional[str] = None
    analysis_job_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ProductContainer":
        return cls(**{k: v for k, v in row.items() if k in cls.model_fields})


class UserSubscription(BaseModel):
    user_id: str
    plan: str = "starter"
    status: str = "trialing"
    angle_credits: int = 3
    credits_used: int = 0

    @property
    def credits_remaining(self) -> int:
        return max(0, self.angle_credits - self.credits_used)


class ProductAnalytics(BaseModel):
    """Per-user summary across product containers."""
    total_products: int = 0
    completed_analyses: int = 0
    total_scripts: int = 0
    average_sentiment_score: float = 0.0
    average_virality_score: float = 0.0
    credits_remaining: int = 0
    credits_used: int = 0
