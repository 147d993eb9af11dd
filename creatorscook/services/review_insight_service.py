"""
ReviewInsightService - Turn raw customer reviews into theme insights.

Pipeline for a batch of reviews:
1. Map each star rating to a sentiment score
2. Classify the review text into themes
3. Rewrite the review into a display-safe quote
4. Bucket per theme into pain points (negative) or delight factors
   (clearly positive), averaging sentiment and keeping up to 3 quotes

Raw reviews are never stored. Only the aggregated insights are written,
and each ingestion run replaces the container's previous insights.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from supabase import Client

from ..core.database import get_supabase_client
from .models import InsightSet, Review, ThemeInsight
from .theme_taxonomy import classify_themes

logger = logging.getLogger(__name__)

# Per-review routing thresholds
PAIN_THRESHOLD = 0.0
DELIGHT_THRESHOLD = 0.3
MAX_EXAMPLE_QUOTES = 3

_NAME_PAIR = re.compile(r"\b[A-Z][a-z]+\s+[A-Z][a-z]+\b")
_ALL_CAPS = re.compile(r"\b[A-Z]{2,}\b")

SOFTENED_PHRASES: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"absolutely wonderful", re.IGNORECASE), "really good"),
    (re.compile(r"terrible awful", re.IGNORECASE), "very bad"),
    (re.compile(r"completely useless", re.IGNORECASE), "did not work"),
    (re.compile(r"exceeded expectations", re.IGNORECASE), "better than expected"),
    (re.compile(r"highly recommend", re.IGNORECASE), "would recommend"),
    (re.compile(r"waste of money", re.IGNORECASE), "not worth the price"),
    (re.compile(r"love this product", re.IGNORECASE), "really like this"),
    (re.compile(r"hate this product", re.IGNORECASE), "dislike this"),
]


def rating_to_sentiment(rating: int) -> float:
    """
    Map a 1-5 star rating onto [-1, 1].

    Produces exactly -1, -0.5, 0, 0.5 or 1. Ratings outside 1..5 are
    clamped first.
    """
    clamped = max(1, min(5, int(rating)))
    return (clamped - 3) / 2


def transform_quote(content: str, title: Optional[str] = None) -> str:
    """
    Rewrite review text for display.

    Capitalized word pairs become "this product", all-caps tokens become
    "this brand", and a fixed set of superlatives is toned down without
    flipping polarity. Best effort only; this is not anonymization.
    """
    transformed = _NAME_PAIR.sub("this product", content or "")
    transformed = _ALL_CAPS.sub("this brand", transformed)

    for pattern, replacement in SOFTENED_PHRASES:
        transformed = pattern.sub(replacement, transformed)

    if title:
        transformed = f"{title}: {transformed}"

    return transformed


@dataclass
class _ThemeBucket:
    sentiment_sum: float = 0.0
    mentions: int = 0
    quotes: List[str] = field(default_factory=list)

    def add(self, sentiment: float, quote: str) -> None:
        self.sentiment_sum += sentiment
        self.mentions += 1
        if len(self.quotes) < MAX_EXAMPLE_QUOTES:
            self.quotes.append(quote)

    def to_insight(self, theme: str) -> ThemeInsight:
        average = self.sentiment_sum / self.mentions
        return ThemeInsight(
            theme=theme,
            sentiment=max(-1.0, min(1.0, average)),
            mentions=self.mentions,
            example_quotes=list(self.quotes),
        )


def _finalize(buckets: Dict[str, _ThemeBucket]) -> List[ThemeInsight]:
    insights = [bucket.to_insight(theme) for theme, bucket in buckets.items()]
    # sorted() is stable, so ties keep first-encounter order
    return sorted(insights, key=lambda i: i.mentions, reverse=True)


class ReviewInsightService:
    """
    Aggregates reviews into pain points and delight factors and keeps the
    stored insights for a product container up to date.
    """

    def __init__(self, supabase: Optional[Client] = None):
        self._supabase = supabase

    @property
    def supabase(self) -> Client:
        if self._supabase is None:
            self._supabase = get_supabase_client()
        return self._supabase

    # ========================================================================
    # Aggregation
    # ========================================================================

    def aggregate(self, reviews: Iterable[Review]) -> InsightSet:
        """
        Aggregate reviews into per-theme insights.

        A review counts towards a theme's pain point when its sentiment is
        below 0 and towards its delight factor when above 0.3; reviews in
        between contribute to neither. The same theme may appear in both
        buckets. Averages are not re-filtered against the thresholds.

        Args:
            reviews: Reviews from one scrape

        Returns:
            InsightSet with both buckets sorted by mentions, descending.
            Empty input gives an empty InsightSet.
        """
        pain: Dict[str, _ThemeBucket] = {}
        delight: Dict[str, _ThemeBucket] = {}
        review_count = 0

        for review in reviews:
            review_count += 1
            sentiment = rating_to_sentiment(review.rating)

            if sentiment < PAIN_THRESHOLD:
                target = pain
            elif sentiment > DELIGHT_THRESHOLD:
                target = delight
            else:
                continue

            quote = transform_quote(review.content, review.title)
            for theme in classify_themes(review.content):
                target.setdefault(theme.value, _ThemeBucket()).add(sentiment, quote)

        insights = InsightSet(pain_points=_finalize(pain), delight_factors=_finalize(delight))
        logger.info(
            f"Aggregated {review_count} reviews into {len(insights.pain_points)} pain points "
            f"and {len(insights.delight_factors)} delight factors"
        )
        return insights

    # ========================================================================
    # Persistence
    # ========================================================================

    def store_insights(self, container_id: str, insights: InsightSet) -> None:
        """
        Replace the stored insights for a container.

        Prior pain points and delight factors are deleted first so a new
        ingestion run supersedes the previous one instead of merging.
        """
        for table, items in (
            ("pain_points", insights.pain_points),
            ("delight_factors", insights.delight_factors),
        ):
            self.supabase.table(table).delete().eq("product_container_id", container_id).execute()

            if not items:
                continue

            rows = [
                {
                    "product_container_id": container_id,
                    "theme": item.theme,
                    "sentiment": item.sentiment,
                    "mentions": item.mentions,
                    "example_quotes": item.example_quotes,
                }
                for item in items
            ]
            self.supabase.table(table).insert(rows).execute()

        logger.info(
            f"Stored {len(insights.pain_points)} pain points and "
            f"{len(insights.delight_factors)} delight factors for container {container_id}"
        )

    def _fetch_table(self, table: str, container_id: str) -> List[ThemeInsight]:
        result = self.supabase.table(table)\
            .select("theme, sentiment, mentions, example_quotes")\
            .eq("product_container_id", container_id)\
            .order("mentions", desc=True)\
            .execute()

        return [
            ThemeInsight(
                theme=row["theme"],
                sentiment=row["sentiment"],
                mentions=row["mentions"],
                example_quotes=(row.get("example_quotes") or [])[:MAX_EXAMPLE_QUOTES],
            )
            for row in result.data or []
        ]

    async def get_insights(self, container_id: str) -> InsightSet:
        """Fetch pain points and delight factors for a container concurrently."""
        pain_points, delight_factors = await asyncio.gather(
            asyncio.to_thread(self._fetch_table, "pain_points", container_id),
            asyncio.to_thread(self._fetch_table, "delight_factors", container_id),
        )
        return InsightSet(pain_points=pain_points, delight_factors=delight_factors)
