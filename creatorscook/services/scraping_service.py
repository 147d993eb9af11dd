"""
ScrapingManager - Route a product URL to the right scraper.

Routes are an ordered list of (predicate, handler) pairs tested in a
fixed order; the first predicate that accepts the URL wins. The last
route is a generic fallback that accepts every URL. Order decides the
platform of ambiguous URLs, so do not reorder it.

    TikTok Shop  -> FireCrawl extraction
    Amazon       -> Apify Axesso reviews actor (FireCrawl for short links)
    AliExpress   -> FireCrawl extraction
    anything     -> FireCrawl extraction, with a "limited scraping" warning
"""

import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from ..core.config import Config
from .apify_service import ApifyService
from .models import Platform, Review, ScrapedProductData, ScrapingResult
from .web_scraping_service import WebScrapingService

logger = logging.getLogger(__name__)


class InvalidProductURLError(ValueError):
    """Raised when a submitted product URL is not a usable http(s) URL."""
    pass


PRODUCT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "description": {"type": "string"},
        "images": {"type": "array", "items": {"type": "string"}},
        "price": {"type": "number"},
        "rating": {"type": "number"},
        "review_count": {"type": "integer"},
        "reviews": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "rating": {"type": "number"},
                    "title": {"type": "string"},
                    "content": {"type": "string"},
                    "author": {"type": "string"},
                    "verified": {"type": "boolean"},
                    "date": {"type": "string"},
                },
                "required": ["rating", "content"],
            },
        },
    },
    "required": ["name"],
}

EXTRACTION_PROMPT = (
    "Extract the product name, description, image URLs, price, average rating, "
    "total review count and as many customer reviews as are visible on the page "
    "(star rating, title, review text, author, verified purchase flag, date)."
)

_ASIN_PATTERNS = [
    r"/dp/([A-Z0-9]{10})",
    r"/gp/product/([A-Z0-9]{10})",
    r"/product/([A-Z0-9]{10})",
    r"/ASIN/([A-Z0-9]{10})",
]


# ============================================================================
# URL helpers
# ============================================================================

def _host(url: str) -> str:
    return (urlparse(url).hostname or "").lower()


def is_tiktok_shop(url: str) -> bool:
    parsed = urlparse(url)
    return "tiktok.com" in (parsed.hostname or "").lower() and "/shop/" in parsed.path


def is_amazon(url: str) -> bool:
    host = _host(url)
    return "amazon.com" in host or "amzn.to" in host


def is_aliexpress(url: str) -> bool:
    host = _host(url)
    return "aliexpress.com" in host or "s.click.aliexpress.com" in host


def validate_product_url(url: str) -> str:
    """
    Validate a product URL.

    Returns:
        The stripped URL

    Raises:
        InvalidProductURLError: "Invalid URL format" or "Invalid URL protocol"
    """
    url = (url or "").strip()
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise InvalidProductURLError("Invalid URL format") from e

    if not parsed.scheme or not parsed.netloc:
        raise InvalidProductURLError("Invalid URL format")
    if parsed.scheme not in ("http", "https"):
        raise InvalidProductURLError("Invalid URL protocol")
    return url


def detect_platform(url: str) -> Platform:
    """Classify a URL using the same precedence as the scraper routes."""
    if is_tiktok_shop(url):
        return Platform.TIKTOK_SHOP
    if is_amazon(url):
        return Platform.AMAZON
    if is_aliexpress(url):
        return Platform.ALIEXPRESS
    return Platform.EXTERNAL


def validate_and_detect_platform(url: str) -> Tuple[str, Platform]:
    """Validate a product URL and return (url, platform)."""
    url = validate_product_url(url)
    return url, detect_platform(url)


def parse_rating(rating_value: Any) -> Optional[int]:
    """
    Parse a star rating from the formats scrapers return.

    Handles 5, 5.0, "5", "4.0 out of 5 stars". Returns None when the
    value is missing or outside 1..5.
    """
    if rating_value is None or isinstance(rating_value, bool):
        return None

    if isinstance(rating_value, (int, float)):
        return int(rating_value) if 1 <= rating_value <= 5 else None

    if isinstance(rating_value, str):
        match = re.search(r"(\d+(?:\.\d+)?)", rating_value)
        if match:
            rating = float(match.group(1))
            return int(rating) if 1 <= rating <= 5 else None

    logger.debug(f"Could not parse rating: {rating_value}")
    return None


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = re.search(r"(\d+(?:\.\d+)?)", str(value).replace(",", ""))
    return float(match.group(1)) if match else None


# ============================================================================
# Scrapers
# ============================================================================

class ExtractionScraper:
    """Scrape a product page through FireCrawl structured extraction."""

    def __init__(self, web: WebScrapingService, platform: Platform, warning: Optional[str] = None):
        self.web = web
        self.platform = platform
        self.warning = warning

    def _reviews_from(self, raw_reviews: Any) -> List[Review]:
        reviews = []
        for raw in raw_reviews or []:
            if not isinstance(raw, dict):
                continue
            rating = parse_rating(raw.get("rating"))
            content = raw.get("content") or raw.get("text") or ""
            if rating is None or not content:
                continue
            reviews.append(Review(
                rating=rating,
                content=content,
                title=raw.get("title") or None,
                author=raw.get("author") or None,
                verified=bool(raw.get("verified", False)),
                date=raw.get("date") or None,
            ))
        return reviews

    def scrape(self, url: str) -> ScrapingResult:
        extracted = self.web.extract_structured(url, schema=PRODUCT_SCHEMA, prompt=EXTRACTION_PROMPT)
        if not extracted.success:
            return ScrapingResult(success=False, error=f"Failed to scrape product page: {extracted.error}")

        data = extracted.data or {}
        reviews = self._reviews_from(data.get("reviews"))

        product = ScrapedProductData(
            name=data.get("name") or "Unknown product",
            description=data.get("description") or "",
            images=[str(i) for i in data.get("images") or []],
            price=_as_number(data.get("price")),
            rating=_as_number(data.get("rating")),
            review_count=int(_as_number(data.get("review_count")) or 0) or None,
            platform=self.platform,
            original_url=url,
        )

        logger.info(f"Extracted {len(reviews)} reviews from {url} ({self.platform.value})")
        return ScrapingResult(success=True, product_data=product, reviews=reviews, warning=self.warning)


class AmazonScraper:
    """
    Scrape Amazon reviews with the Axesso actor on Apify.

    Short links (amzn.to) carry no ASIN, so they go through page
    extraction instead.
    """

    def __init__(self, apify: ApifyService, fallback: ExtractionScraper, max_pages: Optional[int] = None):
        self.apify = apify
        self.fallback = fallback
        self.max_pages = max_pages or Config.AMAZON_MAX_PAGES

    @staticmethod
    def extract_asin(url: str) -> Optional[str]:
        for pattern in _ASIN_PATTERNS:
            match = re.search(pattern, url, re.IGNORECASE)
            if match:
                return match.group(1).upper()
        return None

    @staticmethod
    def extract_domain_code(url: str) -> str:
        host = _host(url)
        marker = "amazon."
        if marker in host:
            return host.split(marker, 1)[1]
        return "com"

    def scrape(self, url: str) -> ScrapingResult:
        asin = self.extract_asin(url)
        if not asin:
            logger.info(f"No ASIN in {url}, using page extraction")
            return self.fallback.scrape(url)

        run_input = {
            "input": [{
                "asin": asin,
                "domainCode": self.extract_domain_code(url),
                "sortBy": "recent",
                "maxPages": self.max_pages,
                "reviewerType": "all_reviews",
                "mediaType": "all_contents",
                "formatType": "current_format",
            }]
        }

        try:
            run = self.apify.run_actor(Config.AMAZON_REVIEWS_ACTOR, run_input)
        except Exception as e:
            logger.error(f"Amazon review scrape failed for {asin}: {e}")
            return ScrapingResult(success=False, error=f"Amazon review scrape failed: {e}")

        reviews = []
        seen_ids = set()
        for item in run.items:
            review_id = item.get("reviewId")
            if review_id and review_id in seen_ids:
                continue
            seen_ids.add(review_id)

            rating = parse_rating(item.get("rating"))
            text = item.get("text") or ""
            if rating is None or not text:
                continue
            reviews.append(Review(
                rating=rating,
                content=text,
                title=item.get("title") or None,
                author=item.get("userName") or item.get("author") or None,
                verified=bool(item.get("verified", False)),
                date=item.get("date") or None,
                helpful_count=int(_as_number(item.get("numberOfHelpful")) or 0),
            ))

        first = run.items[0] if run.items else {}
        product = ScrapedProductData(
            name=first.get("productTitle") or f"Amazon product {asin}",
            description=first.get("productDescription") or "",
            images=[first["productImage"]] if first.get("productImage") else [],
            rating=first.get("productRating") if isinstance(first.get("productRating"), (int, float)) else None,
            review_count=first.get("countRatings") if isinstance(first.get("countRatings"), int) else None,
            platform=Platform.AMAZON,
            original_url=url,
        )

        logger.info(f"Scraped {len(reviews)} Amazon reviews for {asin}")
        return ScrapingResult(success=True, product_data=product, reviews=reviews)


# ============================================================================
# Manager
# ============================================================================

Route = Tuple[Callable[[str], bool], Callable[[str], ScrapingResult]]


class ScrapingManager:
    """
    Dispatch product URLs to scrapers in fixed precedence order.

    Example:
        manager = ScrapingManager()
        result = manager.scrape_product("https://www.amazon.com/dp/B0DJWSV1J3")
    """

    def __init__(
        self,
        apify: Optional[ApifyService] = None,
        web: Optional[WebScrapingService] = None,
    ):
        self.apify = apify or ApifyService()
        self.web = web or WebScrapingService()

        amazon_pages = ExtractionScraper(self.web, Platform.AMAZON)
        self.routes: List[Route] = [
            (is_tiktok_shop, ExtractionScraper(self.web, Platform.TIKTOK_SHOP).scrape),
            (is_amazon, AmazonScraper(self.apify, amazon_pages).scrape),
            (is_aliexpress, ExtractionScraper(self.web, Platform.ALIEXPRESS).scrape),
            (lambda url: True, self._scrape_generic),
        ]

    def _scrape_generic(self, url: str) -> ScrapingResult:
        warning = f"Limited scraping capabilities for {_host(url)}. Results may be incomplete."
        return ExtractionScraper(self.web, Platform.EXTERNAL, warning=warning).scrape(url)

    def handler_for(self, url: str) -> Callable[[str], ScrapingResult]:
        for predicate, handler in self.routes:
            if predicate(url):
                return handler
        raise RuntimeError("no scraper route accepted the URL")

    def scrape_product(self, url: str) -> ScrapingResult:
        """
        Scrape a product URL.

        Returns:
            ScrapingResult. Invalid URLs and scraper failures come back
            as success=False with an error message.
        """
        try:
            url = validate_product_url(url)
        except InvalidProductURLError as e:
            return ScrapingResult(success=False, error=str(e))

        logger.info(f"Scraping product: {url}")
        try:
            return self.handler_for(url)(url)
        except Exception as e:
            logger.error(f"Scraper crashed for {url}: {type(e).__name__}: {e}")
            return ScrapingResult(success=False, error=str(e))
