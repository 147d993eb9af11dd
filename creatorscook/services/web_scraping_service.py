"""
WebScrapingService - Structured product-page extraction using FireCrawl.

Used by the scrapers for sources without a dedicated review actor
(TikTok Shop, AliExpress, arbitrary storefronts, Amazon short links).
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..core.config import Config

logger = logging.getLogger(__name__)


@dataclass
class ExtractResult:
    """Result from structured extraction."""
    url: str
    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class WebScrapingService:
    """FireCrawl client wrapper for schema-driven extraction."""

    def __init__(self, api_key: Optional[str] = None, client=None):
        """
        Args:
            api_key: FireCrawl API key. Defaults to Config.FIRECRAWL_API_KEY.
            client: Pre-built Firecrawl client (mainly for tests)
        """
        self.api_key = api_key or Config.FIRECRAWL_API_KEY
        if not self.api_key and client is None:
            logger.warning("FIRECRAWL_API_KEY not set - scraping will fail")

        self._client = client

    def _get_client(self):
        """Get or create the FireCrawl client."""
        if self._client is None:
            from firecrawl import Firecrawl
            self._client = Firecrawl(api_key=self.api_key)
        return self._client

    def extract_structured(
        self,
        url: str,
        schema: Optional[Dict[str, Any]] = None,
        prompt: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> ExtractResult:
        """
        Extract structured data from a URL.

        Args:
            url: Page to extract from
            schema: JSON schema describing the data to extract
            prompt: Natural language extraction instructions
            timeout: Seconds to wait for the extraction job

        Returns:
            ExtractResult; failures are reported, not raised
        """
        if not schema and not prompt:
            raise ValueError("Must provide either schema or prompt for extraction")

        logger.info(f"Extracting structured data from: {url}")

        try:
            client = self._get_client()

            kwargs: Dict[str, Any] = {
                "urls": [url],
                "timeout": timeout or Config.SCRAPE_TIMEOUT_SECONDS,
            }
            if schema:
                kwargs["schema"] = schema
            if prompt:
                kwargs["prompt"] = prompt

            result = client.extract(**kwargs)
            data = result.data if hasattr(result, "data") else result

            if isinstance(data, list):
                data = data[0] if data else None
            if not data:
                return ExtractResult(url=url, success=False, error="No data extracted")

            return ExtractResult(url=url, success=True, data=data)

        except Exception as e:
            logger.error(f"Failed to extract from {url}: {e}")
            return ExtractResult(url=url, success=False, error=str(e))
