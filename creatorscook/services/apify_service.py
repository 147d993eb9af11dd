"""
ApifyService - Run Apify actors and collect their dataset items.

Used for review scraping (Amazon via the Axesso reviews actor). A run is
bounded by a timeout and a failed run is not retried; the caller decides
what a failure means for its pipeline.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from apify_client import ApifyClient

from ..core.config import Config

logger = logging.getLogger(__name__)


@dataclass
class ApifyRunResult:
    """Result from an Apify actor run."""
    run_id: str
    dataset_id: str
    status: str
    items: List[Dict[str, Any]]
    items_count: int


class ApifyService:
    """
    Thin wrapper around apify_client.

    Example usage:
        service = ApifyService()
        result = service.run_actor(
            actor_id="axesso_data/amazon-reviews-scraper",
            run_input={"input": [{"asin": "B0DJWSV1J3", "domainCode": "com"}]},
        )
    """

    def __init__(self, apify_token: Optional[str] = None, client: Optional[ApifyClient] = None):
        """
        Args:
            apify_token: Apify API token. Defaults to Config.APIFY_TOKEN.
            client: Pre-built ApifyClient (mainly for tests)
        """
        self.apify_token = apify_token or Config.APIFY_TOKEN
        if client is not None:
            self.client = client
        elif not self.apify_token:
            logger.warning("APIFY_TOKEN not set - Apify operations will fail")
            self.client = None
        else:
            self.client = ApifyClient(self.apify_token)

    def run_actor(
        self,
        actor_id: str,
        run_input: Dict[str, Any],
        timeout: Optional[int] = None,
        memory_mbytes: int = 1024
    ) -> ApifyRunResult:
        """
        Run an actor, wait for it to finish and fetch its dataset.

        Args:
            actor_id: Actor identifier (e.g. "axesso_data/amazon-reviews-scraper")
            run_input: Actor input
            timeout: Seconds before the run is aborted (Config.SCRAPE_TIMEOUT_SECONDS)
            memory_mbytes: Memory allocation in MB

        Returns:
            ApifyRunResult

        Raises:
            ValueError: If no token is configured
            RuntimeError: If the actor run did not succeed
        """
        if not self.client:
            raise ValueError("APIFY_TOKEN not configured - check environment variables")

        timeout = timeout or Config.SCRAPE_TIMEOUT_SECONDS
        logger.info(f"Starting Apify actor: {actor_id} (timeout={timeout}s)")
        logger.debug(f"Input: {run_input}")

        run = self.client.actor(actor_id).call(
            run_input=run_input,
            timeout_secs=timeout,
            memory_mbytes=memory_mbytes
        )

        if not run or run.get("status") != "SUCCEEDED":
            status = run.get("status") if run else "NO_RUN"
            logger.error(f"Apify actor {actor_id} finished with status {status}")
            raise RuntimeError(f"Apify actor {actor_id} finished with status {status}")

        run_id = run["id"]
        dataset_id = run["defaultDatasetId"]
        items = list(self.client.dataset(dataset_id).iterate_items())
        logger.info(f"Apify run {run_id} returned {len(items)} items")

        return ApifyRunResult(
            run_id=run_id,
            dataset_id=dataset_id,
            status=run["status"],
            items=items,
            items_count=len(items)
        )
