"""
IngestionService - Start and cancel product ingestion runs.

Starting a run validates the container's state, resets a finished
container to pending, assigns a fresh scraping_job_id, moves it to
scraping and runs the product ingestion graph to completion.
"""

import logging
import uuid
from typing import Any, Dict, Optional

from .models import ContainerStatus, ProductContainer
from .product_container_service import IN_FLIGHT, InvalidStatusTransitionError

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Ingestion cancelled by user"


class IngestionService:
    """Entry point for running the ingestion pipeline on a container."""

    def __init__(self, deps=None):
        """
        Args:
            deps: IngestionDependencies. Created on first use when omitted.
        """
        self._deps = deps

    @property
    def deps(self):
        if self._deps is None:
            from ..pipelines.dependencies import IngestionDependencies
            self._deps = IngestionDependencies.create()
        return self._deps

    async def start_ingestion(self, container_id: str, user_id: str) -> Dict[str, Any]:
        """
        Run ingestion for a container.

        Args:
            container_id: Container UUID
            user_id: Owner of the container

        Returns:
            Pipeline result dict ("status" is "success" or "error")

        Raises:
            ProductContainerNotFoundError
            InvalidStatusTransitionError: A run is already scraping or analyzing
        """
        from ..pipelines.product_ingestion import run_product_ingestion

        containers = self.deps.containers
        container = containers.get_container(container_id, user_id)

        if container.status in (ContainerStatus.SCRAPING, ContainerStatus.ANALYZING):
            raise InvalidStatusTransitionError(container.status, ContainerStatus.SCRAPING)

        if container.status in (ContainerStatus.FAILED, ContainerStatus.COMPLETED):
            containers.update_status(container_id, ContainerStatus.PENDING)

        job_id = str(uuid.uuid4())
        containers.update_status(
            container_id,
            ContainerStatus.SCRAPING,
            extra={"scraping_job_id": job_id},
        )

        logger.info(f"Starting ingestion {job_id} for container {container_id}")
        return await run_product_ingestion(container_id, container.product_url, job_id=job_id, deps=self.deps)

    def cancel_ingestion(self, container_id: str, user_id: str) -> ProductContainer:
        """
        Mark an in-flight container failed.

        Work already stored is kept; a running pipeline is not interrupted
        but can no longer move the container forward.

        Raises:
            ProductContainerNotFoundError
            InvalidStatusTransitionError: The container is not in flight
        """
        containers = self.deps.containers
        container = containers.get_container(container_id, user_id)

        if container.status not in IN_FLIGHT:
            raise InvalidStatusTransitionError(container.status, ContainerStatus.FAILED)

        logger.info(f"Cancelling ingestion for container {container_id}")
        return containers.update_status(
            container_id,
            ContainerStatus.FAILED,
            error_message=CANCELLED_MESSAGE,
            force=True,
        )
