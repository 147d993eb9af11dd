"""
ProductContainerService - Product containers, their lifecycle and brand rules.

A product container is one submitted product URL plus everything derived
from it (insights, virality packs, scripts, brand rules). Its status
follows a small state machine:

    pending -> scraping -> analyzing -> completed
                  |            |
                  +-> failed <-+

A failed or completed container is re-run by moving it back to pending.
Cancellation forces any in-flight status to failed.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from ..core.config import Config
from ..core.database import get_supabase_client
from .credit_service import CreditService
from .models import (
    BrandRuleSet,
    ContainerStatus,
    Platform,
    ProductAnalytics,
    ProductContainer,
    UserSubscription,
)
from .scraping_service import validate_and_detect_platform

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: Dict[ContainerStatus, set] = {
    ContainerStatus.PENDING: {ContainerStatus.SCRAPING},
    ContainerStatus.SCRAPING: {ContainerStatus.ANALYZING, ContainerStatus.FAILED},
    ContainerStatus.ANALYZING: {ContainerStatus.COMPLETED, ContainerStatus.FAILED},
    ContainerStatus.COMPLETED: {ContainerStatus.PENDING},
    ContainerStatus.FAILED: {ContainerStatus.PENDING},
}

IN_FLIGHT = {ContainerStatus.PENDING, ContainerStatus.SCRAPING, ContainerStatus.ANALYZING}


def can_transition(current: ContainerStatus, target: ContainerStatus) -> bool:
    return ContainerStatus(target) in ALLOWED_TRANSITIONS[ContainerStatus(current)]


class ProductContainerNotFoundError(Exception):
    """Raised when a container does not exist (or is not owned by the user)."""

    def __init__(self, container_id: str):
        self.container_id = container_id
        super().__init__(f"Product container not found: {container_id}")


class InvalidStatusTransitionError(Exception):
    """Raised when a status change is not allowed by the state machine."""

    def __init__(self, current: ContainerStatus, target: ContainerStatus):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move product container from {current.value} to {target.value}")


class ProductContainerService:
    """CRUD and status management for product containers."""

    def __init__(
        self,
        supabase: Optional[Client] = None,
        credit_service: Optional[CreditService] = None,
    ):
        self.supabase = supabase or get_supabase_client()
        self.credits = credit_service or CreditService(self.supabase)

    # ========================================================================
    # Containers
    # ========================================================================

    def create_container(self, user_id: str, product_url: str) -> ProductContainer:
        """
        Create a pending container for a product URL.

        External (unsupported) sources cost one angle credit, checked and
        consumed before anything is written.

        Raises:
            InvalidProductURLError: Bad or non-http(s) URL
            InsufficientCreditsError: External URL and no credits left
        """
        url, platform = validate_and_detect_platform(product_url)

        if platform == Platform.EXTERNAL:
            self.credits.require_credit(user_id)

        result = self.supabase.table("product_containers").insert({
            "user_id": user_id,
            "product_url": url,
            "platform": platform.value,
            "status": ContainerStatus.PENDING.value,
        }).execute()

        container = ProductContainer.from_row(result.data[0])

        self.supabase.table("brand_rules").insert({
            "product_container_id": container.id,
            "forbidden_keywords": [],
            "required_keywords": [],
            "custom_rules": [],
        }).execute()

        logger.info(f"Created product container {container.id} ({platform.value}) for user {user_id}")
        return container

    def list_containers(self, user_id: str) -> List[ProductContainer]:
        result = self.supabase.table("product_containers")\
            .select("*")\
            .eq("user_id", user_id)\
            .order("created_at", desc=True)\
            .execute()

        return [ProductContainer.from_row(row) for row in result.data or []]

    def get_container(self, container_id: str, user_id: Optional[str] = None) -> ProductContainer:
        """
        Fetch one container.

        Args:
            container_id: Container UUID
            user_id: When given, the container must belong to this user

        Raises:
            ProductContainerNotFoundError
        """
        query = self.supabase.table("product_containers").select("*").eq("id", container_id)
        if user_id is not None:
            query = query.eq("user_id", user_id)

        result = query.limit(1).execute()
        if not result.data:
            raise ProductContainerNotFoundError(container_id)
        return ProductContainer.from_row(result.data[0])

    def _related_rows(self, table: str, container_id: str, order: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self.supabase.table(table).select("*").eq("product_container_id", container_id)
        if order:
            query = query.order(order, desc=True)
        return query.execute().data or []

    async def get_container_with_analysis(self, user_id: str, container_id: str) -> Dict[str, Any]:
        """
        Fetch a container with its packs, insights, brand rules and scripts.

        The related tables are read concurrently.
        """
        container = await asyncio.to_thread(self.get_container, container_id, user_id)

        packs, pain_points, delight_factors, brand_rules, scripts = await asyncio.gather(
            asyncio.to_thread(self._related_rows, "virality_packs", container_id, "virality_score"),
            asyncio.to_thread(self._related_rows, "pain_points", container_id, "mentions"),
            asyncio.to_thread(self._related_rows, "delight_factors", container_id, "mentions"),
            asyncio.to_thread(self._related_rows, "brand_rules", container_id),
            asyncio.to_thread(self._related_rows, "scripts", container_id, "updated_at"),
        )

        return {
            "container": container,
            "virality_packs": packs,
            "pain_points": pain_points,
            "delight_factors": delight_factors,
            "brand_rules": BrandRuleSet(**brand_rules[0]) if brand_rules else None,
            "scripts": scripts,
        }

    def update_status(
        self,
        container_id: str,
        status: ContainerStatus,
        error_message: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
        force: bool = False,
    ) -> ProductContainer:
        """
        Move a container to a new status.

        Args:
            container_id: Container UUID
            status: Target status
            error_message: Stored as error_message (None clears it)
            extra: Additional columns to write in the same update
            force: Skip the transition check (used by cancellation)

        Raises:
            ProductContainerNotFoundError
            InvalidStatusTransitionError
        """
        target = ContainerStatus(status)
        current = self.get_container(container_id)

        if not force and not can_transition(current.status, target):
            raise InvalidStatusTransitionError(current.status, target)

        update_data: Dict[str, Any] = {"status": target.value, "error_message": error_message}
        if extra:
            update_data.update(extra)

        result = self.supabase.table("product_containers")\
            .update(update_data)\
            .eq("id", container_id)\
            .execute()

        logger.info(f"Container {container_id}: {current.status.value} -> {target.value}")
        row = result.data[0] if result.data else {**current.model_dump(mode="json"), **update_data}
        return ProductContainer.from_row(row)

    def delete_container(self, user_id: str, container_id: str) -> None:
        self.supabase.table("product_containers")\
            .delete()\
            .eq("id", container_id)\
            .eq("user_id", user_id)\
            .execute()
        logger.info(f"Deleted product container {container_id}")

    # ========================================================================
    # Brand rules
    # ========================================================================

    def get_brand_rules(self, container_id: str) -> Optional[BrandRuleSet]:
        rows = self._related_rows("brand_rules", container_id)
        return BrandRuleSet(**rows[0]) if rows else None

    def update_brand_rules(self, user_id: str, container_id: str, rules: BrandRuleSet) -> BrandRuleSet:
        """Replace a container's brand rules (owner only)."""
        self.get_container(container_id, user_id)

        payload = rules.model_dump()
        result = self.supabase.table("brand_rules")\
            .update(payload)\
            .eq("product_container_id", container_id)\
            .execute()

        if not result.data:
            self.supabase.table("brand_rules").insert({
                "product_container_id": container_id,
                **payload,
            }).execute()

        logger.info(
            f"Brand rules for {container_id}: {len(rules.forbidden_keywords)} forbidden, "
            f"{len(rules.required_keywords)} required, {len(rules.custom_rules)} custom"
        )
        return rules

    # ========================================================================
    # Subscription & analytics
    # ========================================================================

    def get_user_subscription(self, user_id: str) -> UserSubscription:
        """Fetch the user's subscription, creating a trial one if missing."""
        result = self.supabase.table("user_subscriptions")\
            .select("*")\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()

        if result.data:
            return UserSubscription(**result.data[0])

        default = UserSubscription(
            user_id=user_id,
            plan="starter",
            status="trialing",
            angle_credits=Config.DEFAULT_ANGLE_CREDITS,
            credits_used=0,
        )
        self.supabase.table("user_subscriptions").insert(default.model_dump()).execute()
        logger.info(f"Created default subscription for user {user_id}")
        return default

    def get_user_analytics(self, user_id: str) -> ProductAnalytics:
        products = self.supabase.table("product_containers")\
            .select("id, status")\
            .eq("user_id", user_id)\
            .execute().data or []

        completed_ids = [p["id"] for p in products if p.get("status") == ContainerStatus.COMPLETED.value]

        packs: List[Dict[str, Any]] = []
        if completed_ids:
            packs = self.supabase.table("virality_packs")\
                .select("sentiment_score, virality_score")\
                .in_("product_container_id", completed_ids)\
                .execute().data or []

        scripts = self.supabase.table("scripts")\
            .select("id", count="exact")\
            .eq("user_id", user_id)\
            .execute()

        subscription = self.get_user_subscription(user_id)

        def average(key: str) -> float:
            if not packs:
                return 0.0
            return sum(p.get(key) or 0 for p in packs) / len(packs)

        return ProductAnalytics(
            total_products=len(products),
            completed_analyses=len(completed_ids),
            total_scripts=scripts.count or 0,
            average_sentiment_score=average("sentiment_score"),
            average_virality_score=average("virality_score"),
            credits_remaining=subscription.credits_remaining,
            credits_used=subscription.credits_used,
        )
