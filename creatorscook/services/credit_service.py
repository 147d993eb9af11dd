"""
Credit Service - Angle credit checks for metered product analysis.

Analyzing a product from an unsupported (external) source costs one
angle credit. The balance lives in user_subscriptions and is only
changed through the database procedures has_sufficient_credits,
consume_angle_credit and get_credit_balance, which are atomic on the
database side.

Usage:
    service = CreditService(get_supabase_client())
    service.require_credit(user_id)  # Raises InsufficientCreditsError
"""

import logging
from typing import Any, Optional

from supabase import Client

from ..core.database import get_supabase_client

logger = logging.getLogger(__name__)

INSUFFICIENT_CREDITS_MESSAGE = (
    "Insufficient angle credits. Please upgrade your plan to analyze external products."
)


class InsufficientCreditsError(Exception):
    """Raised when a user has no angle credits left."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(INSUFFICIENT_CREDITS_MESSAGE)


def _scalar(data: Any) -> Any:
    # RPCs returning a scalar come back bare or wrapped in a one-item list
    if isinstance(data, list):
        return data[0] if data else None
    return data


class CreditService:
    """Wraps the credit procedures."""

    def __init__(self, supabase: Optional[Client] = None):
        self.supabase = supabase or get_supabase_client()

    def has_sufficient_credits(self, user_id: str) -> bool:
        result = self.supabase.rpc("has_sufficient_credits", {"p_user_id": user_id}).execute()
        return bool(_scalar(result.data))

    def consume_angle_credit(self, user_id: str) -> bool:
        result = self.supabase.rpc("consume_angle_credit", {"p_user_id": user_id}).execute()
        return bool(_scalar(result.data))

    def get_credit_balance(self, user_id: str) -> int:
        result = self.supabase.rpc("get_credit_balance", {"p_user_id": user_id}).execute()
        return int(_scalar(result.data) or 0)

    def require_credit(self, user_id: str) -> None:
        """
        Check and consume one angle credit.

        Raises:
            InsufficientCreditsError: If the user has none left, or the
                credit could not be consumed
        """
        if not self.has_sufficient_credits(user_id):
            logger.info(f"User {user_id} has no angle credits left")
            raise InsufficientCreditsError(user_id)

        if not self.consume_angle_credit(user_id):
            logger.warning(f"Credit consumption refused for user {user_id}")
            raise InsufficientCreditsError(user_id)

        logger.info(f"Consumed one angle credit for user {user_id}")
