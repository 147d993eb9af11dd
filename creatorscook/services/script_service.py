"""
ScriptService - CRUD for creator scripts.

Scripts belong to a product container and optionally to the virality
pack they were written from. Every query is scoped by user_id.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from supabase import Client

from ..core.database import get_supabase_client
from .models import BrandRuleSet, ComplianceFlag, Script, ScriptStatus

logger = logging.getLogger(__name__)


class ScriptNotFoundError(Exception):
    """Raised when a script does not exist (or is not owned by the user)."""

    def __init__(self, script_id: str):
        self.script_id = script_id
        super().__init__(f"Script not found: {script_id}")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ScriptService:
    """Create, edit and list scripts."""

    def __init__(self, supabase: Optional[Client] = None):
        self.supabase = supabase or get_supabase_client()

    def create_script(
        self,
        user_id: str,
        product_container_id: str,
        title: str,
        content: str,
        virality_pack_id: Optional[str] = None,
    ) -> Script:
        """Create a draft script with an empty compliance snapshot."""
        row = {
            "user_id": user_id,
            "product_container_id": product_container_id,
            "virality_pack_id": virality_pack_id,
            "title": title,
            "content": content,
            "status": ScriptStatus.DRAFT.value,
            "compliance_flags": [],
        }
        result = self.supabase.table("scripts").insert(row).execute()
        created = result.data[0] if result.data else row
        logger.info(f"Created script {created.get('id')} for container {product_container_id}")
        return Script(**created)

    def update_script(
        self,
        user_id: str,
        script_id: str,
        title: Optional[str] = None,
        content: Optional[str] = None,
    ) -> Script:
        updates: Dict[str, Any] = {"updated_at": _now()}
        if title is not None:
            updates["title"] = title
        if content is not None:
            updates["content"] = content

        result = self.supabase.table("scripts")\
            .update(updates)\
            .eq("id", script_id)\
            .eq("user_id", user_id)\
            .execute()

        if not result.data:
            raise ScriptNotFoundError(script_id)
        return Script(**result.data[0])

    def get_script(self, user_id: str, script_id: str) -> Script:
        result = self.supabase.table("scripts")\
            .select("*")\
            .eq("id", script_id)\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()

        if not result.data:
            raise ScriptNotFoundError(script_id)
        return Script(**result.data[0])

    def get_script_with_brand_rules(self, user_id: str, script_id: str) -> Dict[str, Any]:
        """Return {"script": Script, "brand_rules": BrandRuleSet | None}."""
        script = self.get_script(user_id, script_id)

        rules = self.supabase.table("brand_rules")\
            .select("forbidden_keywords, required_keywords, custom_rules")\
            .eq("product_container_id", script.product_container_id)\
            .limit(1)\
            .execute()

        brand_rules = BrandRuleSet(**rules.data[0]) if rules.data else None
        return {"script": script, "brand_rules": brand_rules}

    def get_scripts_for_container(self, user_id: str, product_container_id: str) -> List[Script]:
        """Scripts for a container, most recently edited first."""
        result = self.supabase.table("scripts")\
            .select("*")\
            .eq("product_container_id", product_container_id)\
            .eq("user_id", user_id)\
            .order("updated_at", desc=True)\
            .execute()

        return [Script(**row) for row in result.data or []]

    def update_script_status(self, user_id: str, script_id: str, status: ScriptStatus) -> Script:
        status = ScriptStatus(status)
        result = self.supabase.table("scripts")\
            .update({"status": status.value, "updated_at": _now()})\
            .eq("id", script_id)\
            .eq("user_id", user_id)\
            .execute()

        if not result.data:
            raise ScriptNotFoundError(script_id)
        logger.info(f"Script {script_id} -> {status.value}")
        return Script(**result.data[0])

    def update_script_compliance(self, script_id: str, flags: List[ComplianceFlag]) -> None:
        """Replace the stored compliance snapshot."""
        self.supabase.table("scripts")\
            .update({
                "compliance_flags": [f.model_dump(mode="json") for f in flags],
                "updated_at": _now(),
            })\
            .eq("id", script_id)\
            .execute()

    def delete_script(self, user_id: str, script_id: str) -> None:
        self.supabase.table("scripts")\
            .delete()\
            .eq("id", script_id)\
            .eq("user_id", user_id)\
            .execute()
        logger.info(f"Deleted script {script_id}")
