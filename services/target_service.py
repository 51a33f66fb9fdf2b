# services/target_service.py
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from config.target_seed import SEED_TARGET_SET
from services.weighting_types import TargetCategory, TargetSet, TargetSetSummary, VariableDefinition
from utils import supabase_client

logger = logging.getLogger("weighting-backend")

TARGET_SETS_TABLE = "target_sets"
TARGET_VARIABLES_TABLE = "target_variables"


def _summary_from_row(row: Dict[str, Any]) -> TargetSetSummary:
    return TargetSetSummary(
        id=str(row["id"]),
        name=str(row.get("name") or ""),
        universe=str(row.get("universe") or ""),
        geography=str(row.get("geography") or ""),
    )


def _variable_from_row(row: Dict[str, Any]) -> VariableDefinition:
    categories = row.get("categories") or []
    return VariableDefinition(
        key=str(row["key"]),
        label=str(row.get("label") or row["key"]),
        categories=tuple(
            TargetCategory(
                key=str(c["key"]),
                label=str(c.get("label") or c["key"]),
                share=float(c.get("share") or 0.0),
            )
            for c in categories
            if isinstance(c, dict) and c.get("key") is not None
        ),
    )


class TargetService:
    """
    Target-set provider.

    Source of truth: Supabase tables target_sets / target_variables.
    Fallback: the built-in seed set, whenever storage is unconfigured,
    empty or failing.
    """

    def __init__(self, client_factory: Optional[Callable[[], Any]] = None):
        self._client_factory = client_factory

    def _client(self):
        factory = self._client_factory or supabase_client.get_supabase
        return factory()

    def list_target_sets(self) -> List[TargetSetSummary]:
        seed = [SEED_TARGET_SET.summary()]
        client = self._client()
        if client is None:
            return seed

        try:
            res = (
                client
                .table(TARGET_SETS_TABLE)
                .select("id,name,universe,geography")
                .order("name")
                .execute()
            )
        except Exception as e:
            logger.warning(f"Falling back to seed target set list: {e}")
            return seed

        rows = res.data or []
        if not rows:
            return seed
        return [_summary_from_row(r) for r in rows]

    def get_target_set(self, target_set_id: str) -> Optional[TargetSet]:
        if target_set_id == SEED_TARGET_SET.id:
            return SEED_TARGET_SET

        client = self._client()
        if client is None:
            return None

        try:
            set_res = (
                client
                .table(TARGET_SETS_TABLE)
                .select("id,name,universe,geography")
                .eq("id", target_set_id)
                .limit(1)
                .execute()
            )
            if not set_res.data:
                return None

            var_res = (
                client
                .table(TARGET_VARIABLES_TABLE)
                .select("key,label,categories,position")
                .eq("target_set_id", target_set_id)
                .order("position")
                .execute()
            )
            summary = _summary_from_row(set_res.data[0])
            variables = tuple(_variable_from_row(r) for r in (var_res.data or []))
        except Exception as e:
            logger.warning(f"Target set lookup failed for {target_set_id}: {e}")
            return None

        return TargetSet(
            id=summary.id,
            name=summary.name,
            universe=summary.universe,
            geography=summary.geography,
            variables=variables,
        )
