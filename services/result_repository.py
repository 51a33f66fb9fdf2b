# services/result_repository.py

from __future__ import annotations

import logging
from datetime import datetime, timezone

from services.export_service import result_payload
from services.weighting_types import ComputeResult, WeightingRun
from utils import supabase_client

logger = logging.getLogger("weighting-backend")

RESULTS_TABLE = "weighting_results"


# ============================================================
# WRITE: Persist the latest result of a run (idempotent by run_id)
# ============================================================
def save_result_snapshot(run: WeightingRun, result: ComputeResult) -> bool:
    """
    Persists the run configuration and its latest result.

    Design rules:
    - Best-effort only: storage errors are logged, never raised
    - One row per run (upsert on run_id); recomputing overwrites it
    - Returns True when a row was written
    """

    if not supabase_client.is_supabase_configured():
        return False

    record = {
        "run_id": run.id,
        "target_set_id": run.target_set_id,
        "variables": list(run.variables),
        "party_variable": run.party_variable,
        "party_targets": dict(run.party_targets),
        "refusals": dict(run.refusals),
        "caps": {"min": run.caps.min, "max": run.caps.max},
        "result": result_payload(result),
        "cap_hit_count": len(result.diagnostics.cap_hits),
        "computed_at": datetime.now(timezone.utc).isoformat(),
    }

    try:
        supabase_client.supabase_upsert(
            table=RESULTS_TABLE,
            records=[record],
            conflict_col="run_id",
        )
    except Exception as e:
        logger.warning(f"Result snapshot for run {run.id} not persisted: {e}")
        return False
    return True
