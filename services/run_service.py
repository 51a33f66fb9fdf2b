# services/run_service.py
from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, Optional, Sequence

from services import weighting_engine
from services.result_repository import save_result_snapshot
from services.target_service import TargetService
from services.weighting_types import (
    Caps,
    ComputeResult,
    PartyTargets,
    RefusalMap,
    SampleCount,
    WeightingRun,
)

logger = logging.getLogger("weighting-backend")


class RunNotFoundError(LookupError):
    def __init__(self, run_id: str):
        super().__init__("Run not found")
        self.run_id = run_id


class TargetSetNotFoundError(LookupError):
    def __init__(self, target_set_id: str):
        super().__init__(f"Target set {target_set_id} not found")
        self.target_set_id = target_set_id


class RunService:
    """
    In-memory run registry.

    Holds each run's configuration, the sample counts uploaded so far and
    the last computed result. Runs do not survive a restart; the latest
    result of each run is mirrored to storage on a best-effort basis.
    """

    def __init__(
        self,
        target_service: Optional[TargetService] = None,
        snapshot_writer: Optional[Callable[[WeightingRun, ComputeResult], object]] = None,
    ):
        self._runs: Dict[str, WeightingRun] = {}
        self._lock = threading.Lock()
        self._target_service = target_service or TargetService()
        self._snapshot_writer = snapshot_writer or save_result_snapshot

    def create_run(
        self,
        *,
        target_set_id: str,
        variables: Sequence[str],
        party_variable: str,
        party_targets: PartyTargets,
        refusals: RefusalMap,
        caps: Caps,
    ) -> WeightingRun:
        run = WeightingRun(
            id=str(uuid.uuid4()),
            target_set_id=target_set_id,
            variables=tuple(variables),
            party_variable=party_variable,
            party_targets=dict(party_targets),
            refusals=dict(refusals),
            caps=caps,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        with self._lock:
            self._runs[run.id] = run
        logger.info(f"Run {run.id} created (target set {target_set_id}, variables={list(run.variables)})")
        return run

    def get_run(self, run_id: str) -> Optional[WeightingRun]:
        return self._runs.get(run_id)

    def _require_run(self, run_id: str) -> WeightingRun:
        run = self._runs.get(run_id)
        if run is None:
            raise RunNotFoundError(run_id)
        return run

    def add_sample_counts(self, run_id: str, counts: Iterable[SampleCount]) -> WeightingRun:
        with self._lock:
            run = self._require_run(run_id)
            run.sample_counts.extend(counts)
        return run

    def compute(self, run_id: str) -> ComputeResult:
        with self._lock:
            run = self._require_run(run_id)
            counts = list(run.sample_counts)

        target_set = self._target_service.get_target_set(run.target_set_id)
        if target_set is None:
            raise TargetSetNotFoundError(run.target_set_id)

        selected, party_found = weighting_engine.select_variables(
            target_set, run.variables, run.party_variable
        )
        if not party_found:
            logger.warning(
                f"Party variable {run.party_variable} not found in target set "
                f"{target_set.id} for run {run.id}; skipping"
            )

        result = weighting_engine.compute_weights(
            run.id,
            selected,
            counts,
            run.refusals,
            run.party_variable,
            run.party_targets,
            run.caps,
        )

        with self._lock:
            run.last_result = result

        logger.info(
            f"Run {run.id} computed: {len(result.category_table)} categories, "
            f"{len(result.diagnostics.cap_hits)} cap hits"
        )
        self._snapshot_writer(run, result)
        return result

    def get_last_result(self, run_id: str) -> Optional[ComputeResult]:
        run = self._runs.get(run_id)
        return run.last_result if run else None
