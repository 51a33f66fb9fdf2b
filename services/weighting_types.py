# services/weighting_types.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

RefusalMap = Dict[str, float]
PartyTargets = Dict[str, float]


@dataclass(frozen=True)
class TargetCategory:
    key: str
    label: str
    share: float


@dataclass(frozen=True)
class VariableDefinition:
    key: str
    label: str
    categories: Tuple[TargetCategory, ...] = ()


@dataclass(frozen=True)
class TargetSetSummary:
    id: str
    name: str
    universe: str
    geography: str


@dataclass(frozen=True)
class TargetSet:
    id: str
    name: str
    universe: str
    geography: str
    variables: Tuple[VariableDefinition, ...] = ()

    def summary(self) -> TargetSetSummary:
        return TargetSetSummary(
            id=self.id,
            name=self.name,
            universe=self.universe,
            geography=self.geography,
        )

    def find_variable(self, key: str) -> Optional[VariableDefinition]:
        for variable in self.variables:
            if variable.key == key:
                return variable
        return None


@dataclass(frozen=True)
class SampleCount:
    variable: str
    category: str
    n: float


@dataclass(frozen=True)
class Caps:
    min: float
    max: float


@dataclass(frozen=True)
class CategoryResult:
    variable: str
    category: str
    target: float
    sample_share: float
    weight: float
    capped: bool


@dataclass(frozen=True)
class CapHit:
    variable: str
    category: str
    suggested_weight: float
    capped_to: float


@dataclass(frozen=True)
class Diagnostics:
    # Single pass: there is no stopping criterion to report on.
    iterations: int = 1
    converged: bool = True
    cap_hits: Tuple[CapHit, ...] = ()


@dataclass(frozen=True)
class ComputeResult:
    run_id: str
    category_table: Tuple[CategoryResult, ...]
    diagnostics: Diagnostics
    respondent_weights_available: bool = False


@dataclass
class WeightingRun:
    """
    Stored run configuration.

    sample_counts accumulates across uploads; last_result is replaced on
    every compute.
    """
    id: str
    target_set_id: str
    variables: Tuple[str, ...]
    party_variable: str
    party_targets: PartyTargets
    refusals: RefusalMap
    caps: Caps
    created_at: str
    sample_counts: list = field(default_factory=list)
    last_result: Optional[ComputeResult] = None
