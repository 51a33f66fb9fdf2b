from pydantic import BaseModel, Field
from typing import Annotated, Dict, List

from services.weighting_types import Caps, SampleCount, TargetSet, TargetSetSummary, WeightingRun

NonEmptyStr = Annotated[str, Field(min_length=1)]
NonNegativeFloat = Annotated[float, Field(ge=0)]
Rate = Annotated[float, Field(ge=0, le=1)]


# ============================================================
# RUN CONFIGURATION (REQUEST)
# ============================================================
class CapsModel(BaseModel):
    min: float = Field(gt=0)
    max: float = Field(gt=0)

    def to_caps(self) -> Caps:
        return Caps(min=self.min, max=self.max)


class CreateRunRequest(BaseModel):
    """
    Body of POST /api/v1/runs.

    refusals maps variable key -> refusal rate in [0, 1]; variables
    missing from it are not adjusted.
    """

    targetSetId: NonEmptyStr
    variables: List[NonEmptyStr] = Field(min_length=1)
    partyVariable: NonEmptyStr
    partyTargets: Dict[str, NonNegativeFloat]
    refusals: Dict[str, Rate] = Field(default_factory=dict)
    caps: CapsModel


class CreateRunResponse(BaseModel):
    runId: str


# ============================================================
# SAMPLE COUNTS (REQUEST)
# ============================================================
class SampleCountItem(BaseModel):
    variable: NonEmptyStr
    category: NonEmptyStr
    n: NonNegativeFloat

    def to_sample_count(self) -> SampleCount:
        return SampleCount(variable=self.variable, category=self.category, n=self.n)


class SampleCountsRequest(BaseModel):
    counts: List[SampleCountItem] = Field(min_length=1)


# ============================================================
# RUN (RESPONSE)
# ============================================================
class RunResponse(BaseModel):
    id: str
    targetSetId: str
    variables: List[str]
    partyVariable: str
    partyTargets: Dict[str, float]
    refusals: Dict[str, float]
    caps: CapsModel
    createdAt: str
    sampleCountEntries: int = 0
    hasResult: bool = False

    @classmethod
    def from_run(cls, run: WeightingRun) -> "RunResponse":
        return cls(
            id=run.id,
            targetSetId=run.target_set_id,
            variables=list(run.variables),
            partyVariable=run.party_variable,
            partyTargets=dict(run.party_targets),
            refusals=dict(run.refusals),
            caps=CapsModel(min=run.caps.min, max=run.caps.max),
            createdAt=run.created_at,
            sampleCountEntries=len(run.sample_counts),
            hasResult=run.last_result is not None,
        )


# ============================================================
# COMPUTE RESULT (RESPONSE)
# ============================================================
class CategoryResultModel(BaseModel):
    variable: str
    category: str
    target: float
    sampleShare: float
    weight: float
    capped: bool


class CapHitModel(BaseModel):
    variable: str
    category: str
    suggestedWeight: float
    cappedTo: float


class DiagnosticsModel(BaseModel):
    iterations: int
    converged: bool
    capHits: List[CapHitModel]


class ComputeResultResponse(BaseModel):
    runId: str
    categoryTable: List[CategoryResultModel]
    diagnostics: DiagnosticsModel
    respondentWeightsAvailable: bool = False


# ============================================================
# TARGET SETS (RESPONSE)
# ============================================================
class TargetCategoryModel(BaseModel):
    key: str
    label: str
    share: float


class VariableDefinitionModel(BaseModel):
    key: str
    label: str
    categories: List[TargetCategoryModel]


class TargetSetSummaryModel(BaseModel):
    id: str
    name: str
    universe: str
    geography: str

    @classmethod
    def from_summary(cls, summary: TargetSetSummary) -> "TargetSetSummaryModel":
        return cls(id=summary.id, name=summary.name, universe=summary.universe, geography=summary.geography)


class TargetSetModel(TargetSetSummaryModel):
    variables: List[VariableDefinitionModel]

    @classmethod
    def from_target_set(cls, target_set: TargetSet) -> "TargetSetModel":
        return cls(
            id=target_set.id,
            name=target_set.name,
            universe=target_set.universe,
            geography=target_set.geography,
            variables=[
                VariableDefinitionModel(
                    key=v.key,
                    label=v.label,
                    categories=[TargetCategoryModel(key=c.key, label=c.label, share=c.share) for c in v.categories],
                )
                for v in target_set.variables
            ],
        )
