from fastapi import APIRouter, HTTPException, Response

from routers.targets import target_service
from schemas import (
    ComputeResultResponse,
    CreateRunRequest,
    CreateRunResponse,
    RunResponse,
    SampleCountsRequest,
)
from services.export_service import export_filename, render_category_csv, result_payload
from services.run_service import RunNotFoundError, RunService, TargetSetNotFoundError

router = APIRouter(prefix="/api/v1/runs", tags=["runs"])

run_service = RunService(target_service)


@router.post("", status_code=201, response_model=CreateRunResponse)
def create_run(req: CreateRunRequest):
    run = run_service.create_run(
        target_set_id=req.targetSetId,
        variables=req.variables,
        party_variable=req.partyVariable,
        party_targets=req.partyTargets,
        refusals=req.refusals,
        caps=req.caps.to_caps(),
    )
    return CreateRunResponse(runId=run.id)


@router.get("/{run_id}", response_model=RunResponse)
def get_run(run_id: str):
    run = run_service.get_run(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail="Run not found")
    return RunResponse.from_run(run)


@router.post("/{run_id}/sample-counts", status_code=204)
def add_sample_counts(run_id: str, req: SampleCountsRequest):
    try:
        run_service.add_sample_counts(run_id, [c.to_sample_count() for c in req.counts])
    except RunNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=204)


@router.post("/{run_id}/compute", response_model=ComputeResultResponse)
def compute_run(run_id: str):
    try:
        result = run_service.compute(run_id)
    except (RunNotFoundError, TargetSetNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    return ComputeResultResponse.model_validate(result_payload(result))


@router.get("/{run_id}/export/category-weights.csv")
def export_category_weights(run_id: str):
    result = run_service.get_last_result(run_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Run results not found. Compute the run first.")

    return Response(
        content=render_category_csv(result.category_table),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(run_id)}"'},
    )


@router.get("/{run_id}/export/respondent-weights.csv")
def export_respondent_weights(run_id: str):
    raise HTTPException(
        status_code=404,
        detail="Respondent-level weights are not available; only category weights are computed.",
    )
