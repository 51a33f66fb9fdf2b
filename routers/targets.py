from typing import List

from fastapi import APIRouter, HTTPException

from schemas import TargetSetModel, TargetSetSummaryModel
from services.target_service import TargetService

router = APIRouter(prefix="/api/v1/targets", tags=["targets"])

target_service = TargetService()


@router.get("/sets", response_model=List[TargetSetSummaryModel])
def list_target_sets():
    return [TargetSetSummaryModel.from_summary(s) for s in target_service.list_target_sets()]


@router.get("/sets/{target_set_id}", response_model=TargetSetModel)
def get_target_set(target_set_id: str):
    target_set = target_service.get_target_set(target_set_id)
    if target_set is None:
        raise HTTPException(status_code=404, detail="Target set not found")
    return TargetSetModel.from_target_set(target_set)
