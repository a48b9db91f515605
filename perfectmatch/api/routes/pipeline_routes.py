"""
Pipeline Routes (school only)

GET /pipeline/stages - Stages for the school (or a job), defaults created on first use
POST /pipeline/stages - Add a custom stage
PUT /pipeline/stages/reorder - Reorder stages
DELETE /pipeline/stages/{stage_id} - Delete a custom stage
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from perfectmatch.api.errors import service_errors
from perfectmatch.core.auth import get_current_school
from perfectmatch.services import pipeline_service
from perfectmatch.schemas.schemas import (
    PipelineStageCreate, PipelineStageResponse, StageReorderRequest, MessageResponse
)

router = APIRouter(prefix="/pipeline", tags=["Pipeline"])


@router.get("/stages", response_model=List[PipelineStageResponse])
async def get_stages(job_id: Optional[int] = Query(None), school: dict = Depends(get_current_school)):
    """Job-specific stages if the job has any, otherwise the school defaults."""
    stages = pipeline_service.get_pipeline_stages(school["school_id"], job_id)
    return [PipelineStageResponse(**s) for s in stages]


@router.post("/stages", response_model=PipelineStageResponse, status_code=201)
async def add_stage(data: PipelineStageCreate, school: dict = Depends(get_current_school)):
    """Add a custom stage (appended at the end unless order_index is given)."""
    with service_errors():
        stage = pipeline_service.add_stage(
            school["school_id"], data.name, job_id=data.job_id, order_index=data.order_index
        )
    return PipelineStageResponse(**stage)


@router.put("/stages/reorder", response_model=List[PipelineStageResponse])
async def reorder_stages(data: StageReorderRequest, school: dict = Depends(get_current_school)):
    """Renumber stages in the given order."""
    with service_errors():
        stages = pipeline_service.reorder_stages(school["school_id"], data.stage_ids)
    return [PipelineStageResponse(**s) for s in stages]


@router.delete("/stages/{stage_id}", response_model=MessageResponse)
async def delete_stage(stage_id: int, school: dict = Depends(get_current_school)):
    """Delete a custom stage. System stages are permanent."""
    with service_errors():
        pipeline_service.delete_stage(stage_id, school["school_id"])
    return MessageResponse(message="Stage deleted")
