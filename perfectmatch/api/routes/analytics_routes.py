"""
Analytics Routes

GET /analytics/time-to-hire - Days from posting to accepted offer, per hire
GET /analytics/conversion - Funnel conversion rates (optional job filter)
GET /analytics/overview - Headline numbers for the school dashboard
GET /analytics/jobs/{job_id}/funnel - Candidate and application counts by status
GET /analytics/admin/overview - Platform totals (admin)
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from perfectmatch.core.auth import get_current_admin, get_current_school
from perfectmatch.services import analytics_service, job_service
from perfectmatch.schemas.schemas import (
    TimeToHireMetric, ConversionMetricsResponse, AnalyticsOverviewResponse,
    JobFunnelResponse, AdminOverviewResponse
)

router = APIRouter(prefix="/analytics", tags=["Analytics"])


def _require_own_job(job_id: int, school_id: int) -> None:
    job = job_service.fetch_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    if job["school_id"] != school_id:
        raise HTTPException(status_code=403, detail="Not your job")


@router.get("/time-to-hire", response_model=List[TimeToHireMetric])
async def time_to_hire(school: dict = Depends(get_current_school)):
    return [TimeToHireMetric(**m) for m in analytics_service.get_time_to_hire(school["school_id"])]


@router.get("/conversion", response_model=ConversionMetricsResponse)
async def conversion(job_id: Optional[int] = Query(None), school: dict = Depends(get_current_school)):
    """Applications -> interviews -> offers -> acceptances."""
    if job_id is not None:
        _require_own_job(job_id, school["school_id"])
    return ConversionMetricsResponse(**analytics_service.get_conversion_metrics(school["school_id"], job_id))


@router.get("/overview", response_model=AnalyticsOverviewResponse)
async def overview(school: dict = Depends(get_current_school)):
    return AnalyticsOverviewResponse(**analytics_service.get_overview(school["school_id"]))


@router.get("/jobs/{job_id}/funnel", response_model=JobFunnelResponse)
async def job_funnel(job_id: int, school: dict = Depends(get_current_school)):
    _require_own_job(job_id, school["school_id"])
    return JobFunnelResponse(**analytics_service.get_job_funnel(job_id))


@router.get("/admin/overview", response_model=AdminOverviewResponse)
async def admin_overview(admin: dict = Depends(get_current_admin)):
    return AdminOverviewResponse(**analytics_service.get_admin_overview())
