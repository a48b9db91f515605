"""
Saved Search Routes

GET /searches - My active saved searches
POST /searches - Save a search
PUT /searches/{search_id} - Update a saved search
DELETE /searches/{search_id} - Delete a saved search
GET /searches/{search_id}/results - Run a saved search
GET /searches/history - Recent searches
DELETE /searches/history - Clear search history
"""

from typing import List

from fastapi import APIRouter, HTTPException, Depends, Query

from perfectmatch.core.auth import get_current_user
from perfectmatch.services import search_service
from perfectmatch.schemas.schemas import (
    SavedSearchCreate, SavedSearchUpdate, SavedSearchResponse, SearchHistoryResponse,
    JobListResponse, JobResponse, MessageResponse
)

router = APIRouter(prefix="/searches", tags=["Searches"])


@router.get("", response_model=List[SavedSearchResponse])
async def list_saved_searches(user: dict = Depends(get_current_user)):
    return [SavedSearchResponse(**s) for s in search_service.list_saved_searches(user["user_id"])]


@router.post("", response_model=SavedSearchResponse, status_code=201)
async def create_saved_search(data: SavedSearchCreate, user: dict = Depends(get_current_user)):
    saved = search_service.create_saved_search(
        user["user_id"], data.name, data.search_query,
        data.filters.model_dump(exclude_none=True), data.notify_on_match,
    )
    return SavedSearchResponse(**saved)


@router.get("/history", response_model=List[SearchHistoryResponse])
async def get_history(limit: int = Query(10, ge=1, le=100), user: dict = Depends(get_current_user)):
    """Most recent searches first."""
    return [SearchHistoryResponse(**h) for h in search_service.get_search_history(user["user_id"], limit)]


@router.delete("/history", response_model=MessageResponse)
async def clear_history(user: dict = Depends(get_current_user)):
    count = search_service.clear_search_history(user["user_id"])
    return MessageResponse(message=f"Cleared {count} search(es)")


@router.put("/{search_id}", response_model=SavedSearchResponse)
async def update_saved_search(search_id: int, data: SavedSearchUpdate, user: dict = Depends(get_current_user)):
    updates = data.model_dump(exclude_unset=True)
    if updates.get("filters") is not None:
        updates["filters"] = data.filters.model_dump(exclude_none=True)
    saved = search_service.update_saved_search(search_id, user["user_id"], updates)
    if not saved:
        raise HTTPException(status_code=404, detail="Saved search not found")
    return SavedSearchResponse(**saved)


@router.delete("/{search_id}", response_model=MessageResponse)
async def delete_saved_search(search_id: int, user: dict = Depends(get_current_user)):
    if not search_service.delete_saved_search(search_id, user["user_id"]):
        raise HTTPException(status_code=404, detail="Saved search not found")
    return MessageResponse(message="Saved search deleted")


@router.get("/{search_id}/results", response_model=JobListResponse)
async def run_saved_search(
    search_id: int,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=50),
    user: dict = Depends(get_current_user),
):
    """Run a saved search against current jobs."""
    results = search_service.apply_saved_search(search_id, user["user_id"], page, page_size)
    if results is None:
        raise HTTPException(status_code=404, detail="Saved search not found")
    jobs, total = results
    return JobListResponse(jobs=[JobResponse(**j) for j in jobs], total=total, page=page, page_size=page_size)
