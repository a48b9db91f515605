"""
Offer Routes

POST /offers - Create offer for an application (school)
GET /offers - List the school's offers (optional job filter)
GET /offers/mine - Offers made to the teacher
GET /offers/application/{application_id} - Latest offer for an application
PUT /offers/{offer_id} - Update offer (school)
POST /offers/{offer_id}/respond - Accept or decline (teacher)
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from perfectmatch.api.errors import service_errors
from perfectmatch.core.auth import get_approved_school, get_current_school, get_current_teacher, get_current_user
from perfectmatch.db.postgres import get_db_session
from perfectmatch.services import application_service, offer_service, profile_service
from perfectmatch.schemas.schemas import OfferCreate, OfferUpdate, OfferRespondRequest, OfferResponse

router = APIRouter(prefix="/offers", tags=["Offers"])


@router.post("", response_model=OfferResponse, status_code=201)
async def create_offer(data: OfferCreate, school: dict = Depends(get_approved_school)):
    """Create an offer. Status 'extended' sends it and moves the application to offer_made."""
    payload = data.model_dump()
    payload["status"] = data.status.value
    with service_errors():
        offer = offer_service.create_offer(school["school_id"], school["user_id"], payload)
    return OfferResponse(**offer)


@router.get("", response_model=List[OfferResponse])
async def list_offers(job_id: Optional[int] = Query(None), school: dict = Depends(get_current_school)):
    """Offers on the school's jobs, newest first."""
    return [OfferResponse(**o) for o in offer_service.list_school_offers(school["school_id"], job_id)]


@router.get("/mine", response_model=List[OfferResponse])
async def list_my_offers(teacher: dict = Depends(get_current_teacher)):
    """Offers extended to the teacher."""
    return [OfferResponse(**o) for o in offer_service.list_teacher_offers(teacher["teacher_id"])]


@router.get("/application/{application_id}", response_model=Optional[OfferResponse])
async def get_application_offer(application_id: int, user: dict = Depends(get_current_user)):
    """Latest offer for an application (null if none)."""
    application = application_service.get_application(application_id)
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")

    with get_db_session() as db:
        teacher = profile_service.get_teacher_by_user(db, user["user_id"])
        school = profile_service.get_school_by_user(db, user["user_id"])
    is_teacher = teacher is not None and teacher["id"] == application["teacher_id"]
    is_school = school is not None and school["id"] == application["school_id"]
    if not (is_teacher or is_school or user["role"] == "admin"):
        raise HTTPException(status_code=403, detail="Not your application")

    offer = offer_service.get_application_offer(application_id)
    if offer and is_teacher and offer["status"] in ("draft", "approval_pending"):
        return None
    return OfferResponse(**offer) if offer else None


@router.put("/{offer_id}", response_model=OfferResponse)
async def update_offer(offer_id: int, data: OfferUpdate, school: dict = Depends(get_approved_school)):
    """Update offer terms or status."""
    updates = data.model_dump(exclude_unset=True)
    if "status" in updates:
        status = updates.pop("status")
        if status is not None:
            updates["status"] = status.value
    with service_errors():
        offer = offer_service.update_offer(offer_id, school["school_id"], school["user_id"], updates)
    return OfferResponse(**offer)


@router.post("/{offer_id}/respond", response_model=OfferResponse)
async def respond_to_offer(offer_id: int, data: OfferRespondRequest, teacher: dict = Depends(get_current_teacher)):
    """Accept or decline an extended offer. Accepting marks the application hired."""
    with service_errors():
        offer = offer_service.respond_to_offer(
            offer_id, teacher["teacher_id"], teacher["user_id"], data.status.value
        )
    return OfferResponse(**offer)
