"""
Review Routes

POST /reviews - Review a teacher (as a school) or a school (as a teacher)
GET /reviews/can-review - Whether I may still review someone for a job
GET /reviews/users/{user_id} - Reviews about a user, newest first
GET /reviews/users/{user_id}/rating - Average rating and review count
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from perfectmatch.api.errors import service_errors
from perfectmatch.core.auth import get_current_user
from perfectmatch.services import review_service
from perfectmatch.schemas.schemas import (
    ReviewCreate, ReviewResponse, ReviewType, RatingSummaryResponse, CanReviewResponse
)

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.post("", response_model=ReviewResponse, status_code=201)
async def create_review(data: ReviewCreate, user: dict = Depends(get_current_user)):
    """
    Leave a 1-5 star review.

    Reviews tied to an interview between the two users are marked verified.
    Anonymous reviews hide the reviewer.
    """
    with service_errors():
        review = review_service.create_review(
            reviewer_id=user["user_id"],
            reviewer_role=user["role"],
            reviewee_id=data.reviewee_id,
            review_type=data.review_type.value,
            rating=data.rating,
            job_id=data.job_id,
            interview_id=data.interview_id,
            title=data.title,
            comment=data.comment,
            categories=data.categories,
            is_anonymous=data.is_anonymous,
        )
    return ReviewResponse(**review)


@router.get("/can-review", response_model=CanReviewResponse)
async def can_review(
    reviewee_id: int = Query(...),
    job_id: Optional[int] = Query(None),
    user: dict = Depends(get_current_user),
):
    return CanReviewResponse(can_review=review_service.can_review(user["user_id"], reviewee_id, job_id))


@router.get("/users/{user_id}", response_model=List[ReviewResponse])
async def list_user_reviews(
    user_id: int,
    review_type: ReviewType = Query(...),
    user: dict = Depends(get_current_user),
):
    reviews = review_service.list_user_reviews(user_id, review_type.value)
    return [ReviewResponse(**r) for r in reviews]


@router.get("/users/{user_id}/rating", response_model=RatingSummaryResponse)
async def get_rating(
    user_id: int,
    review_type: ReviewType = Query(...),
    user: dict = Depends(get_current_user),
):
    return RatingSummaryResponse(**review_service.get_average_rating(user_id, review_type.value))
