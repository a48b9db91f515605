"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from perfectmatch.api.routes.auth_routes import router as auth_router
from perfectmatch.api.routes.teacher_routes import router as teacher_router
from perfectmatch.api.routes.school_routes import router as school_router
from perfectmatch.api.routes.job_routes import router as job_router
from perfectmatch.api.routes.matching_routes import router as matching_router
from perfectmatch.api.routes.application_routes import router as application_router
from perfectmatch.api.routes.pipeline_routes import router as pipeline_router
from perfectmatch.api.routes.offer_routes import router as offer_router
from perfectmatch.api.routes.interview_routes import router as interview_router
from perfectmatch.api.routes.message_routes import router as message_router
from perfectmatch.api.routes.notification_routes import router as notification_router
from perfectmatch.api.routes.search_routes import router as search_router
from perfectmatch.api.routes.analytics_routes import router as analytics_router
from perfectmatch.api.routes.email_routes import router as email_router
from perfectmatch.api.routes.admin_routes import router as admin_router
from perfectmatch.api.routes.review_routes import router as review_router

# Main API router
api_router = APIRouter()

api_router.include_router(auth_router)
api_router.include_router(teacher_router)
api_router.include_router(school_router)
api_router.include_router(job_router)
api_router.include_router(matching_router)
api_router.include_router(application_router)
api_router.include_router(pipeline_router)
api_router.include_router(offer_router)
api_router.include_router(interview_router)
api_router.include_router(message_router)
api_router.include_router(notification_router)
api_router.include_router(search_router)
api_router.include_router(analytics_router)
api_router.include_router(email_router)
api_router.include_router(review_router)
api_router.include_router(admin_router)
