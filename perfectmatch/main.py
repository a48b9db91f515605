"""
PerfectMatchSchools - Main Application

FastAPI backend with:
- PostgreSQL for all data (SQLite in tests)
- Teacher/job matching on profile completion and job posting
- JWT authentication
- Resend transactional email

Run: uvicorn perfectmatch.main:app --reload
"""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from perfectmatch.api.routes import api_router
from perfectmatch.core.config import get_settings
from perfectmatch.core.logging_setup import setup_logging
from perfectmatch.db.postgres import engine, ping_database
from perfectmatch.db.tables import init_schema
from perfectmatch.services import email_service

settings = get_settings()
setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="PerfectMatchSchools",
    description="""
    A hiring marketplace connecting K-12 teachers with schools.

    ## Features
    - **Authentication**: JWT-based auth for teachers, schools and admins
    - **Teachers**: Profiles, document uploads, job search, saved jobs, applications
    - **Schools**: Profiles (admin approved), job postings, hiring pipeline, offers, interviews
    - **Matching**: Scored teacher/job matches on subject, grade, location and archetype
    - **Messaging & Notifications**: Conversations, in-app notifications, queued email
    - **Analytics**: Time to hire, funnel conversion, per-job funnels
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")

# Uploaded resumes, photos and logos
os.makedirs(settings.upload_dir, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")


@app.on_event("startup")
async def startup_event():
    """Create tables that don't exist yet."""
    try:
        init_schema(engine)
        logger.info("Database schema ready")
    except Exception:
        logger.exception("Database schema initialization failed")
    if not email_service.is_configured():
        logger.warning("RESEND_API_KEY not set; emails will stay queued")


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "PerfectMatchSchools"}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "database": "connected" if ping_database() else "disconnected",
        "email": "configured" if email_service.is_configured() else "not configured",
    }
