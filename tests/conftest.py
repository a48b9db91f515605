"""
Pytest configuration and shared fixtures.

Tests run against an in-memory SQLite database; the schema is rebuilt
for every test.
"""

import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="perfectmatch-uploads-")
os.environ["RESEND_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import insert, update

from perfectmatch.api.routes.email_routes import send_limiter
from perfectmatch.core.auth import hash_password, login_limiter
from perfectmatch.core.config import get_settings
from perfectmatch.db import tables
from perfectmatch.db.postgres import engine, get_db_session
from perfectmatch.db.tables import drop_schema, init_schema
from perfectmatch.main import app

PASSWORD = "Str0ng!Pass"

COMPLETE_TEACHER = {
    "full_name": "Maria Lopez",
    "phone": "555-0101",
    "location": "Austin, TX",
    "bio": "Middle school math teacher who loves puzzles.",
    "years_experience": "5-10",
    "subjects": ["Math", "Science"],
    "grade_levels": ["6-8"],
    "archetype": "The Innovator",
    "teaching_philosophy": "Every student can learn math.",
}

SCHOOL_PROFILE = {
    "school_name": "Lakeside Middle School",
    "school_type": "Public",
    "location": "Austin, TX",
    "description": "A public middle school on the lake.",
}

MATH_JOB = {
    "title": "Middle School Math Teacher",
    "subject": "Math",
    "grade_level": "6-8",
    "job_type": "full-time",
    "location": "Austin, TX",
    "description": "Teach 7th grade math.",
    "archetype_tags": ["The Innovator"],
}


@pytest.fixture(autouse=True)
def fresh_state(monkeypatch):
    drop_schema(engine)
    init_schema(engine)
    login_limiter.reset()
    send_limiter.reset()
    monkeypatch.setattr(get_settings(), "resend_api_key", "")
    yield


@pytest.fixture
def client():
    return TestClient(app)


def register(client, email, role, password=PASSWORD, full_name=""):
    return client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "role": role, "full_name": full_name},
    )


def login_headers(client, email, password=PASSWORD):
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def approve_school(school_id):
    with get_db_session() as db:
        db.execute(
            update(tables.schools).where(tables.schools.c.id == school_id)
            .values(approval_status="approved")
        )


@pytest.fixture
def make_teacher(client):
    """Register a teacher and create a profile. Returns (headers, profile)."""
    def _make(email="maria@example.com", **overrides):
        register(client, email, "teacher")
        headers = login_headers(client, email)
        profile = {**COMPLETE_TEACHER, **overrides}
        response = client.post("/api/teachers/profile", json=profile, headers=headers)
        assert response.status_code == 201, response.text
        return headers, response.json()
    return _make


@pytest.fixture
def make_school(client):
    """Register a school, create its profile and (by default) approve it."""
    def _make(email="hr@lakeside.edu", approved=True, **overrides):
        register(client, email, "school")
        headers = login_headers(client, email)
        response = client.post("/api/schools/profile", json={**SCHOOL_PROFILE, **overrides}, headers=headers)
        assert response.status_code == 201, response.text
        school = response.json()
        if approved:
            approve_school(school["id"])
        return headers, school
    return _make


@pytest.fixture
def teacher(make_teacher):
    return make_teacher()


@pytest.fixture
def school(make_school):
    return make_school()


@pytest.fixture
def admin_headers(client):
    with get_db_session() as db:
        db.execute(insert(tables.users).values(
            email="admin@example.com",
            password_hash=hash_password(PASSWORD),
            role="admin",
            full_name="Admin",
            is_active=True,
        ))
    return login_headers(client, "admin@example.com")


@pytest.fixture
def posted_job(client, school):
    school_headers, _ = school
    response = client.post("/api/jobs", json=MATH_JOB, headers=school_headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def application(client, teacher, posted_job):
    teacher_headers, _ = teacher
    response = client.post(
        f"/api/jobs/{posted_job['id']}/apply",
        json={"cover_letter": "I would love to join Lakeside."},
        headers=teacher_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()
