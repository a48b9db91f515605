import io

from conftest import COMPLETE_TEACHER, login_headers, register


def test_teacher_profile_lifecycle(client):
    register(client, "new@example.com", "teacher")
    headers = login_headers(client, "new@example.com")

    created = client.post("/api/teachers/profile", json={"full_name": "New Teacher"}, headers=headers)
    assert created.status_code == 201
    assert created.json()["profile_complete"] is False
    assert created.json()["email"] == "new@example.com"

    completion = client.get("/api/teachers/profile/completion", headers=headers).json()
    assert completion["percentage"] == 20
    assert "Subjects" in completion["missing_fields"]

    updated = client.put("/api/teachers/profile", json=COMPLETE_TEACHER, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["profile_complete"] is True

    again = client.post("/api/teachers/profile", json={"full_name": "New Teacher"}, headers=headers)
    assert again.status_code == 400


def test_school_cannot_create_teacher_profile(client, school):
    school_headers, _ = school
    response = client.post("/api/teachers/profile", json={"full_name": "Someone"}, headers=school_headers)
    assert response.status_code == 403


def test_public_teacher_profile_hides_contact_details(client, teacher, school):
    _, profile = teacher
    school_headers, _ = school
    response = client.get(f"/api/teachers/{profile['id']}", headers=school_headers)
    assert response.status_code == 200
    assert response.json()["full_name"] == "Maria Lopez"
    assert "email" not in response.json()
    assert "phone" not in response.json()


def test_new_school_is_pending(client, make_school):
    headers, school = make_school(approved=False)
    assert school["approval_status"] == "pending"
    assert school["profile_complete"] is True

    job = client.post("/api/jobs", json={"title": "Art Teacher"}, headers=headers)
    assert job.status_code == 403


def test_school_completion(client, make_school):
    headers, _ = make_school(approved=False, description=None)
    completion = client.get("/api/schools/profile/completion", headers=headers).json()
    assert completion["percentage"] == 75
    assert completion["missing_fields"] == ["Description"]


def test_resume_upload_validates_type(client, teacher):
    headers, _ = teacher
    response = client.post(
        "/api/teachers/uploads/resume",
        files={"file": ("resume.exe", io.BytesIO(b"MZ"), "application/octet-stream")},
        headers=headers,
    )
    assert response.status_code == 400


def test_profile_image_upload(client, teacher):
    headers, _ = teacher
    png = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
    response = client.post(
        "/api/teachers/uploads/profileImage",
        files={"file": ("me.png", io.BytesIO(png), "image/png")},
        headers=headers,
    )
    assert response.status_code == 200, response.text
    assert response.json()["url"].startswith("/uploads/")

    profile = client.get("/api/teachers/profile", headers=headers).json()
    assert profile["profile_photo_url"] == response.json()["url"]


def test_upload_limits(client, teacher):
    headers, _ = teacher
    limits = client.get("/api/teachers/uploads/limits", headers=headers).json()
    assert set(limits) == {"resume", "profileImage", "portfolio", "schoolLogo"}
