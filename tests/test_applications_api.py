from sqlalchemy import func, select

from conftest import MATH_JOB
from perfectmatch.db import tables
from perfectmatch.db.postgres import get_db_session
from perfectmatch.services import application_service


def queued_templates():
    with get_db_session() as db:
        return [r[0] for r in db.execute(select(tables.email_queue.c.template_name)).fetchall()]


def test_apply_creates_pending_application_and_notifies_school(client, school, application):
    school_headers, _ = school
    assert application["status"] == "pending"
    assert application["school_name"] == "Lakeside Middle School"

    notifications = client.get("/api/notifications", headers=school_headers).json()
    assert notifications[0]["type"] == "new_application"
    assert "Maria Lopez" in notifications[0]["message"]


def test_duplicate_application_conflicts(client, teacher, posted_job, application):
    headers, _ = teacher
    response = client.post(f"/api/jobs/{posted_job['id']}/apply", json={}, headers=headers)
    assert response.status_code == 409


def test_racing_duplicate_application_conflicts(client, monkeypatch, teacher, posted_job, application):
    # the second submit gets past the lookup and hits the unique constraint
    monkeypatch.setattr(application_service, "_has_applied", lambda db, job_id, teacher_id: False)
    headers, _ = teacher
    response = client.post(f"/api/jobs/{posted_job['id']}/apply", json={}, headers=headers)
    assert response.status_code == 409

    with get_db_session() as db:
        count = db.execute(select(func.count()).select_from(tables.applications)).scalar_one()
    assert count == 1


def test_required_cover_letter(client, teacher, school):
    school_headers, _ = school
    job = client.post(
        "/api/jobs",
        json={**MATH_JOB, "application_requirements": {"cover_letter": True}},
        headers=school_headers,
    ).json()
    headers, _ = teacher
    response = client.post(f"/api/jobs/{job['id']}/apply", json={"cover_letter": "  "}, headers=headers)
    assert response.status_code == 400


def test_cannot_apply_to_closed_job(client, teacher, school, posted_job):
    school_headers, _ = school
    client.put(f"/api/jobs/{posted_job['id']}", json={"is_active": False}, headers=school_headers)
    headers, _ = teacher
    response = client.post(f"/api/jobs/{posted_job['id']}/apply", json={}, headers=headers)
    assert response.status_code == 400


def test_status_change_notifies_and_queues_email(client, teacher, school, application):
    school_headers, _ = school
    teacher_headers, _ = teacher
    response = client.put(
        f"/api/applications/{application['id']}/status",
        json={"status": "shortlisted", "notes": "Great interview"},
        headers=school_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "shortlisted"
    assert response.json()["school_notes"] == "Great interview"

    notifications = client.get("/api/notifications", headers=teacher_headers).json()
    assert any(n["type"] == "application_status" for n in notifications)
    assert "application_status_changed" in queued_templates()


def test_status_email_respects_preferences(client, teacher, school, application):
    school_headers, _ = school
    teacher_headers, _ = teacher
    client.put("/api/notifications/preferences", json={"email_application_updates": False}, headers=teacher_headers)
    client.put(f"/api/applications/{application['id']}/status", json={"status": "reviewed"}, headers=school_headers)
    assert "application_status_changed" not in queued_templates()


def test_terminal_status_cannot_change(client, school, application):
    school_headers, _ = school
    url = f"/api/applications/{application['id']}/status"
    assert client.put(url, json={"status": "rejected"}, headers=school_headers).status_code == 200
    response = client.put(url, json={"status": "shortlisted"}, headers=school_headers)
    assert response.status_code == 400
    assert "rejected" in response.json()["detail"]


def test_same_status_only_updates_notes(client, school, application):
    school_headers, _ = school
    url = f"/api/applications/{application['id']}/status"
    response = client.put(url, json={"status": "pending", "notes": "Call back Monday"}, headers=school_headers)
    assert response.json()["school_notes"] == "Call back Monday"

    timeline = client.get(f"/api/applications/{application['id']}/timeline", headers=school_headers).json()
    assert len(timeline["history"]) == 1


def test_other_school_cannot_touch_application(client, make_school, application):
    other_headers, _ = make_school(email="hr@hillside.edu")
    url = f"/api/applications/{application['id']}"
    assert client.get(url, headers=other_headers).status_code == 403
    assert client.put(url + "/status", json={"status": "reviewed"}, headers=other_headers).status_code == 403


def test_withdraw(client, teacher, application):
    headers, _ = teacher
    response = client.post(f"/api/applications/{application['id']}/withdraw", headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "withdrawn"
    assert "application_status_changed" not in queued_templates()

    again = client.post(f"/api/applications/{application['id']}/withdraw", headers=headers)
    assert again.status_code == 200


def test_timeline(client, teacher, school, application):
    school_headers, _ = school
    teacher_headers, _ = teacher
    client.put(f"/api/applications/{application['id']}/status", json={"status": "under_review"}, headers=school_headers)

    timeline = client.get(f"/api/applications/{application['id']}/timeline", headers=teacher_headers).json()
    assert timeline["current_status"] == "under_review"
    assert timeline["current_label"] == "Under Review"
    assert [h["new_status"] for h in timeline["history"]] == ["pending", "under_review"]
    assert timeline["next_steps"][0]["status"] == "reviewed"


def test_teacher_listing_and_stats(client, teacher, school, application):
    headers, _ = teacher
    mine = client.get("/api/teachers/applications", headers=headers).json()
    assert [a["id"] for a in mine] == [application["id"]]
    assert client.get("/api/teachers/applications", params={"search": "lakeside"}, headers=headers).json()
    assert client.get("/api/teachers/applications", params={"status": "rejected"}, headers=headers).json() == []

    stats = client.get("/api/teachers/applications/stats", headers=headers).json()
    assert stats["total"] == 1
    assert stats["pending"] == 1
    assert stats["this_week"] == 1


def test_school_listing(client, school, application):
    school_headers, _ = school
    rows = client.get("/api/applications/school", headers=school_headers).json()
    assert [r["teacher_name"] for r in rows] == ["Maria Lopez"]
