import pytest
import requests
from sqlalchemy import select

from perfectmatch.core.config import get_settings
from perfectmatch.db import tables
from perfectmatch.db.postgres import get_db_session
from perfectmatch.services import email_service

EMAIL = {"to": ["maria@example.com"], "subject": "Hello", "html": "<p>Hi Maria</p>"}


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body or {}
        self.text = str(self._body)

    def json(self):
        return self._body


@pytest.fixture
def resend(monkeypatch):
    """Configure email and capture what would be posted to Resend."""
    monkeypatch.setattr(get_settings(), "resend_api_key", "re_test_key")
    calls = []
    replies = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append({"url": url, "json": json, "headers": headers})
        return replies.pop(0) if replies else FakeResponse(200, {"id": f"msg_{len(calls)}"})

    monkeypatch.setattr(email_service.requests, "post", fake_post)
    return calls, replies


def queue_status_email(recipient="maria@example.com"):
    return email_service.queue_email(
        recipient, "Application update", "application_status_changed",
        {"teacher_name": "Maria", "job_title": "Math Teacher", "school_name": "Lakeside", "new_status": "shortlisted"},
    )


def queued_rows():
    with get_db_session() as db:
        return [dict(r) for r in db.execute(select(tables.email_queue).order_by(tables.email_queue.c.id)).mappings()]


def test_send_requires_configuration(client, teacher):
    headers, _ = teacher
    response = client.post("/api/email/send", json=EMAIL, headers=headers)
    assert response.status_code == 503


def test_send_through_resend(client, teacher, resend):
    headers, _ = teacher
    calls, _ = resend
    response = client.post("/api/email/send", json={**EMAIL, "text": "Hi Maria"}, headers=headers)
    assert response.status_code == 200
    assert response.json() == {"success": True, "message_id": "msg_1"}

    sent = calls[0]
    assert sent["url"] == "https://api.resend.com/emails"
    assert sent["headers"]["Authorization"] == "Bearer re_test_key"
    assert sent["json"]["to"] == ["maria@example.com"]
    assert sent["json"]["text"] == "Hi Maria"
    assert "reply_to" not in sent["json"]


def test_provider_error_is_bad_gateway(client, teacher, resend):
    headers, _ = teacher
    _, replies = resend
    replies.append(FakeResponse(422, {"message": "invalid from"}))
    response = client.post("/api/email/send", json=EMAIL, headers=headers)
    assert response.status_code == 502


def test_network_error_is_bad_gateway(client, teacher, monkeypatch):
    headers, _ = teacher
    monkeypatch.setattr(get_settings(), "resend_api_key", "re_test_key")

    def boom(*args, **kwargs):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(email_service.requests, "post", boom)
    assert client.post("/api/email/send", json=EMAIL, headers=headers).status_code == 502


def test_send_is_rate_limited_per_user(client, teacher, school):
    headers, _ = teacher
    school_headers, _ = school
    for _ in range(10):
        assert client.post("/api/email/send", json=EMAIL, headers=headers).status_code == 503
    assert client.post("/api/email/send", json=EMAIL, headers=headers).status_code == 429
    # the limit is per user
    assert client.post("/api/email/send", json=EMAIL, headers=school_headers).status_code == 503


def test_flush_delivers_queue(client, admin_headers, resend):
    calls, _ = resend
    queue_status_email()
    queue_status_email("other@example.com")

    response = client.post("/api/email/flush", headers=admin_headers)
    assert response.json() == {"processed": 2, "sent": 2, "failed": 0, "retrying": 0}

    rows = queued_rows()
    assert [r["status"] for r in rows] == ["sent", "sent"]
    assert rows[0]["provider_id"] == "msg_1"
    assert "shortlisted" in calls[0]["json"]["html"]
    assert calls[0]["json"]["tags"] == [{"name": "template", "value": "application_status_changed"}]

    # nothing left to send
    assert client.post("/api/email/flush", headers=admin_headers).json()["processed"] == 0


def test_flush_retries_then_fails(client, admin_headers, resend):
    _, replies = resend
    replies.extend([FakeResponse(500), FakeResponse(500), FakeResponse(500)])
    queue_status_email()

    first = client.post("/api/email/flush", headers=admin_headers).json()
    assert first["retrying"] == 1
    second = client.post("/api/email/flush", headers=admin_headers).json()
    assert second["retrying"] == 1
    third = client.post("/api/email/flush", headers=admin_headers).json()
    assert third["failed"] == 1

    row = queued_rows()[0]
    assert row["status"] == "failed"
    assert row["attempts"] == 3
    assert "500" in row["last_error"]


def test_flush_is_admin_only(client, teacher):
    headers, _ = teacher
    assert client.post("/api/email/flush", headers=headers).status_code == 403


def test_queue_rejects_unknown_template():
    with pytest.raises(ValueError):
        email_service.queue_email("maria@example.com", "Hi", "birthday_card", {})


# ============================================================
# TEMPLATES
# ============================================================

TEMPLATE = {
    "name": "Interview invite",
    "subject": "Interview for {{job_title}}",
    "body": "Hi {{teacher_first_name}}, {{school_name}} would like to meet you on {{interview_date}}.",
    "category": "interview",
}


def test_template_crud(client, school):
    headers, _ = school
    created = client.post("/api/email/templates", json=TEMPLATE, headers=headers)
    assert created.status_code == 201
    template = created.json()
    assert template["variables"] == [
        "{{job_title}}", "{{teacher_first_name}}", "{{school_name}}", "{{interview_date}}",
    ]
    assert template["category"] == "interview"

    listed = client.get("/api/email/templates?category=interview", headers=headers).json()
    assert [t["id"] for t in listed] == [template["id"]]
    assert client.get("/api/email/templates?category=offer", headers=headers).json() == []

    updated = client.put(f"/api/email/templates/{template['id']}", json={"name": "Invite"}, headers=headers)
    assert updated.json()["name"] == "Invite"
    assert client.put(f"/api/email/templates/{template['id']}", json={}, headers=headers).status_code == 400

    assert client.delete(f"/api/email/templates/{template['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/email/templates/{template['id']}", headers=headers).status_code == 404


def test_templates_are_per_school(client, school, make_school):
    headers, _ = school
    other_headers, _ = make_school(email="hr@hillside.edu", school_name="Hillside Elementary")
    template = client.post("/api/email/templates", json=TEMPLATE, headers=headers).json()
    assert client.get(f"/api/email/templates/{template['id']}", headers=other_headers).status_code == 404
    assert client.delete(f"/api/email/templates/{template['id']}", headers=other_headers).status_code == 404


def test_preview_with_labels(client, school):
    headers, _ = school
    template = client.post("/api/email/templates", json=TEMPLATE, headers=headers).json()
    preview = client.get(f"/api/email/templates/{template['id']}/preview", headers=headers).json()
    assert preview["subject"] == "Interview for [Job Title]"
    assert preview["body"].startswith("Hi [First Name], [School Name]")


def test_preview_with_application(client, school, application):
    headers, _ = school
    template = client.post("/api/email/templates", json=TEMPLATE, headers=headers).json()
    url = f"/api/email/templates/{template['id']}/preview?application_id={application['id']}"
    preview = client.get(url, headers=headers).json()
    assert preview["subject"] == "Interview for Middle School Math Teacher"
    assert preview["body"] == (
        "Hi Maria, Lakeside Middle School would like to meet you on [Interview Date]."
    )


def test_preview_with_foreign_application(client, make_school, application):
    other_headers, _ = make_school(email="hr@hillside.edu", school_name="Hillside Elementary")
    template = client.post("/api/email/templates", json=TEMPLATE, headers=other_headers).json()
    url = f"/api/email/templates/{template['id']}/preview?application_id={application['id']}"
    assert client.get(url, headers=other_headers).status_code == 404
