from datetime import datetime, timedelta

from sqlalchemy import update

from perfectmatch.db import tables
from perfectmatch.db.postgres import get_db_session


def in_days(days):
    return (datetime.utcnow() + timedelta(days=days)).replace(microsecond=0).isoformat()


def test_draft_offer_is_hidden_from_teacher(client, teacher, school, application):
    school_headers, _ = school
    teacher_headers, _ = teacher
    offer = client.post(
        "/api/offers",
        json={"application_id": application["id"], "salary_amount": 52000},
        headers=school_headers,
    )
    assert offer.status_code == 201
    assert offer.json()["status"] == "draft"
    assert offer.json()["display_label"] == "Draft"

    assert client.get("/api/offers/mine", headers=teacher_headers).json() == []
    latest = client.get(f"/api/offers/application/{application['id']}", headers=teacher_headers)
    assert latest.status_code == 200
    assert latest.json() is None


def test_extending_offer_moves_application_to_offer_made(client, teacher, school, application):
    school_headers, _ = school
    teacher_headers, _ = teacher
    offer = client.post(
        "/api/offers",
        json={"application_id": application["id"], "salary_amount": 52000, "expiration_date": in_days(7)},
        headers=school_headers,
    ).json()
    extended = client.put(f"/api/offers/{offer['id']}", json={"status": "extended"}, headers=school_headers)
    assert extended.status_code == 200
    assert extended.json()["display_label"] == "Pending"

    current = client.get(f"/api/applications/{application['id']}", headers=teacher_headers).json()
    assert current["status"] == "offer_made"
    assert current["offer_made_at"] is not None

    mine = client.get("/api/offers/mine", headers=teacher_headers).json()
    assert [o["id"] for o in mine] == [offer["id"]]


def test_accepting_offer_hires_teacher(client, teacher, school, application):
    school_headers, _ = school
    teacher_headers, _ = teacher
    offer = client.post(
        "/api/offers",
        json={"application_id": application["id"], "status": "extended", "salary_amount": 50000},
        headers=school_headers,
    ).json()

    response = client.post(f"/api/offers/{offer['id']}/respond", json={"status": "accepted"}, headers=teacher_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "accepted"

    current = client.get(f"/api/applications/{application['id']}", headers=teacher_headers).json()
    assert current["status"] == "hired"

    # answered offers are final
    again = client.post(f"/api/offers/{offer['id']}/respond", json={"status": "declined"}, headers=teacher_headers)
    assert again.status_code == 400
    edit = client.put(f"/api/offers/{offer['id']}", json={"salary_amount": 1}, headers=school_headers)
    assert edit.status_code == 400


def test_expired_offer_cannot_be_accepted(client, teacher, school, application):
    school_headers, _ = school
    teacher_headers, _ = teacher
    offer = client.post(
        "/api/offers",
        json={"application_id": application["id"], "status": "extended"},
        headers=school_headers,
    ).json()
    with get_db_session() as db:
        db.execute(
            update(tables.offers).where(tables.offers.c.id == offer["id"])
            .values(expiration_date=datetime.utcnow() - timedelta(days=1))
        )

    listed = client.get("/api/offers", headers=school_headers).json()
    assert listed[0]["display_status"] == "expired"

    response = client.post(f"/api/offers/{offer['id']}/respond", json={"status": "accepted"}, headers=teacher_headers)
    assert response.status_code == 400
    assert "expired" in response.json()["detail"]


def test_no_offer_on_rejected_application(client, school, application):
    school_headers, _ = school
    client.put(f"/api/applications/{application['id']}/status", json={"status": "rejected"}, headers=school_headers)
    response = client.post("/api/offers", json={"application_id": application["id"]}, headers=school_headers)
    assert response.status_code == 400


def test_accepting_offer_after_withdrawing_leaves_offer_pending(client, teacher, school, application):
    school_headers, _ = school
    teacher_headers, _ = teacher
    offer = client.post(
        "/api/offers",
        json={"application_id": application["id"], "status": "extended"},
        headers=school_headers,
    ).json()
    client.post(f"/api/applications/{application['id']}/withdraw", headers=teacher_headers)

    response = client.post(f"/api/offers/{offer['id']}/respond", json={"status": "accepted"}, headers=teacher_headers)
    assert response.status_code == 400
    assert "withdrawn" in response.json()["detail"]

    listed = client.get("/api/offers", headers=school_headers).json()
    assert listed[0]["status"] == "extended"
    current = client.get(f"/api/applications/{application['id']}", headers=teacher_headers).json()
    assert current["status"] == "withdrawn"


def test_draft_offer_cannot_be_extended_on_rejected_application(client, school, application):
    school_headers, _ = school
    offer = client.post("/api/offers", json={"application_id": application["id"]}, headers=school_headers).json()
    client.put(f"/api/applications/{application['id']}/status", json={"status": "rejected"}, headers=school_headers)

    extended = client.put(f"/api/offers/{offer['id']}", json={"status": "extended"}, headers=school_headers)
    assert extended.status_code == 400

    listed = client.get("/api/offers", headers=school_headers).json()
    assert listed[0]["status"] == "draft"


def test_interview_invite_accept(client, teacher, school, application):
    school_headers, _ = school
    teacher_headers, _ = teacher
    invite = client.post(
        "/api/interviews",
        json={
            "application_id": application["id"],
            "scheduled_at": in_days(3),
            "interview_type": "video",
            "meeting_link": "https://meet.example.com/abc",
        },
        headers=school_headers,
    )
    assert invite.status_code == 201, invite.text
    invite = invite.json()
    assert invite["status"] == "pending"
    assert invite["school_name"] == "Lakeside Middle School"

    notifications = client.get("/api/notifications", headers=teacher_headers).json()
    assert any(n["type"] == "candidate_contacted" for n in notifications)

    mine = client.get("/api/interviews/mine", headers=teacher_headers).json()
    assert [i["id"] for i in mine] == [invite["id"]]

    accepted = client.post(
        f"/api/interviews/{invite['id']}/accept", json={"teacher_notes": "See you then"}, headers=teacher_headers
    )
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "accepted"
    assert accepted.json()["teacher_notes"] == "See you then"

    current = client.get(f"/api/applications/{application['id']}", headers=teacher_headers).json()
    assert current["status"] == "interview_scheduled"

    # an answered invite can't be answered again
    assert client.post(f"/api/interviews/{invite['id']}/decline", headers=teacher_headers).status_code == 400


def test_interview_decline_keeps_application_status(client, teacher, school, application):
    school_headers, _ = school
    teacher_headers, _ = teacher
    invite = client.post(
        "/api/interviews",
        json={"application_id": application["id"], "scheduled_at": in_days(2), "interview_type": "phone"},
        headers=school_headers,
    ).json()

    declined = client.post(f"/api/interviews/{invite['id']}/decline", headers=teacher_headers)
    assert declined.json()["status"] == "declined"
    current = client.get(f"/api/applications/{application['id']}", headers=teacher_headers).json()
    assert current["status"] == "pending"

    school_view = client.get("/api/interviews/school", headers=school_headers).json()
    assert school_view[0]["status"] == "declined"


def test_other_teacher_cannot_answer_invite(client, make_teacher, teacher, school, application):
    school_headers, _ = school
    other_headers, _ = make_teacher(email="other@example.com")
    invite = client.post(
        "/api/interviews",
        json={"application_id": application["id"], "scheduled_at": in_days(2)},
        headers=school_headers,
    ).json()
    assert client.post(f"/api/interviews/{invite['id']}/accept", headers=other_headers).status_code == 403
