import pytest

from perfectmatch.services import notification_service


@pytest.fixture
def user_id(client, teacher):
    headers, _ = teacher
    return client.get("/api/auth/me", headers=headers).json()["id"]


def test_list_and_unread(client, teacher, user_id):
    headers, _ = teacher
    first = notification_service.create_notification(user_id, "profile_viewed", "Viewed", "A school viewed you")
    notification_service.create_notification(user_id, "new_job_match", "Match", "New match")

    listed = client.get("/api/notifications", headers=headers).json()
    assert [n["title"] for n in listed] == ["Match", "Viewed"]
    assert client.get("/api/notifications?limit=1", headers=headers).json()[0]["title"] == "Match"
    assert client.get("/api/notifications/unread-count", headers=headers).json() == {"unread": 2}

    assert client.post(f"/api/notifications/{first}/read", headers=headers).status_code == 200
    unread = client.get("/api/notifications?unread_only=true", headers=headers).json()
    assert [n["title"] for n in unread] == ["Match"]

    client.post("/api/notifications/read-all", headers=headers)
    assert client.get("/api/notifications/unread-count", headers=headers).json() == {"unread": 0}


def test_cannot_read_someone_elses_notification(client, school, user_id):
    school_headers, _ = school
    notification_id = notification_service.create_notification(user_id, "message", "Hi", "Hello")
    response = client.post(f"/api/notifications/{notification_id}/read", headers=school_headers)
    assert response.status_code == 404


def test_unknown_type_rejected(user_id):
    with pytest.raises(ValueError):
        notification_service.create_notification(user_id, "birthday", "Hi", "Hello")


def test_preferences(client, teacher):
    headers, _ = teacher
    defaults = client.get("/api/notifications/preferences", headers=headers).json()
    assert defaults == {
        "email_application_updates": True,
        "email_new_matches": True,
        "email_messages": True,
    }

    updated = client.put(
        "/api/notifications/preferences", json={"email_new_matches": False}, headers=headers
    ).json()
    assert updated["email_new_matches"] is False
    assert updated["email_messages"] is True
    assert client.get("/api/notifications/preferences", headers=headers).json() == updated
