def open_as_teacher(client, teacher, school):
    teacher_headers, _ = teacher
    _, school_profile = school
    return client.post(
        "/api/messages/conversations", json={"school_id": school_profile["id"]}, headers=teacher_headers
    )


def test_one_conversation_per_pair(client, teacher, school):
    school_headers, _ = school
    _, teacher_profile = teacher

    first = open_as_teacher(client, teacher, school)
    assert first.status_code == 200
    assert first.json()["is_new"] is True
    conversation = first.json()["conversation"]
    assert conversation["school_name"] == "Lakeside Middle School"
    assert conversation["teacher_name"] == "Maria Lopez"

    # the school opening it from its side finds the same conversation
    second = client.post(
        "/api/messages/conversations", json={"teacher_id": teacher_profile["id"]}, headers=school_headers
    )
    assert second.json()["is_new"] is False
    assert second.json()["conversation"]["id"] == conversation["id"]


def test_school_must_name_a_teacher(client, school):
    headers, _ = school
    response = client.post("/api/messages/conversations", json={}, headers=headers)
    assert response.status_code == 400


def test_send_and_read_messages(client, teacher, school):
    teacher_headers, _ = teacher
    school_headers, _ = school
    conversation_id = open_as_teacher(client, teacher, school).json()["conversation"]["id"]
    url = f"/api/messages/conversations/{conversation_id}/messages"

    sent = client.post(url, json={"content": "Hello, is the position still open?"}, headers=teacher_headers)
    assert sent.status_code == 201
    assert sent.json()["is_read"] is False
    client.post(url, json={"content": "Yes it is!"}, headers=school_headers)

    messages = client.get(url, headers=school_headers).json()
    assert [m["content"] for m in messages] == ["Hello, is the position still open?", "Yes it is!"]

    school_notifications = client.get("/api/notifications", headers=school_headers).json()
    assert any(n["type"] == "message" and "Maria Lopez" in n["message"] for n in school_notifications)

    conversations = client.get("/api/messages/conversations", headers=school_headers).json()
    assert conversations[0]["unread_count"] == 1

    marked = client.post(f"/api/messages/conversations/{conversation_id}/read", headers=school_headers)
    assert marked.json()["message"] == "Marked 1 message(s) as read"
    conversations = client.get("/api/messages/conversations", headers=school_headers).json()
    assert conversations[0]["unread_count"] == 0


def test_blank_message_rejected(client, teacher, school):
    teacher_headers, _ = teacher
    conversation_id = open_as_teacher(client, teacher, school).json()["conversation"]["id"]
    response = client.post(
        f"/api/messages/conversations/{conversation_id}/messages", json={"content": "   "}, headers=teacher_headers
    )
    assert response.status_code == 400


def test_outsiders_cannot_read_conversation(client, make_teacher, teacher, school):
    conversation_id = open_as_teacher(client, teacher, school).json()["conversation"]["id"]
    other_headers, _ = make_teacher(email="other@example.com")

    url = f"/api/messages/conversations/{conversation_id}/messages"
    assert client.get(url, headers=other_headers).status_code == 403
    assert client.post(url, json={"content": "hi"}, headers=other_headers).status_code == 403
    assert client.get("/api/messages/conversations/999/messages", headers=other_headers).status_code == 404
