from conftest import MATH_JOB


def test_list_and_deactivate_users(client, admin_headers, teacher):
    teacher_headers, _ = teacher
    users = client.get("/api/admin/users", headers=admin_headers).json()
    assert {u["email"] for u in users} == {"admin@example.com", "maria@example.com"}

    teachers = client.get("/api/admin/users?role=teacher", headers=admin_headers).json()
    assert [u["email"] for u in teachers] == ["maria@example.com"]

    response = client.put(
        f"/api/admin/users/{teachers[0]['id']}/active", json={"is_active": False}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    # existing tokens stop working and so does logging in
    assert client.get("/api/auth/me", headers=teacher_headers).status_code == 403
    login = client.post("/api/auth/login", json={"email": "maria@example.com", "password": "Str0ng!Pass"})
    assert login.status_code == 403

    client.put(f"/api/admin/users/{teachers[0]['id']}/active", json={"is_active": True}, headers=admin_headers)
    assert client.get("/api/auth/me", headers=teacher_headers).status_code == 200


def test_admin_cannot_deactivate_self(client, admin_headers):
    me = client.get("/api/auth/me", headers=admin_headers).json()
    response = client.put(f"/api/admin/users/{me['id']}/active", json={"is_active": False}, headers=admin_headers)
    assert response.status_code == 400
    missing = client.put("/api/admin/users/999/active", json={"is_active": False}, headers=admin_headers)
    assert missing.status_code == 404


def test_approve_pending_school(client, admin_headers, make_school):
    headers, school = make_school(approved=False)
    assert school["approval_status"] == "pending"
    assert client.post("/api/jobs", json=MATH_JOB, headers=headers).status_code == 403

    pending = client.get("/api/admin/schools?approval_status=pending", headers=admin_headers).json()
    assert [s["id"] for s in pending] == [school["id"]]

    approved = client.post(
        f"/api/admin/schools/{school['id']}/approve", json={"verification_notes": "Checked state registry"},
        headers=admin_headers,
    )
    assert approved.status_code == 200
    assert approved.json()["approval_status"] == "approved"
    assert approved.json()["approved_at"] is not None

    notifications = client.get("/api/notifications", headers=headers).json()
    assert notifications[0]["title"] == "Your school account is approved"
    assert client.post("/api/jobs", json=MATH_JOB, headers=headers).status_code == 201


def test_reject_school(client, admin_headers, make_school):
    headers, school = make_school(approved=False)
    too_short = client.post(f"/api/admin/schools/{school['id']}/reject", json={"reason": "no"}, headers=admin_headers)
    assert too_short.status_code == 422

    rejected = client.post(
        f"/api/admin/schools/{school['id']}/reject", json={"reason": "Could not verify accreditation"},
        headers=admin_headers,
    )
    assert rejected.json()["approval_status"] == "rejected"
    assert rejected.json()["rejection_reason"] == "Could not verify accreditation"

    notifications = client.get("/api/notifications", headers=headers).json()
    assert notifications[0]["message"] == "Reason: Could not verify accreditation"
    assert client.post("/api/jobs", json=MATH_JOB, headers=headers).status_code == 403

    missing = client.post("/api/admin/schools/999/approve", headers=admin_headers)
    assert missing.status_code == 404


def test_admin_job_moderation(client, admin_headers, posted_job):
    listed = client.get("/api/admin/jobs", headers=admin_headers).json()
    assert listed["total"] == 1

    response = client.post(f"/api/admin/jobs/{posted_job['id']}/deactivate", headers=admin_headers)
    assert response.status_code == 200
    assert client.get("/api/jobs").json()["total"] == 0

    # inactive jobs still show up for admins
    listed = client.get("/api/admin/jobs", headers=admin_headers).json()
    assert listed["jobs"][0]["is_active"] is False

    assert client.post("/api/admin/jobs/999/deactivate", headers=admin_headers).status_code == 404


def test_admin_routes_require_admin(client, teacher, school):
    for headers, _ in (teacher, school):
        assert client.get("/api/admin/users", headers=headers).status_code == 403
        assert client.get("/api/admin/schools", headers=headers).status_code == 403
