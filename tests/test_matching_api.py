from conftest import COMPLETE_TEACHER, MATH_JOB


def test_school_sees_matched_candidates(client, teacher, school, posted_job):
    school_headers, _ = school
    candidates = client.get(f"/api/matching/jobs/{posted_job['id']}/candidates", headers=school_headers).json()
    assert len(candidates) == 1
    assert candidates[0]["teacher_name"] == "Maria Lopez"
    assert candidates[0]["match_score"] == 100
    assert candidates[0]["status"] == "new"


def test_teacher_is_notified_of_new_job(client, teacher, posted_job):
    headers, _ = teacher
    notifications = client.get("/api/notifications", headers=headers).json()
    assert any(n["type"] == "new_job_match" for n in notifications)

    matches = client.get("/api/matching/my-matches", headers=headers).json()
    assert [m["job"]["id"] for m in matches] == [posted_job["id"]]


def test_completing_a_profile_matches_existing_jobs(client, make_teacher, school, posted_job):
    school_headers, _ = school
    headers, profile = make_teacher(email="late@example.com", phone=None)
    assert profile["profile_complete"] is False
    assert client.get("/api/matching/my-matches", headers=headers).json() == []

    client.put("/api/teachers/profile", json={"phone": "555-0199"}, headers=headers)
    matches = client.get("/api/matching/my-matches", headers=headers).json()
    assert len(matches) == 1

    school_notes = client.get("/api/notifications", headers=school_headers).json()
    assert any(n["type"] == "new_candidate_match" for n in school_notes)


def test_candidate_status_update(client, teacher, school, posted_job):
    school_headers, _ = school
    candidate = client.get("/api/matching/candidates", headers=school_headers).json()[0]
    response = client.put(
        f"/api/matching/candidates/{candidate['id']}",
        json={"status": "shortlisted", "notes": "Strong fit"},
        headers=school_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "shortlisted"
    assert response.json()["school_notes"] == "Strong fit"

    shortlisted = client.get("/api/matching/candidates", params={"status": "shortlisted"}, headers=school_headers)
    assert len(shortlisted.json()) == 1


def test_hidden_matches_are_excluded(client, teacher, posted_job):
    headers, _ = teacher
    match = client.get("/api/matching/my-matches", headers=headers).json()[0]
    favorited = client.put(f"/api/matching/my-matches/{match['id']}", json={"is_favorited": True}, headers=headers)
    assert favorited.json()["is_favorited"] is True

    client.put(f"/api/matching/my-matches/{match['id']}", json={"is_hidden": True}, headers=headers)
    assert client.get("/api/matching/my-matches", headers=headers).json() == []


def test_refresh_requires_complete_profile(client, make_teacher):
    headers, _ = make_teacher(email="partial@example.com", bio=None)
    assert client.post("/api/matching/my-matches/refresh", headers=headers).status_code == 400


def test_rerun_matching_after_new_teacher(client, school, posted_job, make_teacher):
    school_headers, _ = school
    make_teacher(email="second@example.com", location="Dallas, TX")
    response = client.post(f"/api/matching/jobs/{posted_job['id']}/run", headers=school_headers)
    assert response.status_code == 200
    assert response.json()["matched"] == 1


def test_jobs_by_archetype(client, teacher, school):
    school_headers, _ = school
    client.post("/api/jobs", json=MATH_JOB, headers=school_headers)
    client.post("/api/jobs", json={**MATH_JOB, "title": "Coach", "archetype_tags": ["The Coach"]}, headers=school_headers)

    headers, _ = teacher
    jobs = client.get("/api/matching/jobs-by-archetype", params={"tags": ["The Coach"]}, headers=headers).json()
    assert [j["title"] for j in jobs] == ["Coach"]
