from conftest import MATH_JOB


def test_create_job_matches_complete_teachers(client, teacher, school):
    school_headers, _ = school
    response = client.post("/api/jobs", json=MATH_JOB, headers=school_headers)
    assert response.status_code == 201
    body = response.json()
    assert body["matched_teachers"] == 1
    assert body["school_name"] == "Lakeside Middle School"
    assert body["is_active"] is True


def test_job_search_filters_and_pagination(client, school):
    school_headers, _ = school
    for title, subject in [("Math A", "Math"), ("Math B", "Math"), ("English A", "English")]:
        client.post("/api/jobs", json={**MATH_JOB, "title": title, "subject": subject}, headers=school_headers)

    everything = client.get("/api/jobs").json()
    assert everything["total"] == 3
    assert everything["jobs"][0]["title"] == "English A"

    math = client.get("/api/jobs", params={"subject": "Math", "page_size": 1}).json()
    assert math["total"] == 2
    assert len(math["jobs"]) == 1

    searched = client.get("/api/jobs", params={"search": "english"}).json()
    assert [j["title"] for j in searched["jobs"]] == ["English A"]

    tagged = client.get("/api/jobs", params={"archetype": "The Coach"}).json()
    assert tagged["total"] == 0


def test_job_search_pages_are_disjoint(client, school):
    school_headers, _ = school
    for n in range(5):
        tags = ["The Coach"] if n % 2 else ["The Innovator"]
        client.post("/api/jobs", json={**MATH_JOB, "title": f"Job {n}", "archetype_tags": tags}, headers=school_headers)

    first = client.get("/api/jobs", params={"page_size": 2}).json()
    third = client.get("/api/jobs", params={"page_size": 2, "page": 3}).json()
    assert [j["title"] for j in first["jobs"]] == ["Job 4", "Job 3"]
    assert [j["title"] for j in third["jobs"]] == ["Job 0"]
    assert first["total"] == third["total"] == 5

    beyond = client.get("/api/jobs", params={"page_size": 2, "page": 4}).json()
    assert beyond["jobs"] == []
    assert beyond["total"] == 5

    coaches = client.get("/api/jobs", params={"archetype": "The Coach", "page_size": 1, "page": 2}).json()
    assert coaches["total"] == 2
    assert [j["title"] for j in coaches["jobs"]] == ["Job 1"]


def test_only_owner_can_update_or_delete(client, posted_job, make_school):
    other_headers, _ = make_school(email="hr@hillside.edu", school_name="Hillside High")
    assert client.put(f"/api/jobs/{posted_job['id']}", json={"title": "Taken over"}, headers=other_headers).status_code == 404
    assert client.delete(f"/api/jobs/{posted_job['id']}", headers=other_headers).status_code == 404


def test_deactivated_job_leaves_listing(client, school, posted_job):
    school_headers, _ = school
    response = client.put(f"/api/jobs/{posted_job['id']}", json={"is_active": False}, headers=school_headers)
    assert response.status_code == 200
    assert client.get("/api/jobs").json()["total"] == 0

    # still visible to the owner
    mine = client.get("/api/schools/jobs", headers=school_headers).json()
    assert [j["id"] for j in mine] == [posted_job["id"]]


def test_recorded_search_lands_in_history(client, teacher, posted_job):
    headers, _ = teacher
    client.get("/api/jobs", params={"search": "math", "record": True}, headers=headers)
    history = client.get("/api/searches/history", headers=headers).json()
    assert len(history) == 1
    assert history[0]["search_query"] == "math"
    assert history[0]["result_count"] == 1


def test_saved_jobs(client, teacher, posted_job):
    headers, _ = teacher
    job_id = posted_job["id"]
    assert client.post(f"/api/teachers/saved-jobs/{job_id}", headers=headers).status_code == 201
    assert client.post(f"/api/teachers/saved-jobs/{job_id}", headers=headers).status_code == 409
    assert client.post("/api/teachers/saved-jobs/9999", headers=headers).status_code == 404

    saved = client.get("/api/teachers/saved-jobs", headers=headers).json()
    assert [s["job"]["id"] for s in saved] == [job_id]

    assert client.delete(f"/api/teachers/saved-jobs/{job_id}", headers=headers).status_code == 200
    assert client.get("/api/teachers/saved-jobs", headers=headers).json() == []
