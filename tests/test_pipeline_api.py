def stage_names(stages):
    return [s["name"] for s in stages]


def test_default_stages_created_on_first_use(client, school):
    headers, _ = school
    stages = client.get("/api/pipeline/stages", headers=headers).json()
    assert stage_names(stages) == [
        "New", "Reviewed", "Phone Screen", "Interview", "Offer", "Hired", "Rejected",
    ]
    assert [s["order_index"] for s in stages] == list(range(7))

    # second call doesn't create duplicates
    assert len(client.get("/api/pipeline/stages", headers=headers).json()) == 7


def test_add_and_reorder_stages(client, school):
    headers, _ = school
    stages = client.get("/api/pipeline/stages", headers=headers).json()

    added = client.post("/api/pipeline/stages", json={"name": "Demo Lesson"}, headers=headers)
    assert added.status_code == 201
    assert added.json()["order_index"] == 7
    assert added.json()["type"] == "custom"

    ids = [added.json()["id"]] + [s["id"] for s in stages]
    reordered = client.put("/api/pipeline/stages/reorder", json={"stage_ids": ids}, headers=headers)
    assert reordered.status_code == 200
    assert stage_names(reordered.json())[0] == "Demo Lesson"


def test_reorder_rejects_unknown_stage(client, school):
    headers, _ = school
    client.get("/api/pipeline/stages", headers=headers)
    response = client.put("/api/pipeline/stages/reorder", json={"stage_ids": [9999]}, headers=headers)
    assert response.status_code == 404


def test_reorder_rejects_stages_from_different_pipelines(client, school, posted_job):
    headers, _ = school
    defaults = client.get("/api/pipeline/stages", headers=headers).json()
    job_stage = client.post(
        "/api/pipeline/stages", json={"name": "Principal Chat", "job_id": posted_job["id"]}, headers=headers
    ).json()

    ids = [job_stage["id"], defaults[1]["id"], defaults[0]["id"]]
    response = client.put("/api/pipeline/stages/reorder", json={"stage_ids": ids}, headers=headers)
    assert response.status_code == 400

    unchanged = client.get("/api/pipeline/stages", headers=headers).json()
    assert stage_names(unchanged)[:2] == ["New", "Reviewed"]


def test_system_stages_are_permanent(client, school):
    headers, _ = school
    stages = {s["name"]: s for s in client.get("/api/pipeline/stages", headers=headers).json()}

    system = client.delete(f"/api/pipeline/stages/{stages['New']['id']}", headers=headers)
    assert system.status_code == 400

    custom = client.delete(f"/api/pipeline/stages/{stages['Phone Screen']['id']}", headers=headers)
    assert custom.status_code == 200
    remaining = client.get("/api/pipeline/stages", headers=headers).json()
    assert "Phone Screen" not in stage_names(remaining)


def test_job_specific_stages(client, school, posted_job):
    headers, _ = school
    added = client.post(
        "/api/pipeline/stages", json={"name": "Principal Chat", "job_id": posted_job["id"]}, headers=headers
    )
    assert added.status_code == 201
    assert added.json()["order_index"] == 0

    job_stages = client.get(f"/api/pipeline/stages?job_id={posted_job['id']}", headers=headers).json()
    assert stage_names(job_stages) == ["Principal Chat"]


def test_stage_on_other_schools_job(client, make_school, posted_job):
    other_headers, _ = make_school(email="hr@hillside.edu", school_name="Hillside Elementary")
    response = client.post(
        "/api/pipeline/stages", json={"name": "Sneaky", "job_id": posted_job["id"]}, headers=other_headers
    )
    assert response.status_code == 404


def test_teacher_cannot_manage_pipeline(client, teacher):
    headers, _ = teacher
    assert client.get("/api/pipeline/stages", headers=headers).status_code == 403
