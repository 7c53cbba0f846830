def test_create_job_normalizes_skills(client):
    res = client.post(
        "/jobs",
        json={
            "title": "  Platform Engineer ",
            "department": "Infra",
            "required_skills": ["Go", " go ", "", "Terraform"],
            "nice_to_have_skills": ["AWS"],
        },
    )

    assert res.status_code == 201
    body = res.json()
    assert body["title"] == "Platform Engineer"
    assert body["required_skills"] == ["Go", "Terraform"]
    assert body["status"] == "active"
    assert body["published_at"] is not None
    assert body["total_applicants"] == 0


def test_draft_job_is_not_published(client):
    body = client.post("/jobs", json={"title": "Designer", "status": "draft"}).json()
    assert body["published_at"] is None


def test_list_jobs_filters(client, make_job):
    make_job(title="Backend Engineer", status="active")
    make_job(title="Data Analyst", department="Analytics", status="paused")
    make_job(title="Old Role", is_archived=True)

    titles = {j["title"] for j in client.get("/jobs").json()}
    assert titles == {"Backend Engineer", "Data Analyst"}

    paused = client.get("/jobs", params={"status": "paused"}).json()
    assert [j["title"] for j in paused] == ["Data Analyst"]

    search = client.get("/jobs", params={"q": "analytics"}).json()
    assert [j["title"] for j in search] == ["Data Analyst"]

    archived = client.get("/jobs", params={"archived": True}).json()
    assert [j["title"] for j in archived] == ["Old Role"]


def test_read_job(client, make_job):
    job = make_job()
    assert client.get(f"/jobs/{job.id}").json()["title"] == "Backend Engineer"
    res = client.get("/jobs/nope")
    assert res.status_code == 404
    assert res.json() == {"error": "NOT_FOUND", "message": "Job not found"}


def test_closing_and_reopening_job_sets_timestamps(client, make_job):
    job = make_job(status="draft")

    opened = client.patch(f"/jobs/{job.id}", json={"status": "active"}).json()
    assert opened["published_at"] is not None

    closed = client.patch(f"/jobs/{job.id}", json={"status": "closed"}).json()
    assert closed["closed_at"] is not None

    reopened = client.patch(f"/jobs/{job.id}", json={"status": "active"}).json()
    assert reopened["closed_at"] is None
    assert reopened["published_at"] == opened["published_at"]


def test_patch_ignores_null_title(client, make_job):
    job = make_job()
    res = client.patch(f"/jobs/{job.id}", json={"title": None, "location": "Lisbon"})
    assert res.status_code == 200
    assert res.json()["title"] == "Backend Engineer"
    assert res.json()["location"] == "Lisbon"


def test_archive_and_unarchive(client, make_job):
    job = make_job()
    assert client.post(f"/jobs/{job.id}/archive").json()["is_archived"] is True
    assert client.post(f"/jobs/{job.id}/unarchive").json()["is_archived"] is False
