from __future__ import annotations

from lontario.models.candidate import Candidate
from lontario.models.candidate_activity import CandidateActivity


def _apply(client, job_id, **overrides):
    payload = {
        "job_id": job_id,
        "full_name": "Ada Lovelace",
        "email": "Ada@Example.com",
        "resume_text": "Wrote the first algorithm intended for a machine.",
    }
    payload.update(overrides)
    return client.post("/candidates", json=payload)


def test_apply_creates_candidate_and_enqueues_scoring(client, make_job, enqueued, db_session):
    job = make_job()

    res = _apply(client, job.id)
    assert res.status_code == 201
    body = res.json()
    assert body["stage"] == "applied"
    assert body["email"] == "ada@example.com"
    assert body["ai_score"] is None
    assert enqueued == [("candidates.score_candidate", (body["id"],))]

    db_session.refresh(job)
    assert job.total_applicants == 1
    assert job.active_candidates == 1


def test_apply_twice_is_conflict(client, make_job):
    job = make_job()
    assert _apply(client, job.id).status_code == 201

    res = _apply(client, job.id, email="ADA@example.com")
    assert res.status_code == 409
    assert res.json()["error"] == "DUPLICATE_APPLICATION"


def test_apply_to_closed_job_is_rejected(client, make_job):
    job = make_job(status="closed")
    res = _apply(client, job.id)
    assert res.status_code == 400
    assert res.json()["error"] == "JOB_CLOSED"


def test_apply_to_unknown_job_is_not_found(client):
    res = _apply(client, "does-not-exist")
    assert res.status_code == 404


def test_apply_rejects_bad_email(client, make_job):
    res = _apply(client, make_job().id, email="not-an-email")
    assert res.status_code == 422
    assert res.json()["error"] == "VALIDATION_ERROR"


def test_list_candidates_filters_and_aggregations(client, make_job, make_candidate):
    job = make_job()
    other_job = make_job(title="Designer")
    make_candidate(job, ai_score=95, stage="technical", is_starred=True)
    make_candidate(job, ai_score=72, stage="screening")
    make_candidate(job, ai_score=None, stage="applied")
    make_candidate(job, ai_score=40, stage="rejected", rejection_reason="Skills gap")
    make_candidate(other_job, ai_score=88)

    res = client.get("/candidates", params={"job_id": job.id, "stage": "technical"})
    assert res.status_code == 200
    body = res.json()
    assert [c["ai_score"] for c in body["candidates"]] == [95]
    assert body["pagination"] == {"page": 1, "limit": 20, "total": 1, "total_pages": 1}

    # Aggregations ignore the stage filter.
    aggs = body["aggregations"]
    assert aggs["by_stage"]["technical"] == 1
    assert aggs["by_stage"]["screening"] == 1
    assert aggs["by_stage"]["applied"] == 1
    assert aggs["by_stage"]["rejected"] == 1
    assert aggs["by_stage"]["offer"] == 0
    assert aggs["score_distribution"] == {"90-100": 1, "80-89": 0, "70-79": 1, "60-69": 0, "0-59": 1}

    starred = client.get("/candidates", params={"job_id": job.id, "starred": True}).json()
    assert len(starred["candidates"]) == 1

    strong = client.get("/candidates", params={"job_id": job.id, "min_score": 70}).json()
    assert sorted(c["ai_score"] for c in strong["candidates"]) == [72, 95]


def test_list_sorts_by_score_with_unscored_last(client, make_job, make_candidate):
    job = make_job()
    make_candidate(job, ai_score=None)
    make_candidate(job, ai_score=60)
    make_candidate(job, ai_score=90)

    desc_scores = [
        c["ai_score"] for c in client.get("/candidates", params={"sort": "ai_score", "order": "desc"}).json()["candidates"]
    ]
    asc_scores = [
        c["ai_score"] for c in client.get("/candidates", params={"sort": "ai_score", "order": "asc"}).json()["candidates"]
    ]
    assert desc_scores == [90, 60, None]
    assert asc_scores == [60, 90, None]


def test_list_paginates(client, make_job, make_candidate):
    job = make_job()
    for _ in range(5):
        make_candidate(job)

    body = client.get("/candidates", params={"limit": 2, "page": 3}).json()
    assert len(body["candidates"]) == 1
    assert body["pagination"]["total"] == 5
    assert body["pagination"]["total_pages"] == 3


def test_list_search_matches_name_or_email(client, make_job, make_candidate):
    job = make_job()
    make_candidate(job, full_name="Grace Hopper", email="grace@navy.mil")
    make_candidate(job, full_name="Alan Turing", email="alan@bletchley.uk")

    names = [c["full_name"] for c in client.get("/candidates", params={"search": "navy"}).json()["candidates"]]
    assert names == ["Grace Hopper"]


def test_candidate_detail_includes_activity_and_latest_interview(
    client, make_job, make_candidate, make_interview
):
    job = make_job()
    candidate = make_candidate(job)
    client.post(f"/candidates/{candidate.id}/move", json={"stage": "screening"})
    interview = make_interview(candidate)

    res = client.get(f"/candidates/{candidate.id}")
    assert res.status_code == 200
    body = res.json()
    assert body["job"]["title"] == job.title
    assert [a["activity_type"] for a in body["activities"]] == ["stage_changed"]
    assert body["latest_interview"]["id"] == interview.id


def test_patch_candidate_updates_whitelisted_fields(client, make_job, make_candidate):
    candidate = make_candidate(make_job())

    res = client.patch(f"/candidates/{candidate.id}", json={"is_starred": True, "location": "  Berlin "})
    assert res.status_code == 200
    assert res.json()["is_starred"] is True
    assert res.json()["location"] == "Berlin"


def test_archiving_candidate_refreshes_job_counters(client, make_job, make_candidate, db_session):
    job = make_job()
    candidate = make_candidate(job)

    res = client.patch(f"/candidates/{candidate.id}", json={"is_archived": True})
    assert res.status_code == 200
    db_session.refresh(job)
    assert job.active_candidates == 0

    default_list = client.get("/candidates").json()
    assert default_list["candidates"] == []
    archived = client.get("/candidates", params={"include_archived": True}).json()
    assert len(archived["candidates"]) == 1


def test_delete_candidate(client, make_job, make_candidate, db_session):
    job = make_job()
    candidate = make_candidate(job)
    candidate_id = candidate.id

    res = client.delete(f"/candidates/{candidate_id}")
    assert res.status_code == 204
    db_session.expire_all()
    assert db_session.query(Candidate).filter(Candidate.id == candidate_id).first() is None

    assert client.delete(f"/candidates/{candidate_id}").status_code == 404


def test_move_route_returns_candidate_and_activity(client, make_job, make_candidate):
    candidate = make_candidate(make_job())

    res = client.post(
        f"/candidates/{candidate.id}/move",
        json={"stage": "phone_screen", "notes": "Great portfolio"},
        headers={"X-Actor-Id": "recruiter-7"},
    )
    assert res.status_code == 200
    body = res.json()
    assert body["candidate"]["stage"] == "phone_screen"
    assert body["activity"]["old_value"] == "applied"
    assert body["activity"]["new_value"] == "phone_screen"
    assert body["activity"]["notes"] == "Great portfolio"
    assert body["activity"]["performed_by"] == "recruiter-7"


def test_move_to_rejected_without_reason_is_400(client, make_job, make_candidate, db_session):
    candidate = make_candidate(make_job())

    res = client.post(f"/candidates/{candidate.id}/move", json={"stage": "rejected"})
    assert res.status_code == 400
    assert res.json()["error"] == "VALIDATION_ERROR"
    db_session.refresh(candidate)
    assert candidate.stage == "applied"


def test_move_to_unknown_stage_is_400(client, make_job, make_candidate):
    candidate = make_candidate(make_job())
    res = client.post(f"/candidates/{candidate.id}/move", json={"stage": "lunch"})
    assert res.status_code == 400


def test_advance_route(client, make_job, make_candidate):
    candidate = make_candidate(make_job(), stage="offer")

    res = client.post(f"/candidates/{candidate.id}/advance")
    assert res.status_code == 200
    assert res.json()["candidate"]["stage"] == "hired"

    res2 = client.post(f"/candidates/{candidate.id}/advance")
    assert res2.status_code == 409
    assert res2.json()["error"] == "NO_NEXT_STAGE"


def test_bulk_move_route(client, make_job, make_candidate):
    job = make_job()
    a = make_candidate(job)
    b = make_candidate(job)

    res = client.post(
        "/candidates/bulk-move",
        json={"candidate_ids": [a.id, b.id, "ghost"], "stage": "rejected", "rejection_reason": "Role filled"},
    )
    assert res.status_code == 200
    body = res.json()
    assert body["succeeded"] == [a.id, b.id]
    assert body["failed"] == [{"candidate_id": "ghost", "error": "Candidate not found"}]
    assert body["total"] == 3


def test_activity_route_lists_newest_first(client, make_job, make_candidate, db_session):
    candidate = make_candidate(make_job())
    client.post(f"/candidates/{candidate.id}/move", json={"stage": "screening"})
    client.post(f"/candidates/{candidate.id}/move", json={"stage": "technical"})

    res = client.get(f"/candidates/{candidate.id}/activity", params={"limit": 1})
    assert res.status_code == 200
    items = res.json()
    assert len(items) == 1
    assert db_session.query(CandidateActivity).count() == 2

    assert client.get("/candidates/ghost/activity").status_code == 404
