from __future__ import annotations

from datetime import timedelta

from lontario.core.clock import utcnow
from lontario.models.ai_interview import InterviewStatus


def _future(days: int = 3) -> str:
    return (utcnow() + timedelta(days=days)).isoformat()


def test_schedule_interview_route(client, make_job, make_candidate, emails):
    candidate = make_candidate(make_job())

    res = client.post(
        "/interviews/schedule",
        json={
            "candidate_id": candidate.id,
            "job_id": candidate.job_id,
            "scheduled_at": _future(),
            "duration_minutes": 30,
            "custom_message": "Looking forward to it",
        },
        headers={"X-Actor-Id": "recruiter-2"},
    )

    assert res.status_code == 201
    body = res.json()
    assert body["interview"]["status"] == "scheduled"
    assert body["interview"]["custom_message"] == "Looking forward to it"
    assert body["interview_link"] == body["interview"]["interview_link"]
    assert body["questions_generated"] == 8
    assert body["warnings"] == []
    assert len(emails.sent) == 1
    assert "Looking forward to it" in emails.sent[0]["text"]


def test_schedule_in_the_past_returns_400(client, make_job, make_candidate):
    candidate = make_candidate(make_job())

    res = client.post(
        "/interviews/schedule",
        json={
            "candidate_id": candidate.id,
            "job_id": candidate.job_id,
            "scheduled_at": (utcnow() - timedelta(minutes=1)).isoformat(),
        },
    )

    assert res.status_code == 400
    assert res.json()["error"] == "INVALID_SCHEDULE_TIME"


def test_schedule_rejects_out_of_range_duration(client, make_job, make_candidate):
    candidate = make_candidate(make_job())

    res = client.post(
        "/interviews/schedule",
        json={
            "candidate_id": candidate.id,
            "job_id": candidate.job_id,
            "scheduled_at": _future(),
            "duration_minutes": 5,
        },
    )
    assert res.status_code == 422


def test_schedule_twice_returns_conflict(client, make_job, make_candidate):
    candidate = make_candidate(make_job())
    payload = {"candidate_id": candidate.id, "job_id": candidate.job_id, "scheduled_at": _future()}

    assert client.post("/interviews/schedule", json=payload).status_code == 201
    res = client.post("/interviews/schedule", json=payload)

    assert res.status_code == 409
    assert res.json()["error"] == "INTERVIEW_EXISTS"


def test_schedule_reports_question_generation_failure(client, make_job, make_candidate, oracle):
    from lontario.core.errors import QuestionGenerationError

    oracle.questions_error = QuestionGenerationError("Failed to generate interview questions")
    candidate = make_candidate(make_job())

    res = client.post(
        "/interviews/schedule",
        json={"candidate_id": candidate.id, "job_id": candidate.job_id, "scheduled_at": _future()},
    )

    assert res.status_code == 502
    assert res.json()["error"] == "QUESTION_GENERATION_FAILED"
    assert client.get("/interviews/schedule").json()["total"] == 0


def test_list_interviews_filters_by_status_and_time(client, make_job, make_candidate, make_interview):
    job = make_job()
    soon = make_interview(make_candidate(job), scheduled_at=utcnow() + timedelta(hours=3))
    later = make_interview(make_candidate(job), scheduled_at=utcnow() + timedelta(days=4))
    make_interview(
        make_candidate(job),
        status=InterviewStatus.completed.value,
        scheduled_at=utcnow() - timedelta(days=1),
    )

    everything = client.get("/interviews/schedule").json()
    assert everything["total"] == 3

    upcoming = client.get("/interviews/schedule", params={"upcoming": True}).json()
    assert [i["id"] for i in upcoming["interviews"]] == [soon.id, later.id]

    completed = client.get("/interviews/schedule", params={"status": "completed"}).json()
    assert completed["total"] == 1
    assert completed["interviews"][0]["status"] == "completed"


def test_read_interview(client, make_job, make_candidate, make_interview):
    interview = make_interview(make_candidate(make_job()))

    res = client.get(f"/interviews/{interview.id}")
    assert res.status_code == 200
    assert res.json()["id"] == interview.id

    assert client.get("/interviews/missing").status_code == 404


def test_reschedule_route(client, make_job, make_candidate, make_interview, emails):
    interview = make_interview(make_candidate(make_job()))

    res = client.patch(
        f"/interviews/{interview.id}",
        json={"scheduled_at": _future(6), "reschedule_reason": "Conflict with travel"},
    )

    assert res.status_code == 200
    body = res.json()
    assert body["interview"]["status"] == "scheduled"
    assert body["notification_sent"] is True
    assert "Conflict with travel" in emails.sent[0]["text"]


def test_cancel_route_with_reason(client, make_job, make_candidate, make_interview, emails):
    interview = make_interview(make_candidate(make_job()))

    res = client.delete(f"/interviews/{interview.id}", params={"reason": "Position filled"})

    assert res.status_code == 200
    body = res.json()
    assert body["interview"]["status"] == "cancelled"
    assert body["interview"]["cancellation_reason"] == "Position filled"
    assert "Position filled" in emails.sent[0]["text"]


def test_cancel_completed_interview_returns_409(client, make_job, make_candidate, make_interview):
    interview = make_interview(make_candidate(make_job()), status=InterviewStatus.completed.value)

    res = client.delete(f"/interviews/{interview.id}")

    assert res.status_code == 409
    assert res.json()["details"] == {"current_status": "completed"}


def test_review_route(client, make_job, make_candidate, make_interview):
    pending = make_interview(make_candidate(make_job()))
    res = client.post(f"/interviews/{pending.id}/review")
    assert res.status_code == 409

    done = make_interview(make_candidate(make_job()), status=InterviewStatus.completed.value)
    first = client.post(f"/interviews/{done.id}/review", headers={"X-Actor-Id": "lead-1"})
    second = client.post(f"/interviews/{done.id}/review")

    assert first.status_code == 200
    assert first.json()["already_reviewed"] is False
    assert first.json()["interview"]["reviewed_at"] is not None
    assert second.json()["already_reviewed"] is True
