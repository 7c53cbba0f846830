from __future__ import annotations

import pytest

from lontario.core.errors import InvalidStateError, NotFoundError, ValidationError
from lontario.models.candidate import STAGE_ORDER, Stage
from lontario.models.candidate_activity import CandidateActivity
from lontario.services.pipeline import (
    advance_candidate,
    apply_stage_change,
    bulk_move,
    is_before,
    next_stage,
    parse_stage,
)


def test_next_stage_is_immediate_successor():
    for current, expected in zip(STAGE_ORDER, STAGE_ORDER[1:]):
        assert next_stage(current) == expected
        assert next_stage(current.value) == expected


def test_next_stage_terminal_stages():
    assert next_stage("hired") is None
    assert next_stage("rejected") is None
    assert next_stage("not-a-stage") is None


def test_parse_stage_normalizes_input():
    assert parse_stage(" Technical ") == Stage.technical
    assert parse_stage(Stage.offer) == Stage.offer
    assert parse_stage("bogus") is None
    assert parse_stage(None) is None


def test_is_before_uses_linear_order():
    assert is_before("applied", "ai_interview")
    assert not is_before("technical", "ai_interview")
    assert not is_before("ai_interview", "ai_interview")
    # Rejected sits outside the order.
    assert not is_before("rejected", "ai_interview")


def test_move_allows_any_jump(db_session, make_job, make_candidate):
    job = make_job()
    candidate = make_candidate(job)

    change = apply_stage_change(db_session, candidate.id, "offer", actor="recruiter-1")
    db_session.commit()

    assert change.candidate.stage == "offer"
    assert change.activity.activity_type == "stage_changed"
    assert change.activity.old_value == "applied"
    assert change.activity.new_value == "offer"
    assert change.activity.performed_by == "recruiter-1"
    assert change.activity.data["job_title"] == job.title

    # And backwards again.
    apply_stage_change(db_session, candidate.id, "screening")
    db_session.commit()
    db_session.refresh(candidate)
    assert candidate.stage == "screening"


def test_reject_requires_reason(db_session, make_job, make_candidate):
    candidate = make_candidate(make_job())

    with pytest.raises(ValidationError):
        apply_stage_change(db_session, candidate.id, "rejected")
    with pytest.raises(ValidationError):
        apply_stage_change(db_session, candidate.id, "rejected", rejection_reason="   ")

    db_session.refresh(candidate)
    assert candidate.stage == "applied"
    assert db_session.query(CandidateActivity).count() == 0


def test_reject_records_reason_and_feedback(db_session, make_job, make_candidate):
    job = make_job()
    candidate = make_candidate(job)

    change = apply_stage_change(
        db_session,
        candidate.id,
        "rejected",
        rejection_reason="Not enough experience",
        rejection_feedback="Consider reapplying next year",
    )
    db_session.commit()

    assert change.candidate.rejection_reason == "Not enough experience"
    assert change.candidate.rejection_feedback == "Consider reapplying next year"
    assert change.activity.activity_type == "rejected"
    assert change.activity.data["rejection_reason"] == "Not enough experience"

    db_session.refresh(job)
    assert job.total_applicants == 1
    assert job.active_candidates == 0


def test_reopening_rejected_candidate_clears_rejection(db_session, make_job, make_candidate):
    candidate = make_candidate(make_job())
    apply_stage_change(
        db_session, candidate.id, "rejected", rejection_reason="Role filled", rejection_feedback="Thanks"
    )
    db_session.commit()

    change = apply_stage_change(db_session, candidate.id, "screening")
    db_session.commit()

    assert change.candidate.stage == "screening"
    assert change.candidate.rejection_reason is None
    assert change.candidate.rejection_feedback is None


def test_invalid_stage_is_validation_error(db_session, make_job, make_candidate):
    candidate = make_candidate(make_job())
    with pytest.raises(ValidationError) as exc:
        apply_stage_change(db_session, candidate.id, "interviewing")
    assert "applied" in exc.value.details["allowed"]


def test_missing_candidate_is_not_found(db_session):
    with pytest.raises(NotFoundError):
        apply_stage_change(db_session, "missing", "screening")


def test_advance_moves_one_step(db_session, make_job, make_candidate):
    candidate = make_candidate(make_job(), stage="screening")
    change = advance_candidate(db_session, candidate.id)
    db_session.commit()
    assert change.candidate.stage == "ai_interview"


def test_advance_from_hired_is_invalid_state(db_session, make_job, make_candidate):
    candidate = make_candidate(make_job(), stage="hired")
    with pytest.raises(InvalidStateError) as exc:
        advance_candidate(db_session, candidate.id)
    assert exc.value.code == "NO_NEXT_STAGE"


def test_bulk_move_reports_partial_failures(db_session, make_job, make_candidate):
    job = make_job()
    a = make_candidate(job)
    b = make_candidate(job)

    result = bulk_move(db_session, [a.id, "missing", b.id, a.id], "technical")

    assert result.succeeded == [a.id, b.id]
    assert result.failed == [("missing", "Candidate not found")]
    assert result.total == 3
    db_session.refresh(a)
    db_session.refresh(b)
    assert a.stage == b.stage == "technical"


def test_bulk_reject_without_reason_fails_every_candidate(db_session, make_job, make_candidate):
    job = make_job()
    a = make_candidate(job)

    result = bulk_move(db_session, [a.id], "rejected")

    assert result.succeeded == []
    assert len(result.failed) == 1
    db_session.refresh(a)
    assert a.stage == "applied"
