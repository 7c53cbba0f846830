"""
Candidate pipeline stages.

Recruiters may move a candidate to any stage from any stage; the only rule
enforced on the write path is that a rejection carries a reason. The linear
order is used for "advance to next stage" and for deciding whether scheduling
an interview should pull a candidate forward.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from lontario.core.clock import utcnow
from lontario.core.errors import InvalidStateError, NotFoundError, ValidationError
from lontario.models.candidate import STAGE_ORDER, Candidate, Stage
from lontario.models.candidate_activity import CandidateActivity
from lontario.services.activity import log_candidate_activity
from lontario.services.candidates import get_candidate
from lontario.services.jobs import refresh_job_counters

logger = logging.getLogger(__name__)


def parse_stage(value) -> Stage | None:
    if isinstance(value, Stage):
        return value
    try:
        return Stage(str(value or "").strip().lower())
    except ValueError:
        return None


def next_stage(current) -> Stage | None:
    """Immediate successor in the pipeline; None for hired, rejected and unknown stages."""
    stage = parse_stage(current)
    if stage is None or stage not in STAGE_ORDER:
        return None
    idx = STAGE_ORDER.index(stage)
    if idx + 1 >= len(STAGE_ORDER):
        return None
    return STAGE_ORDER[idx + 1]


def stage_rank(value) -> int | None:
    stage = parse_stage(value)
    if stage is None or stage not in STAGE_ORDER:
        return None
    return STAGE_ORDER.index(stage)


def is_before(current, target) -> bool:
    """True when `current` sits earlier in the linear order than `target`."""
    a, b = stage_rank(current), stage_rank(target)
    if a is None or b is None:
        return False
    return a < b


@dataclass
class StageChange:
    candidate: Candidate
    activity: CandidateActivity


@dataclass
class BulkMoveResult:
    succeeded: list[str] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)


def apply_stage_change(
    db: Session,
    candidate_id: str,
    target_stage,
    *,
    rejection_reason: str | None = None,
    rejection_feedback: str | None = None,
    notes: str | None = None,
    actor: str | None = None,
) -> StageChange:
    """
    Move a candidate to `target_stage` and record the change. Interviews are
    left untouched. Caller commits.
    """
    stage = parse_stage(target_stage)
    if stage is None:
        raise ValidationError(
            f"Invalid stage: {target_stage!r}",
            details={"allowed": [s.value for s in Stage]},
        )

    reason = (rejection_reason or "").strip() or None
    if stage == Stage.rejected and not reason:
        raise ValidationError("Rejection reason is required when rejecting a candidate")

    candidate = get_candidate(db, candidate_id)
    job = candidate.job
    old_stage = candidate.stage

    candidate.stage = stage.value
    candidate.last_activity_at = utcnow()
    if stage == Stage.rejected:
        candidate.rejection_reason = reason
        candidate.rejection_feedback = (rejection_feedback or "").strip() or None
    else:
        candidate.rejection_reason = None
        candidate.rejection_feedback = None

    activity = log_candidate_activity(
        db,
        candidate_id=candidate.id,
        activity_type="rejected" if stage == Stage.rejected else "stage_changed",
        performed_by=actor,
        old_value=old_stage,
        new_value=stage.value,
        notes=(notes or "").strip() or None,
        data={
            "job_title": job.title if job is not None else None,
            "rejection_reason": reason if stage == Stage.rejected else None,
        },
    )

    if job is not None:
        refresh_job_counters(db, job)

    logger.info(
        "Candidate stage changed: candidate_id=%s from=%s to=%s actor=%s",
        candidate.id,
        old_stage,
        stage.value,
        actor,
    )
    return StageChange(candidate=candidate, activity=activity)


def advance_candidate(db: Session, candidate_id: str, *, actor: str | None = None) -> StageChange:
    candidate = get_candidate(db, candidate_id)
    target = next_stage(candidate.stage)
    if target is None:
        raise InvalidStateError(
            f"Candidate in stage {candidate.stage!r} cannot be advanced",
            code="NO_NEXT_STAGE",
        )
    return apply_stage_change(db, candidate.id, target, actor=actor)


def bulk_move(
    db: Session,
    candidate_ids: list[str],
    target_stage,
    *,
    rejection_reason: str | None = None,
    rejection_feedback: str | None = None,
    notes: str | None = None,
    actor: str | None = None,
) -> BulkMoveResult:
    """
    Move each candidate independently; one failure never blocks the others.
    Each success is committed on its own.
    """
    result = BulkMoveResult()
    seen: set[str] = set()
    for candidate_id in candidate_ids:
        if candidate_id in seen:
            continue
        seen.add(candidate_id)
        try:
            apply_stage_change(
                db,
                candidate_id,
                target_stage,
                rejection_reason=rejection_reason,
                rejection_feedback=rejection_feedback,
                notes=notes,
                actor=actor,
            )
            db.commit()
            result.succeeded.append(candidate_id)
        except (ValidationError, NotFoundError) as exc:
            db.rollback()
            result.failed.append((candidate_id, exc.message))
    return result
