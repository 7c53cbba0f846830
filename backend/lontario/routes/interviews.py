from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from lontario.core.config import settings
from lontario.core.database import get_db
from lontario.core.rate_limit import maybe_limit
from lontario.dependencies.actor import get_actor
from lontario.dependencies.ai import get_notifier, get_oracle
from lontario.schemas.interview import (
    InterviewListOut,
    InterviewMutationOut,
    InterviewOut,
    RescheduleInterviewIn,
    ReviewOut,
    ScheduleInterviewIn,
    ScheduleInterviewOut,
)
from lontario.services.notifications import Notifier
from lontario.services.oracle import Oracle
from lontario.services.scheduling import InterviewScheduler, get_interview, list_interviews


router = APIRouter(prefix="/interviews", tags=["interviews"])


def _scheduler(
    db: Session = Depends(get_db),
    oracle: Oracle = Depends(get_oracle),
    notifier: Notifier = Depends(get_notifier),
) -> InterviewScheduler:
    return InterviewScheduler(db, oracle=oracle, notifier=notifier)


@router.post("/schedule", response_model=ScheduleInterviewOut, status_code=status.HTTP_201_CREATED)
@maybe_limit(settings.AI_RATE_LIMIT)
def schedule_interview(
    request: Request,
    payload: ScheduleInterviewIn,
    scheduler: InterviewScheduler = Depends(_scheduler),
    actor: str | None = Depends(get_actor),
):
    outcome = scheduler.schedule(payload, actor=actor)
    return ScheduleInterviewOut(
        interview=InterviewOut.model_validate(outcome.interview),
        interview_link=outcome.interview_link,
        questions_generated=outcome.questions_generated,
        used_pregenerated=outcome.used_pregenerated,
        warnings=outcome.warnings,
    )


@router.get("/schedule", response_model=InterviewListOut)
def read_scheduled_interviews(
    job_id: str | None = None,
    candidate_id: str | None = None,
    status_filter: list[str] | None = Query(default=None, alias="status"),
    upcoming: bool = False,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    statuses = [str(s).strip().lower() for s in (status_filter or []) if s and str(s).strip()]
    rows, total = list_interviews(
        db,
        job_id=job_id,
        candidate_id=candidate_id,
        statuses=statuses or None,
        upcoming_only=upcoming,
        page=page,
        limit=limit,
    )
    return InterviewListOut(interviews=[InterviewOut.model_validate(r) for r in rows], total=total)


@router.get("/{interview_id}", response_model=InterviewOut)
def read_interview(interview_id: str, db: Session = Depends(get_db)):
    return get_interview(db, interview_id)


@router.patch("/{interview_id}", response_model=InterviewMutationOut)
def reschedule_interview(
    interview_id: str,
    payload: RescheduleInterviewIn,
    scheduler: InterviewScheduler = Depends(_scheduler),
    actor: str | None = Depends(get_actor),
):
    outcome = scheduler.reschedule(
        interview_id,
        payload.scheduled_at,
        send_notification=payload.send_notification,
        reason=payload.reschedule_reason,
        actor=actor,
    )
    return InterviewMutationOut(
        interview=InterviewOut.model_validate(outcome.interview),
        notification_sent=outcome.notification_sent,
        warnings=outcome.warnings,
    )


@router.delete("/{interview_id}", response_model=InterviewMutationOut)
def cancel_interview(
    interview_id: str,
    reason: str | None = Query(default=None, max_length=500),
    send_notification: bool = True,
    scheduler: InterviewScheduler = Depends(_scheduler),
    actor: str | None = Depends(get_actor),
):
    outcome = scheduler.cancel(
        interview_id,
        reason=reason,
        send_notification=send_notification,
        actor=actor,
    )
    return InterviewMutationOut(
        interview=InterviewOut.model_validate(outcome.interview),
        notification_sent=outcome.notification_sent,
        warnings=outcome.warnings,
    )


@router.post("/{interview_id}/review", response_model=ReviewOut)
def review_interview(
    interview_id: str,
    scheduler: InterviewScheduler = Depends(_scheduler),
    actor: str | None = Depends(get_actor),
):
    outcome = scheduler.mark_reviewed(interview_id, actor=actor)
    return ReviewOut(
        interview=InterviewOut.model_validate(outcome.interview),
        already_reviewed=outcome.already_reviewed,
    )
