from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import asc
from sqlalchemy.orm import Session

from lontario.core.clock import as_utc, utcnow
from lontario.core.config import settings
from lontario.core.errors import InvalidStateError, NotFoundError, ValidationError
from lontario.models.ai_interview import ACTIVE_INTERVIEW_STATUSES, AIInterview, InterviewStatus
from lontario.models.candidate import Candidate, Stage
from lontario.models.job import Job
from lontario.schemas.interview import ScheduleInterviewIn
from lontario.services.activity import log_candidate_activity
from lontario.services.candidates import get_candidate
from lontario.services.email_templates import EmailTemplateData, EmailType
from lontario.services.interview_status import CANCELLABLE, RESCHEDULABLE, transition
from lontario.services.jobs import get_job
from lontario.services.notifications import Notifier
from lontario.services.oracle import JobContext, Oracle
from lontario.services.pipeline import apply_stage_change, is_before
from lontario.services.questions import (
    build_candidate_profile,
    get_ready_pregenerated_questions,
    mark_pregenerated_used,
    serialize_questions,
)

logger = logging.getLogger(__name__)

DEFAULT_CANCELLATION_REASON = "Interview cancelled by recruiter"


@dataclass
class ScheduleOutcome:
    interview: AIInterview
    interview_link: str
    questions_generated: int
    used_pregenerated: bool = False
    warnings: list[str] = field(default_factory=list)


@dataclass
class MutationOutcome:
    interview: AIInterview
    notification_sent: bool = False
    warnings: list[str] = field(default_factory=list)


@dataclass
class ReviewOutcome:
    interview: AIInterview
    already_reviewed: bool


def build_interview_link(access_token: str) -> str:
    return f"{settings.FRONTEND_BASE_URL}/interview/{access_token}"


def interview_expiry(scheduled_at: datetime) -> datetime:
    return scheduled_at + timedelta(hours=settings.INTERVIEW_EXPIRY_HOURS)


def template_data(interview: AIInterview, candidate: Candidate, job: Job, **extra) -> EmailTemplateData:
    return EmailTemplateData(
        candidate_name=candidate.full_name,
        job_title=job.title,
        interview_link=interview.interview_link or "",
        scheduled_at=as_utc(interview.scheduled_at),
        duration_minutes=interview.interview_duration_minutes or 30,
        custom_message=interview.custom_message,
        **extra,
    )


def get_interview(db: Session, interview_id: str) -> AIInterview:
    interview = db.query(AIInterview).filter(AIInterview.id == interview_id).first()
    if not interview:
        raise NotFoundError("Interview not found")
    return interview


def find_active_interview(db: Session, candidate_id: str, job_id: str) -> AIInterview | None:
    return (
        db.query(AIInterview)
        .filter(
            AIInterview.candidate_id == candidate_id,
            AIInterview.job_id == job_id,
            AIInterview.status.in_([s.value for s in ACTIVE_INTERVIEW_STATUSES]),
        )
        .first()
    )


def list_interviews(
    db: Session,
    *,
    job_id: str | None = None,
    candidate_id: str | None = None,
    statuses: list[str] | None = None,
    upcoming_only: bool = False,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[AIInterview], int]:
    page = max(1, int(page or 1))
    limit = max(1, min(100, int(limit or 20)))
    qry = db.query(AIInterview)
    if job_id:
        qry = qry.filter(AIInterview.job_id == job_id)
    if candidate_id:
        qry = qry.filter(AIInterview.candidate_id == candidate_id)
    if statuses:
        qry = qry.filter(AIInterview.status.in_(statuses))
    if upcoming_only:
        qry = qry.filter(AIInterview.scheduled_at >= utcnow())
    total = qry.count()
    rows = (
        qry.order_by(asc(AIInterview.scheduled_at), asc(AIInterview.created_at))
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total


def _require_future(value: datetime) -> datetime:
    when = as_utc(value)
    if when <= utcnow():
        raise ValidationError("Scheduled time must be in the future", code="INVALID_SCHEDULE_TIME")
    return when


class InterviewScheduler:
    """
    Schedules, reschedules, cancels and reviews AI interviews.

    Everything that can fail before the interview row exists (validation, the
    LLM) aborts the whole operation. Email is sent after commit; a delivery
    failure is returned as a warning and never undoes the interview.
    """

    def __init__(self, db: Session, *, oracle: Oracle, notifier: Notifier) -> None:
        self.db = db
        self.oracle = oracle
        self.notifier = notifier

    def schedule(self, request: ScheduleInterviewIn, *, actor: str | None = None) -> ScheduleOutcome:
        scheduled_at = _require_future(request.scheduled_at)
        candidate = get_candidate(self.db, request.candidate_id)
        job = get_job(self.db, request.job_id)
        if candidate.job_id != job.id:
            raise ValidationError("Candidate has not applied to this job")

        existing = find_active_interview(self.db, candidate.id, job.id)
        if existing is not None:
            raise InvalidStateError(
                "An active interview already exists for this candidate",
                code="INTERVIEW_EXISTS",
                details={"interview_id": existing.id, "status": existing.status},
            )

        pregenerated = get_ready_pregenerated_questions(self.db, candidate.id, job.id)
        if pregenerated is not None:
            questions = list(pregenerated.questions or [])
            total_time = pregenerated.total_estimated_time
            model_used = pregenerated.model_used
        else:
            question_set = self.oracle.generate_questions(
                JobContext.from_job(job), build_candidate_profile(candidate)
            )
            questions = serialize_questions(question_set)
            total_time = question_set.total_estimated_time
            model_used = self.oracle.model

        access_token = secrets.token_urlsafe(32)
        link = build_interview_link(access_token)
        interview = AIInterview(
            candidate_id=candidate.id,
            job_id=job.id,
            status=InterviewStatus.pending.value,
            scheduled_at=scheduled_at,
            access_token=access_token,
            expires_at=interview_expiry(scheduled_at),
            interview_link=link,
            interview_duration_minutes=request.duration_minutes,
            candidate_timezone=request.candidate_timezone,
            custom_message=(request.custom_message or "").strip() or None,
            questions=questions,
            total_questions=len(questions),
            total_estimated_time=total_time,
            model_used=model_used,
        )
        self.db.add(interview)
        self.db.flush()
        transition(interview, InterviewStatus.scheduled)

        if pregenerated is not None:
            mark_pregenerated_used(self.db, pregenerated, interview)

        log_candidate_activity(
            self.db,
            candidate_id=candidate.id,
            activity_type="interview_scheduled",
            performed_by=actor,
            new_value=scheduled_at.isoformat(),
            data={
                "interview_id": interview.id,
                "job_title": job.title,
                "duration_minutes": request.duration_minutes,
                "used_pregenerated": pregenerated is not None,
            },
        )

        if is_before(candidate.stage, Stage.ai_interview):
            apply_stage_change(
                self.db,
                candidate.id,
                Stage.ai_interview,
                actor=actor,
                notes="Moved automatically when an AI interview was scheduled",
            )

        self.db.commit()
        logger.info(
            "Interview scheduled: interview_id=%s candidate_id=%s pregenerated=%s",
            interview.id,
            candidate.id,
            pregenerated is not None,
        )

        warnings: list[str] = []
        if request.send_immediate_invite:
            result = self.notifier.send(
                EmailType.interview_scheduled, candidate.email, template_data(interview, candidate, job)
            )
            if result.success:
                interview.invite_sent_at = utcnow()
                self.db.commit()
            else:
                warnings.append(f"Invitation email was not sent: {result.error}")

        self.db.refresh(interview)
        return ScheduleOutcome(
            interview=interview,
            interview_link=link,
            questions_generated=len(questions),
            used_pregenerated=pregenerated is not None,
            warnings=warnings,
        )

    def reschedule(
        self,
        interview_id: str,
        scheduled_at: datetime,
        *,
        send_notification: bool = True,
        reason: str | None = None,
        actor: str | None = None,
    ) -> MutationOutcome:
        interview = get_interview(self.db, interview_id)
        if InterviewStatus(interview.status) not in RESCHEDULABLE:
            raise InvalidStateError(
                f"Cannot reschedule an interview with status {interview.status}",
                code="INVALID_STATUS",
                details={"current_status": interview.status},
            )
        new_time = _require_future(scheduled_at)

        old_time = as_utc(interview.scheduled_at)
        interview.scheduled_at = new_time
        interview.expires_at = interview_expiry(new_time)
        interview.reminder_sent_at = None
        interview.reminder_1h_sent_at = None
        transition(interview, InterviewStatus.scheduled)

        reason = (reason or "").strip() or None
        log_candidate_activity(
            self.db,
            candidate_id=interview.candidate_id,
            activity_type="interview_rescheduled",
            performed_by=actor,
            old_value=old_time.isoformat() if old_time else None,
            new_value=new_time.isoformat(),
            notes=reason,
            data={"interview_id": interview.id, "reason": reason},
        )
        self.db.commit()
        logger.info("Interview rescheduled: interview_id=%s", interview.id)

        outcome = MutationOutcome(interview=interview)
        if send_notification:
            candidate = interview.candidate
            data = template_data(interview, candidate, interview.job, old_scheduled_at=old_time)
            data.custom_message = reason
            result = self.notifier.send(EmailType.interview_rescheduled, candidate.email, data)
            outcome.notification_sent = result.success
            if not result.success:
                outcome.warnings.append(f"Reschedule email was not sent: {result.error}")
        self.db.refresh(interview)
        return outcome

    def cancel(
        self,
        interview_id: str,
        *,
        reason: str | None = None,
        send_notification: bool = True,
        actor: str | None = None,
    ) -> MutationOutcome:
        interview = get_interview(self.db, interview_id)
        if InterviewStatus(interview.status) not in CANCELLABLE:
            raise InvalidStateError(
                f"Cannot cancel an interview with status {interview.status}",
                code="INVALID_STATUS",
                details={"current_status": interview.status},
            )

        reason = (reason or "").strip() or DEFAULT_CANCELLATION_REASON
        previous = interview.status
        transition(interview, InterviewStatus.cancelled)
        interview.cancellation_reason = reason

        log_candidate_activity(
            self.db,
            candidate_id=interview.candidate_id,
            activity_type="interview_cancelled",
            performed_by=actor,
            old_value=previous,
            new_value=InterviewStatus.cancelled.value,
            notes=reason,
            data={"interview_id": interview.id},
        )
        self.db.commit()
        logger.info("Interview cancelled: interview_id=%s", interview.id)

        outcome = MutationOutcome(interview=interview)
        if send_notification:
            candidate = interview.candidate
            result = self.notifier.send(
                EmailType.interview_cancelled,
                candidate.email,
                template_data(interview, candidate, interview.job, cancellation_reason=reason),
            )
            outcome.notification_sent = result.success
            if not result.success:
                outcome.warnings.append(f"Cancellation email was not sent: {result.error}")
        self.db.refresh(interview)
        return outcome

    def mark_reviewed(self, interview_id: str, *, actor: str | None = None) -> ReviewOutcome:
        interview = get_interview(self.db, interview_id)
        if interview.status != InterviewStatus.completed.value:
            raise InvalidStateError(
                "Only completed interviews can be reviewed",
                code="INVALID_STATUS",
                details={"current_status": interview.status},
            )
        if interview.reviewed_at is not None:
            return ReviewOutcome(interview=interview, already_reviewed=True)

        interview.reviewed_at = utcnow()
        interview.reviewed_by = actor
        log_candidate_activity(
            self.db,
            candidate_id=interview.candidate_id,
            activity_type="interview_reviewed",
            performed_by=actor,
            data={"interview_id": interview.id},
        )
        self.db.commit()
        self.db.refresh(interview)
        return ReviewOutcome(interview=interview, already_reviewed=False)
