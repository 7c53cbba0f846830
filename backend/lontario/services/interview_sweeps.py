"""
Periodic interview housekeeping, driven by the cron endpoints.

Each interview is committed on its own so one bad row never blocks the
rest of a sweep.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from lontario.core.clock import utcnow
from lontario.core.config import settings
from lontario.models.ai_interview import AIInterview, InterviewStatus
from lontario.services.activity import log_candidate_activity
from lontario.services.email_templates import EmailType
from lontario.services.interview_status import transition
from lontario.services.notifications import Notifier
from lontario.services.scheduling import template_data

logger = logging.getLogger(__name__)

REMINDER_WINDOW = timedelta(minutes=15)
S = InterviewStatus


@dataclass
class StatusSweepResult:
    promoted: int = 0
    invited: int = 0
    missed: int = 0
    abandoned: int = 0
    expired: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class ReminderSweepResult:
    reminders_24h: int = 0
    reminders_1h: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


def _statuses(*items: InterviewStatus) -> list[str]:
    return [s.value for s in items]


class InterviewStatusSweeper:
    def __init__(self, db: Session, *, notifier: Notifier) -> None:
        self.db = db
        self.notifier = notifier

    def run(self, now: datetime | None = None) -> StatusSweepResult:
        now = now or utcnow()
        result = StatusSweepResult()
        self._expire(now, result)
        self._mark_missed(now, result)
        self._promote(now, result)
        self._mark_abandoned(now, result)
        logger.info(
            "Interview status sweep: promoted=%s invited=%s missed=%s abandoned=%s expired=%s errors=%s",
            result.promoted,
            result.invited,
            result.missed,
            result.abandoned,
            result.expired,
            len(result.errors),
        )
        return result

    def _expire(self, now: datetime, result: StatusSweepResult) -> None:
        rows = (
            self.db.query(AIInterview)
            .filter(
                AIInterview.status.in_(_statuses(S.pending, S.scheduled, S.ready, S.sent)),
                AIInterview.expires_at.isnot(None),
                AIInterview.expires_at <= now,
            )
            .all()
        )
        for interview in rows:
            transition(interview, S.expired)
            self.db.commit()
            result.expired += 1

    def _mark_missed(self, now: datetime, result: StatusSweepResult) -> None:
        cutoff = now - timedelta(hours=settings.INTERVIEW_MISSED_AFTER_HOURS)
        rows = (
            self.db.query(AIInterview)
            .filter(
                AIInterview.status.in_(_statuses(S.scheduled, S.ready, S.sent)),
                AIInterview.scheduled_at <= cutoff,
            )
            .all()
        )
        for interview in rows:
            previous = interview.status
            transition(interview, S.missed)
            log_candidate_activity(
                self.db,
                candidate_id=interview.candidate_id,
                activity_type="interview_missed",
                performed_by="system",
                old_value=previous,
                new_value=S.missed.value,
                data={"interview_id": interview.id},
            )
            self.db.commit()
            result.missed += 1

    def _promote(self, now: datetime, result: StatusSweepResult) -> None:
        # `ready` rows are ones whose link email failed on an earlier run.
        rows = (
            self.db.query(AIInterview)
            .filter(AIInterview.status.in_(_statuses(S.scheduled, S.ready)), AIInterview.scheduled_at <= now)
            .all()
        )
        for interview in rows:
            if interview.status == S.scheduled.value:
                transition(interview, S.ready)
                self.db.commit()
                result.promoted += 1

            candidate = interview.candidate
            outcome = self.notifier.send(
                EmailType.interview_ready, candidate.email, template_data(interview, candidate, interview.job)
            )
            if outcome.success:
                transition(interview, S.sent)
                self.db.commit()
                result.invited += 1
            else:
                result.errors.append(f"{interview.id}: {outcome.error}")

    def _mark_abandoned(self, now: datetime, result: StatusSweepResult) -> None:
        cutoff = now - timedelta(hours=settings.INTERVIEW_ABANDONED_AFTER_HOURS)
        rows = (
            self.db.query(AIInterview)
            .filter(AIInterview.status == S.in_progress.value, AIInterview.updated_at <= cutoff)
            .all()
        )
        for interview in rows:
            transition(interview, S.abandoned)
            log_candidate_activity(
                self.db,
                candidate_id=interview.candidate_id,
                activity_type="interview_abandoned",
                performed_by="system",
                old_value=S.in_progress.value,
                new_value=S.abandoned.value,
                data={"interview_id": interview.id},
            )
            self.db.commit()
            result.abandoned += 1


class ReminderSweeper:
    def __init__(self, db: Session, *, notifier: Notifier) -> None:
        self.db = db
        self.notifier = notifier

    def run(self, now: datetime | None = None) -> ReminderSweepResult:
        now = now or utcnow()
        result = ReminderSweepResult()
        self._remind(
            now + timedelta(hours=24),
            AIInterview.reminder_sent_at,
            "reminder_sent_at",
            EmailType.interview_reminder_24h,
            result,
        )
        self._remind(
            now + timedelta(hours=1),
            AIInterview.reminder_1h_sent_at,
            "reminder_1h_sent_at",
            EmailType.interview_reminder_1h,
            result,
        )
        logger.info(
            "Interview reminder sweep: sent_24h=%s sent_1h=%s failed=%s",
            result.reminders_24h,
            result.reminders_1h,
            result.failed,
        )
        return result

    def _remind(self, window_start, marker_column, marker_attr, email_type, result) -> None:
        rows = (
            self.db.query(AIInterview)
            .filter(
                AIInterview.status.in_(_statuses(S.scheduled, S.ready)),
                AIInterview.scheduled_at >= window_start,
                AIInterview.scheduled_at < window_start + REMINDER_WINDOW,
                marker_column.is_(None),
            )
            .all()
        )
        for interview in rows:
            candidate = interview.candidate
            outcome = self.notifier.send(email_type, candidate.email, template_data(interview, candidate, interview.job))
            if not outcome.success:
                result.failed += 1
                result.errors.append(f"{interview.id}: {outcome.error}")
                continue
            setattr(interview, marker_attr, utcnow())
            self.db.commit()
            if email_type == EmailType.interview_reminder_24h:
                result.reminders_24h += 1
            else:
                result.reminders_1h += 1
