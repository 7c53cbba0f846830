from __future__ import annotations

from lontario.core.errors import InvalidStateError
from lontario.models.ai_interview import AIInterview, InterviewStatus

S = InterviewStatus

TRANSITIONS: dict[InterviewStatus, frozenset[InterviewStatus]] = {
    S.pending: frozenset({S.scheduled, S.ready, S.cancelled, S.expired}),
    S.scheduled: frozenset({S.ready, S.cancelled, S.expired, S.missed, S.scheduled}),
    S.ready: frozenset({S.sent, S.cancelled, S.expired, S.missed, S.scheduled}),
    S.sent: frozenset({S.in_progress, S.cancelled, S.expired, S.missed, S.scheduled}),
    S.in_progress: frozenset({S.completed, S.abandoned, S.expired}),
    S.completed: frozenset(),
    S.expired: frozenset(),
    S.abandoned: frozenset(),
    S.missed: frozenset(),
    S.cancelled: frozenset(),
}

CANCELLABLE = frozenset({S.pending, S.scheduled, S.ready, S.sent})
RESCHEDULABLE = frozenset({S.pending, S.scheduled, S.ready, S.sent})


def can_transition(current, target) -> bool:
    try:
        src, dst = S(current), S(target)
    except ValueError:
        return False
    return dst in TRANSITIONS.get(src, frozenset())


def transition(interview: AIInterview, target: InterviewStatus) -> None:
    """Set `interview.status`, refusing moves the lifecycle does not allow."""
    if not can_transition(interview.status, target):
        raise InvalidStateError(
            f"Cannot move interview from {interview.status} to {S(target).value}",
            code="INVALID_STATUS_TRANSITION",
            details={"current_status": interview.status, "target_status": S(target).value},
        )
    interview.status = S(target).value
