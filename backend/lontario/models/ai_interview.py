from __future__ import annotations

from enum import Enum as PyEnum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from lontario.core.base import Base
from lontario.core.clock import utcnow
from lontario.models.types import JSONBCompat, new_id


class InterviewStatus(str, PyEnum):
    pending = "pending"
    scheduled = "scheduled"
    ready = "ready"
    sent = "sent"
    in_progress = "in_progress"
    completed = "completed"
    expired = "expired"
    abandoned = "abandoned"
    missed = "missed"
    cancelled = "cancelled"


ACTIVE_INTERVIEW_STATUSES = frozenset(
    {
        InterviewStatus.pending,
        InterviewStatus.scheduled,
        InterviewStatus.ready,
        InterviewStatus.sent,
        InterviewStatus.in_progress,
    }
)


class AIInterview(Base):
    __tablename__ = "ai_interviews"

    id = Column(String(36), primary_key=True, default=new_id)
    candidate_id = Column(String(36), ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False, index=True)
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)

    status = Column(String(20), nullable=False, default=InterviewStatus.pending.value, index=True)

    scheduled_at = Column(DateTime(timezone=True), nullable=True, index=True)
    access_token = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    interview_link = Column(String(500), nullable=True)
    interview_duration_minutes = Column(Integer, nullable=False, default=30)
    candidate_timezone = Column(String(64), nullable=True)
    custom_message = Column(Text, nullable=True)

    questions = Column(JSONBCompat(), nullable=False, default=list)
    total_questions = Column(Integer, nullable=False, default=0)
    total_estimated_time = Column(Integer, nullable=True)
    questions_answered = Column(Integer, nullable=False, default=0)
    model_used = Column(String(100), nullable=True)

    overall_score = Column(Integer, nullable=True)
    recommendation = Column(String(20), nullable=True)

    invite_sent_at = Column(DateTime(timezone=True), nullable=True)
    reminder_sent_at = Column(DateTime(timezone=True), nullable=True)
    reminder_1h_sent_at = Column(DateTime(timezone=True), nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(String(255), nullable=True)
    cancellation_reason = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    candidate = relationship("Candidate", back_populates="interviews")
    job = relationship("Job")
