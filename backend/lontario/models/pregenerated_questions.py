from __future__ import annotations

from enum import Enum as PyEnum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from lontario.core.base import Base
from lontario.core.clock import utcnow
from lontario.models.types import JSONBCompat, new_id


class PregenerationStatus(str, PyEnum):
    pending = "pending"
    generating = "generating"
    ready = "ready"
    failed = "failed"
    used = "used"


class PregeneratedQuestions(Base):
    __tablename__ = "pregenerated_questions"
    __table_args__ = (
        UniqueConstraint("candidate_id", "job_id", name="uq_pregenerated_questions_candidate_job"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    candidate_id = Column(String(36), ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False, index=True)
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)

    status = Column(String(20), nullable=False, default=PregenerationStatus.pending.value, index=True)
    questions = Column(JSONBCompat(), nullable=False, default=list)
    total_questions = Column(Integer, nullable=False, default=0)
    total_estimated_time = Column(Integer, nullable=True)
    model_used = Column(String(100), nullable=True)
    error_message = Column(Text, nullable=True)

    generated_at = Column(DateTime(timezone=True), nullable=True)
    used_at = Column(DateTime(timezone=True), nullable=True)
    used_in_interview_id = Column(
        String(36), ForeignKey("ai_interviews.id", ondelete="SET NULL"), nullable=True
    )

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    candidate = relationship("Candidate")
