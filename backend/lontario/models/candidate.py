from __future__ import annotations

from enum import Enum as PyEnum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from lontario.core.base import Base
from lontario.core.clock import utcnow
from lontario.models.types import JSONBCompat, new_id


class Stage(str, PyEnum):
    applied = "applied"
    screening = "screening"
    ai_interview = "ai_interview"
    phone_screen = "phone_screen"
    technical = "technical"
    onsite = "onsite"
    offer = "offer"
    hired = "hired"
    rejected = "rejected"


# Linear pipeline order; "rejected" sits outside it.
STAGE_ORDER: tuple[Stage, ...] = (
    Stage.applied,
    Stage.screening,
    Stage.ai_interview,
    Stage.phone_screen,
    Stage.technical,
    Stage.onsite,
    Stage.offer,
    Stage.hired,
)

CLOSED_STAGES = frozenset({Stage.hired, Stage.rejected})


class QuestionGenerationStatus(str, PyEnum):
    none = "none"
    pending = "pending"
    generating = "generating"
    ready = "ready"
    failed = "failed"


class Candidate(Base):
    __tablename__ = "candidates"
    __table_args__ = (UniqueConstraint("job_id", "email", name="uq_candidates_job_email"),)

    id = Column(String(36), primary_key=True, default=new_id)
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)

    full_name = Column(String(255), nullable=False)
    email = Column(String(320), nullable=False, index=True)
    phone = Column(String(50), nullable=True)
    location = Column(String(255), nullable=True)
    linkedin_url = Column(String(500), nullable=True)
    github_url = Column(String(500), nullable=True)
    portfolio_url = Column(String(500), nullable=True)
    resume_text = Column(Text, nullable=True)
    cover_letter = Column(Text, nullable=True)
    source = Column(String(50), nullable=True)

    ai_score = Column(Integer, nullable=True, index=True)
    ai_summary = Column(Text, nullable=True)
    ai_strengths = Column(JSONBCompat(), nullable=False, default=list)
    ai_concerns = Column(JSONBCompat(), nullable=False, default=list)
    ai_score_breakdown = Column(JSONBCompat(), nullable=True)
    ai_recommendation = Column(String(20), nullable=True)
    extracted_skills = Column(JSONBCompat(), nullable=False, default=list)
    avatar_url = Column(String(500), nullable=True)
    years_of_experience = Column(Integer, nullable=True)

    stage = Column(String(30), nullable=False, default=Stage.applied.value, index=True)
    rejection_reason = Column(String(255), nullable=True)
    rejection_feedback = Column(Text, nullable=True)
    question_generation_status = Column(
        String(20), nullable=False, default=QuestionGenerationStatus.none.value
    )

    is_starred = Column(Boolean, nullable=False, default=False)
    is_archived = Column(Boolean, nullable=False, default=False)

    applied_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    last_activity_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    job = relationship("Job", back_populates="candidates")
    activities = relationship(
        "CandidateActivity",
        back_populates="candidate",
        cascade="all, delete-orphan",
        order_by="CandidateActivity.created_at.desc()",
    )
    interviews = relationship(
        "AIInterview",
        back_populates="candidate",
        cascade="all, delete-orphan",
        order_by="AIInterview.created_at.desc()",
    )
