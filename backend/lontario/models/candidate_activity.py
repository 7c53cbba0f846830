from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.types import JSON

from lontario.core.base import Base
from lontario.core.clock import utcnow
from lontario.models.types import new_id


class CandidateActivity(Base):
    __tablename__ = "candidate_activities"

    id = Column(String(36), primary_key=True, default=new_id)

    candidate_id = Column(
        String(36),
        ForeignKey("candidates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # e.g. stage_changed, rejected, interview_scheduled, interview_cancelled, ai_scored
    activity_type = Column(String(50), nullable=False, index=True)

    performed_by = Column(String(255), nullable=True)
    old_value = Column(String(255), nullable=True)
    new_value = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    data = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    candidate = relationship("Candidate", back_populates="activities")
