from __future__ import annotations

from enum import Enum as PyEnum

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship

from lontario.core.base import Base
from lontario.core.clock import utcnow
from lontario.models.types import JSONBCompat, new_id


class JobStatus(str, PyEnum):
    draft = "draft"
    active = "active"
    paused = "paused"
    closed = "closed"


class Job(Base):
    __tablename__ = "jobs"

    id = Column(String(36), primary_key=True, default=new_id)

    title = Column(String(255), nullable=False)
    department = Column(String(120), nullable=True)
    level = Column(String(50), nullable=True)
    location = Column(String(255), nullable=True)
    employment_type = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)

    required_skills = Column(JSONBCompat(), nullable=False, default=list)
    nice_to_have_skills = Column(JSONBCompat(), nullable=False, default=list)

    status = Column(String(20), nullable=False, default=JobStatus.active.value, index=True)
    is_archived = Column(Boolean, nullable=False, default=False, index=True)

    total_applicants = Column(Integer, nullable=False, default=0)
    active_candidates = Column(Integer, nullable=False, default=0)

    published_at = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    candidates = relationship("Candidate", back_populates="job", passive_deletes=True)
