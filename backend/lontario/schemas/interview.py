from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from lontario.core.clock import as_utc


class ScheduleInterviewIn(BaseModel):
    candidate_id: str
    job_id: str
    scheduled_at: datetime
    duration_minutes: int = Field(default=30, ge=15, le=120)
    send_immediate_invite: bool = True
    custom_message: Optional[str] = Field(default=None, max_length=1000)
    candidate_timezone: Optional[str] = Field(default=None, max_length=64)

    @field_validator("scheduled_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class RescheduleInterviewIn(BaseModel):
    scheduled_at: datetime
    send_notification: bool = True
    reschedule_reason: Optional[str] = Field(default=None, max_length=500)

    @field_validator("scheduled_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class InterviewOut(BaseModel):
    id: str
    candidate_id: str
    job_id: str
    status: str
    scheduled_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    interview_link: Optional[str] = None
    interview_duration_minutes: int = 30
    candidate_timezone: Optional[str] = None
    custom_message: Optional[str] = None
    questions: List[Dict[str, Any]] = []
    total_questions: int = 0
    total_estimated_time: Optional[int] = None
    questions_answered: int = 0
    model_used: Optional[str] = None
    overall_score: Optional[int] = None
    recommendation: Optional[str] = None
    invite_sent_at: Optional[datetime] = None
    reminder_sent_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_serializer(
        "scheduled_at",
        "expires_at",
        "invite_sent_at",
        "reminder_sent_at",
        "reviewed_at",
        "created_at",
        "updated_at",
    )
    def serialize_dt(self, dt: Optional[datetime]):
        return as_utc(dt)

    model_config = ConfigDict(from_attributes=True)


class ScheduleInterviewOut(BaseModel):
    interview: InterviewOut
    interview_link: str
    questions_generated: int
    used_pregenerated: bool = False
    warnings: List[str] = []


class InterviewListOut(BaseModel):
    interviews: List[InterviewOut]
    total: int


class InterviewMutationOut(BaseModel):
    interview: InterviewOut
    notification_sent: bool = False
    warnings: List[str] = []


class ReviewOut(BaseModel):
    interview: InterviewOut
    already_reviewed: bool


class StatusSweepOut(BaseModel):
    promoted: int = 0
    invited: int = 0
    missed: int = 0
    abandoned: int = 0
    expired: int = 0
    errors: List[str] = []


class ReminderSweepOut(BaseModel):
    reminders_24h: int = 0
    reminders_1h: int = 0
    failed: int = 0
    errors: List[str] = []
