from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer, field_validator

from lontario.core.clock import as_utc
from lontario.schemas.activity import CandidateActivityOut
from lontario.schemas.interview import InterviewOut


class CandidateCreate(BaseModel):
    job_id: str
    full_name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=50)
    location: Optional[str] = Field(default=None, max_length=255)
    linkedin_url: Optional[str] = Field(default=None, max_length=500)
    github_url: Optional[str] = Field(default=None, max_length=500)
    portfolio_url: Optional[str] = Field(default=None, max_length=500)
    resume_text: Optional[str] = None
    cover_letter: Optional[str] = None
    source: Optional[str] = Field(default="direct", max_length=50)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return str(value).strip().lower()


class CandidateUpdate(BaseModel):
    phone: Optional[str] = Field(default=None, max_length=50)
    location: Optional[str] = Field(default=None, max_length=255)
    linkedin_url: Optional[str] = Field(default=None, max_length=500)
    github_url: Optional[str] = Field(default=None, max_length=500)
    portfolio_url: Optional[str] = Field(default=None, max_length=500)
    is_starred: Optional[bool] = None
    is_archived: Optional[bool] = None


class CandidateOut(BaseModel):
    id: str
    job_id: str
    full_name: str
    email: str
    phone: Optional[str] = None
    location: Optional[str] = None
    linkedin_url: Optional[str] = None
    github_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    resume_text: Optional[str] = None
    cover_letter: Optional[str] = None
    source: Optional[str] = None
    ai_score: Optional[int] = None
    ai_summary: Optional[str] = None
    ai_strengths: List[str] = []
    ai_concerns: List[str] = []
    ai_score_breakdown: Optional[Dict[str, Any]] = None
    ai_recommendation: Optional[str] = None
    extracted_skills: List[str] = []
    avatar_url: Optional[str] = None
    years_of_experience: Optional[int] = None
    stage: str
    rejection_reason: Optional[str] = None
    rejection_feedback: Optional[str] = None
    question_generation_status: str = "none"
    is_starred: bool = False
    is_archived: bool = False
    applied_at: datetime
    last_activity_at: datetime
    created_at: datetime
    updated_at: datetime

    @field_serializer("applied_at", "last_activity_at", "created_at", "updated_at")
    def serialize_dt(self, dt: datetime):
        return as_utc(dt)

    model_config = ConfigDict(from_attributes=True)


class CandidateJobSummary(BaseModel):
    id: str
    title: str
    department: Optional[str] = None
    required_skills: List[str] = []

    model_config = ConfigDict(from_attributes=True)


class CandidateDetailOut(CandidateOut):
    job: Optional[CandidateJobSummary] = None
    activities: List[CandidateActivityOut] = []
    latest_interview: Optional[InterviewOut] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class CandidateAggregations(BaseModel):
    by_stage: Dict[str, int]
    score_distribution: Dict[str, int]


class CandidateListOut(BaseModel):
    candidates: List[CandidateOut]
    pagination: Pagination
    aggregations: CandidateAggregations


class MoveCandidateIn(BaseModel):
    stage: str = Field(min_length=1, max_length=30)
    rejection_reason: Optional[str] = Field(default=None, max_length=255)
    rejection_feedback: Optional[str] = None
    notes: Optional[str] = None


class MoveCandidateOut(BaseModel):
    candidate: CandidateOut
    activity: CandidateActivityOut


class BulkMoveIn(MoveCandidateIn):
    candidate_ids: List[str] = Field(min_length=1, max_length=100)


class BulkMoveFailure(BaseModel):
    candidate_id: str
    error: str


class BulkMoveOut(BaseModel):
    succeeded: List[str]
    failed: List[BulkMoveFailure]
    total: int


class ScoreOut(BaseModel):
    success: bool
    candidate_id: str
    score: Optional[int] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


class PregenerateOut(BaseModel):
    status: Literal["none", "pending", "generating", "ready", "failed", "used"]
    total_questions: int = 0
    total_estimated_time: Optional[int] = None
    generated_at: Optional[datetime] = None
    error_message: Optional[str] = None

    @field_serializer("generated_at")
    def serialize_dt(self, dt: Optional[datetime]):
        return as_utc(dt)

    model_config = ConfigDict(from_attributes=True)
