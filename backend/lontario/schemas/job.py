from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from lontario.core.clock import as_utc

JobStatusLiteral = Literal["draft", "active", "paused", "closed"]


class JobCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    department: Optional[str] = Field(default=None, max_length=120)
    level: Optional[str] = Field(default=None, max_length=50)
    location: Optional[str] = Field(default=None, max_length=255)
    employment_type: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = None
    required_skills: list[str] = Field(default_factory=list)
    nice_to_have_skills: list[str] = Field(default_factory=list)
    status: JobStatusLiteral = "active"


class JobUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    department: Optional[str] = Field(default=None, max_length=120)
    level: Optional[str] = Field(default=None, max_length=50)
    location: Optional[str] = Field(default=None, max_length=255)
    employment_type: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = None
    required_skills: Optional[list[str]] = None
    nice_to_have_skills: Optional[list[str]] = None
    status: Optional[JobStatusLiteral] = None


class JobOut(BaseModel):
    id: str
    title: str
    department: Optional[str] = None
    level: Optional[str] = None
    location: Optional[str] = None
    employment_type: Optional[str] = None
    description: Optional[str] = None
    required_skills: list[str] = []
    nice_to_have_skills: list[str] = []
    status: str
    is_archived: bool = False
    total_applicants: int = 0
    active_candidates: int = 0
    published_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @field_serializer("published_at", "closed_at", "created_at", "updated_at")
    def serialize_dt(self, dt: Optional[datetime]):
        return as_utc(dt)

    model_config = ConfigDict(from_attributes=True)
