from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

Recommendation = Literal["strong_yes", "yes", "maybe", "no", "strong_no"]
QuestionCategory = Literal["technical", "behavioral", "system-design", "problem-solving", "culture-fit"]
QuestionDifficulty = Literal["easy", "medium", "hard"]


def _clamp_score(value: int) -> int:
    return max(0, min(100, int(value)))


class ScoreBreakdown(BaseModel):
    skills_match: int
    experience_match: int
    education_match: int
    keywords_match: int

    @field_validator("skills_match", "experience_match", "education_match", "keywords_match")
    @classmethod
    def _clamp(cls, value: int) -> int:
        return _clamp_score(value)


class SkillsAnalysis(BaseModel):
    matched: list[str] = Field(default_factory=list)
    missing: list[str] = Field(default_factory=list)
    bonus: list[str] = Field(default_factory=list)


class MatchScore(BaseModel):
    """Structured result of scoring one candidate against one job."""

    overall_score: int
    breakdown: ScoreBreakdown
    skills_analysis: SkillsAnalysis
    summary: str
    strengths: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)
    recommendation: Recommendation
    reasoning: str = ""

    @field_validator("overall_score")
    @classmethod
    def _clamp_overall(cls, value: int) -> int:
        return _clamp_score(value)

    @field_validator("summary")
    @classmethod
    def _trim_summary(cls, value: str) -> str:
        return (value or "").strip()[:500]

    @field_validator("strengths", "concerns")
    @classmethod
    def _cap_items(cls, value: list[str]) -> list[str]:
        return [v.strip() for v in value if v and v.strip()][:5]


class RubricItem(BaseModel):
    aspect: str
    weight: int = Field(ge=1, le=5)
    excellent: str
    good: str
    needs_work: str


class InterviewQuestion(BaseModel):
    id: str
    category: QuestionCategory
    difficulty: QuestionDifficulty
    question: str
    context: str = ""
    scoring_rubric: list[RubricItem] = Field(min_length=1)
    estimated_time: int = Field(ge=1, description="Minutes")


class QuestionSet(BaseModel):
    job_title: str = ""
    candidate_name: str = ""
    questions: list[InterviewQuestion] = Field(min_length=6, max_length=10)
    total_estimated_time: int = 0

    @field_validator("total_estimated_time")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        return max(0, int(value))


class CandidateProfile(BaseModel):
    """Condensed candidate view handed to question generation."""

    name: str
    source: Literal["github", "linkedin", "resume"] = "resume"
    skills: list[str] = Field(default_factory=list)
    experience: list[str] = Field(default_factory=list)
    bio: str | None = None
    projects: list[str] = Field(default_factory=list)
