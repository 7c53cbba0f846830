"""
LLM-backed scoring and interview question generation.

`Oracle` owns prompt construction and error classification; transport and
retries live in `OpenAIClient`. The client is created on first use so the
API can boot without an OpenAI key and report a configuration error only
when an AI feature is actually requested.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable

from lontario.core.config import settings
from lontario.core.errors import (
    ConfigurationError,
    HiringError,
    IntegrationError,
    QuestionGenerationError,
    RateLimitError,
    ScoringError,
)
from lontario.schemas.ai import CandidateProfile, MatchScore, QuestionSet
from lontario.services.openai_client import OpenAIClient, OpenAIClientError, OpenAINotConfiguredError

logger = logging.getLogger(__name__)

AI_NOT_CONFIGURED_MESSAGE = "AI service not configured. Please set OPENAI_API_KEY."
AI_RATE_LIMITED_MESSAGE = "AI rate limit exceeded. Please try again later."
_FALLBACK_MESSAGES = {
    ScoringError: "Failed to score candidate",
    QuestionGenerationError: "Failed to generate interview questions",
}


@dataclass
class JobContext:
    title: str
    level: str | None = None
    description: str | None = None
    required_skills: list[str] = field(default_factory=list)
    nice_to_have_skills: list[str] = field(default_factory=list)

    @classmethod
    def from_job(cls, job) -> "JobContext":
        return cls(
            title=job.title,
            level=job.level,
            description=job.description,
            required_skills=list(job.required_skills or []),
            nice_to_have_skills=list(job.nice_to_have_skills or []),
        )


@dataclass
class ScoringInput:
    resume_text: str
    skills: list[str] = field(default_factory=list)
    experience: list[str] = field(default_factory=list)
    years_of_experience: int | None = None
    education_level: str | None = None


SCORING_SYSTEM_PROMPT = """You are a senior technical recruiter assessing how well a candidate fits a job.

Score bands:
- 90-100: exceptional fit, exceeds the requirements
- 75-89: strong fit, meets most requirements
- 60-74: moderate fit, gaps that can be trained
- 40-59: weak fit, significant gaps
- 0-39: poor fit, basic requirements not met

Weigh the factors as follows:
1. skills_match (40%): overlap with the required skills
2. experience_match (30%): years and relevance of experience
3. education_match (15%): relevant degrees or certifications
4. keywords_match (15%): domain terminology and specific tools

Report strengths and concerns with equal care. Respond with JSON matching the schema."""


QUESTIONS_SYSTEM_PROMPT = """You are an experienced technical interviewer preparing a personalised, text-based interview.

Requirements:
- Produce between 8 and 10 questions.
- Tie each question to concrete details of the candidate's profile.
- Mix roughly 60% technical and 40% behavioural questions.
- Ramp difficulty: 2-3 easy, 4-5 medium, 2-3 hard.
- Give every question a scoring rubric with excellent / good / needs_work criteria.
- Allowed categories: technical, behavioral, system-design, problem-solving, culture-fit.
- Explain in `context` why the question matters for this candidate.

Respond with JSON matching the schema."""


def _join(items: list[str], empty: str = "None specified") -> str:
    cleaned = [i for i in items if i]
    return ", ".join(cleaned) if cleaned else empty


def build_scoring_prompt(candidate: ScoringInput, job: JobContext) -> str:
    highlights = "\n".join(f"  - {e}" for e in candidate.experience[:5]) or "  - None provided"
    resume_excerpt = (candidate.resume_text or "")[: settings.AI_RESUME_PROMPT_CHARS]
    years = candidate.years_of_experience if candidate.years_of_experience is not None else "Unknown"
    return (
        "JOB REQUIREMENTS:\n"
        f"- Title: {job.title}\n"
        f"- Level: {job.level or 'Unspecified'}\n"
        f"- Required Skills: {_join(job.required_skills)}\n"
        f"- Nice-to-Have: {_join(job.nice_to_have_skills)}\n"
        f"- Description: {job.description or 'Not provided'}\n\n"
        "CANDIDATE PROFILE:\n"
        f"- Experience: {years} years\n"
        f"- Skills: {_join(candidate.skills, 'Unknown')}\n"
        f"- Education: {candidate.education_level or 'Unknown'}\n"
        f"- Experience Highlights:\n{highlights}\n\n"
        f"RESUME EXCERPT:\n{resume_excerpt}\n\n"
        "Evaluate this candidate's fit for the role."
    )


def build_questions_prompt(job: JobContext, profile: CandidateProfile) -> str:
    known = {s.lower() for s in profile.skills}
    matching = [s for s in job.required_skills if s.lower() in known]
    gaps = [s for s in job.required_skills if s.lower() not in known]
    experience = "\n".join(f"  - {e}" for e in profile.experience) or "  - None provided"
    projects = "\n".join(f"- {p}" for p in profile.projects[:5]) or "No public projects available"
    return (
        "JOB DETAILS:\n"
        f"- Title: {job.title}\n"
        f"- Level: {job.level or 'Unspecified'}\n"
        f"- Required Skills: {_join(job.required_skills)}\n"
        f"- Nice-to-Have: {_join(job.nice_to_have_skills)}\n"
        f"- Description: {job.description or 'Not provided'}\n\n"
        "CANDIDATE PROFILE:\n"
        f"- Name: {profile.name}\n"
        f"- Source: {profile.source}\n"
        f"- Bio: {profile.bio or 'Not provided'}\n"
        f"- Skills: {_join(profile.skills, 'Unknown')}\n"
        f"- Experience:\n{experience}\n"
        f"- Notable Projects:\n{projects}\n\n"
        "ANALYSIS:\n"
        f"- Matching Skills: {_join(matching, 'None directly matching')}\n"
        f"- Skill Gaps to Probe: {_join(gaps, 'All required skills present')}\n\n"
        "Open with 2-3 warm-up questions about their own work, follow with 3-4 deep technical "
        f"questions on the required skills, add 2-3 behavioural questions suited to the "
        f"{job.level or 'target'} level and close with 1-2 system-thinking questions. "
        "Estimate 5-15 minutes per question."
    )


def classify_ai_error(exc: Exception, fallback: type[IntegrationError]) -> HiringError:
    """
    Map a raw AI failure onto the domain taxonomy with a user-safe message.
    """
    if isinstance(exc, HiringError):
        return exc
    message = str(exc)
    lowered = message.lower()
    if isinstance(exc, OpenAINotConfiguredError) or "openai_api_key" in lowered:
        return ConfigurationError(AI_NOT_CONFIGURED_MESSAGE)
    status = getattr(exc, "status_code", None)
    if status == 429 or "rate limit" in lowered:
        return RateLimitError(AI_RATE_LIMITED_MESSAGE)
    return fallback(_FALLBACK_MESSAGES.get(fallback, "AI request failed"))


class Oracle:
    def __init__(
        self,
        *,
        client: OpenAIClient | None = None,
        client_factory: Callable[[], OpenAIClient] | None = None,
    ) -> None:
        self._client = client
        self._client_factory = client_factory or OpenAIClient

    @property
    def model(self) -> str:
        if self._client is not None:
            return self._client.model
        return settings.OPENAI_MODEL

    def _get_client(self) -> OpenAIClient:
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    def score_candidate(self, candidate: ScoringInput, job: JobContext) -> MatchScore:
        request_id = f"score-{uuid.uuid4()}"
        try:
            response = self._get_client().structured_completion(
                messages=[
                    {"role": "system", "content": SCORING_SYSTEM_PROMPT},
                    {"role": "user", "content": build_scoring_prompt(candidate, job)},
                ],
                schema=MatchScore,
                schema_name="match_score",
                request_id=request_id,
                temperature=settings.AI_SCORING_TEMPERATURE,
            )
        except OpenAIClientError as exc:
            logger.warning("Scoring call failed: request_id=%s error=%s", request_id, exc)
            raise classify_ai_error(exc, ScoringError) from exc
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected scoring failure: request_id=%s", request_id)
            raise classify_ai_error(exc, ScoringError) from exc
        return response.parsed

    def generate_questions(self, job: JobContext, profile: CandidateProfile) -> QuestionSet:
        request_id = f"questions-{uuid.uuid4()}"
        try:
            response = self._get_client().structured_completion(
                messages=[
                    {"role": "system", "content": QUESTIONS_SYSTEM_PROMPT},
                    {"role": "user", "content": build_questions_prompt(job, profile)},
                ],
                schema=QuestionSet,
                schema_name="interview_questions",
                request_id=request_id,
                temperature=settings.AI_QUESTIONS_TEMPERATURE,
            )
        except OpenAIClientError as exc:
            logger.warning("Question generation failed: request_id=%s error=%s", request_id, exc)
            raise classify_ai_error(exc, QuestionGenerationError) from exc
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected question generation failure: request_id=%s", request_id)
            raise classify_ai_error(exc, QuestionGenerationError) from exc

        question_set = response.parsed
        if not question_set.total_estimated_time:
            question_set.total_estimated_time = sum(q.estimated_time for q in question_set.questions)
        if not question_set.job_title:
            question_set.job_title = job.title
        if not question_set.candidate_name:
            question_set.candidate_name = profile.name
        return question_set
