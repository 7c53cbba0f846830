from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from lontario.core.clock import utcnow
from lontario.core.config import settings
from lontario.core.errors import HiringError, NotFoundError, ScoringError
from lontario.models.candidate import Candidate
from lontario.services.activity import log_candidate_activity
from lontario.services.candidates import get_candidate
from lontario.services.github import GitHubClient, GitHubError, GitHubProfile, extract_github_username
from lontario.services.oracle import JobContext, Oracle, ScoringInput, classify_ai_error

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA_SUMMARY = (
    "Insufficient profile data for AI scoring. Add a resume, cover letter, "
    "or GitHub profile for better matching."
)
INSUFFICIENT_DATA_CONCERN = "No resume or profile data available for analysis"


@dataclass(frozen=True)
class ScoringResult:
    candidate_id: str
    success: bool
    score: int | None = None
    error: str | None = None
    error_code: str | None = None
    insufficient_data: bool = False
    failure: HiringError | None = None


class ScoringService:
    """
    Scores one candidate against their job and persists the outcome.

    Failures are reported through the returned `ScoringResult`; the candidate
    row is never removed and `ai_score` stays NULL when the Oracle fails.
    """

    def __init__(
        self,
        db: Session,
        *,
        oracle: Oracle,
        profile_fetcher: GitHubClient | None = None,
    ) -> None:
        self.db = db
        self.oracle = oracle
        self.profile_fetcher = profile_fetcher or GitHubClient()

    def score_candidate(self, candidate_id: str) -> ScoringResult:
        candidate = get_candidate(self.db, candidate_id)
        job = candidate.job
        if job is None:
            logger.warning("Scoring skipped, job missing: candidate_id=%s", candidate.id)
            missing = NotFoundError("Job not found")
            return ScoringResult(
                candidate_id=candidate.id,
                success=False,
                error=missing.message,
                error_code=missing.code,
                failure=missing,
            )

        profile = self._fetch_profile(candidate)
        if profile is not None:
            # Kept regardless of how scoring turns out.
            if profile.avatar_url:
                candidate.avatar_url = profile.avatar_url
            if profile.years_of_experience is not None:
                candidate.years_of_experience = profile.years_of_experience

        text = self._combined_text(candidate, profile)
        if len(text.strip()) < settings.SCORING_MIN_TEXT_CHARS:
            return self._persist_insufficient(candidate)

        try:
            match = self.oracle.score_candidate(
                ScoringInput(
                    resume_text=text,
                    skills=list(profile.skills) if profile else list(candidate.extracted_skills or []),
                    experience=list(profile.experience) if profile else [],
                    years_of_experience=candidate.years_of_experience,
                ),
                JobContext.from_job(job),
            )
        except Exception as exc:
            error = classify_ai_error(exc, ScoringError)
            logger.warning(
                "Scoring failed: candidate_id=%s code=%s message=%s", candidate.id, error.code, error.message
            )
            candidate.updated_at = utcnow()
            self.db.commit()
            return ScoringResult(
                candidate_id=candidate.id,
                success=False,
                error=error.message,
                error_code=error.code,
                failure=error,
            )

        skills: list[str] = []
        for s in match.skills_analysis.matched + match.skills_analysis.bonus:
            if s and s not in skills:
                skills.append(s)

        candidate.ai_score = match.overall_score
        candidate.ai_summary = match.summary
        candidate.ai_strengths = list(match.strengths)
        candidate.ai_concerns = list(match.concerns)
        candidate.ai_score_breakdown = {
            **match.breakdown.model_dump(),
            "skills_analysis": match.skills_analysis.model_dump(),
            "reasoning": match.reasoning,
        }
        candidate.ai_recommendation = match.recommendation
        candidate.extracted_skills = skills
        candidate.updated_at = utcnow()

        log_candidate_activity(
            self.db,
            candidate_id=candidate.id,
            activity_type="ai_scored",
            new_value=str(match.overall_score),
            data={"recommendation": match.recommendation, "model": self.oracle.model},
        )
        self.db.commit()
        logger.info("Candidate scored: candidate_id=%s score=%s", candidate.id, match.overall_score)
        return ScoringResult(candidate_id=candidate.id, success=True, score=match.overall_score)

    def _fetch_profile(self, candidate: Candidate) -> GitHubProfile | None:
        username = extract_github_username(candidate.github_url)
        if not username:
            return None
        try:
            return self.profile_fetcher.fetch_profile(username)
        except GitHubError as exc:
            logger.warning("GitHub fetch failed: candidate_id=%s error=%s", candidate.id, exc)
            return None

    @staticmethod
    def _combined_text(candidate: Candidate, profile: GitHubProfile | None) -> str:
        parts = [candidate.resume_text or "", candidate.cover_letter or ""]
        if profile is not None:
            parts.append(profile.as_text())
        return "\n\n".join(p.strip() for p in parts if p and p.strip())

    def _persist_insufficient(self, candidate: Candidate) -> ScoringResult:
        candidate.ai_score = 0
        candidate.ai_summary = INSUFFICIENT_DATA_SUMMARY
        candidate.ai_strengths = []
        candidate.ai_concerns = [INSUFFICIENT_DATA_CONCERN]
        candidate.updated_at = utcnow()
        self.db.commit()
        logger.info("Candidate lacks profile data for scoring: candidate_id=%s", candidate.id)
        return ScoringResult(candidate_id=candidate.id, success=True, score=0, insufficient_data=True)
