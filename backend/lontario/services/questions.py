from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from lontario.core.clock import utcnow
from lontario.core.errors import InvalidStateError, QuestionGenerationError
from lontario.models.ai_interview import AIInterview
from lontario.models.candidate import Candidate, QuestionGenerationStatus
from lontario.models.pregenerated_questions import PregeneratedQuestions, PregenerationStatus
from lontario.schemas.ai import CandidateProfile, QuestionSet
from lontario.services.candidates import get_candidate
from lontario.services.oracle import JobContext, Oracle, classify_ai_error

logger = logging.getLogger(__name__)

PROFILE_EXPERIENCE_CHARS = 500


def build_candidate_profile(candidate: Candidate) -> CandidateProfile:
    if candidate.github_url:
        source = "github"
    elif candidate.linkedin_url:
        source = "linkedin"
    else:
        source = "resume"
    experience = [candidate.resume_text[:PROFILE_EXPERIENCE_CHARS]] if candidate.resume_text else []
    return CandidateProfile(
        name=candidate.full_name,
        source=source,
        skills=list(candidate.extracted_skills or []),
        experience=experience,
        bio=candidate.ai_summary,
    )


def serialize_questions(question_set: QuestionSet) -> list[dict]:
    return [q.model_dump() for q in question_set.questions]


def get_pregenerated(db: Session, candidate_id: str, job_id: str) -> PregeneratedQuestions | None:
    return (
        db.query(PregeneratedQuestions)
        .filter(
            PregeneratedQuestions.candidate_id == candidate_id,
            PregeneratedQuestions.job_id == job_id,
        )
        .first()
    )


def get_ready_pregenerated_questions(db: Session, candidate_id: str, job_id: str) -> PregeneratedQuestions | None:
    record = get_pregenerated(db, candidate_id, job_id)
    if record is None or record.status != PregenerationStatus.ready.value:
        return None
    return record


def mark_pregenerated_used(db: Session, record: PregeneratedQuestions, interview: AIInterview) -> None:
    """
    Consume a ready set. The conditional update means one record backs at most
    one interview even when two schedules race. Caller commits.
    """
    updated = (
        db.query(PregeneratedQuestions)
        .filter(
            PregeneratedQuestions.id == record.id,
            PregeneratedQuestions.status == PregenerationStatus.ready.value,
        )
        .update(
            {
                PregeneratedQuestions.status: PregenerationStatus.used.value,
                PregeneratedQuestions.used_at: utcnow(),
                PregeneratedQuestions.used_in_interview_id: interview.id,
            },
            synchronize_session=False,
        )
    )
    if not updated:
        raise InvalidStateError(
            "Pregenerated questions were already used", code="QUESTIONS_ALREADY_USED"
        )
    db.refresh(record)


class QuestionPregenerator:
    """
    Generates and stores a candidate's interview questions ahead of scheduling,
    so scheduling can skip the slow LLM call.
    """

    def __init__(self, db: Session, *, oracle: Oracle) -> None:
        self.db = db
        self.oracle = oracle

    def pregenerate(self, candidate_id: str) -> PregeneratedQuestions:
        candidate = get_candidate(self.db, candidate_id)
        record = get_pregenerated(self.db, candidate.id, candidate.job_id)
        if record is not None and record.status in {
            PregenerationStatus.ready.value,
            PregenerationStatus.generating.value,
        }:
            return record

        if record is None:
            record = PregeneratedQuestions(candidate_id=candidate.id, job_id=candidate.job_id)
            self.db.add(record)
        record.status = PregenerationStatus.generating.value
        record.error_message = None
        record.questions = []
        record.total_questions = 0
        record.used_at = None
        record.used_in_interview_id = None
        candidate.question_generation_status = QuestionGenerationStatus.generating.value
        self.db.commit()

        try:
            question_set = self.oracle.generate_questions(
                JobContext.from_job(candidate.job), build_candidate_profile(candidate)
            )
        except Exception as exc:
            error = classify_ai_error(exc, QuestionGenerationError)
            logger.warning("Question pregeneration failed: candidate_id=%s error=%s", candidate.id, error.message)
            record.status = PregenerationStatus.failed.value
            record.error_message = error.message
            candidate.question_generation_status = QuestionGenerationStatus.failed.value
            self.db.commit()
            if error is exc:
                raise
            raise error from exc

        record.status = PregenerationStatus.ready.value
        record.questions = serialize_questions(question_set)
        record.total_questions = len(question_set.questions)
        record.total_estimated_time = question_set.total_estimated_time
        record.model_used = self.oracle.model
        record.generated_at = utcnow()
        candidate.question_generation_status = QuestionGenerationStatus.ready.value
        self.db.commit()
        self.db.refresh(record)
        logger.info(
            "Questions pregenerated: candidate_id=%s count=%s", candidate.id, record.total_questions
        )
        return record
