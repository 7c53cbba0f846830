from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import Session

from lontario.core.errors import NotFoundError
from lontario.models.candidate import CLOSED_STAGES, Candidate
from lontario.models.job import Job


def get_job(db: Session, job_id: str) -> Job:
    job = db.query(Job).filter(Job.id == job_id).first()
    if not job:
        raise NotFoundError("Job not found")
    return job


def normalize_skills(raw) -> list[str]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        return []
    cleaned: list[str] = []
    seen: set[str] = set()
    for s in raw:
        if s is None:
            continue
        value = str(s).strip()
        if not value:
            continue
        value = value[:64]
        key = value.lower()
        if key in seen:
            continue
        seen.add(key)
        cleaned.append(value)
    return cleaned[:50]


def refresh_job_counters(db: Session, job: Job) -> None:
    """
    Recompute applicant counters from the candidates table. Caller commits.
    """
    db.flush()
    job.total_applicants = (
        db.query(func.count(Candidate.id)).filter(Candidate.job_id == job.id).scalar() or 0
    )
    job.active_candidates = (
        db.query(func.count(Candidate.id))
        .filter(
            Candidate.job_id == job.id,
            Candidate.is_archived.is_(False),
            Candidate.stage.notin_([s.value for s in CLOSED_STAGES]),
        )
        .scalar()
        or 0
    )
