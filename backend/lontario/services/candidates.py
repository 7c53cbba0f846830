from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy import asc, desc, func, or_
from sqlalchemy.orm import Session

from lontario.core.clock import utcnow
from lontario.core.errors import ConflictError, NotFoundError, ValidationError
from lontario.models.ai_interview import AIInterview
from lontario.models.candidate import Candidate, Stage
from lontario.models.job import JobStatus
from lontario.services.jobs import get_job, refresh_job_counters

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
SORTABLE_FIELDS = {"ai_score", "applied_at", "last_activity_at"}

# Label -> inclusive bounds.
SCORE_BUCKETS: tuple[tuple[str, int, int], ...] = (
    ("90-100", 90, 100),
    ("80-89", 80, 89),
    ("70-79", 70, 79),
    ("60-69", 60, 69),
    ("0-59", 0, 59),
)

UPDATABLE_FIELDS = {
    "phone",
    "location",
    "linkedin_url",
    "github_url",
    "portfolio_url",
    "is_starred",
    "is_archived",
}


@dataclass(frozen=True)
class CandidateFilters:
    job_id: str | None = None
    stage: str | None = None
    min_score: int | None = None
    starred: bool | None = None
    search: str | None = None
    include_archived: bool = False
    sort: str = "applied_at"
    order: str = "desc"
    page: int = 1
    limit: int = 20


@dataclass
class CandidatePage:
    candidates: list[Candidate]
    page: int
    limit: int
    total: int
    by_stage: dict[str, int]
    score_distribution: dict[str, int]

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def get_candidate(db: Session, candidate_id: str) -> Candidate:
    candidate = db.query(Candidate).filter(Candidate.id == candidate_id).first()
    if not candidate:
        raise NotFoundError("Candidate not found")
    return candidate


def update_candidate(db: Session, candidate: Candidate, changes: dict[str, Any]) -> Candidate:
    """
    Apply whitelisted field changes; strings are trimmed and blanks become NULL.
    Caller commits.
    """
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

    archived_changed = "is_archived" in changes and bool(changes["is_archived"]) != bool(candidate.is_archived)
    for key, value in changes.items():
        if isinstance(value, str):
            value = value.strip() or None
        setattr(candidate, key, value)

    candidate.last_activity_at = utcnow()
    if archived_changed and candidate.job is not None:
        refresh_job_counters(db, candidate.job)
    db.flush()
    return candidate


def create_candidate(db: Session, data: dict[str, Any]) -> Candidate:
    """
    Add an application to an active job. Duplicate emails for the same job are a conflict.
    Caller commits and enqueues scoring.
    """
    job = get_job(db, data["job_id"])
    if job.status != JobStatus.active.value or job.is_archived:
        raise ValidationError("This job is not accepting applications", code="JOB_CLOSED")

    email = str(data["email"]).strip().lower()
    existing = (
        db.query(Candidate.id)
        .filter(Candidate.job_id == job.id, func.lower(Candidate.email) == email)
        .first()
    )
    if existing:
        raise ConflictError(
            "Candidate has already applied to this job",
            code="DUPLICATE_APPLICATION",
            details={"candidate_id": existing[0]},
        )

    values = {k: (v.strip() or None) if isinstance(v, str) else v for k, v in data.items()}
    values["email"] = email
    values["full_name"] = (data.get("full_name") or "").strip()
    now = utcnow()
    candidate = Candidate(
        **values,
        stage=Stage.applied.value,
        applied_at=now,
        last_activity_at=now,
    )
    db.add(candidate)
    db.flush()
    refresh_job_counters(db, job)
    logger.info("Candidate created: candidate_id=%s job_id=%s", candidate.id, job.id)
    return candidate


def delete_candidate(db: Session, candidate: Candidate) -> None:
    job = candidate.job
    db.delete(candidate)
    db.flush()
    if job is not None:
        refresh_job_counters(db, job)


def list_candidates(db: Session, filters: CandidateFilters) -> CandidatePage:
    page = max(1, int(filters.page or 1))
    limit = max(1, min(MAX_PAGE_SIZE, int(filters.limit or 20)))

    qry = db.query(Candidate)
    if filters.job_id:
        qry = qry.filter(Candidate.job_id == filters.job_id)
    if not filters.include_archived:
        qry = qry.filter(Candidate.is_archived.is_(False))
    if filters.search:
        term = str(filters.search).strip()
        if term:
            like = f"%{term}%"
            qry = qry.filter(or_(Candidate.full_name.ilike(like), Candidate.email.ilike(like)))

    # Aggregations ignore stage/score/star filters so the board can show every column count.
    by_stage = {s.value: 0 for s in Stage}
    for stage, count in qry.with_entities(Candidate.stage, func.count(Candidate.id)).group_by(Candidate.stage):
        by_stage[stage] = int(count)

    distribution = {label: 0 for label, _, _ in SCORE_BUCKETS}
    for (score,) in qry.filter(Candidate.ai_score.isnot(None)).with_entities(Candidate.ai_score):
        for label, low, high in SCORE_BUCKETS:
            if low <= score <= high:
                distribution[label] += 1
                break

    if filters.stage:
        qry = qry.filter(Candidate.stage == filters.stage)
    if filters.min_score is not None:
        qry = qry.filter(Candidate.ai_score >= int(filters.min_score))
    if filters.starred is not None:
        qry = qry.filter(Candidate.is_starred.is_(bool(filters.starred)))

    total = qry.count()

    sort = filters.sort if filters.sort in SORTABLE_FIELDS else "applied_at"
    column = getattr(Candidate, sort)
    direction = asc if str(filters.order).lower() == "asc" else desc
    ordering = [direction(column)]
    if sort == "ai_score":
        # Unscored candidates always sort last.
        ordering.insert(0, Candidate.ai_score.is_(None))
    ordering.append(desc(Candidate.created_at))

    rows = qry.order_by(*ordering).offset((page - 1) * limit).limit(limit).all()
    return CandidatePage(
        candidates=rows,
        page=page,
        limit=limit,
        total=total,
        by_stage=by_stage,
        score_distribution=distribution,
    )


def latest_interview(db: Session, candidate: Candidate) -> AIInterview | None:
    return (
        db.query(AIInterview)
        .filter(AIInterview.candidate_id == candidate.id)
        .order_by(desc(AIInterview.created_at))
        .first()
    )

