import logging

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from lontario.celery_app import enqueue
from lontario.core.config import settings
from lontario.core.database import get_db
from lontario.core.rate_limit import maybe_limit
from lontario.dependencies.actor import get_actor
from lontario.dependencies.ai import get_oracle, get_profile_fetcher
from lontario.schemas.activity import CandidateActivityOut
from lontario.schemas.candidate import (
    BulkMoveFailure,
    BulkMoveIn,
    BulkMoveOut,
    CandidateAggregations,
    CandidateCreate,
    CandidateDetailOut,
    CandidateListOut,
    CandidateOut,
    CandidateUpdate,
    MoveCandidateIn,
    MoveCandidateOut,
    Pagination,
    PregenerateOut,
    ScoreOut,
)
from lontario.schemas.interview import InterviewOut
from lontario.services.candidates import (
    CandidateFilters,
    create_candidate,
    delete_candidate,
    get_candidate,
    latest_interview,
    list_candidates,
    update_candidate,
)
from lontario.services.github import GitHubClient
from lontario.services.oracle import Oracle
from lontario.services.pipeline import advance_candidate, apply_stage_change, bulk_move
from lontario.services.questions import QuestionPregenerator, get_pregenerated
from lontario.services.scoring import ScoringService
from lontario.tasks.candidates import score_candidate as score_candidate_task

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/candidates", tags=["candidates"])


@router.get("", response_model=CandidateListOut)
def read_candidates(
    job_id: str | None = None,
    stage: str | None = None,
    min_score: int | None = Query(default=None, ge=0, le=100),
    starred: bool | None = None,
    search: str | None = None,
    include_archived: bool = False,
    sort: str = "applied_at",
    order: str = "desc",
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1),
    db: Session = Depends(get_db),
):
    result = list_candidates(
        db,
        CandidateFilters(
            job_id=job_id,
            stage=(stage or "").strip().lower() or None,
            min_score=min_score,
            starred=starred,
            search=search,
            include_archived=include_archived,
            sort=sort,
            order=order,
            page=page,
            limit=limit,
        ),
    )
    return CandidateListOut(
        candidates=[CandidateOut.model_validate(c) for c in result.candidates],
        pagination=Pagination(
            page=result.page,
            limit=result.limit,
            total=result.total,
            total_pages=result.total_pages,
        ),
        aggregations=CandidateAggregations(
            by_stage=result.by_stage,
            score_distribution=result.score_distribution,
        ),
    )


@router.post("", response_model=CandidateOut, status_code=status.HTTP_201_CREATED)
def apply_to_job(payload: CandidateCreate, db: Session = Depends(get_db)):
    candidate = create_candidate(db, payload.model_dump())
    db.commit()

    # Scoring is best-effort; the application is already stored.
    try:
        enqueue(score_candidate_task, candidate.id)
    except Exception:  # pylint: disable=broad-except
        logger.exception("Failed to enqueue scoring for candidate %s", candidate.id)

    db.refresh(candidate)
    return candidate


@router.post("/bulk-move", response_model=BulkMoveOut)
def bulk_move_candidates(
    payload: BulkMoveIn,
    db: Session = Depends(get_db),
    actor: str | None = Depends(get_actor),
):
    result = bulk_move(
        db,
        payload.candidate_ids,
        payload.stage,
        rejection_reason=payload.rejection_reason,
        rejection_feedback=payload.rejection_feedback,
        notes=payload.notes,
        actor=actor,
    )
    return BulkMoveOut(
        succeeded=result.succeeded,
        failed=[BulkMoveFailure(candidate_id=cid, error=msg) for cid, msg in result.failed],
        total=result.total,
    )


@router.get("/{candidate_id}", response_model=CandidateDetailOut)
def read_candidate(candidate_id: str, db: Session = Depends(get_db)):
    candidate = get_candidate(db, candidate_id)
    out = CandidateDetailOut.model_validate(candidate)
    interview = latest_interview(db, candidate)
    if interview is not None:
        out.latest_interview = InterviewOut.model_validate(interview)
    return out


@router.patch("/{candidate_id}", response_model=CandidateOut)
def patch_candidate(candidate_id: str, payload: CandidateUpdate, db: Session = Depends(get_db)):
    candidate = get_candidate(db, candidate_id)

    data = payload.model_dump(exclude_unset=True)
    for key in ("is_starred", "is_archived"):
        if key in data and data[key] is None:
            data.pop(key)
    if not data:
        return candidate

    update_candidate(db, candidate, data)
    db.commit()
    db.refresh(candidate)
    return candidate


@router.delete("/{candidate_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_candidate(candidate_id: str, db: Session = Depends(get_db)):
    candidate = get_candidate(db, candidate_id)
    delete_candidate(db, candidate)
    db.commit()
    logger.info("Candidate deleted: candidate_id=%s", candidate_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{candidate_id}/move", response_model=MoveCandidateOut)
def move_candidate(
    candidate_id: str,
    payload: MoveCandidateIn,
    db: Session = Depends(get_db),
    actor: str | None = Depends(get_actor),
):
    change = apply_stage_change(
        db,
        candidate_id,
        payload.stage,
        rejection_reason=payload.rejection_reason,
        rejection_feedback=payload.rejection_feedback,
        notes=payload.notes,
        actor=actor,
    )
    db.commit()
    db.refresh(change.candidate)
    db.refresh(change.activity)
    return MoveCandidateOut(
        candidate=CandidateOut.model_validate(change.candidate),
        activity=CandidateActivityOut.model_validate(change.activity),
    )


@router.post("/{candidate_id}/advance", response_model=MoveCandidateOut)
def advance(
    candidate_id: str,
    db: Session = Depends(get_db),
    actor: str | None = Depends(get_actor),
):
    change = advance_candidate(db, candidate_id, actor=actor)
    db.commit()
    db.refresh(change.candidate)
    db.refresh(change.activity)
    return MoveCandidateOut(
        candidate=CandidateOut.model_validate(change.candidate),
        activity=CandidateActivityOut.model_validate(change.activity),
    )


@router.post("/{candidate_id}/score", response_model=ScoreOut)
@maybe_limit(settings.AI_RATE_LIMIT)
def score(
    request: Request,
    candidate_id: str,
    db: Session = Depends(get_db),
    oracle: Oracle = Depends(get_oracle),
    profile_fetcher: GitHubClient = Depends(get_profile_fetcher),
):
    result = ScoringService(db, oracle=oracle, profile_fetcher=profile_fetcher).score_candidate(candidate_id)
    if result.failure is not None:
        raise result.failure
    return ScoreOut(
        success=result.success,
        candidate_id=result.candidate_id,
        score=result.score,
        error=result.error,
        error_code=result.error_code,
    )


@router.post("/{candidate_id}/pregenerate-questions", response_model=PregenerateOut)
@maybe_limit(settings.AI_RATE_LIMIT)
def pregenerate_questions(
    request: Request,
    candidate_id: str,
    db: Session = Depends(get_db),
    oracle: Oracle = Depends(get_oracle),
):
    return QuestionPregenerator(db, oracle=oracle).pregenerate(candidate_id)


@router.get("/{candidate_id}/pregenerate-questions", response_model=PregenerateOut)
def read_pregenerated_questions(candidate_id: str, db: Session = Depends(get_db)):
    candidate = get_candidate(db, candidate_id)
    record = get_pregenerated(db, candidate.id, candidate.job_id)
    if record is None:
        return PregenerateOut(status="none")
    return record
