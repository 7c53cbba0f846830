from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import desc
from sqlalchemy.orm import Session

from lontario.core.database import get_db
from lontario.models.candidate_activity import CandidateActivity
from lontario.schemas.activity import CandidateActivityOut
from lontario.services.candidates import get_candidate


router = APIRouter(prefix="/candidates", tags=["activity"])


@router.get("/{candidate_id}/activity", response_model=list[CandidateActivityOut])
def list_activity(
    candidate_id: str,
    limit: int = 50,
    db: Session = Depends(get_db),
):
    get_candidate(db, candidate_id)

    limit2 = max(1, min(int(limit or 50), 200))
    return (
        db.query(CandidateActivity)
        .filter(CandidateActivity.candidate_id == candidate_id)
        .order_by(desc(CandidateActivity.created_at), desc(CandidateActivity.id))
        .limit(limit2)
        .all()
    )
