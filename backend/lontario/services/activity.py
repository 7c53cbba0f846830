from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from lontario.models.candidate_activity import CandidateActivity


def log_candidate_activity(
    db: Session,
    *,
    candidate_id: str,
    activity_type: str,
    performed_by: Optional[str] = None,
    old_value: Optional[str] = None,
    new_value: Optional[str] = None,
    notes: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
) -> CandidateActivity:
    ev = CandidateActivity(
        candidate_id=candidate_id,
        activity_type=activity_type,
        performed_by=performed_by,
        old_value=old_value,
        new_value=new_value,
        notes=notes,
        data=data,
    )
    db.add(ev)
    # Let caller decide commit timing; flush so `id`/`created_at` can be used.
    db.flush()
    return ev
