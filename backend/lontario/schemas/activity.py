from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, field_serializer

from lontario.core.clock import as_utc


class CandidateActivityOut(BaseModel):
    id: str
    candidate_id: str
    activity_type: str
    performed_by: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    notes: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    created_at: datetime

    @field_serializer("created_at")
    def serialize_dt(self, dt: datetime):
        return as_utc(dt)

    model_config = ConfigDict(from_attributes=True)
