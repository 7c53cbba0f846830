from __future__ import annotations

from fastapi import Header


def get_actor(x_actor_id: str | None = Header(None)) -> str | None:
    """Recruiter identity forwarded by the dashboard; recorded on activity rows."""
    if x_actor_id is None:
        return None
    actor = x_actor_id.strip()[:255]
    return actor or None
