"""
Boundary mapping between storage field names and the names the dashboard uses.

Every alias pair is filled from whichever side is present, and both names end
up holding the same value, so callers may read either.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from lontario.core.clock import as_utc

# (view name, storage name, default when both are missing)
CANDIDATE_ALIASES: tuple[tuple[str, str, Any], ...] = (
    ("name", "full_name", ""),
    ("avatar", "avatar_url", None),
    ("aiScore", "ai_score", None),
    ("skills", "extracted_skills", list),
    ("status", "stage", "applied"),
    ("appliedAt", "applied_at", None),
    ("jobId", "job_id", ""),
    ("summary", "ai_summary", None),
    ("strengths", "ai_strengths", list),
    ("concerns", "ai_concerns", list),
    ("linkedIn", "linkedin_url", None),
    ("github", "github_url", None),
    ("portfolio", "portfolio_url", None),
    ("isStarred", "is_starred", False),
    ("yearsOfExperience", "years_of_experience", None),
)

CANDIDATE_PLAIN_FIELDS = ("id", "email", "phone", "location", "question_generation_status")

JOB_ALIASES: tuple[tuple[str, str, Any], ...] = (
    ("type", "employment_type", "full-time"),
    ("applicants", "total_applicants", 0),
    ("topMatches", "active_candidates", 0),
    ("isArchived", "is_archived", False),
    ("createdAt", "created_at", None),
    ("requirements", "required_skills", list),
    ("niceToHave", "nice_to_have_skills", list),
    ("stageCounts", "stage_counts", None),
)

JOB_PLAIN_FIELDS = ("id", "title", "department", "level", "location", "description")


def _as_mapping(source: Any, fields: tuple[str, ...]) -> Mapping[str, Any]:
    if isinstance(source, Mapping):
        return source
    return {name: getattr(source, name) for name in fields if hasattr(source, name)}


def _present(value: Any) -> bool:
    return value is not None and value != ""


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    return value


def _apply_aliases(data: Mapping[str, Any], aliases, plain: tuple[str, ...]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for name in plain:
        out[name] = _jsonable(data.get(name))
    for view_name, storage_name, default in aliases:
        if _present(data.get(storage_name)):
            value = data.get(storage_name)
        elif _present(data.get(view_name)):
            value = data.get(view_name)
        else:
            value = default() if callable(default) else default
        value = _jsonable(value)
        out[view_name] = value
        out[storage_name] = value
    return out


def normalize_candidate(source: Any) -> dict[str, Any]:
    """Accepts an ORM row, an API payload or a dashboard payload."""
    names = CANDIDATE_PLAIN_FIELDS + tuple(s for _, s, _ in CANDIDATE_ALIASES)
    data = _as_mapping(source, names)
    out = _apply_aliases(data, CANDIDATE_ALIASES, CANDIDATE_PLAIN_FIELDS)
    out["status"] = out["stage"] = str(out["stage"] or "applied")
    out["name"] = out["full_name"] = str(out["full_name"] or "")
    out["email"] = out["email"] or ""
    return out


def normalize_job(source: Any) -> dict[str, Any]:
    names = JOB_PLAIN_FIELDS + ("status",) + tuple(s for _, s, _ in JOB_ALIASES)
    data = _as_mapping(source, names)
    out = _apply_aliases(data, JOB_ALIASES, JOB_PLAIN_FIELDS)
    out["status"] = data.get("status") or "draft"
    out["title"] = out["title"] or ""
    return out


def to_storage_fields(payload: Mapping[str, Any], aliases=CANDIDATE_ALIASES) -> dict[str, Any]:
    """Map dashboard names back onto storage names; storage names win on conflict."""
    out = dict(payload)
    for view_name, storage_name, _ in aliases:
        if view_name in out:
            value = out.pop(view_name)
            out.setdefault(storage_name, value)
    return out
