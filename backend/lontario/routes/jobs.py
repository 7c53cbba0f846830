from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import desc, or_
from sqlalchemy.orm import Session

from lontario.core.clock import utcnow
from lontario.core.database import get_db
from lontario.models.job import Job, JobStatus
from lontario.schemas.job import JobCreate, JobOut, JobUpdate
from lontario.services.jobs import get_job, normalize_skills

router = APIRouter(prefix="/jobs", tags=["jobs"])


def _apply_status_timestamps(job: Job, next_status: str) -> None:
    now = utcnow()
    if next_status == JobStatus.active.value and job.published_at is None:
        job.published_at = now
    if next_status == JobStatus.closed.value:
        job.closed_at = now
    elif job.closed_at is not None:
        job.closed_at = None


@router.post("", response_model=JobOut, status_code=status.HTTP_201_CREATED)
def create_job(payload: JobCreate, db: Session = Depends(get_db)):
    data = payload.model_dump()
    data["required_skills"] = normalize_skills(data.get("required_skills"))
    data["nice_to_have_skills"] = normalize_skills(data.get("nice_to_have_skills"))
    for k, v in list(data.items()):
        if isinstance(v, str):
            data[k] = v.strip() or None
    data["title"] = payload.title.strip()

    job = Job(**data)
    _apply_status_timestamps(job, job.status)
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


@router.get("", response_model=list[JobOut])
def list_jobs(
    q: str | None = None,
    status_filter: list[str] | None = Query(default=None, alias="status"),
    archived: bool = False,
    db: Session = Depends(get_db),
):
    qry = db.query(Job).filter(Job.is_archived.is_(archived))

    if q:
        term = str(q).strip()
        if term:
            like = f"%{term}%"
            qry = qry.filter(
                or_(
                    Job.title.ilike(like),
                    Job.department.ilike(like),
                    Job.location.ilike(like),
                )
            )

    if status_filter:
        statuses = [str(s).strip().lower() for s in status_filter if s and str(s).strip()]
        if statuses:
            qry = qry.filter(Job.status.in_(statuses))

    return qry.order_by(desc(Job.created_at)).all()


@router.get("/{job_id}", response_model=JobOut)
def read_job(job_id: str, db: Session = Depends(get_db)):
    return get_job(db, job_id)


@router.patch("/{job_id}", response_model=JobOut)
def update_job(job_id: str, payload: JobUpdate, db: Session = Depends(get_db)):
    job = get_job(db, job_id)

    data = payload.model_dump(exclude_unset=True)
    for key in ("title", "status", "required_skills", "nice_to_have_skills"):
        if key in data and data[key] is None:
            data.pop(key)
    if not data:
        return job

    for key in ("required_skills", "nice_to_have_skills"):
        if key in data:
            data[key] = normalize_skills(data[key])

    if data.get("status") and data["status"] != job.status:
        _apply_status_timestamps(job, data["status"])

    for k, v in data.items():
        if isinstance(v, str):
            v = v.strip()
        setattr(job, k, v)

    db.commit()
    db.refresh(job)
    return job


@router.post("/{job_id}/archive", response_model=JobOut)
def archive_job(job_id: str, db: Session = Depends(get_db)):
    job = get_job(db, job_id)
    job.is_archived = True
    db.commit()
    db.refresh(job)
    return job


@router.post("/{job_id}/unarchive", response_model=JobOut)
def unarchive_job(job_id: str, db: Session = Depends(get_db)):
    job = get_job(db, job_id)
    job.is_archived = False
    db.commit()
    db.refresh(job)
    return job
