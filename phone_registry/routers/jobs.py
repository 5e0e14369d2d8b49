"""Jobs router - view background jobs (operators only)."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from phone_registry.core.deps import get_current_operator, get_db
from phone_registry.db.enums import JobStatus, JobType
from phone_registry.schemas.job import JobListItem, JobRead
from phone_registry.services import job_service

router = APIRouter(tags=["Jobs"], dependencies=[Depends(get_current_operator)])


@router.get("", response_model=list[JobListItem])
def list_jobs(
    status: JobStatus | None = None,
    job_type: JobType | None = None,
    limit: int = 50,
    db: Session = Depends(get_db),
):
    """List recent jobs."""
    return job_service.list_jobs(
        db,
        status=status,
        job_type=job_type,
        limit=min(limit, 100),
    )


@router.get("/{job_id}", response_model=JobRead)
def get_job(job_id: UUID, db: Session = Depends(get_db)):
    job = job_service.get_job(db, job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job
