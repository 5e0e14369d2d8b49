"""Job service - business logic for background job scheduling and processing."""

from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from phone_registry.db.enums import JobStatus, JobType
from phone_registry.db.models import Job
from phone_registry.utils.dates import utc_now


def schedule_job(
    db: Session,
    job_type: JobType,
    payload: dict,
    run_at: datetime | None = None,
    idempotency_key: str | None = None,
    max_attempts: int = 3,
    commit: bool = True,
) -> Job:
    """
    Schedule a new background job.

    If run_at is None, the job runs immediately.
    If idempotency_key is provided, duplicate jobs with same key will fail
    with IntegrityError (caller should catch and handle).
    With commit=False the job is only flushed, so callers can persist it
    atomically with the rows it refers to.
    """
    job = Job(
        job_type=job_type.value,
        payload=payload,
        run_at=run_at or utc_now(),
        status=JobStatus.PENDING.value,
        max_attempts=max_attempts,
        idempotency_key=idempotency_key,
    )
    db.add(job)
    if commit:
        db.commit()
        db.refresh(job)
    else:
        db.flush()
    return job


def get_pending_jobs(db: Session, limit: int = 10) -> list[Job]:
    """
    Get pending jobs that are due to run.

    Returns jobs where status='pending' and run_at <= now, ordered by run_at.
    """
    return (
        db.query(Job)
        .filter(
            Job.status == JobStatus.PENDING.value,
            Job.run_at <= utc_now(),
        )
        .order_by(Job.run_at)
        .limit(limit)
        .all()
    )


def claim_pending_jobs(db: Session, limit: int = 10) -> list[Job]:
    """
    Atomically claim due jobs for this worker.

    Rows are locked with SKIP LOCKED (PostgreSQL) so concurrent workers never
    claim the same job, then marked running in one commit.
    """
    jobs = (
        db.execute(
            select(Job)
            .where(
                Job.status == JobStatus.PENDING.value,
                Job.run_at <= utc_now(),
            )
            .order_by(Job.run_at)
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        .scalars()
        .all()
    )
    now = utc_now()
    for job in jobs:
        job.status = JobStatus.RUNNING.value
        job.attempts += 1
        job.started_at = now
    db.commit()
    return list(jobs)


def get_job(db: Session, job_id: UUID) -> Job | None:
    """Get a job by ID."""
    return db.query(Job).filter(Job.id == job_id).first()


def list_jobs(
    db: Session,
    status: JobStatus | None = None,
    job_type: JobType | None = None,
    limit: int = 50,
) -> list[Job]:
    """List jobs with optional filters."""
    query = db.query(Job)
    if status:
        query = query.filter(Job.status == status.value)
    if job_type:
        query = query.filter(Job.job_type == job_type.value)
    return query.order_by(Job.created_at.desc()).limit(limit).all()


def mark_job_completed(db: Session, job: Job) -> Job:
    """Mark a job as completed."""
    job.status = JobStatus.COMPLETED.value
    job.completed_at = utc_now()
    job.last_error = None
    db.commit()
    db.refresh(job)
    return job


def mark_job_failed(db: Session, job: Job, error: str) -> Job:
    """
    Mark a job as failed.

    If attempts < max_attempts, reset to pending for retry.
    """
    job.last_error = error
    if job.attempts < job.max_attempts:
        job.status = JobStatus.PENDING.value
    else:
        job.status = JobStatus.FAILED.value
        job.completed_at = utc_now()
    db.commit()
    db.refresh(job)
    return job


def requeue_stale_jobs(db: Session, stale_after_minutes: int) -> int:
    """
    Return jobs stuck in running (worker crashed mid-job) to pending.

    The attempt already counted stays counted, so a job that keeps crashing
    the worker still ends up failed after max_attempts.
    """
    cutoff = utc_now() - timedelta(minutes=stale_after_minutes)
    stale = (
        db.query(Job)
        .filter(
            Job.status == JobStatus.RUNNING.value,
            Job.started_at.isnot(None),
            Job.started_at < cutoff,
        )
        .all()
    )
    for job in stale:
        job.last_error = "Requeued after worker interruption"
        job.status = (
            JobStatus.PENDING.value
            if job.attempts < job.max_attempts
            else JobStatus.FAILED.value
        )
    db.commit()
    return len(stale)
