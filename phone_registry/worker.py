"""
Background worker for processing scheduled jobs.

Usage:
    python -m phone_registry.worker

The worker polls for pending jobs and runs up to WORKER_CONCURRENCY of them
at a time, each with its own database session. Jobs left running by a
crashed worker are requeued on startup.
"""

import asyncio
import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from phone_registry.core.config import settings
from phone_registry.core.structured_logging import build_log_context
from phone_registry.db.enums import JobType
from phone_registry.db.session import SessionLocal
from phone_registry.jobs.registry import resolve_job_handler
from phone_registry.services import job_service
from phone_registry.utils.dates import utc_now

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


async def process_job(db, job) -> None:
    """Process a single job based on its type."""
    logger.info(
        "Processing job %s (type=%s, attempt=%s)", job.id, job.job_type, job.attempts
    )
    handler = resolve_job_handler(job.job_type)
    await handler(db, job)


async def run_claimed_job(job_id) -> None:
    """Run one already-claimed job and record its outcome."""
    with SessionLocal() as db:
        job = job_service.get_job(db, job_id)
        if not job:
            logger.warning("Claimed job %s disappeared", job_id)
            return
        try:
            await process_job(db, job)
        except Exception as e:
            db.rollback()
            error_msg = str(e) or type(e).__name__
            job_service.mark_job_failed(db, job, error_msg)
            logger.error(
                "Job %s failed (attempt %s/%s): %s",
                job.id,
                job.attempts,
                job.max_attempts,
                type(e).__name__,
                extra=build_log_context(job_id=str(job.id)),
            )
            return
        job_service.mark_job_completed(db, job)
        logger.info("Job %s completed successfully", job.id)


def schedule_token_expiry_sweep(db, now: datetime | None = None) -> bool:
    """
    Enqueue the hourly token expiry sweep.

    The idempotency key is per hour, so any number of workers enqueue it once.
    """
    now = now or utc_now()
    key = f"token_expiry_sweep:{now:%Y%m%d%H}"
    try:
        job_service.schedule_job(
            db, JobType.TOKEN_EXPIRY_SWEEP, payload={}, idempotency_key=key
        )
    except IntegrityError:
        db.rollback()
        return False
    return True


def claim_jobs(limit: int) -> list:
    with SessionLocal() as db:
        schedule_token_expiry_sweep(db)
        jobs = job_service.claim_pending_jobs(db, limit=limit)
        return [job.id for job in jobs]


async def worker_loop() -> None:
    """Main worker loop - polls for and processes pending jobs."""
    logger.info(
        "Worker starting (poll interval: %ss, batch size: %s, concurrency: %s)",
        settings.WORKER_POLL_INTERVAL_SECONDS,
        settings.WORKER_BATCH_SIZE,
        settings.WORKER_CONCURRENCY,
    )

    with SessionLocal() as db:
        requeued = job_service.requeue_stale_jobs(db, settings.WORKER_STALE_JOB_MINUTES)
    if requeued:
        logger.warning("Requeued %s jobs interrupted by a previous worker", requeued)

    in_flight: set[asyncio.Task] = set()
    while True:
        try:
            free_slots = settings.WORKER_CONCURRENCY - len(in_flight)
            if free_slots > 0:
                job_ids = claim_jobs(min(free_slots, settings.WORKER_BATCH_SIZE))
                if job_ids:
                    logger.info("Claimed %s pending jobs", len(job_ids))
                for job_id in job_ids:
                    task = asyncio.create_task(run_claimed_job(job_id))
                    in_flight.add(task)
                    task.add_done_callback(in_flight.discard)
        except Exception as e:
            logger.error("Error in worker loop: %s", e)

        await asyncio.sleep(settings.WORKER_POLL_INTERVAL_SECONDS)


def main() -> None:
    """Entry point for the worker."""
    try:
        asyncio.run(worker_loop())
    except KeyboardInterrupt:
        logger.info("Worker shutting down")
    except Exception:
        logger.exception("Worker crashed")
        raise


if __name__ == "__main__":
    main()
