"""Verification campaign job handlers."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


async def process_verification_batch(db, job) -> None:
    """
    Process a VERIFICATION_BATCH job - issue tokens and send emails for one task.

    Payload:
        - task_id: id of the VerificationBatchTask
        - employee_ids: business IDs resolved at initiation
        - duration_days: token lifetime (informational, the task row is authoritative)

    A rerun after a crash resumes the task; employees that already hold a
    token for it are skipped. On the last attempt the task is marked Failed
    before the error is re-raised so it never stays InProgress.
    """
    from phone_registry.services import verification_batch_service
    from phone_registry.services.email_sender import get_email_sender

    payload = job.payload or {}
    task_id = payload.get("task_id")
    if not task_id:
        raise Exception("Missing task_id in verification batch job")

    logger.info("Starting verification batch: task=%s attempt=%s", task_id, job.attempts)

    try:
        await verification_batch_service.run_verification_batch(
            db,
            task_id,
            payload.get("employee_ids"),
            get_email_sender(),
        )
    except Exception as exc:
        db.rollback()
        if job.attempts >= job.max_attempts:
            verification_batch_service.fail_batch_task(
                db, task_id, f"Batch processing failed: {type(exc).__name__}"
            )
        raise


async def process_token_expiry_sweep(db, job) -> None:
    """Process a TOKEN_EXPIRY_SWEEP job - flag past-expiry tokens as expired."""
    from phone_registry.services import verification_batch_service

    count = verification_batch_service.expire_stale_tokens(db)
    logger.info("Token expiry sweep finished: expired=%s", count)
