"""Job handler registry."""

from __future__ import annotations

from typing import Awaitable, Callable, Mapping

from phone_registry.db.enums import JobType
from phone_registry.jobs.handlers import verification

JobHandler = Callable[[object, object], Awaitable[None]]

JOB_HANDLERS: Mapping[str, JobHandler] = {
    JobType.VERIFICATION_BATCH.value: verification.process_verification_batch,
    JobType.TOKEN_EXPIRY_SWEEP.value: verification.process_token_expiry_sweep,
}


def resolve_job_handler(job_type: str) -> JobHandler:
    handler = JOB_HANDLERS.get(job_type)
    if not handler:
        raise ValueError(f"Unknown job type: {job_type}")
    return handler
