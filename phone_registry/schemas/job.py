"""Pydantic schemas for background jobs."""

from datetime import datetime
from uuid import UUID

from phone_registry.schemas.common import CamelModel


class JobRead(CamelModel):
    """Job response schema."""
    id: UUID
    job_type: str
    payload: dict
    run_at: datetime
    status: str
    attempts: int
    max_attempts: int
    last_error: str | None
    idempotency_key: str | None
    created_at: datetime
    started_at: datetime | None
    completed_at: datetime | None


class JobListItem(CamelModel):
    """Job list item (minimal)."""
    id: UUID
    job_type: str
    status: str
    run_at: datetime
    attempts: int
    created_at: datetime
    completed_at: datetime | None
