"""Verification batch service - campaign initiation and the per-employee token/email run."""

from __future__ import annotations

import asyncio
import logging
import secrets
import uuid
from datetime import timedelta

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from phone_registry.core.config import settings
from phone_registry.core.exceptions import NotFoundError, ValidationError
from phone_registry.db.enums import (
    BatchTaskStatus,
    JobType,
    TokenStatus,
    VerificationScope,
)
from phone_registry.db.models import Employee, VerificationBatchTask, VerificationToken
from phone_registry.jobs.utils import mask_email
from phone_registry.services import employee_service, job_service
from phone_registry.services.email_sender import EmailSender
from phone_registry.utils.dates import utc_now
from phone_registry.utils.normalization import is_valid_email

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32
TOKEN_INSERT_ATTEMPTS = 3
BATCH_JOB_MAX_ATTEMPTS = 3

REASON_MISSING_EMAIL = "Missing email address"
REASON_INVALID_EMAIL = "Invalid email address"
REASON_EMAIL_TIMEOUT = "Email dispatch timed out"
REASON_TOKEN_FAILED = "Token generation failed"
REASON_EMPLOYEE_MISSING = "Employee no longer exists"


def build_verification_link(token: str) -> str:
    base = settings.FRONTEND_BASE_URL.rstrip("/")
    return f"{base}/verify-numbers?token={token}"


def generate_token() -> str:
    """Cryptographically random, URL-safe token string."""
    return secrets.token_urlsafe(TOKEN_BYTES)


# =============================================================================
# Initiation and status
# =============================================================================


def initiate_verification(
    db: Session,
    scope: VerificationScope,
    scope_values: list[str] | None = None,
    duration_days: int | None = None,
) -> VerificationBatchTask:
    """
    Create a batch task and enqueue its background run.

    The scope is resolved synchronously: an empty result raises NotFoundError
    and creates nothing. The task and its job are committed together, and
    the caller gets the task back without waiting for the run.
    """
    duration = duration_days or settings.VERIFICATION_DEFAULT_DURATION_DAYS
    if duration < 1 or duration > settings.VERIFICATION_MAX_DURATION_DAYS:
        raise ValidationError(
            f"durationDays must be between 1 and {settings.VERIFICATION_MAX_DURATION_DAYS}"
        )

    values = [v.strip() for v in (scope_values or []) if v and v.strip()]
    employees = employee_service.find_active_by_scope(db, scope, values)
    if not employees:
        raise NotFoundError("No active employees match the requested scope")

    task = VerificationBatchTask(
        id=str(uuid.uuid4()),
        status=BatchTaskStatus.PENDING.value,
        requested_scope_type=scope.value,
        requested_scope_values=values,
        requested_duration_days=duration,
        total_employees_to_process=len(employees),
    )
    db.add(task)
    db.flush()

    job_service.schedule_job(
        db,
        JobType.VERIFICATION_BATCH,
        payload={
            "task_id": task.id,
            "employee_ids": [e.employee_id for e in employees],
            "duration_days": duration,
        },
        idempotency_key=f"verification_batch:{task.id}",
        max_attempts=BATCH_JOB_MAX_ATTEMPTS,
        commit=False,
    )
    db.commit()
    db.refresh(task)

    logger.info(
        "Verification batch %s created: scope=%s employees=%s duration_days=%s",
        task.id,
        scope.value,
        len(employees),
        duration,
    )
    return task


def get_batch_status(db: Session, task_id: str) -> VerificationBatchTask:
    task = db.get(VerificationBatchTask, task_id)
    if not task:
        raise NotFoundError(f"Verification batch {task_id} not found")
    return task


def list_batch_tasks(db: Session, limit: int = 20) -> list[VerificationBatchTask]:
    return (
        db.query(VerificationBatchTask)
        .order_by(VerificationBatchTask.created_at.desc())
        .limit(limit)
        .all()
    )


# =============================================================================
# Background run
# =============================================================================


def _append_error(task: VerificationBatchTask, employee: Employee | None, employee_id: str, reason: str) -> None:
    entry = {
        "employeeId": employee_id,
        "employeeName": employee.full_name if employee else "",
        "emailAddress": (employee.email or "") if employee else "",
        "reason": reason,
    }
    # Reassign so the JSON column is flagged dirty
    task.error_summary = [*(task.error_summary or []), entry]


def _mark_failed(db: Session, task: VerificationBatchTask, reason: str) -> None:
    task.status = BatchTaskStatus.FAILED.value
    task.failure_reason = reason
    task.completed_at = utc_now()
    db.commit()
    logger.error("Verification batch %s failed: %s", task.id, reason)


def fail_batch_task(db: Session, task_id: str, reason: str) -> None:
    """Mark a non-terminal task Failed (used when its job gives up)."""
    task = db.get(VerificationBatchTask, task_id)
    if not task or BatchTaskStatus(task.status).is_terminal:
        return
    _mark_failed(db, task, reason)


def _load_employees(db: Session, employee_ids: list[str]) -> dict[str, Employee]:
    rows = (
        db.query(Employee)
        .filter(Employee.employee_id.in_(employee_ids), Employee.deleted_at.is_(None))
        .all()
    )
    return {e.employee_id: e for e in rows}


def _processed_employee_ids(db: Session, task_id: str) -> set[str]:
    rows = (
        db.query(VerificationToken.employee_id)
        .filter(VerificationToken.batch_task_id == task_id)
        .all()
    )
    return {row.employee_id for row in rows}


def _create_token(
    db: Session, task: VerificationBatchTask, employee: Employee
) -> VerificationToken | None:
    """Insert a token inside a savepoint, regenerating on the rare collision."""
    expires_at = utc_now() + timedelta(days=task.requested_duration_days)
    for _ in range(TOKEN_INSERT_ATTEMPTS):
        token = VerificationToken(
            token=generate_token(),
            employee_id=employee.employee_id,
            batch_task_id=task.id,
            status=TokenStatus.PENDING.value,
            expires_at=expires_at,
        )
        try:
            with db.begin_nested():
                db.add(token)
        except IntegrityError:
            logger.warning(
                "Token insert conflict for batch %s employee %s, retrying",
                task.id,
                employee.employee_id,
            )
            continue
        return token
    return None


async def _dispatch_email(
    sender: EmailSender,
    employee: Employee,
    token: VerificationToken,
    duration_days: int,
) -> str | None:
    """Send the email with a bounded timeout. Returns a failure reason or None."""
    try:
        result = await asyncio.wait_for(
            sender.send_verification_email(
                to_address=employee.email,
                employee_name=employee.full_name,
                verification_link=build_verification_link(token.token),
                duration_days=duration_days,
            ),
            timeout=settings.EMAIL_SEND_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        logger.warning("Verification email to %s timed out", mask_email(employee.email))
        return REASON_EMAIL_TIMEOUT
    except Exception as exc:
        logger.warning(
            "Verification email to %s raised %s",
            mask_email(employee.email),
            type(exc).__name__,
            exc_info=exc,
        )
        return f"Email dispatch error: {type(exc).__name__}"
    if result.success:
        return None
    return result.error or "Email dispatch failed"


async def _process_employee(
    db: Session,
    task: VerificationBatchTask,
    employee_id: str,
    employee: Employee | None,
    sender: EmailSender,
) -> None:
    """Issue one token and attempt one email; commits this employee's outcome."""
    if employee is None:
        task.emails_attempted_count += 1
        task.emails_failed_count += 1
        _append_error(task, None, employee_id, REASON_EMPLOYEE_MISSING)
        db.commit()
        return

    token = _create_token(db, task, employee)
    if token is None:
        _append_error(task, employee, employee_id, REASON_TOKEN_FAILED)
        db.commit()
        return
    task.tokens_generated_count += 1

    task.emails_attempted_count += 1
    if not employee.email:
        reason = REASON_MISSING_EMAIL
    elif not is_valid_email(employee.email):
        reason = REASON_INVALID_EMAIL
    else:
        reason = await _dispatch_email(sender, employee, token, task.requested_duration_days)

    if reason is None:
        task.emails_succeeded_count += 1
    else:
        task.emails_failed_count += 1
        _append_error(task, employee, employee_id, reason)

    # Token and counters land together: a crash mid-employee redoes only this employee
    db.commit()


async def run_verification_batch(
    db: Session,
    task_id: str,
    employee_ids: list[str] | None,
    sender: EmailSender,
) -> VerificationBatchTask:
    """
    Process a batch task sequentially, one committed increment per employee.

    Employees that already hold a token for this task (an earlier,
    interrupted attempt) are skipped, so rerunning never double-issues.
    Terminal tasks are left untouched.
    """
    task = get_batch_status(db, task_id)
    if BatchTaskStatus(task.status).is_terminal:
        logger.info("Verification batch %s already %s, skipping", task_id, task.status)
        return task

    task.status = BatchTaskStatus.IN_PROGRESS.value
    if task.started_at is None:
        task.started_at = utc_now()
    db.commit()

    if not isinstance(employee_ids, list) or not employee_ids:
        _mark_failed(db, task, "Employee list is missing from the batch request")
        return task

    try:
        employees = _load_employees(db, employee_ids)
        already_processed = _processed_employee_ids(db, task_id)
    except SQLAlchemyError as exc:
        db.rollback()
        _mark_failed(db, task, f"Employee enumeration failed: {type(exc).__name__}")
        return task

    logger.info(
        "Verification batch %s running: employees=%s already_processed=%s",
        task_id,
        len(employee_ids),
        len(already_processed),
    )

    for employee_id in employee_ids:
        if employee_id in already_processed:
            continue
        await _process_employee(db, task, employee_id, employees.get(employee_id), sender)

    if task.emails_failed_count == 0 and not task.error_summary:
        task.status = BatchTaskStatus.COMPLETED.value
    else:
        task.status = BatchTaskStatus.COMPLETED_WITH_ERRORS.value
    task.completed_at = utc_now()
    db.commit()

    logger.info(
        "Verification batch %s %s: tokens=%s attempted=%s succeeded=%s failed=%s",
        task_id,
        task.status,
        task.tokens_generated_count,
        task.emails_attempted_count,
        task.emails_succeeded_count,
        task.emails_failed_count,
    )
    return task


# =============================================================================
# Token housekeeping
# =============================================================================


def expire_stale_tokens(db: Session) -> int:
    """
    Flag pending tokens past their expiry as expired.

    Reporting only: token validity is always decided from expires_at.
    """
    result = db.execute(
        update(VerificationToken)
        .where(
            VerificationToken.status == TokenStatus.PENDING.value,
            VerificationToken.expires_at < utc_now(),
        )
        .values(status=TokenStatus.EXPIRED.value)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    count = result.rowcount or 0
    if count:
        logger.info("Expired %s verification tokens", count)
    return count
