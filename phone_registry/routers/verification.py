"""Verification campaign endpoints: admin initiation/status and the public token pages."""

import logging

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from phone_registry.core.deps import get_current_operator, get_db
from phone_registry.core.exceptions import ExpiredError, InvalidLinkError, NotFoundError
from phone_registry.core.rate_limit import PUBLIC_LIMIT, limiter
from phone_registry.schemas.verification import (
    AdminStatusResponse,
    BatchTaskRead,
    InitiateVerificationRequest,
    InitiateVerificationResponse,
    IssueRead,
    IssueResolveRequest,
    SubmitRequest,
    SubmitResponse,
    VerificationInfoResponse,
)
from phone_registry.services import (
    verification_admin_service,
    verification_batch_service,
    verification_submission_service,
)
from phone_registry.services.verification_submission_service import (
    NumberActionInput,
    UnlistedReportInput,
)

logger = logging.getLogger(__name__)

router = APIRouter()
operator_required = [Depends(get_current_operator)]


# =============================================================================
# Admin: campaigns
# =============================================================================

@router.post(
    "/initiate",
    response_model=InitiateVerificationResponse,
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=operator_required,
)
def initiate(data: InitiateVerificationRequest, db: Session = Depends(get_db)):
    """
    Start a campaign run.

    The scope is resolved now (404 when it matches nobody); tokens and
    emails are produced by the worker. Poll /verification/batch/{id}.
    """
    task = verification_batch_service.initiate_verification(
        db, data.scope, data.scope_values, data.duration_days
    )
    return InitiateVerificationResponse(
        batch_id=task.id,
        status=task.status,
        total_employees_to_process=task.total_employees_to_process,
    )


@router.get("/batches", response_model=list[BatchTaskRead], dependencies=operator_required)
def list_batches(limit: int = Query(20, ge=1, le=100), db: Session = Depends(get_db)):
    return verification_batch_service.list_batch_tasks(db, limit=limit)


@router.get("/batch/{task_id}", response_model=BatchTaskRead, dependencies=operator_required)
def get_batch(task_id: str, db: Session = Depends(get_db)):
    return verification_batch_service.get_batch_status(db, task_id)


# =============================================================================
# Public: token pages
# =============================================================================

@router.get("/info", response_model=VerificationInfoResponse)
@limiter.limit(PUBLIC_LIMIT)
def get_info(request: Request, token: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    """Confirmation page data for the token's employee."""
    try:
        return verification_submission_service.get_info(db, token)
    except (NotFoundError, ExpiredError) as exc:
        logger.info("Verification info rejected: %s", exc.kind)
        raise InvalidLinkError()


@router.post("/submit", response_model=SubmitResponse)
@limiter.limit(PUBLIC_LIMIT)
def submit(
    request: Request,
    data: SubmitRequest,
    token: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
):
    """Record confirmations, disputes and unlisted-number reports."""
    try:
        result = verification_submission_service.submit(
            db,
            token,
            [
                NumberActionInput(
                    mobile_number_id=item.mobile_number_id,
                    action=item.action,
                    purpose=item.purpose,
                    user_comment=item.user_comment,
                )
                for item in data.phone_numbers
            ],
            [
                UnlistedReportInput(
                    phone_number=item.phone_number,
                    purpose=item.purpose,
                    user_comment=item.user_comment,
                )
                for item in data.unlisted_numbers
            ],
        )
    except (NotFoundError, ExpiredError) as exc:
        logger.info("Verification submission rejected: %s", exc.kind)
        raise InvalidLinkError()
    return SubmitResponse(
        message="Verification submitted",
        confirmed_count=result.confirmed_count,
        reported_count=result.reported_count,
        unlisted_count=result.unlisted_count,
    )


# =============================================================================
# Admin: progress and issue review
# =============================================================================

@router.get("/admin/status", response_model=AdminStatusResponse, dependencies=operator_required)
def admin_status(
    employee_id: str | None = Query(None, alias="employeeId"),
    department_name: str | None = Query(None, alias="departmentName"),
    department_id: str | None = Query(None, alias="departmentId"),
    db: Session = Depends(get_db),
):
    """Campaign progress; departmentId is accepted as a synonym of departmentName."""
    return verification_admin_service.get_status(
        db,
        employee_id=employee_id or None,
        department_name=department_name or department_id or None,
    )


@router.patch("/admin/issues/{issue_id}", response_model=IssueRead, dependencies=operator_required)
def resolve_issue(issue_id: int, data: IssueResolveRequest, db: Session = Depends(get_db)):
    return verification_submission_service.resolve_issue(
        db, issue_id, data.status, admin_remarks=data.admin_remarks
    )
