"""Verification submission service - token validation, confirmation page data, and recorded actions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from phone_registry.core.exceptions import (
    DataInconsistencyError,
    ExpiredError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from phone_registry.db.enums import (
    IssueAdminStatus,
    IssueType,
    NumberStatus,
    NumberVerificationState,
    SubmissionAction,
    TokenStatus,
)
from phone_registry.db.models import (
    Employee,
    MobileNumber,
    UserReportedIssue,
    VerificationSubmissionLog,
    VerificationToken,
)
from phone_registry.utils.dates import utc_now
from phone_registry.utils.normalization import normalize_phone

logger = logging.getLogger(__name__)

NUMBER_ACTIONS = {SubmissionAction.CONFIRM_USAGE, SubmissionAction.REPORT_ISSUE}

ACTION_TO_STATE = {
    SubmissionAction.CONFIRM_USAGE.value: NumberVerificationState.CONFIRMED,
    SubmissionAction.REPORT_ISSUE.value: NumberVerificationState.REPORTED,
}


@dataclass
class NumberActionInput:
    mobile_number_id: int
    action: SubmissionAction
    purpose: str | None = None
    user_comment: str | None = None


@dataclass
class UnlistedReportInput:
    phone_number: str
    purpose: str | None = None
    user_comment: str | None = None


@dataclass
class SubmissionResult:
    confirmed_count: int = 0
    reported_count: int = 0
    unlisted_count: int = 0


# =============================================================================
# Token validation
# =============================================================================


def validate_token(db: Session, token: str) -> tuple[VerificationToken, Employee]:
    """
    Load a usable token and its employee.

    Raises:
        NotFoundError: Unknown token, or the employee no longer exists
        ExpiredError: Token is past expires_at (or flagged expired)
    """
    if not token:
        raise NotFoundError("Verification token is required")
    record = db.query(VerificationToken).filter(VerificationToken.token == token).first()
    if not record:
        raise NotFoundError("Verification token not found")
    if record.status != TokenStatus.PENDING.value or utc_now() > record.expires_at:
        raise ExpiredError("Verification token has expired")

    employee = (
        db.query(Employee)
        .filter(Employee.employee_id == record.employee_id, Employee.deleted_at.is_(None))
        .first()
    )
    if not employee:
        raise NotFoundError("Verification token owner not found")
    return record, employee


def _held_numbers_query(employee_id: str):
    return (
        select(MobileNumber)
        .where(
            MobileNumber.current_employee_id == employee_id,
            MobileNumber.deleted_at.is_(None),
            MobileNumber.status != NumberStatus.DEACTIVATED.value,
        )
        .order_by(MobileNumber.phone_number)
    )


def _latest_logs_by_key(logs: list[VerificationSubmissionLog], key) -> dict[Any, VerificationSubmissionLog]:
    """Last-write-wins reduction over logs ordered by (created_at, id)."""
    latest: dict[Any, VerificationSubmissionLog] = {}
    for log in logs:
        latest[key(log)] = log
    return latest


# =============================================================================
# Confirmation page
# =============================================================================


def get_info(db: Session, token: str) -> dict[str, Any]:
    """
    Data for the employee's confirmation page.

    Each held number carries its state under this token (pending, confirmed
    or reported) from the latest logged action, so a revisited link shows
    the previous answers.
    """
    record, employee = validate_token(db, token)
    numbers = db.execute(_held_numbers_query(employee.employee_id)).scalars().all()

    logs = (
        db.query(VerificationSubmissionLog)
        .filter(VerificationSubmissionLog.verification_token_id == record.id)
        .order_by(VerificationSubmissionLog.created_at, VerificationSubmissionLog.id)
        .all()
    )
    number_logs = _latest_logs_by_key(
        [log for log in logs if log.mobile_number_id is not None],
        lambda log: log.mobile_number_id,
    )
    unlisted_logs = _latest_logs_by_key(
        [log for log in logs if log.action_type == SubmissionAction.REPORT_UNLISTED.value],
        lambda log: log.phone_number,
    )

    phone_numbers = []
    for number in numbers:
        latest = number_logs.get(number.id)
        state = NumberVerificationState.PENDING
        if latest is not None:
            state = ACTION_TO_STATE.get(latest.action_type, NumberVerificationState.PENDING)
        phone_numbers.append(
            {
                "id": number.id,
                "phone_number": number.phone_number,
                "department": employee.department,
                "purpose": number.purpose,
                "status": state.value,
                "user_comment": latest.user_comment if latest else None,
            }
        )

    previously_reported = [
        {
            "phone_number": log.phone_number,
            "user_comment": log.user_comment,
            "purpose": log.purpose,
            "reported_at": log.created_at,
        }
        for log in unlisted_logs.values()
    ]

    return {
        "employee_id": employee.employee_id,
        "employee_name": employee.full_name,
        "phone_numbers": phone_numbers,
        "previously_reported_unlisted": previously_reported,
        "expires_at": record.expires_at,
    }


# =============================================================================
# Submission
# =============================================================================


def _find_pending_issue(
    db: Session,
    employee_id: str,
    mobile_number_id: int | None,
    reported_phone_number: str | None,
) -> UserReportedIssue | None:
    query = db.query(UserReportedIssue).filter(
        UserReportedIssue.reported_by_employee_id == employee_id,
        UserReportedIssue.admin_action_status == IssueAdminStatus.PENDING.value,
    )
    if mobile_number_id is not None:
        query = query.filter(UserReportedIssue.mobile_number_id == mobile_number_id)
    else:
        query = query.filter(UserReportedIssue.reported_phone_number == reported_phone_number)
    return query.first()


def _update_issue(
    issue: UserReportedIssue,
    token: VerificationToken,
    comment: str | None,
    purpose: str | None,
) -> None:
    issue.verification_token_id = token.id
    issue.user_comment = comment
    if purpose:
        issue.purpose = purpose


def upsert_pending_issue(
    db: Session,
    *,
    token: VerificationToken,
    employee_id: str,
    issue_type: IssueType,
    mobile_number_id: int | None = None,
    reported_phone_number: str | None = None,
    comment: str | None = None,
    purpose: str | None = None,
    original_number_status: str | None = None,
) -> UserReportedIssue:
    """
    Create the pending issue for (employee, number) or (employee, phone), or
    update it in place when one already exists.

    The insert runs in a savepoint; a unique violation from a concurrent
    duplicate becomes an update of the row that won.
    """
    if (mobile_number_id is None) == (reported_phone_number is None):
        raise ValidationError("Exactly one of mobile_number_id or reported_phone_number is required")

    existing = _find_pending_issue(db, employee_id, mobile_number_id, reported_phone_number)
    if existing:
        _update_issue(existing, token, comment, purpose)
        return existing

    issue = UserReportedIssue(
        verification_token_id=token.id,
        reported_by_employee_id=employee_id,
        mobile_number_id=mobile_number_id,
        reported_phone_number=reported_phone_number,
        issue_type=issue_type.value,
        user_comment=comment,
        purpose=purpose,
        original_number_status=original_number_status,
        admin_action_status=IssueAdminStatus.PENDING.value,
    )
    try:
        with db.begin_nested():
            db.add(issue)
    except IntegrityError:
        existing = _find_pending_issue(db, employee_id, mobile_number_id, reported_phone_number)
        if existing is None:
            raise DataInconsistencyError(
                "Pending issue uniqueness violated but no pending issue was found"
            )
        _update_issue(existing, token, comment, purpose)
        return existing
    return issue


def _dedupe_number_actions(items: list[NumberActionInput]) -> list[NumberActionInput]:
    by_id: dict[int, NumberActionInput] = {}
    for item in items:
        by_id.pop(item.mobile_number_id, None)
        by_id[item.mobile_number_id] = item
    return list(by_id.values())


def _normalize_unlisted(
    reports: list[UnlistedReportInput], held_phones: set[str]
) -> list[UnlistedReportInput]:
    by_phone: dict[str, UnlistedReportInput] = {}
    for report in reports:
        try:
            phone = normalize_phone(report.phone_number)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        if phone in held_phones:
            raise ValidationError(
                f"{phone} is already listed under your name; confirm or report it instead"
            )
        by_phone.pop(phone, None)
        by_phone[phone] = UnlistedReportInput(
            phone_number=phone,
            purpose=report.purpose,
            user_comment=report.user_comment,
        )
    return list(by_phone.values())


def submit(
    db: Session,
    token: str,
    number_actions: list[NumberActionInput],
    unlisted_reports: list[UnlistedReportInput],
) -> SubmissionResult:
    """
    Record confirm/report actions and unlisted-number reports.

    Everything is validated before anything is written and the whole
    submission commits as one unit. Every action appends one log row. The
    token stays valid, so the employee can submit again until it expires.
    """
    record, employee = validate_token(db, token)
    if not number_actions and not unlisted_reports:
        raise ValidationError("Nothing to submit")

    held = {
        number.id: number
        for number in db.execute(
            _held_numbers_query(employee.employee_id).with_for_update()
        ).scalars()
    }

    actions = _dedupe_number_actions(number_actions)
    for item in actions:
        if SubmissionAction(item.action) not in NUMBER_ACTIONS:
            raise ValidationError(f"Unsupported action '{item.action}' for a listed number")
        if item.mobile_number_id not in held:
            raise ValidationError(
                f"Number {item.mobile_number_id} is not currently registered to you"
            )
    unlisted = _normalize_unlisted(unlisted_reports, {n.phone_number for n in held.values()})

    result = SubmissionResult()
    now = utc_now()

    for item in actions:
        number = held[item.mobile_number_id]
        action = SubmissionAction(item.action)
        if action == SubmissionAction.CONFIRM_USAGE:
            number.last_confirmation_date = now
            if item.purpose:
                number.purpose = item.purpose
            result.confirmed_count += 1
        else:
            original_status = number.status
            number.status = NumberStatus.USER_REPORTED.value
            upsert_pending_issue(
                db,
                token=record,
                employee_id=employee.employee_id,
                issue_type=IssueType.NUMBER_ISSUE,
                mobile_number_id=number.id,
                comment=item.user_comment,
                purpose=item.purpose or number.purpose,
                original_number_status=original_status,
            )
            result.reported_count += 1

        db.add(
            VerificationSubmissionLog(
                employee_id=employee.employee_id,
                verification_token_id=record.id,
                mobile_number_id=number.id,
                phone_number=number.phone_number,
                action_type=action.value,
                purpose=item.purpose,
                user_comment=item.user_comment,
            )
        )

    for report in unlisted:
        upsert_pending_issue(
            db,
            token=record,
            employee_id=employee.employee_id,
            issue_type=IssueType.UNLISTED_NUMBER,
            reported_phone_number=report.phone_number,
            comment=report.user_comment,
            purpose=report.purpose,
        )
        db.add(
            VerificationSubmissionLog(
                employee_id=employee.employee_id,
                verification_token_id=record.id,
                mobile_number_id=None,
                phone_number=report.phone_number,
                action_type=SubmissionAction.REPORT_UNLISTED.value,
                purpose=report.purpose,
                user_comment=report.user_comment,
            )
        )
        result.unlisted_count += 1

    db.commit()
    logger.info(
        "Verification submission by %s: confirmed=%s reported=%s unlisted=%s",
        employee.employee_id,
        result.confirmed_count,
        result.reported_count,
        result.unlisted_count,
    )
    return result


# =============================================================================
# Admin review
# =============================================================================


def resolve_issue(
    db: Session,
    issue_id: int,
    status: IssueAdminStatus,
    admin_remarks: str | None = None,
) -> UserReportedIssue:
    """Close a pending issue as resolved or dismissed."""
    if status == IssueAdminStatus.PENDING:
        raise ValidationError("Issues can only be moved to resolved or dismissed")
    issue = db.execute(
        select(UserReportedIssue).where(UserReportedIssue.id == issue_id).with_for_update()
    ).scalar_one_or_none()
    if not issue:
        raise NotFoundError(f"Issue {issue_id} not found")
    if issue.admin_action_status != IssueAdminStatus.PENDING.value:
        raise InvalidStateError(f"Issue {issue_id} is already {issue.admin_action_status}")
    issue.admin_action_status = status.value
    issue.admin_remarks = admin_remarks
    db.commit()
    db.refresh(issue)
    return issue
