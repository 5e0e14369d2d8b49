"""Verification admin service - read-only campaign progress aggregation."""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session, aliased

from phone_registry.db.enums import IssueType, NumberStatus, SubmissionAction, TokenStatus
from phone_registry.db.models import (
    Employee,
    MobileNumber,
    UserReportedIssue,
    VerificationSubmissionLog,
    VerificationToken,
)
from phone_registry.utils.dates import utc_now


def _latest_log_per_number():
    """
    Subquery: the most recent log row per mobile number.

    Most recent = greatest created_at, ties broken by insertion order (id).
    """
    ranked = (
        select(
            VerificationSubmissionLog.mobile_number_id,
            VerificationSubmissionLog.employee_id,
            VerificationSubmissionLog.action_type,
            VerificationSubmissionLog.created_at,
            func.row_number()
            .over(
                partition_by=VerificationSubmissionLog.mobile_number_id,
                order_by=(
                    VerificationSubmissionLog.created_at.desc(),
                    VerificationSubmissionLog.id.desc(),
                ),
            )
            .label("rn"),
        )
        .where(VerificationSubmissionLog.mobile_number_id.isnot(None))
        .subquery()
    )
    return select(ranked).where(ranked.c.rn == 1).subquery("latest_log")


def _roster(db: Session, employee_id: str | None, department_name: str | None) -> list:
    """Non-deactivated numbers joined with holder and their latest log entry."""
    holder = aliased(Employee, name="holder")
    confirmer = aliased(Employee, name="confirmer")
    latest = _latest_log_per_number()

    query = (
        select(
            MobileNumber.id,
            MobileNumber.phone_number,
            MobileNumber.purpose,
            holder.full_name.label("holder_name"),
            holder.department.label("holder_department"),
            latest.c.action_type,
            latest.c.created_at.label("action_at"),
            confirmer.full_name.label("actor_name"),
        )
        .outerjoin(holder, holder.employee_id == MobileNumber.current_employee_id)
        .outerjoin(latest, latest.c.mobile_number_id == MobileNumber.id)
        .outerjoin(confirmer, confirmer.employee_id == latest.c.employee_id)
        .where(
            MobileNumber.deleted_at.is_(None),
            MobileNumber.status != NumberStatus.DEACTIVATED.value,
        )
        .order_by(MobileNumber.phone_number)
    )
    if employee_id:
        query = query.where(MobileNumber.current_employee_id == employee_id)
    if department_name:
        query = query.where(holder.department == department_name)
    return db.execute(query).all()


def _reporter_filters(query, reporter, employee_id: str | None, department_name: str | None):
    if employee_id:
        query = query.where(reporter.employee_id == employee_id)
    if department_name:
        query = query.where(reporter.department == department_name)
    return query


def _pending_users(db: Session, employee_id: str | None, department_name: str | None) -> list[dict]:
    query = (
        select(
            VerificationToken.id,
            VerificationToken.expires_at,
            Employee.employee_id,
            Employee.full_name,
            Employee.email,
        )
        .join(Employee, Employee.employee_id == VerificationToken.employee_id)
        .where(
            VerificationToken.status == TokenStatus.PENDING.value,
            VerificationToken.expires_at > utc_now(),
        )
        .order_by(VerificationToken.expires_at, VerificationToken.id)
    )
    query = _reporter_filters(query, Employee, employee_id, department_name)
    return [
        {
            "employee_id": row.employee_id,
            "full_name": row.full_name,
            "email": row.email,
            "token_id": row.id,
            "expires_at": row.expires_at,
        }
        for row in db.execute(query).all()
    ]


def _reported_issues(db: Session, employee_id: str | None, department_name: str | None) -> list[dict]:
    reporter = aliased(Employee, name="reporter")
    query = (
        select(
            UserReportedIssue,
            MobileNumber.phone_number,
            reporter.full_name.label("reporter_name"),
        )
        .join(MobileNumber, MobileNumber.id == UserReportedIssue.mobile_number_id)
        .join(reporter, reporter.employee_id == UserReportedIssue.reported_by_employee_id)
        .where(UserReportedIssue.issue_type == IssueType.NUMBER_ISSUE.value)
        .order_by(UserReportedIssue.updated_at.desc(), UserReportedIssue.id.desc())
    )
    query = _reporter_filters(query, reporter, employee_id, department_name)
    results = []
    for issue, phone_number, reporter_name in db.execute(query).all():
        results.append(
            {
                "issue_id": issue.id,
                "phone_number": phone_number,
                "reported_by": reporter_name,
                "comment": issue.user_comment,
                "purpose": issue.purpose,
                "original_status": issue.original_number_status,
                "reported_at": issue.updated_at,
                "admin_action_status": issue.admin_action_status,
            }
        )
    return results


def _unlisted_numbers(db: Session, employee_id: str | None, department_name: str | None) -> list[dict]:
    reporter = aliased(Employee, name="reporter")
    query = (
        select(UserReportedIssue, reporter.full_name.label("reporter_name"))
        .join(reporter, reporter.employee_id == UserReportedIssue.reported_by_employee_id)
        .where(UserReportedIssue.issue_type == IssueType.UNLISTED_NUMBER.value)
        .order_by(UserReportedIssue.updated_at.desc(), UserReportedIssue.id.desc())
    )
    query = _reporter_filters(query, reporter, employee_id, department_name)
    return [
        {
            "phone_number": issue.reported_phone_number,
            "comment": issue.user_comment,
            "purpose": issue.purpose,
            "reported_at": issue.updated_at,
            "reported_by": reporter_name,
        }
        for issue, reporter_name in db.execute(query).all()
    ]


def _distinct_unlisted_phone_count(
    db: Session, employee_id: str | None, department_name: str | None
) -> int:
    query = (
        select(func.count(func.distinct(VerificationSubmissionLog.phone_number)))
        .join(Employee, Employee.employee_id == VerificationSubmissionLog.employee_id)
        .where(VerificationSubmissionLog.action_type == SubmissionAction.REPORT_UNLISTED.value)
    )
    query = _reporter_filters(query, Employee, employee_id, department_name)
    return db.execute(query).scalar_one()


def get_status(
    db: Session,
    employee_id: str | None = None,
    department_name: str | None = None,
) -> dict[str, Any]:
    """
    Campaign-wide verification status.

    Per-number state is the action of its most recent log entry
    (last write wins across repeated submissions); numbers with no entry
    are pending. Filters narrow numbers by current holder and the itemized
    lists by reporting employee.
    """
    roster = _roster(db, employee_id, department_name)

    confirmed_phones = []
    confirmed = reported = pending = 0
    for row in roster:
        if row.action_type is None:
            pending += 1
        elif row.action_type == SubmissionAction.CONFIRM_USAGE.value:
            confirmed += 1
            confirmed_phones.append(
                {
                    "id": row.id,
                    "phone_number": row.phone_number,
                    "department": row.holder_department,
                    "current_user": row.holder_name,
                    "purpose": row.purpose,
                    "confirmed_by": row.actor_name,
                    "confirmed_at": row.action_at,
                }
            )
        elif row.action_type == SubmissionAction.REPORT_ISSUE.value:
            reported += 1

    return {
        "summary": {
            "total_phones_count": len(roster),
            "confirmed_phones_count": confirmed,
            "reported_issues_count": reported,
            "pending_phones_count": pending,
            "newly_reported_phones_count": _distinct_unlisted_phone_count(
                db, employee_id, department_name
            ),
        },
        "confirmed_phones": confirmed_phones,
        "pending_users": _pending_users(db, employee_id, department_name),
        "reported_issues": _reported_issues(db, employee_id, department_name),
        "unlisted_numbers": _unlisted_numbers(db, employee_id, department_name),
    }
