"""Verification campaign models: batch tasks, tokens, issues, submission log."""

from __future__ import annotations

from typing import TYPE_CHECKING

from datetime import datetime

from sqlalchemy import (
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from phone_registry.db.base import Base
from phone_registry.db.enums import (
    DEFAULT_BATCH_TASK_STATUS,
    DEFAULT_ISSUE_ADMIN_STATUS,
    DEFAULT_TOKEN_STATUS,
)
from phone_registry.db.types import JSONType
from phone_registry.utils.dates import utc_now

if TYPE_CHECKING:
    from phone_registry.db.models import Employee


class VerificationBatchTask(Base):
    """
    One run of the verification campaign.

    Created by initiate_verification, then mutated only by its background
    job. Immutable once it reaches a terminal status. Never deleted.
    """

    __tablename__ = "verification_batch_tasks"
    __table_args__ = (Index("idx_batch_tasks_status_created", "status", "created_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    status: Mapped[str] = mapped_column(
        String(30),
        default=DEFAULT_BATCH_TASK_STATUS.value,
        server_default=text(f"'{DEFAULT_BATCH_TASK_STATUS.value}'"),
        nullable=False,
    )

    requested_scope_type: Mapped[str] = mapped_column(String(30), nullable=False)
    requested_scope_values: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    requested_duration_days: Mapped[int] = mapped_column(Integer, nullable=False)

    # Progress counters (one committed increment per employee)
    total_employees_to_process: Mapped[int] = mapped_column(Integer, nullable=False)
    tokens_generated_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )
    emails_attempted_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )
    emails_succeeded_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )
    emails_failed_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )
    # [{employeeId, employeeName, emailAddress, reason}]
    error_summary: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=utc_now, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utc_now, onupdate=utc_now, server_default=func.now(), nullable=False
    )
    started_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)


class VerificationToken(Base):
    """
    Single-employee, time-limited credential for the confirmation page.

    Not consumed by a submission; valid until expires_at.
    """

    __tablename__ = "verification_tokens"
    __table_args__ = (
        UniqueConstraint("batch_task_id", "employee_id", name="uq_verification_token_batch_employee"),
        Index("idx_verification_tokens_employee_status", "employee_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    employee_id: Mapped[str] = mapped_column(
        String(10), ForeignKey("employees.employee_id"), nullable=False
    )
    batch_task_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("verification_batch_tasks.id"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=DEFAULT_TOKEN_STATUS.value,
        server_default=text(f"'{DEFAULT_TOKEN_STATUS.value}'"),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        default=utc_now, server_default=func.now(), nullable=False
    )

    employee: Mapped["Employee"] = relationship()


class UserReportedIssue(Base):
    """
    Issue raised from the verification page.

    Exactly one of mobile_number_id / reported_phone_number is set. At most
    one pending issue exists per (employee, number) and per (employee, phone);
    repeat reports update that row in place.
    """

    __tablename__ = "user_reported_issues"
    __table_args__ = (
        Index(
            "uq_reported_issue_pending_number",
            "reported_by_employee_id",
            "mobile_number_id",
            unique=True,
            postgresql_where=text("admin_action_status = 'pending' AND mobile_number_id IS NOT NULL"),
            sqlite_where=text("admin_action_status = 'pending' AND mobile_number_id IS NOT NULL"),
        ),
        Index(
            "uq_reported_issue_pending_phone",
            "reported_by_employee_id",
            "reported_phone_number",
            unique=True,
            postgresql_where=text(
                "admin_action_status = 'pending' AND reported_phone_number IS NOT NULL"
            ),
            sqlite_where=text(
                "admin_action_status = 'pending' AND reported_phone_number IS NOT NULL"
            ),
        ),
        Index("idx_reported_issues_status", "admin_action_status", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    verification_token_id: Mapped[int | None] = mapped_column(
        ForeignKey("verification_tokens.id"), nullable=True
    )
    reported_by_employee_id: Mapped[str] = mapped_column(
        String(10), ForeignKey("employees.employee_id"), nullable=False
    )
    mobile_number_id: Mapped[int | None] = mapped_column(
        ForeignKey("mobile_numbers.id"), nullable=True
    )
    reported_phone_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    issue_type: Mapped[str] = mapped_column(String(30), nullable=False)
    user_comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    purpose: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Number status at first report, shown to reviewers
    original_number_status: Mapped[str | None] = mapped_column(String(30), nullable=True)
    admin_action_status: Mapped[str] = mapped_column(
        String(20),
        default=DEFAULT_ISSUE_ADMIN_STATUS.value,
        server_default=text(f"'{DEFAULT_ISSUE_ADMIN_STATUS.value}'"),
        nullable=False,
    )
    admin_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=utc_now, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utc_now, onupdate=utc_now, server_default=func.now(), nullable=False
    )


class VerificationSubmissionLog(Base):
    """
    Immutable record of one submitted action. Never updated or deleted.

    Source of truth for "most recent action per number" queries, ordered by
    (created_at, id).
    """

    __tablename__ = "verification_submission_logs"
    __table_args__ = (
        Index("idx_submission_logs_number_created", "mobile_number_id", "created_at"),
        Index("idx_submission_logs_token", "verification_token_id"),
        Index("idx_submission_logs_employee", "employee_id"),
        Index("idx_submission_logs_action", "action_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[str] = mapped_column(
        String(10), ForeignKey("employees.employee_id"), nullable=False
    )
    verification_token_id: Mapped[int] = mapped_column(
        ForeignKey("verification_tokens.id"), nullable=False
    )
    mobile_number_id: Mapped[int | None] = mapped_column(
        ForeignKey("mobile_numbers.id"), nullable=True
    )
    phone_number: Mapped[str] = mapped_column(String(20), nullable=False)
    action_type: Mapped[str] = mapped_column(String(30), nullable=False)
    purpose: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=utc_now, server_default=func.now(), nullable=False
    )
