"""Pydantic schemas for verification campaigns, submissions and admin views."""

from datetime import datetime

from pydantic import Field

from phone_registry.db.enums import IssueAdminStatus, SubmissionAction, VerificationScope
from phone_registry.schemas.common import CamelModel


# =============================================================================
# Batch tasks
# =============================================================================

class InitiateVerificationRequest(CamelModel):
    scope: VerificationScope
    scope_values: list[str] = []
    duration_days: int | None = Field(None, ge=1)


class InitiateVerificationResponse(CamelModel):
    batch_id: str
    status: str
    total_employees_to_process: int


class BatchErrorEntry(CamelModel):
    employee_id: str
    employee_name: str = ""
    email_address: str = ""
    reason: str


class BatchTaskRead(CamelModel):
    """Persisted progress of one campaign run (poll for updates)."""
    id: str
    status: str
    requested_scope_type: str
    requested_scope_values: list[str]
    requested_duration_days: int
    total_employees_to_process: int
    tokens_generated_count: int
    emails_attempted_count: int
    emails_succeeded_count: int
    emails_failed_count: int
    error_summary: list[BatchErrorEntry] | None
    failure_reason: str | None
    created_at: datetime
    started_at: datetime | None
    completed_at: datetime | None


# =============================================================================
# Confirmation page
# =============================================================================

class VerificationPhoneItem(CamelModel):
    id: int
    phone_number: str
    department: str | None
    purpose: str | None
    status: str  # pending | confirmed | reported
    user_comment: str | None


class PreviouslyReportedUnlisted(CamelModel):
    phone_number: str
    user_comment: str | None
    purpose: str | None
    reported_at: datetime


class VerificationInfoResponse(CamelModel):
    employee_id: str
    employee_name: str
    phone_numbers: list[VerificationPhoneItem]
    previously_reported_unlisted: list[PreviouslyReportedUnlisted]
    expires_at: datetime


class SubmitNumberAction(CamelModel):
    mobile_number_id: int
    action: SubmissionAction
    purpose: str | None = Field(None, max_length=255)
    user_comment: str | None = None


class SubmitUnlistedNumber(CamelModel):
    phone_number: str = Field(..., min_length=1, max_length=20)
    purpose: str | None = Field(None, max_length=255)
    user_comment: str | None = None


class SubmitRequest(CamelModel):
    phone_numbers: list[SubmitNumberAction] = []
    unlisted_numbers: list[SubmitUnlistedNumber] = []


class SubmitResponse(CamelModel):
    message: str
    confirmed_count: int
    reported_count: int
    unlisted_count: int


# =============================================================================
# Admin view
# =============================================================================

class AdminSummary(CamelModel):
    total_phones_count: int
    confirmed_phones_count: int
    reported_issues_count: int
    pending_phones_count: int
    newly_reported_phones_count: int


class ConfirmedPhoneItem(CamelModel):
    id: int
    phone_number: str
    department: str | None
    current_user: str | None
    purpose: str | None
    confirmed_by: str | None
    confirmed_at: datetime


class PendingUserItem(CamelModel):
    employee_id: str
    full_name: str
    email: str | None
    token_id: int
    expires_at: datetime


class ReportedIssueItem(CamelModel):
    issue_id: int
    phone_number: str
    reported_by: str
    comment: str | None
    purpose: str | None
    original_status: str | None
    reported_at: datetime
    admin_action_status: str


class UnlistedNumberItem(CamelModel):
    phone_number: str
    comment: str | None
    purpose: str | None
    reported_at: datetime
    reported_by: str


class AdminStatusResponse(CamelModel):
    summary: AdminSummary
    confirmed_phones: list[ConfirmedPhoneItem]
    pending_users: list[PendingUserItem]
    reported_issues: list[ReportedIssueItem]
    unlisted_numbers: list[UnlistedNumberItem]


class IssueResolveRequest(CamelModel):
    status: IssueAdminStatus
    admin_remarks: str | None = None


class IssueRead(CamelModel):
    id: int
    issue_type: str
    reported_by_employee_id: str
    mobile_number_id: int | None
    reported_phone_number: str | None
    user_comment: str | None
    purpose: str | None
    original_number_status: str | None
    admin_action_status: str
    admin_remarks: str | None
    created_at: datetime
    updated_at: datetime
