"""Verification campaign enums."""

from enum import Enum


class BatchTaskStatus(str, Enum):
    """Status of a verification batch task."""

    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    COMPLETED_WITH_ERRORS = "CompletedWithErrors"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (
            BatchTaskStatus.COMPLETED,
            BatchTaskStatus.COMPLETED_WITH_ERRORS,
            BatchTaskStatus.FAILED,
        )


class VerificationScope(str, Enum):
    """Rule used to select the employees of a campaign run."""

    ALL_USERS = "all_users"
    DEPARTMENT = "department"
    EMPLOYEE_IDS = "employee_ids"


class TokenStatus(str, Enum):
    """Verification token status. Tokens are never consumed by a submission."""

    PENDING = "pending"
    EXPIRED = "expired"


class IssueType(str, Enum):
    NUMBER_ISSUE = "number_issue"
    UNLISTED_NUMBER = "unlisted_number"


class IssueAdminStatus(str, Enum):
    """Administrator review status of a user-reported issue."""

    PENDING = "pending"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class SubmissionAction(str, Enum):
    """Action recorded in the submission log."""

    CONFIRM_USAGE = "confirm_usage"
    REPORT_ISSUE = "report_issue"
    REPORT_UNLISTED = "report_unlisted"


class NumberVerificationState(str, Enum):
    """Per-number state derived from submissions under one token."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    REPORTED = "reported"
