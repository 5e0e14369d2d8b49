"""SQLAlchemy ORM models."""

from phone_registry.db.models.auth import RevokedToken
from phone_registry.db.models.employees import Employee, EmployeeIdSequence
from phone_registry.db.models.jobs import Job
from phone_registry.db.models.numbers import (
    MobileNumber,
    NumberApplicantHistory,
    NumberUsageHistory,
)
from phone_registry.db.models.verification import (
    UserReportedIssue,
    VerificationBatchTask,
    VerificationSubmissionLog,
    VerificationToken,
)

__all__ = [
    "Employee",
    "EmployeeIdSequence",
    "Job",
    "MobileNumber",
    "NumberApplicantHistory",
    "NumberUsageHistory",
    "RevokedToken",
    "UserReportedIssue",
    "VerificationBatchTask",
    "VerificationSubmissionLog",
    "VerificationToken",
]
