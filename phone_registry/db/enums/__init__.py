"""Enum definitions for application constants."""

from phone_registry.db.enums.defaults import (
    DEFAULT_BATCH_TASK_STATUS,
    DEFAULT_EMPLOYMENT_STATUS,
    DEFAULT_ISSUE_ADMIN_STATUS,
    DEFAULT_JOB_STATUS,
    DEFAULT_NUMBER_STATUS,
    DEFAULT_TOKEN_STATUS,
)
from phone_registry.db.enums.employees import EmploymentStatus
from phone_registry.db.enums.jobs import JobStatus, JobType
from phone_registry.db.enums.numbers import (
    PATCHABLE_NUMBER_STATUSES,
    NumberStatus,
    RiskAction,
)
from phone_registry.db.enums.verification import (
    BatchTaskStatus,
    IssueAdminStatus,
    IssueType,
    NumberVerificationState,
    SubmissionAction,
    TokenStatus,
    VerificationScope,
)

__all__ = [
    "BatchTaskStatus",
    "DEFAULT_BATCH_TASK_STATUS",
    "DEFAULT_EMPLOYMENT_STATUS",
    "DEFAULT_ISSUE_ADMIN_STATUS",
    "DEFAULT_JOB_STATUS",
    "DEFAULT_NUMBER_STATUS",
    "DEFAULT_TOKEN_STATUS",
    "EmploymentStatus",
    "IssueAdminStatus",
    "IssueType",
    "JobStatus",
    "JobType",
    "NumberStatus",
    "NumberVerificationState",
    "PATCHABLE_NUMBER_STATUSES",
    "RiskAction",
    "SubmissionAction",
    "TokenStatus",
    "VerificationScope",
]
