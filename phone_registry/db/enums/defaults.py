"""Centralized defaults for enums."""

from phone_registry.db.enums.employees import EmploymentStatus
from phone_registry.db.enums.jobs import JobStatus
from phone_registry.db.enums.numbers import NumberStatus
from phone_registry.db.enums.verification import (
    BatchTaskStatus,
    IssueAdminStatus,
    TokenStatus,
)


DEFAULT_NUMBER_STATUS: NumberStatus = NumberStatus.IDLE
DEFAULT_EMPLOYMENT_STATUS: EmploymentStatus = EmploymentStatus.ACTIVE
DEFAULT_JOB_STATUS: JobStatus = JobStatus.PENDING
DEFAULT_BATCH_TASK_STATUS: BatchTaskStatus = BatchTaskStatus.PENDING
DEFAULT_TOKEN_STATUS: TokenStatus = TokenStatus.PENDING
DEFAULT_ISSUE_ADMIN_STATUS: IssueAdminStatus = IssueAdminStatus.PENDING
