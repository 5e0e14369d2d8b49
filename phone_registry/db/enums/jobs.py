"""Job-related enums."""

from enum import Enum


class JobType(str, Enum):
    """Types of background jobs."""

    VERIFICATION_BATCH = "verification_batch"  # Issue tokens and send verification emails
    TOKEN_EXPIRY_SWEEP = "token_expiry_sweep"  # Flag past-expiry verification tokens


class JobStatus(str, Enum):
    """Status of background jobs."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
