"""Mobile number enums."""

from enum import Enum


class NumberStatus(str, Enum):
    """
    Lifecycle status of a company-issued mobile number.

    - IDLE: in stock, no holder
    - IN_USE: assigned to a current holder (open usage interval)
    - PENDING_DEACTIVATION: scheduled for cancellation with the carrier
    - DEACTIVATED: cancelled, kept for audit
    - RISK_PENDING: applicant has departed, ownership needs review
    - USER_REPORTED: holder disputed the assignment during verification
    """

    IDLE = "idle"
    IN_USE = "in_use"
    PENDING_DEACTIVATION = "pending_deactivation"
    DEACTIVATED = "deactivated"
    RISK_PENDING = "risk_pending"
    USER_REPORTED = "user_reported"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


# Statuses an operator may set through a direct field patch
PATCHABLE_NUMBER_STATUSES = frozenset(
    {
        NumberStatus.IDLE,
        NumberStatus.PENDING_DEACTIVATION,
        NumberStatus.DEACTIVATED,
        NumberStatus.USER_REPORTED,
    }
)


class RiskAction(str, Enum):
    """Resolution applied to a risk_pending number."""

    CHANGE_APPLICANT = "change_applicant"
    RECLAIM = "reclaim"
    DEACTIVATE = "deactivate"
