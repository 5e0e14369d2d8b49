"""Pydantic schemas for mobile numbers."""

from datetime import date, datetime

from pydantic import Field

from phone_registry.db.enums import NumberStatus, RiskAction
from phone_registry.schemas.common import CamelModel


# =============================================================================
# Requests
# =============================================================================

class MobileNumberCreate(CamelModel):
    """
    Register a number in stock.

    The applicant may be given by business ID or by (unique) full name.
    """
    phone_number: str = Field(..., min_length=1, max_length=20)
    application_date: date
    applicant_employee_id: str | None = None
    applicant_name: str | None = None
    purpose: str | None = Field(None, max_length=255)
    vendor: str | None = Field(None, max_length=100)
    remarks: str | None = None


class MobileNumberUpdate(CamelModel):
    """Field patch. Possession changes go through assign/unassign."""
    status: NumberStatus | None = None
    purpose: str | None = Field(None, max_length=255)
    vendor: str | None = Field(None, max_length=100)
    remarks: str | None = None


class AssignRequest(CamelModel):
    employee_id: str = Field(..., min_length=1)
    assignment_date: date | None = None  # Defaults to today
    purpose: str | None = Field(None, max_length=255)


class UnassignRequest(CamelModel):
    reclaim_date: date | None = None  # Defaults to today


class HandleRiskRequest(CamelModel):
    action: RiskAction
    new_applicant_employee_id: str | None = None
    remarks: str | None = None


# =============================================================================
# Responses
# =============================================================================

class MobileNumberRead(CamelModel):
    id: int
    phone_number: str
    applicant_employee_id: str
    application_date: date
    current_employee_id: str | None
    status: str
    purpose: str | None
    vendor: str | None
    remarks: str | None
    cancellation_date: date | None
    last_confirmation_date: datetime | None
    created_at: datetime
    updated_at: datetime


class MobileNumberListItem(MobileNumberRead):
    """List row with applicant and holder names resolved."""
    applicant_name: str | None
    applicant_status: str | None
    applicant_termination_date: date | None
    current_user_name: str | None


class UsageHistoryRead(CamelModel):
    id: int
    employee_id: str
    start_date: date
    end_date: date | None
    purpose: str | None


class MobileNumberDetail(MobileNumberListItem):
    usage_history: list[UsageHistoryRead] = []


class MobileNumberListResponse(CamelModel):
    items: list[MobileNumberListItem]
    total_items: int
    total_pages: int
    current_page: int
    page_size: int
