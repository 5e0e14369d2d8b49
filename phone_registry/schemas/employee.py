"""Pydantic schemas for employees."""

from datetime import date, datetime

from pydantic import Field

from phone_registry.db.enums import EmploymentStatus
from phone_registry.schemas.common import CamelModel


class EmployeeCreate(CamelModel):
    """Create an employee. The business ID is allocated by the server."""
    full_name: str = Field(..., min_length=1, max_length=255)
    email: str | None = Field(None, max_length=255)
    department: str | None = Field(None, max_length=255)
    hire_date: date | None = None


class EmployeeStatusUpdate(CamelModel):
    """Employment status change. Departure fires the number risk trigger."""
    status: EmploymentStatus
    termination_date: date | None = None


class EmployeeRead(CamelModel):
    employee_id: str
    full_name: str
    email: str | None
    department: str | None
    employment_status: str
    hire_date: date | None
    termination_date: date | None
    created_at: datetime
