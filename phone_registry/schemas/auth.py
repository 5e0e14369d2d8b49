"""Authentication-related Pydantic schemas."""

from datetime import datetime

from phone_registry.schemas.common import CamelModel


class OperatorRead(CamelModel):
    """Response schema for GET /auth/me."""
    employee_id: str
    role: str
    expires_at: datetime


class LogoutResponse(CamelModel):
    status: str = "logged_out"
