"""Employee enums."""

from enum import Enum


class EmploymentStatus(str, Enum):
    """Employment status. Departure triggers risk flagging of procured numbers."""

    ACTIVE = "Active"
    DEPARTED = "Departed"
