"""Input normalization and validation helpers."""

from __future__ import annotations

import re
from typing import Optional

PHONE_NUMBER_LENGTH = 11
PHONE_NUMBER_PREFIX = "1"

_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def normalize_phone(phone: Optional[str]) -> str:
    """
    Validate and normalize a company mobile number.

    Accepts exactly 11 digits starting with 1 (surrounding whitespace is
    stripped).

    Raises:
        ValueError: If the number has the wrong length, non-digits, or the
            wrong leading digit
    """
    cleaned = (phone or "").strip()
    if len(cleaned) != PHONE_NUMBER_LENGTH or not cleaned.isdigit():
        raise ValueError(
            f"Invalid phone number '{cleaned}'. Must be exactly {PHONE_NUMBER_LENGTH} digits."
        )
    if not cleaned.startswith(PHONE_NUMBER_PREFIX):
        raise ValueError(
            f"Invalid phone number '{cleaned}'. Must start with {PHONE_NUMBER_PREFIX}."
        )
    return cleaned


def normalize_email(email: Optional[str]) -> Optional[str]:
    """
    Normalize email to lowercase.

    Returns None for empty input.
    """
    if not email:
        return None
    email = email.strip().lower()
    return email or None


def is_valid_email(email: Optional[str]) -> bool:
    """Format check used before attempting delivery."""
    if not email:
        return False
    return bool(_EMAIL_RE.match(email.strip()))


def normalize_name(name: Optional[str]) -> Optional[str]:
    """Collapse internal whitespace and strip."""
    if not name:
        return None
    collapsed = " ".join(name.split())
    return collapsed or None
