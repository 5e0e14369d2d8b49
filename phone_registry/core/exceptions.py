"""Domain error kinds raised by services and mapped to HTTP responses."""

from __future__ import annotations


class RegistryError(Exception):
    """Base exception for phone registry service errors."""

    status_code = 400
    kind = "error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(RegistryError):
    """Malformed input. Nothing was persisted."""

    status_code = 422
    kind = "validation"


class ConflictError(RegistryError):
    """Duplicate unique key."""

    status_code = 409
    kind = "conflict"


class NotFoundError(RegistryError):
    """Missing entity or token."""

    status_code = 404
    kind = "not_found"


class InvalidStateError(RegistryError):
    """Operation not allowed for the entity's current status."""

    status_code = 409
    kind = "invalid_state"


class PreconditionFailedError(RegistryError):
    """Actor is not eligible (e.g. inactive employee)."""

    status_code = 422
    kind = "precondition_failed"


class DataInconsistencyError(RegistryError):
    """A stored invariant is violated. Never swallowed."""

    status_code = 500
    kind = "data_inconsistency"


class ExpiredError(RegistryError):
    """Verification token is past its validity."""

    status_code = 410
    kind = "expired"


class InvalidLinkError(NotFoundError):
    """
    Verification link is unknown, expired or otherwise unusable.

    Public callers only ever see this kind, so the response never reveals
    which check failed.
    """

    kind = "invalid_link"

    def __init__(self, message: str = "Invalid or expired verification link") -> None:
        super().__init__(message)
