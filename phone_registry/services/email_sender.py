"""Email sender interface + selection helpers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from phone_registry.core.config import settings
from phone_registry.jobs.utils import mask_email, safe_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailResult:
    success: bool
    error: str | None = None
    message_id: str | None = None


class EmailSender(Protocol):
    key: str

    async def send_verification_email(
        self,
        *,
        to_address: str,
        employee_name: str,
        verification_link: str,
        duration_days: int,
    ) -> EmailResult:
        """Deliver one verification email. Never raises for delivery failures."""


class LoggingEmailSender:
    """Dry-run sender used when no provider is configured. Logs and reports success."""

    key = "log"

    async def send_verification_email(
        self,
        *,
        to_address: str,
        employee_name: str,
        verification_link: str,
        duration_days: int,
    ) -> EmailResult:
        logger.info(
            "[DRY RUN] Verification email to %s link=%s (valid %s days)",
            mask_email(to_address),
            safe_url(verification_link),
            duration_days,
        )
        return EmailResult(success=True)


def get_email_sender() -> EmailSender:
    """Resend when an API key is configured, otherwise the dry-run sender."""
    if settings.RESEND_API_KEY:
        from phone_registry.services.resend_email_service import ResendEmailSender

        return ResendEmailSender(
            api_key=settings.RESEND_API_KEY,
            from_email=settings.EMAIL_FROM,
            from_name=settings.EMAIL_FROM_NAME,
        )
    logger.warning("RESEND_API_KEY not set - verification emails will be logged but not sent")
    return LoggingEmailSender()
