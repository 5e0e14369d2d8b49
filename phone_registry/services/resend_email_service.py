"""Resend Email Service.

Sends verification emails via the Resend API with retry logic and a bounded timeout.
"""

from __future__ import annotations

import html as html_module
import logging

import httpx

from phone_registry.jobs.utils import mask_email
from phone_registry.services.email_sender import EmailResult
from phone_registry.services.http_service import DEFAULT_RETRY_STATUSES, request_with_retries

logger = logging.getLogger(__name__)

RESEND_SEND_URL = "https://api.resend.com/emails"
RESEND_MAX_ATTEMPTS = 3
RESEND_RETRY_BASE_DELAY = 0.5
RESEND_RETRY_MAX_DELAY = 4.0
RESEND_TIMEOUT_SECONDS = 20.0

VERIFICATION_SUBJECT = "Phone number verification"


def render_verification_email(
    employee_name: str, verification_link: str, duration_days: int
) -> tuple[str, str, str]:
    """Return (subject, html, text) for a verification email."""
    name = html_module.escape(employee_name)
    link = html_module.escape(verification_link, quote=True)
    html = (
        "<html><body>"
        f"<p>Dear {name},</p>"
        "<p>To keep the company phone number register accurate, please confirm "
        "the numbers currently registered to you.</p>"
        "<p>Open your personal link to review them:</p>"
        f'<p><a href="{link}">{link}</a></p>'
        f"<p>This link is valid for {duration_days} days.</p>"
        "<p><small>This is an automated message, please do not reply.</small></p>"
        "</body></html>"
    )
    text = (
        f"Dear {employee_name},\n\n"
        "To keep the company phone number register accurate, please confirm the "
        "numbers currently registered to you:\n\n"
        f"{verification_link}\n\n"
        f"This link is valid for {duration_days} days."
    )
    return VERIFICATION_SUBJECT, html, text


class ResendEmailSender:
    """EmailSender backed by the Resend HTTP API."""

    key = "resend"

    def __init__(
        self,
        api_key: str,
        from_email: str,
        from_name: str | None = None,
        timeout_seconds: float = RESEND_TIMEOUT_SECONDS,
    ) -> None:
        self.api_key = api_key
        self.from_email = from_email
        self.from_name = from_name
        self.timeout_seconds = timeout_seconds

    async def send_verification_email(
        self,
        *,
        to_address: str,
        employee_name: str,
        verification_link: str,
        duration_days: int,
    ) -> EmailResult:
        subject, html, text = render_verification_email(
            employee_name, verification_link, duration_days
        )
        from_address = f"{self.from_name} <{self.from_email}>" if self.from_name else self.from_email
        payload: dict[str, object] = {
            "from": from_address,
            "to": [to_address],
            "subject": subject,
            "html": html,
            "text": text,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:

                async def request_fn() -> httpx.Response:
                    return await client.post(RESEND_SEND_URL, headers=headers, json=payload)

                response = await request_with_retries(
                    request_fn,
                    max_attempts=RESEND_MAX_ATTEMPTS,
                    base_delay=RESEND_RETRY_BASE_DELAY,
                    max_delay=RESEND_RETRY_MAX_DELAY,
                    retry_statuses=DEFAULT_RETRY_STATUSES,
                )
        except httpx.TimeoutException:
            logger.warning("Resend timeout for %s", mask_email(to_address))
            return EmailResult(success=False, error="Connection timeout")
        except httpx.HTTPError as e:
            logger.warning("Resend connection error for %s", mask_email(to_address), exc_info=e)
            return EmailResult(success=False, error=f"Connection error: {e.__class__.__name__}")

        if 200 <= response.status_code < 300:
            data = response.json()
            return EmailResult(success=True, message_id=data.get("id"))

        error_detail = None
        try:
            data = response.json()
            if isinstance(data, dict):
                error_detail = data.get("message") or data.get("error")
        except ValueError:
            pass

        error_msg = f"Resend API error: {response.status_code}"
        if error_detail:
            error_msg = f"{error_msg} ({error_detail})"
        logger.warning("Resend error for %s: %s", mask_email(to_address), error_msg)
        return EmailResult(success=False, error=error_msg)
