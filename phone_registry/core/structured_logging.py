"""Structured logging helpers (PII-safe)."""

from typing import Any

from phone_registry.jobs.utils import mask_email


def build_log_context(
    *,
    operator_id: str | None = None,
    task_id: str | None = None,
    job_id: str | None = None,
    employee_id: str | None = None,
    email: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict (emails masked)."""
    context: dict[str, Any] = {}
    if operator_id:
        context["operator_id"] = operator_id
    if task_id:
        context["task_id"] = task_id
    if job_id:
        context["job_id"] = job_id
    if employee_id:
        context["employee_id"] = employee_id
    if email:
        context["email"] = mask_email(email)
    return context
