"""Shared helpers for worker job handlers."""

from __future__ import annotations

from urllib.parse import urlsplit


def mask_email(email: str | None) -> str:
    if not email:
        return ""
    local, _, domain = email.partition("@")
    prefix = local[:3] if local else ""
    return f"{prefix}...@{domain}" if domain else f"{prefix}..."


def safe_url(url: str | None) -> str:
    """Strip the query string (verification tokens) before logging a URL."""
    if not url:
        return ""
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}{parts.path}"
