"""Operator token revocation model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, func
from sqlalchemy.orm import Mapped, mapped_column

from phone_registry.db.base import Base
from phone_registry.utils.dates import utc_now


class RevokedToken(Base):
    """
    Revoked operator bearer token, keyed by JWT ID.

    Rows past `expires_at` are irrelevant (the JWT itself is expired) and
    are purged opportunistically.
    """

    __tablename__ = "revoked_tokens"

    jti: Mapped[str] = mapped_column(String(64), primary_key=True)
    subject: Mapped[str | None] = mapped_column(String(64), nullable=True)
    expires_at: Mapped[datetime] = mapped_column(nullable=False, index=True)
    revoked_at: Mapped[datetime] = mapped_column(
        default=utc_now, server_default=func.now(), nullable=False
    )
