"""Revoked operator token storage (database or Redis)."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from phone_registry.core.config import settings
from phone_registry.core.redis_client import get_sync_redis_client
from phone_registry.db.models import RevokedToken
from phone_registry.utils.dates import utc_now

logger = logging.getLogger(__name__)

REDIS_KEY_PREFIX = "revoked_jti:"


class RevocationStore(Protocol):
    def revoke(self, jti: str, subject: str | None, expires_at: datetime) -> None: ...

    def is_revoked(self, jti: str) -> bool: ...


class DatabaseRevocationStore:
    """Revocations kept in the revoked_tokens table."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def revoke(self, jti: str, subject: str | None, expires_at: datetime) -> None:
        self.db.execute(delete(RevokedToken).where(RevokedToken.expires_at < utc_now()))
        try:
            with self.db.begin_nested():
                self.db.add(RevokedToken(jti=jti, subject=subject, expires_at=expires_at))
        except IntegrityError:
            # Already revoked
            pass
        self.db.commit()

    def is_revoked(self, jti: str) -> bool:
        return self.db.get(RevokedToken, jti) is not None


class RedisRevocationStore:
    """Revocations kept as Redis keys that expire with the token."""

    def __init__(self, client) -> None:
        self.client = client

    def revoke(self, jti: str, subject: str | None, expires_at: datetime) -> None:
        ttl = int((expires_at - utc_now()).total_seconds())
        if ttl <= 0:
            return
        self.client.set(f"{REDIS_KEY_PREFIX}{jti}", subject or "", ex=ttl)

    def is_revoked(self, jti: str) -> bool:
        return bool(self.client.exists(f"{REDIS_KEY_PREFIX}{jti}"))


def get_revocation_store(db: Session) -> RevocationStore:
    """Store selected by REVOCATION_BACKEND; falls back to the database."""
    if settings.REVOCATION_BACKEND == "redis":
        client = get_sync_redis_client()
        if client is not None:
            return RedisRevocationStore(client)
        logger.warning("REVOCATION_BACKEND=redis but REDIS_URL is unset, using database")
    return DatabaseRevocationStore(db)
