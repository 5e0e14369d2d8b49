"""Security utilities for operator bearer tokens."""

import secrets
from datetime import datetime, timedelta, timezone

import jwt

from phone_registry.core.config import settings


# =============================================================================
# Operator Token (JWT bearer)
# =============================================================================

def create_access_token(employee_id: str, role: str = "admin") -> str:
    """
    Create signed operator JWT.

    Always signs with current secret (JWT_SECRET). The jti claim identifies
    the token for revocation on logout.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": employee_id,
        "role": role,
        "jti": secrets.token_hex(16),
        "iat": now,
        "exp": now + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_access_token(token: str) -> dict:
    """
    Decode and verify operator JWT.

    Tries current secret first, then previous (for rotation support).

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets
    """
    last_error = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(
                token,
                secret,
                algorithms=["HS256"],
                options={"require": ["sub", "jti", "exp"]},
            )
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
    raise last_error  # type: ignore


def token_expiry(payload: dict) -> datetime:
    """Expiry of a decoded token as an aware UTC datetime."""
    return datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
