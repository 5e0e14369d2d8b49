"""FastAPI dependencies for authentication and database access."""

from dataclasses import dataclass
from datetime import datetime
from typing import Generator

import jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from phone_registry.core.revocation import RevocationStore, get_revocation_store
from phone_registry.core.security import decode_access_token, token_expiry
from phone_registry.db.session import SessionLocal


AUTH_SCHEME = "bearer"


@dataclass(frozen=True)
class OperatorSession:
    """Authenticated operator context decoded from the bearer token."""

    employee_id: str
    role: str
    jti: str
    expires_at: datetime


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_revocations(db: Session = Depends(get_db)) -> RevocationStore:
    return get_revocation_store(db)


def _bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != AUTH_SCHEME or not token.strip():
        raise HTTPException(
            status_code=401,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token.strip()


def get_current_operator(
    request: Request,
    revocations: RevocationStore = Depends(get_revocations),
) -> OperatorSession:
    """
    Get authenticated operator from the Authorization header.

    Validates:
    - Bearer token exists
    - JWT is valid and not expired (current or previous secret)
    - Token has not been revoked

    Raises:
        HTTPException 401: Authentication failed
    """
    token = _bearer_token(request)
    try:
        payload = decode_access_token(token)
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    if revocations.is_revoked(payload["jti"]):
        raise HTTPException(status_code=401, detail="Token revoked")

    return OperatorSession(
        employee_id=str(payload["sub"]),
        role=str(payload.get("role") or "admin"),
        jti=str(payload["jti"]),
        expires_at=token_expiry(payload),
    )
