"""Operator session endpoints."""

from fastapi import APIRouter, Depends

from phone_registry.core.deps import OperatorSession, get_current_operator, get_revocations
from phone_registry.core.revocation import RevocationStore
from phone_registry.schemas.auth import LogoutResponse, OperatorRead

router = APIRouter()


@router.get("/me", response_model=OperatorRead)
def me(operator: OperatorSession = Depends(get_current_operator)):
    return OperatorRead(
        employee_id=operator.employee_id,
        role=operator.role,
        expires_at=operator.expires_at,
    )


@router.post("/logout", response_model=LogoutResponse)
def logout(
    operator: OperatorSession = Depends(get_current_operator),
    revocations: RevocationStore = Depends(get_revocations),
):
    """Revoke the presented bearer token until its natural expiry."""
    revocations.revoke(operator.jti, operator.employee_id, operator.expires_at)
    return LogoutResponse()
