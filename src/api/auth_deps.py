"""Authentication dependencies for FastAPI routes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.auth import decode_access_token
from core.exceptions import PermissionDeniedError, UnauthenticatedError
from domain.roles import Participant, UserRole, participant_from_claims

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Caller:
    """The authenticated user behind a request."""

    user_id: str
    role: UserRole

    @property
    def participant(self) -> Participant:
        return participant_from_claims(self.user_id, self.role)


def get_optional_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[Caller]:
    """Caller from a valid bearer token, or None when absent or invalid."""
    if credentials is None:
        return None

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        return None

    try:
        role = UserRole(payload.get("role"))
    except ValueError:
        return None
    return Caller(user_id=str(payload["sub"]), role=role)


def get_caller(caller: Optional[Caller] = Depends(get_optional_caller)) -> Caller:
    """
    Require an authenticated caller.

    Raises UnauthenticatedError (401) if the token is missing, invalid or expired.
    """
    if caller is None:
        raise UnauthenticatedError("Authentication required.")
    return caller


def require_landowner(caller: Caller = Depends(get_caller)) -> Caller:
    if caller.role is not UserRole.LANDOWNER:
        raise PermissionDeniedError("Landowner access required.")
    return caller


__all__ = ["Caller", "security", "get_optional_caller", "get_caller", "require_landowner"]
