"""FastAPI authentication dependencies."""

from __future__ import annotations

from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from clutch.auth.jwt import verify_token

_bearer = HTTPBearer()


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
) -> CurrentUser:
    """Verify the bearer token and return the caller. Raises 401 on failure."""
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    return CurrentUser(id=str(payload["sub"]), role=str(payload.get("role", "user")))


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Same as get_current_user but rejects non-admin callers with 403."""
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
