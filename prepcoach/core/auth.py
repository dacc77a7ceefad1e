"""
Authentication Utility - verifies bearer tokens issued by the hosted auth provider.

Provides:
- JWT verification (provider-signed access tokens, `sub` = user id)
- FastAPI dependencies for protected and maintenance routes

Accounts and passwords live with the provider; this service never issues tokens.
"""

import hmac
from typing import Optional
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from prepcoach.core.config import get_settings

settings = get_settings()

# Missing headers are reported as 401 below, not FastAPI's default 403
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str = "Unauthorized") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify a provider JWT. Returns None when invalid or expired."""
    try:
        return jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
    except JWTError:
        return None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> dict:
    """
    FastAPI dependency - Get current authenticated user.

    Usage:
        @router.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    if credentials is None:
        raise _unauthorized()

    payload = decode_token(credentials.credentials)
    if not payload:
        raise _unauthorized("Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Invalid or expired token")

    return {"user_id": str(user_id), "email": payload.get("email")}


async def require_service_key(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> None:
    """Dependency - maintenance endpoints accept only the service-role key."""
    if (
        credentials is None
        or not settings.auth_service_key
        or not hmac.compare_digest(credentials.credentials, settings.auth_service_key)
    ):
        raise _unauthorized()
