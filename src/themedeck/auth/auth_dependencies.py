"""Common authentication dependencies for FastAPI routers."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .auth_service import (
    TEACHER_ROLE,
    AuthService,
    InsufficientRoleError,
    InvalidTokenError,
    TokenExpiredError,
)

security = HTTPBearer(auto_error=False)


def get_auth_service(request: Request) -> AuthService:
    try:
        return request.app.state.auth_service  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover
        raise RuntimeError("AuthService is not configured") from exc


def _caller_id(
    credentials: HTTPAuthorizationCredentials | None,
    service: AuthService,
    required_role: str | None,
) -> str:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"status": "error", "failure_reason": "missing_token"},
        )

    try:
        payload = service.validate_token(credentials.credentials, required_role=required_role)
    except TokenExpiredError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"status": "error", "failure_reason": "token_expired"},
        ) from exc
    except InvalidTokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"status": "error", "failure_reason": "invalid_token"},
        ) from exc
    except InsufficientRoleError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"status": "error", "failure_reason": "insufficient_role"},
        ) from exc
    return str(payload["sub"])


def require_teacher(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    service: AuthService = Depends(get_auth_service),
) -> str:
    """Return the caller's user id from a valid ``teacher`` token."""
    return _caller_id(credentials, service, TEACHER_ROLE)


def require_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    service: AuthService = Depends(get_auth_service),
) -> str:
    """Return the caller's user id from any valid token, whatever its role."""
    return _caller_id(credentials, service, None)


__all__ = ["get_auth_service", "require_teacher", "require_user"]
