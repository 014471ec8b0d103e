"""Bearer token verification for authoring endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
import structlog
from jwt import ExpiredSignatureError
from jwt import InvalidTokenError as PyJWTInvalidTokenError

logger = structlog.get_logger(__name__)

TEACHER_ROLE = "teacher"


def _utcnow() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(tz=timezone.utc)


class AuthError(Exception):
    """Base class for auth failures."""


class InvalidTokenError(AuthError):
    """Raised when token cannot be decoded."""


class TokenExpiredError(AuthError):
    """Raised when token is expired."""


class InsufficientRoleError(AuthError):
    """Raised when the token does not carry the required role."""


@dataclass(slots=True)
class AuthService:
    """Decode HS256 tokens issued for authoring users."""

    signing_key: str
    token_ttl_seconds: int = 3600

    def __post_init__(self) -> None:
        if not self.signing_key or not self.signing_key.strip():
            raise RuntimeError("JWT_SIGNING_KEY is not configured")

    def issue_token(self, user_id: str, role: str = TEACHER_ROLE) -> str:
        now = _utcnow()
        payload = {
            "sub": user_id,
            "role": role,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self.token_ttl_seconds)).timestamp()),
        }
        return jwt.encode(payload, self.signing_key, algorithm="HS256")

    def validate_token(self, token: str, required_role: str | None = None) -> dict[str, Any]:
        """Decode JWT and ensure the role matches requirement."""
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self.signing_key,
                algorithms=["HS256"],
                options={"require": ["exp", "iat", "sub"]},
            )
        except ExpiredSignatureError as exc:
            logger.info("auth.token.expired")
            raise TokenExpiredError("Token expired") from exc
        except PyJWTInvalidTokenError as exc:
            logger.info("auth.token.invalid", error=str(exc))
            raise InvalidTokenError("Invalid token") from exc

        if required_role and payload.get("role") != required_role:
            logger.warning("auth.token.insufficient_role", sub=payload.get("sub"), role=payload.get("role"))
            raise InsufficientRoleError("Insufficient role")
        return payload


__all__ = [
    "AuthService",
    "AuthError",
    "InvalidTokenError",
    "TokenExpiredError",
    "InsufficientRoleError",
    "TEACHER_ROLE",
]
