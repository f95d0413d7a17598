"""
Bearer token helpers.

Tokens are issued by the identity service; this service only verifies
them. `create_access_token` exists for local tooling and tests.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from core.config import settings

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Base authentication error."""
    pass


class TokenExpiredError(AuthenticationError):
    """Token has expired."""
    pass


class TokenInvalidError(AuthenticationError):
    """Token is missing, malformed or has a bad signature."""
    pass


def create_access_token(
    user_id: int,
    role: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Sign an access token for a user.

    Args:
        user_id: Subject of the token
        role: Role claim, informational only
        expires_delta: Lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        Encoded JWT
    """
    issued_at = datetime.now(timezone.utc)
    expires_at = issued_at + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "iat": issued_at,
        "exp": expires_at,
    }
    if role:
        payload["role"] = role
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Verify a token and return its claims.

    Raises:
        TokenExpiredError: Token is past its expiry
        TokenInvalidError: Token cannot be verified or has no subject
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenInvalidError(f"Invalid token: {e}")

    if not str(payload.get("sub", "")).isdigit():
        raise TokenInvalidError("Token subject is not a user id")
    return payload


def subject_from_token(token: str) -> Optional[str]:
    """User id carried by a valid token, or None."""
    try:
        return decode_access_token(token)["sub"]
    except AuthenticationError as e:
        logger.debug(f"Ignoring unverifiable token: {e}")
        return None
