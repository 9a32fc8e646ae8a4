"""
Security utilities.

JWT access token creation/validation and the Redis revocation key.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from orgflow.core.config import settings
from orgflow.core.exceptions import AuthError


# ---------------------------------------------------------------------------
# JWT tokens
# ---------------------------------------------------------------------------

def create_access_token(
    user_id: str,
    email: str | None = None,
    email_verified: bool = False,
    jti: str | None = None,
) -> str:
    """
    Create a signed JWT access token.

    Args:
        user_id: The user's id.
        email: The user's email, carried so the invite flow can skip the actor.
        email_verified: Whether the identity provider verified the email.
        jti: Optional JWT ID. Generated if not provided.

    Returns:
        Signed JWT string.
    """
    now = datetime.now(UTC)
    expire = now + timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    payload: dict[str, Any] = {
        "sub": user_id,
        "email": email,
        "email_verified": email_verified,
        "jti": jti or str(uuid.uuid4()),
        "type": "access",
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a JWT access token.

    Raises:
        AuthError: If the token is invalid, expired, tampered or not an access token.
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise AuthError("Token is invalid or expired", code="INVALID_TOKEN") from exc
    if payload.get("type") != "access" or not payload.get("sub"):
        raise AuthError("Not an access token", code="INVALID_TOKEN")
    return payload


def verify_token(token: str) -> str:
    """Return the user id of a valid access token."""
    return decode_access_token(token)["sub"]


# ---------------------------------------------------------------------------
# Redis key helpers
# ---------------------------------------------------------------------------

def blacklist_redis_key(jti: str) -> str:
    """Redis key for a blacklisted access token JTI. Format: blacklist:{jti}"""
    return f"blacklist:{jti}"
