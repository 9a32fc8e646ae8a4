"""
JWT helper tests.
"""

from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from orgflow.core.config import settings
from orgflow.core.exceptions import AuthError
from orgflow.core.security import (
    blacklist_redis_key,
    create_access_token,
    decode_access_token,
    verify_token,
)


def test_round_trip_claims():
    token = create_access_token("user-1", email="a@example.com", email_verified=True, jti="j1")
    payload = decode_access_token(token)

    assert payload["sub"] == "user-1"
    assert payload["email"] == "a@example.com"
    assert payload["email_verified"] is True
    assert payload["jti"] == "j1"
    assert verify_token(token) == "user-1"


def test_tampered_token_rejected():
    token = create_access_token("user-1")
    with pytest.raises(AuthError) as exc_info:
        decode_access_token(token[:-2] + ("aa" if not token.endswith("aa") else "bb"))
    assert exc_info.value.code == "INVALID_TOKEN"


def test_expired_token_rejected():
    past = datetime.now(UTC) - timedelta(hours=2)
    token = jwt.encode(
        {"sub": "user-1", "type": "access", "iat": past, "exp": past + timedelta(minutes=5)},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(AuthError):
        decode_access_token(token)


def test_non_access_token_rejected():
    token = jwt.encode(
        {"sub": "user-1", "type": "refresh"},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(AuthError):
        decode_access_token(token)


def test_blacklist_key():
    assert blacklist_redis_key("abc") == "blacklist:abc"
