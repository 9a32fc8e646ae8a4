"""
FastAPI dependency injection functions.

Provides the document store, email sender, LLM client, Redis connection and
the current user. Tests swap any of these through app.dependency_overrides.
"""

from __future__ import annotations

import redis.asyncio as aioredis
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from orgflow.core.config import Settings, settings
from orgflow.core.database import async_session_factory
from orgflow.core.exceptions import AuthError
from orgflow.core.security import blacklist_redis_key, decode_access_token
from orgflow.schemas.auth import CurrentUser
from orgflow.services.document_store import DocumentStore, SqlDocumentStore
from orgflow.services.email_service import EmailSender, ResendEmailSender
from orgflow.services.llm_service import CompletionClient, OpenAICompletionClient

# ---------------------------------------------------------------------------
# HTTP Bearer scheme (auto_error=False so we can return custom 401)
# ---------------------------------------------------------------------------

bearer_scheme = HTTPBearer(auto_error=False)

# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

_redis_pool: aioredis.Redis | None = None


def get_settings() -> Settings:
    return settings


async def get_redis() -> aioredis.Redis:
    """
    Return a shared async Redis client.

    Uses a module-level pool so connections are reused across requests.
    """
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            str(settings.REDIS_URL),
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis_pool


def get_document_store() -> DocumentStore:
    return SqlDocumentStore(async_session_factory)


def get_email_sender(settings: Settings = Depends(get_settings)) -> EmailSender:
    return ResendEmailSender(api_key=settings.RESEND_API_KEY, from_email=settings.EMAIL_FROM)


def get_completion_client(settings: Settings = Depends(get_settings)) -> CompletionClient:
    return OpenAICompletionClient(settings)


def get_request_origin(request: Request) -> str | None:
    """Web origin of the caller, used for invite links."""
    return request.headers.get("origin")


# ---------------------------------------------------------------------------
# Current user
# ---------------------------------------------------------------------------

async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    redis: aioredis.Redis = Depends(get_redis),
) -> CurrentUser:
    """
    Validate Bearer JWT and return the authenticated user.

    Raises AuthError if:
    - No token provided
    - Token is invalid or expired
    - JTI is blacklisted
    """
    if credentials is None:
        raise AuthError("Authorization header required", code="MISSING_TOKEN")

    payload = decode_access_token(credentials.credentials)

    jti: str = payload.get("jti", "")
    if await redis.exists(blacklist_redis_key(jti)):
        raise AuthError("Token has been revoked", code="TOKEN_REVOKED")

    return CurrentUser(
        id=payload["sub"],
        email=payload.get("email"),
        email_verified=bool(payload.get("email_verified")),
    )
