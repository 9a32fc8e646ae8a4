"""
Domain exceptions.

Services raise these; main.py renders them in the API error envelope
{"detail": {"code": ..., "message": ...}}.
"""

from __future__ import annotations

from fastapi import status


class OrgFlowError(Exception):
    """Base class for all expected application errors."""

    code: str = "ERROR"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_detail(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class ValidationError(OrgFlowError):
    """A required identifier or input was missing before a remote call."""

    code = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(OrgFlowError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class StoreError(OrgFlowError):
    """Document store transport or permission failure."""

    code = "STORE_ERROR"
    status_code = status.HTTP_502_BAD_GATEWAY


class PersistenceError(OrgFlowError):
    """
    A chart or membership write failed.

    The underlying transport error is kept as __cause__.
    """

    code = "PERSISTENCE_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class EmailError(OrgFlowError):
    code = "EMAIL_ERROR"
    status_code = status.HTTP_502_BAD_GATEWAY


class AuthError(OrgFlowError):
    code = "AUTH_ERROR"
    status_code = status.HTTP_401_UNAUTHORIZED


class InviteError(OrgFlowError):
    """Invite exists but cannot be used (expired or already accepted)."""

    code = "INVITE_INVALID"
    status_code = status.HTTP_400_BAD_REQUEST


class GenerationError(OrgFlowError):
    """LLM response could not be parsed into the expected structure."""

    code = "GENERATION_ERROR"
    status_code = status.HTTP_502_BAD_GATEWAY


class ForbiddenError(OrgFlowError):
    """Authenticated user lacks the role required for the operation."""

    code = "INSUFFICIENT_ROLE"
    status_code = status.HTTP_403_FORBIDDEN
