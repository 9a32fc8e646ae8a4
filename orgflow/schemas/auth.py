"""
Authentication schemas.
"""

from __future__ import annotations

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Identity resolved from a verified access token."""

    id: str
    email: str | None = None
    email_verified: bool = False
