"""
Organization schemas.

Invite records, membership records and their request/response models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import EmailStr, Field

from orgflow.schemas.chart import CamelModel, InviteStatus

MemberRole = Literal["admin", "member", "observer"]
OrganizationRole = Literal["creator", "member"]


# ---------------------------------------------------------------------------
# Invites
# ---------------------------------------------------------------------------

class InviteRecord(CamelModel):
    """Stored under invites/{code}."""

    email: str
    organization_id: str
    organization_code: str | None = None
    created_by: str
    created_at: datetime
    expires_at: datetime
    status: InviteStatus = "pending"
    accepted_at: datetime | None = None
    accepted_by: str | None = None


class InvitationInfoResponse(CamelModel):
    """Public view of an invite for the signup page."""

    code: str
    email: str
    organization_id: str
    organization_name: str
    organization_code: str | None = None
    expires_at: datetime
    status: InviteStatus


class InviteRetryRequest(CamelModel):
    """Request body for POST /organizations/{organization_id}/invites/retry."""

    emails: list[EmailStr] = Field(min_length=1)
    origin: str | None = None


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------

class MembershipRecord(CamelModel):
    """Stored under users/{user_id}."""

    organization_id: str | None = None
    organization_code: str | None = None
    has_organization: bool = False
    role: MemberRole = "member"
    organization_role: OrganizationRole = "member"
    is_creator: bool = False
    is_first_login: bool = True
    organization_chart_completed: bool = False


class JoinOrganizationRequest(CamelModel):
    """Request body for POST /organizations/join."""

    organization_code: str = Field(min_length=1, max_length=32)


class OrganizationCodeRecord(CamelModel):
    """Stored under organizationCodes/{code}."""

    organization_id: str
    organization_name: str
    created_by: str
