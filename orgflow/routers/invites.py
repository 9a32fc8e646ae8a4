"""
Invitation endpoints.

Public invite lookup for the signup page and invite acceptance.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from orgflow.core.config import Settings
from orgflow.core.dependencies import (
    get_current_user,
    get_document_store,
    get_email_sender,
    get_settings,
)
from orgflow.schemas.auth import CurrentUser
from orgflow.schemas.organization import InvitationInfoResponse, MembershipRecord
from orgflow.services.chart_service import ChartService
from orgflow.services.document_store import DocumentStore
from orgflow.services.email_service import EmailSender, InviteMailer
from orgflow.services.invite_service import InviteService
from orgflow.services.membership_service import MembershipService

router = APIRouter()


def get_invite_service(
    store: DocumentStore = Depends(get_document_store),
    sender: EmailSender = Depends(get_email_sender),
    settings: Settings = Depends(get_settings),
) -> InviteService:
    """Dependency that constructs InviteService."""
    return InviteService(store, InviteMailer(sender, settings), settings, MembershipService(store))


def get_chart_service(store: DocumentStore = Depends(get_document_store)) -> ChartService:
    return ChartService(store)


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

@router.get(
    "/{code}",
    response_model=InvitationInfoResponse,
    summary="Get invitation details",
)
async def get_invitation(
    code: str,
    service: InviteService = Depends(get_invite_service),
    charts: ChartService = Depends(get_chart_service),
    settings: Settings = Depends(get_settings),
) -> InvitationInfoResponse:
    """
    Public endpoint used by the invite signup page.

    - 404 if the code is unknown
    - 400 if the invite was already accepted or has expired
    """
    invite = await service.get_invite(code)
    chart = await charts.load(invite.organization_id)
    return InvitationInfoResponse(
        code=code,
        email=invite.email,
        organization_id=invite.organization_id,
        organization_name=(chart or {}).get("name") or settings.DEFAULT_ORGANIZATION_NAME,
        organization_code=invite.organization_code,
        expires_at=invite.expires_at,
        status=invite.status,
    )


# ---------------------------------------------------------------------------
# Accept
# ---------------------------------------------------------------------------

@router.post(
    "/{code}/accept",
    response_model=MembershipRecord,
    summary="Accept an invitation",
)
async def accept_invitation(
    code: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: InviteService = Depends(get_invite_service),
) -> MembershipRecord:
    """Join the invite's organization as a member and mark the invite used."""
    fields = await service.accept_invite(code, current_user.id, current_user.email)
    return MembershipRecord.model_validate(fields)
