"""
Organization endpoints.

Chart load/save, invite retry and joining by organization code.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from orgflow.core.config import Settings
from orgflow.core.dependencies import (
    get_current_user,
    get_document_store,
    get_email_sender,
    get_request_origin,
    get_settings,
)
from orgflow.core.exceptions import NotFoundError
from orgflow.schemas.auth import CurrentUser
from orgflow.schemas.chart import ChartResponse, ChartSaveRequest, ChartSaveResult, InviteOutcome
from orgflow.schemas.organization import (
    InviteRetryRequest,
    JoinOrganizationRequest,
    MembershipRecord,
)
from orgflow.services.chart_service import ChartService
from orgflow.services.document_store import DocumentStore
from orgflow.services.email_service import EmailSender, InviteMailer
from orgflow.services.invite_service import InviteService
from orgflow.services.membership_service import MembershipService
from orgflow.services.setup_service import OrganizationSetupService

router = APIRouter()


def get_membership_service(
    store: DocumentStore = Depends(get_document_store),
) -> MembershipService:
    return MembershipService(store)


def get_setup_service(
    store: DocumentStore = Depends(get_document_store),
    sender: EmailSender = Depends(get_email_sender),
    settings: Settings = Depends(get_settings),
) -> OrganizationSetupService:
    """Dependency that wires the save flow from the request's collaborators."""
    membership = MembershipService(store)
    return OrganizationSetupService(
        charts=ChartService(store),
        invites=InviteService(store, InviteMailer(sender, settings), settings, membership),
        membership=membership,
        settings=settings,
    )


# ---------------------------------------------------------------------------
# Join by code
# ---------------------------------------------------------------------------

@router.post(
    "/join",
    response_model=MembershipRecord,
    summary="Join an organization with its shared code",
)
async def join_organization(
    data: JoinOrganizationRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service),
) -> MembershipRecord:
    """Attach the current user to the organization that owns the code as a member."""
    fields = await service.join_by_code(current_user.id, data.organization_code)
    return MembershipRecord.model_validate(fields)


# ---------------------------------------------------------------------------
# Chart
# ---------------------------------------------------------------------------

@router.get(
    "/{organization_id}/chart",
    response_model=ChartResponse,
    response_model_by_alias=True,
    summary="Get the organization chart",
)
async def get_chart(
    organization_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: OrganizationSetupService = Depends(get_setup_service),
) -> ChartResponse:
    chart = await service.charts.load(organization_id)
    if chart is None:
        raise NotFoundError("Organization chart not found", code="CHART_NOT_FOUND")
    await service.ensure_can_edit(organization_id, chart, current_user)
    return ChartResponse.model_validate({**chart, "organizationId": organization_id})


@router.put(
    "/{organization_id}/chart",
    response_model=ChartSaveResult,
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
    summary="Save the organization chart and invite its members",
)
async def save_chart(
    organization_id: str,
    data: ChartSaveRequest,
    current_user: CurrentUser = Depends(get_current_user),
    origin: str | None = Depends(get_request_origin),
    service: OrganizationSetupService = Depends(get_setup_service),
) -> ChartSaveResult:
    """
    Save the chart, then invite every team member with an email.

    - Invite failures are reported per email in failedInvites
    - The caller becomes the admin creator of the organization
    """
    return await service.save_chart(
        organization_id,
        data.name,
        data.nodes,
        data.edges,
        current_user,
        origin=origin,
        previous_version=data.version,
    )


# ---------------------------------------------------------------------------
# Invite retry
# ---------------------------------------------------------------------------

@router.post(
    "/{organization_id}/invites/retry",
    response_model=list[InviteOutcome],
    response_model_by_alias=True,
    summary="Re-send invites to selected emails",
)
async def retry_invites(
    organization_id: str,
    data: InviteRetryRequest,
    current_user: CurrentUser = Depends(get_current_user),
    origin: str | None = Depends(get_request_origin),
    service: OrganizationSetupService = Depends(get_setup_service),
) -> list[InviteOutcome]:
    return await service.retry_invites(
        organization_id, data.emails, current_user, origin=data.origin or origin
    )
