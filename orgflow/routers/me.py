"""
Current user endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from orgflow.core.dependencies import get_current_user, get_document_store
from orgflow.schemas.auth import CurrentUser
from orgflow.schemas.organization import MembershipRecord
from orgflow.services.document_store import DocumentStore
from orgflow.services.membership_service import MembershipService

router = APIRouter()


def get_membership_service(
    store: DocumentStore = Depends(get_document_store),
) -> MembershipService:
    return MembershipService(store)


@router.get(
    "/membership",
    response_model=MembershipRecord,
    summary="Get the current user's organization membership",
)
async def get_my_membership(
    current_user: CurrentUser = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service),
) -> MembershipRecord:
    """Users without a record have not created or joined an organization yet."""
    membership = await service.get_membership(current_user.id)
    return membership or MembershipRecord()
