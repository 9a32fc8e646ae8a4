"""
Invite business logic.

Issues one-time invite codes for every personnel node with an email,
emails them concurrently and reports a per-invitee outcome. One failed
invite never blocks or fails its siblings.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import Any

from orgflow.core.config import Settings
from orgflow.core.exceptions import (
    InviteError,
    NotFoundError,
    OrgFlowError,
    PersistenceError,
    StoreError,
    ValidationError,
)
from orgflow.schemas.chart import InviteOutcome, PersonnelNode
from orgflow.schemas.organization import InviteRecord
from orgflow.services.document_store import INVITES, DocumentStore
from orgflow.services.email_service import InviteMailer
from orgflow.services.membership_service import CODE_ALPHABET, MembershipService

logger = logging.getLogger(__name__)

INVITE_CODE_LENGTH = 8


# ---------------------------------------------------------------------------
# Codes
# ---------------------------------------------------------------------------

def generate_invite_code(length: int = INVITE_CODE_LENGTH) -> str:
    """Uniform random [A-Z0-9] code. Collisions are not checked."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def invite_recipients(nodes: Iterable[Any], acting_user_email: str | None) -> list[str]:
    """Emails of personnel nodes to invite, excluding the acting user, first occurrence wins."""
    own = (acting_user_email or "").strip().lower()
    seen: set[str] = set()
    recipients: list[str] = []
    for node in nodes:
        if not isinstance(node, PersonnelNode):
            continue
        email = node.data.email.strip()
        key = email.lower()
        if not email or key == own or key in seen:
            continue
        seen.add(key)
        recipients.append(email)
    return recipients


class InviteService:
    """Handles invite creation, delivery and acceptance."""

    def __init__(
        self,
        store: DocumentStore,
        mailer: InviteMailer,
        settings: Settings,
        membership: MembershipService | None = None,
    ) -> None:
        self.store = store
        self.mailer = mailer
        self.settings = settings
        self.membership = membership or MembershipService(store)

    # -----------------------------------------------------------------------
    # Fan-out
    # -----------------------------------------------------------------------

    async def invite_all(
        self,
        organization_id: str,
        organization_name: str,
        organization_code: str,
        nodes: Iterable[Any],
        acting_user_id: str,
        acting_user_email: str | None,
        origin: str | None = None,
    ) -> list[InviteOutcome]:
        """
        Invite every personnel node with an email other than the actor's.

        All invites run concurrently and are awaited until each settles.
        Only precondition violations raise; delivery failures are returned
        as unsuccessful outcomes.
        """
        recipients = invite_recipients(nodes, acting_user_email)
        return await self.send_invites(
            organization_id,
            organization_name,
            organization_code,
            recipients,
            acting_user_id,
            origin,
        )

    async def send_invites(
        self,
        organization_id: str,
        organization_name: str,
        organization_code: str,
        emails: Iterable[str],
        acting_user_id: str,
        origin: str | None = None,
    ) -> list[InviteOutcome]:
        if not organization_id or not acting_user_id:
            raise ValidationError("Missing required parameters: organizationId or userId")

        emails = list(emails)
        logger.info("Sending %d invitations for org_id=%s", len(emails), organization_id)
        results = await asyncio.gather(
            *(
                self._invite_one(
                    email,
                    organization_id,
                    organization_name,
                    organization_code,
                    acting_user_id,
                    origin,
                )
                for email in emails
            ),
            return_exceptions=True,
        )

        outcomes: list[InviteOutcome] = []
        for email, result in zip(emails, results):
            if isinstance(result, InviteOutcome):
                outcomes.append(result)
            else:
                # Unexpected errors still map to a failed outcome for that invitee
                logger.error("Invite task for %s crashed: %r", email, result)
                outcomes.append(InviteOutcome(email=email, success=False, error=str(result)))

        failed = [o for o in outcomes if not o.success]
        if failed:
            logger.warning(
                "%d of %d invitations failed to send: %s",
                len(failed),
                len(outcomes),
                [o.email for o in failed],
            )
        return outcomes

    async def _invite_one(
        self,
        email: str,
        organization_id: str,
        organization_name: str,
        organization_code: str,
        acting_user_id: str,
        origin: str | None,
    ) -> InviteOutcome:
        invite_code = generate_invite_code()
        created_at = datetime.now(UTC)
        record = InviteRecord(
            email=email,
            organization_id=organization_id,
            organization_code=organization_code,
            created_by=acting_user_id,
            created_at=created_at,
            expires_at=created_at + timedelta(days=self.settings.INVITE_EXPIRY_DAYS),
            status="pending",
        )
        try:
            await self.store.set(
                INVITES,
                invite_code,
                record.model_dump(by_alias=True, exclude={"accepted_at", "accepted_by"}),
            )
            logger.info("Sending invitation to %s with code %s", email, invite_code)
            await self.mailer.send_invite(
                email, invite_code, organization_name, organization_code, origin
            )
        except OrgFlowError as exc:
            logger.warning("Failed to send invite to %s: %s", email, exc.message)
            return InviteOutcome(email=email, success=False, invite_code=invite_code, error=exc.message)
        return InviteOutcome(email=email, success=True, invite_code=invite_code)

    # -----------------------------------------------------------------------
    # Lookup / accept
    # -----------------------------------------------------------------------

    async def get_invite(self, code: str, now: datetime | None = None) -> InviteRecord:
        """
        Load a usable invite.

        Raises NotFoundError if missing, InviteError if already accepted or
        past expiresAt.
        """
        if not code:
            raise ValidationError("Missing required parameter: inviteCode")
        try:
            document = await self.store.get(INVITES, code)
        except StoreError as exc:
            raise PersistenceError(f"Failed to load invite: {exc.message}") from exc
        if document is None:
            raise NotFoundError("Invitation not found or has expired", code="INVITE_NOT_FOUND")

        invite = InviteRecord.model_validate(document)
        if invite.status == "accepted":
            raise InviteError("This invitation has already been used", code="INVITE_USED")
        if invite.status == "expired" or invite.expires_at < (now or datetime.now(UTC)):
            raise InviteError("This invitation has expired", code="INVITE_EXPIRED")
        return invite

    async def accept_invite(self, code: str, user_id: str, user_email: str | None = None) -> dict[str, Any]:
        """Mark the invite accepted and join the user to its organization."""
        invite = await self.get_invite(code)
        if user_email and user_email.strip().lower() != invite.email.strip().lower():
            raise InviteError(
                "Invitation was sent to a different email address", code="EMAIL_MISMATCH"
            )

        membership = await self.membership.join_organization(
            user_id,
            invite.organization_id,
            organization_code=invite.organization_code,
            is_first_login=True,
        )
        try:
            await self.store.update(
                INVITES,
                code,
                {"status": "accepted", "acceptedAt": datetime.now(UTC), "acceptedBy": user_id},
            )
        except StoreError as exc:
            raise PersistenceError(f"Failed to update invite: {exc.message}") from exc
        return membership
