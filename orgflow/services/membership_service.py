"""
Organization membership status.

Flips a user's users/{user_id} record once they created or joined an
organization so route guards unlock the dashboard phases.
"""

from __future__ import annotations

import logging
import re
import secrets
from typing import Any

from orgflow.core.exceptions import NotFoundError, PersistenceError, StoreError, ValidationError
from orgflow.schemas.organization import MembershipRecord, OrganizationCodeRecord
from orgflow.services.document_store import (
    ORGANIZATION_CODES,
    SERVER_TIMESTAMP,
    USERS,
    DocumentStore,
)

logger = logging.getLogger(__name__)

CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
ORGANIZATION_CODE_LENGTH = 10

_ORGANIZATION_CODE_RE = re.compile(rf"^[A-Z0-9]{{{ORGANIZATION_CODE_LENGTH}}}$")


def generate_organization_code(length: int = ORGANIZATION_CODE_LENGTH) -> str:
    """Code shared by all members of one organization."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def normalize_organization_code(code: str) -> str:
    return code.strip().upper()


def is_valid_organization_code(code: str) -> bool:
    return bool(_ORGANIZATION_CODE_RE.match(code))


class MembershipService:
    """Handles membership record updates."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    # -----------------------------------------------------------------------
    # Creator path
    # -----------------------------------------------------------------------

    async def mark_organization_setup_complete(
        self,
        user_id: str,
        organization_id: str,
        organization_code: str | None = None,
    ) -> dict[str, Any]:
        """
        Mark the user as the admin creator of a set-up organization.

        Idempotent: repeated calls produce the same record apart from
        metadata.lastActiveAt.
        """
        if not user_id or not organization_id:
            raise ValidationError("Missing required parameters: userId or organizationId")

        fields: dict[str, Any] = {
            "organizationId": organization_id,
            "hasOrganization": True,
            "role": "admin",
            "organizationRole": "creator",
            "isCreator": True,
            "isFirstLogin": False,
            "organizationChartCompleted": True,
            "metadata": {"lastActiveAt": SERVER_TIMESTAMP},
        }
        if organization_code:
            fields["organizationCode"] = organization_code

        await self._write(user_id, fields)
        logger.info("Organization setup complete: user_id=%s org_id=%s", user_id, organization_id)
        return fields

    # -----------------------------------------------------------------------
    # Member path
    # -----------------------------------------------------------------------

    async def join_organization(
        self,
        user_id: str,
        organization_id: str,
        organization_code: str | None = None,
        is_first_login: bool = False,
    ) -> dict[str, Any]:
        """Attach a user to an existing organization as a regular member."""
        if not user_id or not organization_id:
            raise ValidationError("Missing required parameters: userId or organizationId")

        fields: dict[str, Any] = {
            "organizationId": organization_id,
            "organizationCode": organization_code,
            "hasOrganization": True,
            "role": "member",
            "organizationRole": "member",
            "isCreator": False,
            "isFirstLogin": is_first_login,
            "metadata": {"lastActiveAt": SERVER_TIMESTAMP},
        }
        await self._write(user_id, fields)
        logger.info("User joined organization: user_id=%s org_id=%s", user_id, organization_id)
        return fields

    async def get_membership(self, user_id: str) -> MembershipRecord | None:
        if not user_id:
            raise ValidationError("Missing required parameter: userId")
        try:
            document = await self.store.get(USERS, user_id)
        except StoreError as exc:
            raise PersistenceError(f"Failed to load user status: {exc.message}") from exc
        if document is None:
            return None
        return MembershipRecord.model_validate(document)

    # -----------------------------------------------------------------------
    # Organization codes
    # -----------------------------------------------------------------------

    async def register_organization_code(
        self,
        code: str,
        organization_id: str,
        organization_name: str,
        user_id: str,
    ) -> None:
        """Index the shared organization code so existing users can join with it."""
        try:
            await self.store.set(
                ORGANIZATION_CODES,
                code,
                {
                    "organizationId": organization_id,
                    "organizationName": organization_name,
                    "createdBy": user_id,
                    "createdAt": SERVER_TIMESTAMP,
                    "updatedAt": SERVER_TIMESTAMP,
                },
                merge=True,
            )
        except StoreError as exc:
            raise PersistenceError(f"Failed to register organization code: {exc.message}") from exc

    async def resolve_organization_code(self, code: str) -> OrganizationCodeRecord:
        """
        Look up the organization that owns a shared code.

        Malformed codes are rejected before the store is queried.
        """
        code = normalize_organization_code(code)
        if not is_valid_organization_code(code):
            raise ValidationError(
                f"Organization codes are {ORGANIZATION_CODE_LENGTH} letters or digits",
                code="INVALID_ORG_CODE",
            )
        try:
            document = await self.store.get(ORGANIZATION_CODES, code)
        except StoreError as exc:
            raise PersistenceError(f"Failed to look up organization code: {exc.message}") from exc
        if document is None:
            raise NotFoundError("Invalid organization code", code="ORG_CODE_NOT_FOUND")
        return OrganizationCodeRecord.model_validate(document)

    async def join_by_code(self, user_id: str, code: str) -> dict[str, Any]:
        record = await self.resolve_organization_code(code)
        return await self.join_organization(
            user_id, record.organization_id, organization_code=normalize_organization_code(code)
        )

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    async def _write(self, user_id: str, fields: dict[str, Any]) -> None:
        try:
            await self.store.set(USERS, user_id, fields, merge=True)
        except StoreError as exc:
            raise PersistenceError(f"Failed to update user status: {exc.message}") from exc
