"""
Organization setup save flow.

serialize -> save chart -> register organization code -> invite all
(best effort) -> mark setup complete. Each step is awaited in order; there
is no transaction across them, so a failure after the chart write leaves
the chart saved.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from orgflow.core.config import Settings
from orgflow.core.exceptions import AuthError, ForbiddenError, ValidationError
from orgflow.schemas.auth import CurrentUser
from orgflow.schemas.chart import ChartSaveResult, InviteOutcome, PersonnelNode
from orgflow.services.chart_service import ChartService, build_chart_document, deserialize, serialize
from orgflow.services.invite_service import InviteService
from orgflow.services.membership_service import MembershipService, generate_organization_code

logger = logging.getLogger(__name__)


class OrganizationSetupService:
    """Runs the chart save flow for an organization creator."""

    def __init__(
        self,
        charts: ChartService,
        invites: InviteService,
        membership: MembershipService,
        settings: Settings,
    ) -> None:
        self.charts = charts
        self.invites = invites
        self.membership = membership
        self.settings = settings

    async def ensure_can_edit(
        self,
        organization_id: str,
        chart: Mapping[str, Any] | None,
        user: CurrentUser,
    ) -> None:
        """
        Only the chart's creator or an admin of the organization may edit it.

        A chart that does not exist yet may be created by anyone signed in.
        """
        if chart is None or chart.get("createdBy") == user.id:
            return
        membership = await self.membership.get_membership(user.id)
        if (
            membership is None
            or membership.organization_id != organization_id
            or membership.role != "admin"
        ):
            raise ForbiddenError(
                "Only organization admins can edit the organization chart"
            )

    async def save_chart(
        self,
        organization_id: str,
        name: str,
        nodes: Iterable[Mapping[str, Any]],
        edges: Iterable[Mapping[str, Any]],
        user: CurrentUser | None,
        origin: str | None = None,
        previous_version: int | None = None,
    ) -> ChartSaveResult:
        """
        Save the chart and run the follow-up steps.

        Raises:
            AuthError: If no user is signed in.
            ForbiddenError: If the user may not edit an existing chart.
            ValidationError: If the chart has no personnel node with an email.
            PersistenceError: If the chart or the user status cannot be written.
        """
        if user is None or not user.id:
            raise AuthError("You must be logged in to save the organization chart")

        graph = deserialize(serialize(nodes, edges))
        if not any(isinstance(n, PersonnelNode) and n.data.email.strip() for n in graph.nodes):
            raise ValidationError(
                "You must add at least one team member with an email address",
                code="NO_INVITEES",
            )

        pruned = graph.prune_invalid_edges()
        if pruned:
            logger.info("Pruned %d self-loop or dangling edges before save", len(pruned))
        for node_id, field, missing in graph.dangling_references():
            logger.warning("Node %s has %s pointing at unknown node %s", node_id, field, missing)

        previous = await self.charts.load(organization_id)
        await self.ensure_can_edit(organization_id, previous, user)
        organization_code = (previous or {}).get("organizationCode") or generate_organization_code()
        organization_name = name.strip() or (previous or {}).get("name") or self.settings.DEFAULT_ORGANIZATION_NAME

        document = build_chart_document(
            graph,
            name=organization_name,
            user_id=user.id,
            organization_code=organization_code,
            previous=previous,
        )
        saved = await self.charts.save(
            organization_id, document, user.id, previous_version=previous_version
        )

        await self.membership.register_organization_code(
            organization_code, organization_id, organization_name, user.id
        )

        outcomes = await self.invites.invite_all(
            organization_id,
            organization_name,
            organization_code,
            graph.nodes,
            acting_user_id=user.id,
            acting_user_email=user.email,
            origin=origin,
        )

        await self.membership.mark_organization_setup_complete(
            user.id, organization_id, organization_code
        )

        return ChartSaveResult(
            organization_id=organization_id,
            organization_code=organization_code,
            version=saved["metadata"]["version"],
            invites=outcomes,
            failed_invites=[o for o in outcomes if not o.success],
        )

    async def retry_invites(
        self,
        organization_id: str,
        emails: Iterable[str],
        user: CurrentUser,
        origin: str | None = None,
    ) -> list[InviteOutcome]:
        """Re-send invites to selected emails from an earlier outcome list."""
        chart = await self.charts.load(organization_id)
        if chart is None:
            raise ValidationError("Save the organization chart before sending invites", code="CHART_NOT_FOUND")
        await self.ensure_can_edit(organization_id, chart, user)
        return await self.invites.send_invites(
            organization_id,
            chart.get("name") or self.settings.DEFAULT_ORGANIZATION_NAME,
            chart.get("organizationCode") or "",
            emails,
            user.id,
            origin,
        )
