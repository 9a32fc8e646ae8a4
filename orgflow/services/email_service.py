"""
Email delivery via Resend.

Invite emails use the hosted template when EMAIL_TEMPLATE_ID is set and the
built-in HTML body otherwise.
"""

from __future__ import annotations

import asyncio
import html
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import resend

from orgflow.core.config import Settings
from orgflow.core.exceptions import EmailError, ValidationError

logger = logging.getLogger(__name__)


class EmailSender(Protocol):
    async def send(
        self,
        to: str,
        *,
        subject: str | None = None,
        html: str | None = None,
        template_id: str | None = None,
        dynamic_data: Mapping[str, Any] | None = None,
    ) -> str: ...


# ---------------------------------------------------------------------------
# Invite content
# ---------------------------------------------------------------------------

def build_invite_links(invite_code: str, origin: str | None, fallback_origin: str) -> dict[str, str]:
    """Signup link carries the invite code; login link is for existing accounts."""
    base = (origin or fallback_origin).rstrip("/")
    return {
        "signup_url": f"{base}/signup-invite/{invite_code}",
        "login_url": f"{base}/login",
    }


def invite_subject(organization_name: str) -> str:
    return f"You've been invited to join {organization_name} on Workflow"


def render_invite_html(
    organization_name: str,
    invite_code: str,
    organization_code: str,
    signup_url: str,
    login_url: str,
) -> str:
    """Fallback invite body used when no hosted template is configured."""
    org = html.escape(organization_name)
    return f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h2>You've been invited to join {org}</h2>
            <p>You've been invited to join the {org} team on Workflow.</p>
            <p>Your organization code is: <strong>{html.escape(organization_code)}</strong></p>
            <p>Your personal invite code is: <strong>{html.escape(invite_code)}</strong></p>
            <p>Click the button below to create your account and join the organization:</p>
            <div style="text-align: center; margin: 30px 0;">
                <a href="{signup_url}"
                   style="background-color:#4CAF50;color:white;padding:12px 24px;
                          text-decoration:none;border-radius:4px;font-weight:bold;">
                    Join {org}
                </a>
            </div>
            <p>Or copy and paste this URL into your browser:</p>
            <p>{signup_url}</p>
            <p>Already have an account? <a href="{login_url}">Log in here</a>
               and use your organization code to join.</p>
            <hr style="margin: 30px 0; border: none; border-top: 1px solid #eee;" />
            <p style="color: #777; font-size: 12px;">
                If you didn't expect this invitation, you can ignore this email.
            </p>
        </div>
    """


class InviteMailer:
    """Builds invite messages and hands them to an EmailSender."""

    def __init__(self, sender: EmailSender, settings: Settings) -> None:
        self.sender = sender
        self.settings = settings

    async def send_invite(
        self,
        email: str,
        invite_code: str,
        organization_name: str,
        organization_code: str,
        origin: str | None = None,
    ) -> str:
        """
        Send one invite.

        Args:
            email: Recipient email address.
            invite_code: One-time code for the signup link.
            organization_name: Display name of the organization.
            organization_code: Shared code existing users can join with.
            origin: Web origin of the caller; FRONTEND_URL when missing.

        Returns:
            Provider message id.

        Raises:
            ValidationError: If a required parameter is empty.
            EmailError: If delivery fails.
        """
        if not email or not invite_code or not organization_name or not organization_code:
            raise ValidationError("Missing required invite email parameters")

        links = build_invite_links(invite_code, origin, self.settings.FRONTEND_URL)
        dynamic_data = {
            "organization_name": organization_name,
            "invite_code": invite_code,
            "organization_code": organization_code,
            **links,
        }

        if self.settings.EMAIL_TEMPLATE_ID:
            return await self.sender.send(
                email,
                template_id=self.settings.EMAIL_TEMPLATE_ID,
                dynamic_data=dynamic_data,
            )
        return await self.sender.send(
            email,
            subject=invite_subject(organization_name),
            html=render_invite_html(
                organization_name, invite_code, organization_code, **links
            ),
            dynamic_data=dynamic_data,
        )


# ---------------------------------------------------------------------------
# Resend transport
# ---------------------------------------------------------------------------

class ResendEmailSender:
    """EmailSender backed by the Resend API."""

    def __init__(self, api_key: str, from_email: str) -> None:
        self.api_key = api_key
        self.from_email = from_email

    def _send_sync(self, params: dict[str, Any]) -> str:
        resend.api_key = self.api_key
        response = resend.Emails.send(params)
        return response["id"]

    async def send(
        self,
        to: str,
        *,
        subject: str | None = None,
        html: str | None = None,
        template_id: str | None = None,
        dynamic_data: Mapping[str, Any] | None = None,
    ) -> str:
        params: dict[str, Any] = {"from": self.from_email, "to": [to]}
        if template_id:
            params["template"] = {"id": template_id, "variables": dict(dynamic_data or {})}
        else:
            params["subject"] = subject or ""
            params["html"] = html or ""

        try:
            message_id = await asyncio.to_thread(self._send_sync, params)
        except Exception as exc:
            logger.warning("Resend delivery to %s failed: %s", to, exc)
            raise EmailError(f"Failed to send email to {to}: {exc}") from exc

        logger.info("Email sent to %s: message_id=%s", to, message_id)
        return message_id
