"""
Pytest configuration for OrgFlow backend tests.

Provides in-memory stand-ins for the document store, email sender, Redis and
LLM so services and routes can be tested without external services.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import httpx
import pytest

from orgflow.core.config import Settings
from orgflow.core.exceptions import EmailError, NotFoundError, StoreError
from orgflow.core.security import create_access_token
from orgflow.schemas.auth import CurrentUser
from orgflow.services.chart_service import ChartService
from orgflow.services.document_store import deep_merge, encode_document
from orgflow.services.email_service import InviteMailer
from orgflow.services.invite_service import InviteService
from orgflow.services.membership_service import MembershipService
from orgflow.services.setup_service import OrganizationSetupService


def pytest_configure(config):
    """Configure pytest-asyncio mode."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class InMemoryDocumentStore:
    """DocumentStore over a dict with the same merge and timestamp rules."""

    def __init__(self) -> None:
        self.documents: dict[tuple[str, str], dict[str, Any]] = {}
        self.fail_collections: set[str] = set()
        self.writes: list[tuple[str, str]] = []

    def _check(self, collection: str) -> None:
        if collection in self.fail_collections:
            raise StoreError(f"permission denied on {collection}")

    async def get(self, collection: str, key: str) -> dict[str, Any] | None:
        self._check(collection)
        document = self.documents.get((collection, key))
        return dict(document) if document is not None else None

    async def set(
        self,
        collection: str,
        key: str,
        data: Mapping[str, Any],
        *,
        merge: bool = False,
    ) -> None:
        self._check(collection)
        payload = encode_document(data, datetime.now(UTC))
        existing = self.documents.get((collection, key))
        if existing is not None and merge:
            payload = deep_merge(existing, payload)
        self.documents[(collection, key)] = payload
        self.writes.append((collection, key))

    async def update(self, collection: str, key: str, fields: Mapping[str, Any]) -> None:
        self._check(collection)
        existing = self.documents.get((collection, key))
        if existing is None:
            raise NotFoundError(f"Document {collection}/{key} does not exist", code="DOCUMENT_NOT_FOUND")
        self.documents[(collection, key)] = {**existing, **encode_document(fields, datetime.now(UTC))}
        self.writes.append((collection, key))

    def collection(self, name: str) -> dict[str, dict[str, Any]]:
        return {key: doc for (coll, key), doc in self.documents.items() if coll == name}


class FakeEmailSender:
    """Records sent messages; emails in fail_for raise EmailError."""

    def __init__(self, fail_for: set[str] | None = None, delay: float = 0.0) -> None:
        self.fail_for = fail_for or set()
        self.delay = delay
        self.sent: list[dict[str, Any]] = []

    async def send(
        self,
        to: str,
        *,
        subject: str | None = None,
        html: str | None = None,
        template_id: str | None = None,
        dynamic_data: Mapping[str, Any] | None = None,
    ) -> str:
        if self.delay:
            await asyncio.sleep(self.delay)
        if to in self.fail_for:
            raise EmailError(f"Failed to send email to {to}: mailbox unavailable")
        self.sent.append({
            "to": to,
            "subject": subject,
            "html": html,
            "template_id": template_id,
            "dynamic_data": dict(dynamic_data or {}),
        })
        return f"msg_{len(self.sent)}"


class FakeRedis:
    def __init__(self) -> None:
        self.keys: set[str] = set()

    async def exists(self, key: str) -> int:
        return int(key in self.keys)


class FakeCompletionClient:
    """Returns a canned reply and records the prompts it was given."""

    def __init__(self, reply: str = "") -> None:
        self.reply = reply
        self.calls: list[tuple[str, str]] = []

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        return self.reply


# ---------------------------------------------------------------------------
# Chart builders
# ---------------------------------------------------------------------------

def personnel(node_id: str, name: str = "", email: str = "", **data: Any) -> dict[str, Any]:
    return {
        "id": node_id,
        "kind": "personnel",
        "position": {"x": 0, "y": 0},
        "data": {"name": name, "email": email, **data},
    }


def annotation(node_id: str, text: str = "") -> dict[str, Any]:
    return {"id": node_id, "kind": "annotation", "position": {"x": 10, "y": 10}, "data": {"text": text}}


def edge(edge_id: str, source: str, target: str, kind: str = "team") -> dict[str, Any]:
    return {"id": edge_id, "source": source, "target": target, "kind": kind}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, EMAIL_TEMPLATE_ID="", FRONTEND_URL="https://app.example.com")


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def sender() -> FakeEmailSender:
    return FakeEmailSender()


@pytest.fixture
def membership(store) -> MembershipService:
    return MembershipService(store)


@pytest.fixture
def charts(store) -> ChartService:
    return ChartService(store)


@pytest.fixture
def invites(store, sender, settings, membership) -> InviteService:
    return InviteService(store, InviteMailer(sender, settings), settings, membership)


@pytest.fixture
def setup_service(charts, invites, membership, settings) -> OrganizationSetupService:
    return OrganizationSetupService(charts, invites, membership, settings)


@pytest.fixture
def creator() -> CurrentUser:
    return CurrentUser(id="user-creator", email="creator@example.com", email_verified=True)


@pytest.fixture
def redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def llm() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture
async def client(store, sender, settings, redis, llm):
    """ASGI client with every external collaborator replaced by a fake."""
    from orgflow.core import dependencies
    from orgflow.main import app

    app.dependency_overrides[dependencies.get_document_store] = lambda: store
    app.dependency_overrides[dependencies.get_email_sender] = lambda: sender
    app.dependency_overrides[dependencies.get_settings] = lambda: settings
    app.dependency_overrides[dependencies.get_redis] = lambda: redis
    app.dependency_overrides[dependencies.get_completion_client] = lambda: llm

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(user_id: str, email: str | None = None, jti: str | None = None) -> dict[str, str]:
    token = create_access_token(user_id, email=email, email_verified=True, jti=jti)
    return {"Authorization": f"Bearer {token}"}
