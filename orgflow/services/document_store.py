"""
Document store.

A small get/set/update interface over named collections. Writes with
merge=True deep-merge nested mappings into the stored document; lists and
scalars are replaced. SERVER_TIMESTAMP placeholders are resolved to the
current UTC time when the write happens.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, date, datetime
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orgflow.core.exceptions import NotFoundError, StoreError
from orgflow.models.document import Document

logger = logging.getLogger(__name__)

ORGANIZATIONS = "organizations"
INVITES = "invites"
USERS = "users"
ORGANIZATION_CODES = "organizationCodes"


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP: Any = _ServerTimestamp()


class DocumentStore(Protocol):
    async def get(self, collection: str, key: str) -> dict[str, Any] | None: ...

    async def set(
        self,
        collection: str,
        key: str,
        data: Mapping[str, Any],
        *,
        merge: bool = False,
    ) -> None: ...

    async def update(self, collection: str, key: str, fields: Mapping[str, Any]) -> None: ...


# ---------------------------------------------------------------------------
# Helpers shared by store implementations
# ---------------------------------------------------------------------------

def encode_document(value: Any, now: datetime) -> Any:
    """Resolve SERVER_TIMESTAMP and turn dates into ISO strings for JSON storage."""
    if value is SERVER_TIMESTAMP:
        return now.isoformat()
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): encode_document(v, now) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_document(v, now) for v in value]
    return value


def deep_merge(existing: Mapping[str, Any], incoming: Mapping[str, Any]) -> dict[str, Any]:
    """Return existing with incoming merged in; nested mappings merge recursively."""
    merged = dict(existing)
    for key, value in incoming.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


# ---------------------------------------------------------------------------
# SQLAlchemy implementation
# ---------------------------------------------------------------------------

class SqlDocumentStore:
    """DocumentStore backed by the documents table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, collection: str, key: str) -> dict[str, Any] | None:
        try:
            async with self._session_factory() as session:
                row = await session.get(Document, (collection, key))
                return dict(row.data) if row is not None else None
        except SQLAlchemyError as exc:
            logger.error("Document read failed: %s/%s: %s", collection, key, exc)
            raise StoreError(f"Failed to read {collection}/{key}: {exc}") from exc

    async def set(
        self,
        collection: str,
        key: str,
        data: Mapping[str, Any],
        *,
        merge: bool = False,
    ) -> None:
        payload = encode_document(data, datetime.now(UTC))
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    row = await session.get(Document, (collection, key), with_for_update=True)
                    if row is None:
                        session.add(Document(collection=collection, key=key, data=payload))
                    elif merge:
                        row.data = deep_merge(row.data, payload)
                    else:
                        row.data = payload
        except SQLAlchemyError as exc:
            logger.error("Document write failed: %s/%s: %s", collection, key, exc)
            raise StoreError(f"Failed to write {collection}/{key}: {exc}") from exc

    async def update(self, collection: str, key: str, fields: Mapping[str, Any]) -> None:
        """Replace top-level fields of an existing document."""
        payload = encode_document(fields, datetime.now(UTC))
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    row = await session.get(Document, (collection, key), with_for_update=True)
                    if row is None:
                        raise NotFoundError(
                            f"Document {collection}/{key} does not exist",
                            code="DOCUMENT_NOT_FOUND",
                        )
                    row.data = {**row.data, **payload}
        except SQLAlchemyError as exc:
            logger.error("Document update failed: %s/%s: %s", collection, key, exc)
            raise StoreError(f"Failed to update {collection}/{key}: {exc}") from exc
