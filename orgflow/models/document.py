"""
Document ORM model.

Every collection (organizations, invites, users, organizationCodes) lives in
one table keyed by (collection, key) with a JSON payload.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from orgflow.models.base import Base, TimestampMixin

JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class Document(Base, TimestampMixin):
    """A schemaless document addressed by collection and key."""

    __tablename__ = "documents"

    collection: Mapped[str] = mapped_column(String(100), primary_key=True)
    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSONDocument, nullable=False, default=dict)

    def __repr__(self) -> str:
        return f"<Document collection={self.collection!r} key={self.key!r}>"
