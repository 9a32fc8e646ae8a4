"""
SQLAlchemy ORM models.

All models imported here to ensure they are registered with Base.metadata.
"""

from orgflow.models.base import Base, TimestampMixin
from orgflow.models.document import Document

__all__ = [
    "Base",
    "TimestampMixin",
    "Document",
]
