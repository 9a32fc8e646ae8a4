"""
Organization chart persistence.

Converts the in-memory graph to the stored document layout and back, and
reads/writes organizations/{organization_id}. The store rejects missing
values, so every optional field is written as an explicit null and every
list field as a list.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

import pydantic
from pydantic import BaseModel, TypeAdapter

from orgflow.chart.graph import ChartGraph
from orgflow.core.exceptions import PersistenceError, StoreError, ValidationError
from orgflow.schemas.chart import (
    RELATIONSHIP_BY_KIND,
    Edge,
    Node,
    default_edge_style,
)
from orgflow.services.document_store import ORGANIZATIONS, SERVER_TIMESTAMP, DocumentStore

logger = logging.getLogger(__name__)


class _Undefined:
    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False


UNDEFINED: Any = _Undefined()

_node_adapter: TypeAdapter[Any] = TypeAdapter(Node)


# ---------------------------------------------------------------------------
# Normalization helpers
# ---------------------------------------------------------------------------

def clean_undefined(value: Any) -> Any:
    """Recursively replace UNDEFINED (and None) with None; models are dumped first."""
    if value is UNDEFINED or value is None:
        return None
    if isinstance(value, BaseModel):
        return clean_undefined(value.model_dump(by_alias=True))
    if isinstance(value, Mapping):
        return {str(k): clean_undefined(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [clean_undefined(v) for v in value]
    return value


def _as_mapping(value: Any) -> Mapping[str, Any]:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True)
    if isinstance(value, Mapping):
        return value
    return {}


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return [v for v in value if v is not UNDEFINED]
    return []


def _missing(value: Any) -> bool:
    return value is None or value is UNDEFINED


def _value(value: Any, default: Any) -> Any:
    return default if _missing(value) else value


def _text(value: Any, default: str = "") -> str:
    return default if _missing(value) else str(value)


def _choice(value: Any, default: str) -> str:
    # an empty string is not one of the allowed choices
    return _text(value) or default


def _optional(value: Any) -> Any:
    return None if value is UNDEFINED else value


def _position(value: Any) -> dict[str, float]:
    raw = _as_mapping(value)
    x, y = raw.get("x"), raw.get("y")
    return {
        "x": float(x) if isinstance(x, (int, float)) else 0.0,
        "y": float(y) if isinstance(y, (int, float)) else 0.0,
    }


def _personnel_data(raw: Mapping[str, Any]) -> dict[str, Any]:
    proficiencies = _as_mapping(raw.get("proficiencies"))
    availability = _as_mapping(raw.get("availability"))
    day_availability = availability.get("dayAvailability")
    return {
        "name": _text(raw.get("name")),
        "email": _text(raw.get("email")),
        "positionTitle": _text(raw.get("positionTitle", raw.get("position"))),
        "timezone": _text(raw.get("timezone"), "UTC"),
        "proficiencies": {
            "languages": _as_list(proficiencies.get("languages")),
            "frameworks": _as_list(proficiencies.get("frameworks")),
            "primarySkills": _as_list(proficiencies.get("primarySkills")),
        },
        "teamConnections": _as_list(raw.get("teamConnections")),
        "reportsTo": _optional(raw.get("reportsTo")),
        "isObserver": bool(raw.get("isObserver")),
        "isAdmin": bool(raw.get("isAdmin")),
        "availability": {
            "status": _choice(availability.get("status"), "available"),
            "dayAvailability": dict(day_availability) if isinstance(day_availability, Mapping) else {},
            "notes": _text(availability.get("notes")),
        },
        "inviteStatus": _choice(raw.get("inviteStatus"), "pending"),
    }


def _annotation_data(raw: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "text": _text(raw.get("text")),
        "color": _optional(raw.get("color")),
    }


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def serialize_node(node: Any) -> dict[str, Any]:
    raw = _as_mapping(node)
    kind = _choice(raw.get("kind") or raw.get("type"), "personnel")
    data = _as_mapping(raw.get("data"))
    return {
        "id": _text(raw.get("id")) or str(uuid.uuid4()),
        "kind": kind,
        "position": _position(raw.get("position")),
        "data": _annotation_data(data) if kind == "annotation" else _personnel_data(data),
    }


def serialize_edge(edge: Any) -> dict[str, Any]:
    raw = _as_mapping(edge)
    kind = _choice(raw.get("kind") or raw.get("type"), "default")
    data = _as_mapping(raw.get("data"))
    style = _as_mapping(raw.get("style"))
    default_style = default_edge_style(kind)
    return {
        "id": _text(raw.get("id")) or str(uuid.uuid4()),
        "source": _text(raw.get("source")),
        "target": _text(raw.get("target")),
        "sourceHandle": _optional(raw.get("sourceHandle")),
        "targetHandle": _optional(raw.get("targetHandle")),
        "kind": kind,
        "animated": bool(raw.get("animated")),
        "data": {
            "relationshipType": _choice(
                data.get("relationshipType"), RELATIONSHIP_BY_KIND.get(kind, "collaborator")
            ),
        },
        "style": {
            "stroke": _text(style.get("stroke"), default_style.stroke),
            "strokeWidth": _value(style.get("strokeWidth"), default_style.stroke_width),
        },
    }


def serialize(nodes: Iterable[Any], edges: Iterable[Any]) -> dict[str, Any]:
    """Normalize nodes and edges into {"nodes": [...], "edges": [...]} with no undefined values."""
    return clean_undefined({
        "nodes": [serialize_node(n) for n in nodes],
        "edges": [serialize_edge(e) for e in edges],
    })


def deserialize(document: Mapping[str, Any]) -> ChartGraph:
    """
    Rebuild a ChartGraph from a stored chart document.

    Edges stored with the generic "default" kind are read back as team links.
    """
    try:
        nodes = [
            _node_adapter.validate_python(serialize_node(n))
            for n in _as_list(document.get("nodes"))
        ]
        edges = []
        for raw in _as_list(document.get("edges")):
            cleaned = serialize_edge(raw)
            if cleaned["kind"] not in RELATIONSHIP_BY_KIND:
                cleaned["kind"] = "team"
            edges.append(Edge.model_validate(cleaned))
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Malformed organization chart: {exc}", code="INVALID_CHART") from exc
    return ChartGraph(nodes, edges)


def build_chart_document(
    graph: ChartGraph,
    *,
    name: str,
    user_id: str,
    organization_code: str | None = None,
    previous: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Assemble the organizations/{id} payload for a graph, keeping creation fields."""
    previous = previous or {}
    document = serialize(graph.nodes, graph.edges)
    document.update({
        "name": name,
        "organizationCode": organization_code or previous.get("organizationCode"),
        "createdBy": previous.get("createdBy") or user_id,
        "createdAt": previous.get("createdAt"),
        "metadata": dict(_as_mapping(previous.get("metadata"))),
    })
    return document


# ---------------------------------------------------------------------------
# Store access
# ---------------------------------------------------------------------------

class ChartService:
    """Reads and writes chart documents."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def load(self, organization_id: str) -> dict[str, Any] | None:
        """Return the stored chart, or None when the organization has none yet."""
        if not organization_id:
            raise ValidationError("Missing required parameter: organizationId")
        try:
            document = await self.store.get(ORGANIZATIONS, organization_id)
        except StoreError as exc:
            raise PersistenceError(f"Failed to load organization chart: {exc.message}") from exc

        if document is None:
            logger.info("No organization chart found for %s", organization_id)
            return None
        logger.info(
            "Loaded organization chart %s: nodes=%d edges=%d",
            organization_id,
            len(document.get("nodes") or []),
            len(document.get("edges") or []),
        )
        return document

    async def save(
        self,
        organization_id: str,
        document: Mapping[str, Any],
        user_id: str,
        previous_version: int | None = None,
    ) -> dict[str, Any]:
        """
        Merge-write a chart document.

        - Stamps updatedAt, and createdAt when the document has none
        - Sets metadata.version to the previous version + 1
        - Never checks the stored version; the last writer wins

        Returns the payload handed to the store.
        """
        if not organization_id or not user_id:
            raise ValidationError("Missing required parameters: organizationId or userId")

        cleaned = clean_undefined(document)
        metadata = dict(cleaned.get("metadata") or {})
        if previous_version is None:
            previous_version = int(metadata.get("version") or 0)

        payload = {
            **cleaned,
            "createdAt": cleaned.get("createdAt") or SERVER_TIMESTAMP,
            "updatedAt": SERVER_TIMESTAMP,
            "metadata": {
                **metadata,
                "version": previous_version + 1,
                "lastModifiedBy": user_id,
            },
        }

        logger.info(
            "Saving organization chart %s: version=%d nodes=%d edges=%d",
            organization_id,
            payload["metadata"]["version"],
            len(payload.get("nodes") or []),
            len(payload.get("edges") or []),
        )
        try:
            await self.store.set(ORGANIZATIONS, organization_id, payload, merge=True)
        except StoreError as exc:
            raise PersistenceError(f"Failed to save organization chart: {exc.message}") from exc
        return payload
