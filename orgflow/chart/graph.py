"""
In-memory organization chart graph.

Holds the nodes and edges of the chart being edited and exposes pure,
synchronous mutations. Nothing here touches the network.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

import pydantic
from pydantic import BaseModel

from orgflow.core.exceptions import ValidationError
from orgflow.schemas.chart import (
    RELATIONSHIP_BY_KIND,
    AnnotationNode,
    Edge,
    EdgeData,
    EdgeKind,
    NodeKind,
    PersonnelNode,
    Position,
    default_edge_style,
)

logger = logging.getLogger(__name__)

ChartNode = PersonnelNode | AnnotationNode


def new_id() -> str:
    return str(uuid.uuid4())


def merge_model(model: BaseModel, partial: Mapping[str, Any]) -> BaseModel:
    """
    Return a copy of model with partial merged in.

    Keys may be field names or camelCase aliases. Nested models are merged
    recursively; unknown keys are ignored. The result is re-validated.
    """
    fields = type(model).model_fields
    by_alias = {f.alias: name for name, f in fields.items() if f.alias}
    updates: dict[str, Any] = {}
    for key, value in partial.items():
        name = key if key in fields else by_alias.get(key)
        if name is None:
            logger.debug("Ignoring unknown field %r for %s", key, type(model).__name__)
            continue
        current = getattr(model, name)
        if isinstance(current, BaseModel) and isinstance(value, Mapping):
            value = merge_model(current, value)
        updates[name] = value
    try:
        return type(model).model_validate({**model.model_dump(), **updates})
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Invalid {type(model).__name__}: {exc}") from exc


class ChartGraph:
    """Canonical node/edge lists for one editor session."""

    def __init__(
        self,
        nodes: Iterable[ChartNode] = (),
        edges: Iterable[Edge] = (),
    ) -> None:
        self._nodes: dict[str, ChartNode] = {}
        self._edges: dict[str, Edge] = {}
        for node in nodes:
            if node.id in self._nodes:
                raise ValidationError(f"Duplicate node id {node.id!r}", code="DUPLICATE_NODE_ID")
            self._nodes[node.id] = node
        for edge in edges:
            if edge.id in self._edges:
                raise ValidationError(f"Duplicate edge id {edge.id!r}", code="DUPLICATE_EDGE_ID")
            self._edges[edge.id] = edge

    # -----------------------------------------------------------------------
    # Read access
    # -----------------------------------------------------------------------

    @property
    def nodes(self) -> list[ChartNode]:
        return list(self._nodes.values())

    @property
    def edges(self) -> list[Edge]:
        return list(self._edges.values())

    def get_node(self, node_id: str) -> ChartNode | None:
        return self._nodes.get(node_id)

    def get_edge(self, edge_id: str) -> Edge | None:
        return self._edges.get(edge_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def personnel_nodes(self) -> list[PersonnelNode]:
        return [n for n in self._nodes.values() if isinstance(n, PersonnelNode)]

    # -----------------------------------------------------------------------
    # Mutations
    # -----------------------------------------------------------------------

    def add_node(self, kind: NodeKind, position: Position | Mapping[str, float]) -> ChartNode:
        """Create a node of the given kind with default data and a fresh id."""
        if not isinstance(position, Position):
            position = Position.model_validate(position)
        node: ChartNode
        if kind == "personnel":
            node = PersonnelNode(id=new_id(), position=position)
        elif kind == "annotation":
            node = AnnotationNode(id=new_id(), position=position)
        else:
            raise ValidationError(f"Unknown node kind {kind!r}", code="UNKNOWN_NODE_KIND")
        self._nodes[node.id] = node
        return node

    def add_edge(self, source_id: str, target_id: str, kind: EdgeKind | None) -> Edge | None:
        """
        Connect two nodes.

        No-op (returns None) when no connection kind is pending, when source
        and target are the same node, or when either endpoint is unknown.
        """
        if kind is None:
            return None
        if source_id == target_id:
            logger.debug("Rejected self-loop on node %s", source_id)
            return None
        if source_id not in self._nodes or target_id not in self._nodes:
            logger.debug("Rejected edge %s -> %s: unknown endpoint", source_id, target_id)
            return None
        edge = Edge(
            id=new_id(),
            source=source_id,
            target=target_id,
            kind=kind,
            data=EdgeData(relationship_type=RELATIONSHIP_BY_KIND[kind]),
            style=default_edge_style(kind),
        )
        self._edges[edge.id] = edge
        return edge

    def update_node_data(self, node_id: str, partial: Mapping[str, Any]) -> ChartNode | None:
        node = self._nodes.get(node_id)
        if node is None:
            return None
        updated = node.model_copy(update={"data": merge_model(node.data, partial)})
        self._nodes[node_id] = updated
        return updated

    def move_node(self, node_id: str, position: Position | Mapping[str, float]) -> ChartNode | None:
        node = self._nodes.get(node_id)
        if node is None:
            return None
        if not isinstance(position, Position):
            position = Position.model_validate(position)
        moved = node.model_copy(update={"position": position})
        self._nodes[node_id] = moved
        return moved

    def remove_node(self, node_id: str) -> bool:
        """Remove a node. Edges touching it are left in place."""
        return self._nodes.pop(node_id, None) is not None

    def remove_edge(self, edge_id: str) -> bool:
        return self._edges.pop(edge_id, None) is not None

    # -----------------------------------------------------------------------
    # Integrity
    # -----------------------------------------------------------------------

    def dangling_edges(self) -> list[Edge]:
        return [
            e for e in self._edges.values()
            if e.source not in self._nodes or e.target not in self._nodes
        ]

    def prune_dangling_edges(self) -> list[Edge]:
        """Drop edges whose endpoints no longer exist and return them."""
        pruned = self.dangling_edges()
        for edge in pruned:
            del self._edges[edge.id]
        return pruned

    def self_loops(self) -> list[Edge]:
        return [e for e in self._edges.values() if e.source == e.target]

    def prune_invalid_edges(self) -> list[Edge]:
        """Drop self-loops and dangling edges and return them."""
        loops = self.self_loops()
        for edge in loops:
            del self._edges[edge.id]
        return loops + self.prune_dangling_edges()

    def dangling_references(self) -> list[tuple[str, str, str]]:
        """(node_id, field, missing_id) for reportsTo/teamConnections to unknown nodes."""
        missing: list[tuple[str, str, str]] = []
        for node in self.personnel_nodes():
            if node.data.reports_to and node.data.reports_to not in self._nodes:
                missing.append((node.id, "reportsTo", node.data.reports_to))
            for ref in node.data.team_connections:
                if ref not in self._nodes:
                    missing.append((node.id, "teamConnections", ref))
        return missing
