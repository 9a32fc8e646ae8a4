"""
Chart editor interaction state.

Turns palette drops, connect gestures and edit dialogs into ChartGraph
mutations. Connection drawing is a small state machine:

    IDLE --(drop team-arrow)--------> CONNECTING_TEAM
    IDLE --(drop hierarchy-arrow)---> CONNECTING_HIERARCHY
    CONNECTING_* --(connect ok)-----> IDLE
    CONNECTING_* --(cancel)---------> IDLE

Clicking the canvas while connecting keeps the pending kind. Node edits are
staged in a draft and only written back on commit.
"""

from __future__ import annotations

import copy
import enum
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from orgflow.chart.graph import ChartGraph, ChartNode, merge_model
from orgflow.core.exceptions import NotFoundError, ValidationError
from orgflow.schemas.chart import Edge, EdgeKind, PersonnelNode, Position


class ConnectionState(str, enum.Enum):
    IDLE = "idle"
    CONNECTING_TEAM = "connecting_team"
    CONNECTING_HIERARCHY = "connecting_hierarchy"


class PaletteItem(str, enum.Enum):
    PERSONNEL = "personnel"
    ANNOTATION = "annotation"
    TEAM_ARROW = "team-arrow"
    HIERARCHY_ARROW = "hierarchy-arrow"


_STATE_BY_KIND: dict[str, ConnectionState] = {
    "team": ConnectionState.CONNECTING_TEAM,
    "hierarchy": ConnectionState.CONNECTING_HIERARCHY,
}

_KIND_BY_STATE: dict[ConnectionState, EdgeKind] = {
    ConnectionState.CONNECTING_TEAM: "team",
    ConnectionState.CONNECTING_HIERARCHY: "hierarchy",
}


@dataclass(frozen=True)
class Viewport:
    """Canvas pan/zoom plus the canvas element's offset on screen."""

    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0
    left: float = 0.0
    top: float = 0.0

    def screen_to_canvas(self, screen_x: float, screen_y: float) -> Position:
        if self.zoom <= 0:
            raise ValidationError("Viewport zoom must be positive")
        return Position(
            x=(screen_x - self.left - self.x) / self.zoom,
            y=(screen_y - self.top - self.y) / self.zoom,
        )


class ChartEditor:
    """Editor session bound to one ChartGraph."""

    def __init__(self, graph: ChartGraph | None = None, viewport: Viewport | None = None) -> None:
        self.graph = graph if graph is not None else ChartGraph()
        self.viewport = viewport or Viewport()
        self.state = ConnectionState.IDLE
        self.selected_node_id: str | None = None
        self._draft_node_id: str | None = None
        self._draft: dict[str, Any] | None = None

    # -----------------------------------------------------------------------
    # Connection drawing
    # -----------------------------------------------------------------------

    @property
    def pending_connection_kind(self) -> EdgeKind | None:
        return _KIND_BY_STATE.get(self.state)

    def select_connection_kind(self, kind: EdgeKind) -> None:
        try:
            self.state = _STATE_BY_KIND[kind]
        except KeyError:
            raise ValidationError(f"Unknown connection kind {kind!r}") from None

    def cancel_connection(self) -> None:
        self.state = ConnectionState.IDLE

    def connect(self, source_id: str, target_id: str) -> Edge | None:
        """
        Complete a connect gesture between two nodes.

        Returns the new edge and goes back to IDLE, or returns None and keeps
        the current state when the edge is rejected.
        """
        edge = self.graph.add_edge(source_id, target_id, self.pending_connection_kind)
        if edge is not None:
            self.state = ConnectionState.IDLE
        return edge

    def click_canvas(self) -> None:
        self.selected_node_id = None

    # -----------------------------------------------------------------------
    # Drag and drop
    # -----------------------------------------------------------------------

    def drop_palette_item(
        self, item: PaletteItem | str, screen_x: float, screen_y: float
    ) -> ChartNode | None:
        """Handle a palette drop; node items create a node, arrow items arm a connection."""
        try:
            item = PaletteItem(item)
        except ValueError:
            raise ValidationError(f"Unknown palette item {item!r}", code="UNKNOWN_PALETTE_ITEM") from None

        if item is PaletteItem.TEAM_ARROW:
            self.select_connection_kind("team")
            return None
        if item is PaletteItem.HIERARCHY_ARROW:
            self.select_connection_kind("hierarchy")
            return None

        position = self.viewport.screen_to_canvas(screen_x, screen_y)
        node = self.graph.add_node(item.value, position)
        if item is PaletteItem.PERSONNEL:
            # New team members open straight into the edit form
            self.begin_edit(node.id)
        return node

    # -----------------------------------------------------------------------
    # Selection and staged editing
    # -----------------------------------------------------------------------

    def select_node(self, node_id: str) -> ChartNode:
        node = self._require_node(node_id)
        self.selected_node_id = node_id
        return node

    @property
    def editing_node_id(self) -> str | None:
        return self._draft_node_id

    @property
    def draft(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._draft) if self._draft is not None else None

    def begin_edit(self, node_id: str) -> dict[str, Any]:
        node = self.select_node(node_id)
        self._draft_node_id = node_id
        self._draft = node.data.model_dump(by_alias=True)
        return copy.deepcopy(self._draft)

    def edit_draft(self, partial: Mapping[str, Any]) -> dict[str, Any]:
        """Apply changes to the draft only; the graph is untouched until commit."""
        node = self._require_draft()
        staged = merge_model(node.data.model_validate(self._draft), partial)
        self._draft = staged.model_dump(by_alias=True)
        return copy.deepcopy(self._draft)

    def commit_edit(self) -> ChartNode:
        node = self._require_draft()
        draft = dict(self._draft or {})
        if isinstance(node, PersonnelNode):
            # Edited team members need a fresh invite
            draft["inviteStatus"] = "pending"
        updated = self.graph.update_node_data(node.id, draft)
        self._clear_draft()
        if updated is None:
            raise NotFoundError(f"Node {node.id!r} was removed while editing", code="NODE_NOT_FOUND")
        return updated

    def cancel_edit(self) -> None:
        self._clear_draft()

    # -----------------------------------------------------------------------
    # Removal
    # -----------------------------------------------------------------------

    def delete_node(self, node_id: str) -> bool:
        if self._draft_node_id == node_id:
            self._clear_draft()
        if self.selected_node_id == node_id:
            self.selected_node_id = None
        return self.graph.remove_node(node_id)

    def delete_edge(self, edge_id: str) -> bool:
        return self.graph.remove_edge(edge_id)

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    def _require_node(self, node_id: str) -> ChartNode:
        node = self.graph.get_node(node_id)
        if node is None:
            raise NotFoundError(f"Node {node_id!r} not found", code="NODE_NOT_FOUND")
        return node

    def _require_draft(self) -> ChartNode:
        if self._draft_node_id is None or self._draft is None:
            raise ValidationError("No node is being edited", code="NO_OPEN_DRAFT")
        return self._require_node(self._draft_node_id)

    def _clear_draft(self) -> None:
        self._draft_node_id = None
        self._draft = None
