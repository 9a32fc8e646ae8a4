"""
Organization chart schemas.

Nodes are a tagged union on `kind`; node and edge payloads use camelCase
aliases so model_dump(by_alias=True) matches the stored document layout.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

NodeKind = Literal["personnel", "annotation"]
EdgeKind = Literal["team", "hierarchy"]
RelationshipType = Literal["collaborator", "direct-report"]
InviteStatus = Literal["pending", "accepted", "expired"]
AvailabilityStatus = Literal["available", "limited", "unavailable"]

TEAM_COLOR = "#1976d2"
HIERARCHY_COLOR = "#4caf50"
ANNOTATION_COLOR = "#fff9c4"
EDGE_STROKE_WIDTH = 2

RELATIONSHIP_BY_KIND: dict[str, RelationshipType] = {
    "team": "collaborator",
    "hierarchy": "direct-report",
}


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Node payloads
# ---------------------------------------------------------------------------

class Position(CamelModel):
    x: float = 0.0
    y: float = 0.0


class Proficiencies(CamelModel):
    languages: list[str] = Field(default_factory=list)
    frameworks: list[str] = Field(default_factory=list)
    primary_skills: list[str] = Field(default_factory=list)


class Availability(CamelModel):
    status: AvailabilityStatus = "available"
    day_availability: dict[str, float] = Field(default_factory=dict)
    notes: str = ""


class PersonnelData(CamelModel):
    name: str = ""
    email: str = ""
    position_title: str = ""
    timezone: str = "UTC"
    proficiencies: Proficiencies = Field(default_factory=Proficiencies)
    team_connections: list[str] = Field(default_factory=list)
    reports_to: str | None = None
    is_observer: bool = False
    is_admin: bool = False
    availability: Availability = Field(default_factory=Availability)
    invite_status: InviteStatus = "pending"


class AnnotationData(CamelModel):
    text: str = ""
    color: str | None = ANNOTATION_COLOR


class PersonnelNode(CamelModel):
    id: str
    kind: Literal["personnel"] = "personnel"
    position: Position = Field(default_factory=Position)
    data: PersonnelData = Field(default_factory=PersonnelData)


class AnnotationNode(CamelModel):
    id: str
    kind: Literal["annotation"] = "annotation"
    position: Position = Field(default_factory=Position)
    data: AnnotationData = Field(default_factory=AnnotationData)


Node = Annotated[PersonnelNode | AnnotationNode, Field(discriminator="kind")]


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------

class EdgeData(CamelModel):
    relationship_type: RelationshipType = "collaborator"


class EdgeStyle(CamelModel):
    stroke: str = TEAM_COLOR
    stroke_width: int = EDGE_STROKE_WIDTH


class Edge(CamelModel):
    id: str
    source: str
    target: str
    kind: EdgeKind
    source_handle: str | None = None
    target_handle: str | None = None
    animated: bool = False
    data: EdgeData = Field(default_factory=EdgeData)
    style: EdgeStyle = Field(default_factory=EdgeStyle)


def default_edge_style(kind: str) -> EdgeStyle:
    """Blue for team links, green for reporting lines."""
    color = HIERARCHY_COLOR if kind == "hierarchy" else TEAM_COLOR
    return EdgeStyle(stroke=color, stroke_width=EDGE_STROKE_WIDTH)


# ---------------------------------------------------------------------------
# Save / load API
# ---------------------------------------------------------------------------

class ChartMetadata(CamelModel):
    version: int = 0
    last_modified_by: str | None = None


class ChartSaveRequest(CamelModel):
    """Request body for PUT /organizations/{organization_id}/chart."""

    name: str = Field(default="", max_length=200)
    nodes: list[dict[str, Any]] = Field(default_factory=list)
    edges: list[dict[str, Any]] = Field(default_factory=list)
    version: int | None = Field(
        default=None,
        description="Version the client loaded; defaults to the stored version",
    )


class ChartResponse(CamelModel):
    """Stored chart document."""

    organization_id: str
    name: str
    organization_code: str | None = None
    nodes: list[dict[str, Any]]
    edges: list[dict[str, Any]]
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    metadata: ChartMetadata = Field(default_factory=ChartMetadata)


class InviteOutcome(CamelModel):
    """Result of inviting one personnel node."""

    email: str
    success: bool
    invite_code: str | None = None
    error: str | None = None


class ChartSaveResult(CamelModel):
    """Response for a completed save flow."""

    organization_id: str
    organization_code: str
    version: int
    invites: list[InviteOutcome]
    failed_invites: list[InviteOutcome]
    next_path: str = "/project-setup"
