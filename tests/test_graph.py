"""
Chart graph tests.

Verifies that:
- New nodes get fresh ids and default data
- Edges are only created between two distinct known nodes with a pending kind
- Partial data updates merge into existing node data
- Removing a node leaves its edges in place until they are pruned
- Duplicate edge ids are rejected and self-loops are pruned with dangling edges
"""

import pytest

from orgflow.chart.graph import ChartGraph, merge_model
from orgflow.core.exceptions import ValidationError
from orgflow.schemas.chart import (
    HIERARCHY_COLOR,
    TEAM_COLOR,
    AnnotationNode,
    Edge,
    PersonnelData,
    PersonnelNode,
)


def _graph_with_two_people() -> tuple[ChartGraph, str, str]:
    graph = ChartGraph()
    a = graph.add_node("personnel", {"x": 0, "y": 0})
    b = graph.add_node("personnel", {"x": 100, "y": 0})
    return graph, a.id, b.id


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------

def test_add_node_creates_default_personnel():
    graph = ChartGraph()
    node = graph.add_node("personnel", {"x": 12.5, "y": 40})

    assert isinstance(node, PersonnelNode)
    assert node.position.x == 12.5
    assert node.data.email == ""
    assert node.data.timezone == "UTC"
    assert node.data.invite_status == "pending"
    assert graph.has_node(node.id)


def test_add_node_ids_are_unique():
    graph = ChartGraph()
    ids = {graph.add_node("annotation", {"x": 0, "y": 0}).id for _ in range(50)}
    assert len(ids) == 50


def test_add_node_unknown_kind():
    with pytest.raises(ValidationError) as exc_info:
        ChartGraph().add_node("robot", {"x": 0, "y": 0})
    assert exc_info.value.code == "UNKNOWN_NODE_KIND"


def test_duplicate_node_ids_rejected():
    node = AnnotationNode(id="n1")
    with pytest.raises(ValidationError):
        ChartGraph([node, node])


def test_duplicate_edge_ids_rejected():
    first = Edge(id="e1", source="a", target="b", kind="team")
    with pytest.raises(ValidationError) as exc_info:
        ChartGraph([], [first, first.model_copy(update={"target": "c"})])
    assert exc_info.value.code == "DUPLICATE_EDGE_ID"


def test_update_node_data_merges_partial():
    graph, a, _ = _graph_with_two_people()
    graph.update_node_data(a, {"name": "Ada", "proficiencies": {"languages": ["python"]}})
    graph.update_node_data(a, {"email": "ada@example.com", "proficiencies": {"frameworks": ["fastapi"]}})

    node = graph.get_node(a)
    assert node.data.name == "Ada"
    assert node.data.email == "ada@example.com"
    assert node.data.proficiencies.languages == ["python"]
    assert node.data.proficiencies.frameworks == ["fastapi"]


def test_update_node_data_accepts_aliases():
    graph, a, _ = _graph_with_two_people()
    graph.update_node_data(a, {"positionTitle": "CTO", "reportsTo": "someone"})
    node = graph.get_node(a)
    assert node.data.position_title == "CTO"
    assert node.data.reports_to == "someone"


def test_update_missing_node_returns_none():
    assert ChartGraph().update_node_data("nope", {"name": "x"}) is None


def test_merge_model_rejects_invalid_values():
    with pytest.raises(ValidationError):
        merge_model(PersonnelData(), {"inviteStatus": "sent"})


def test_move_node():
    graph, a, _ = _graph_with_two_people()
    moved = graph.move_node(a, {"x": 5, "y": 6})
    assert (moved.position.x, moved.position.y) == (5, 6)


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------

def test_add_team_edge():
    graph, a, b = _graph_with_two_people()
    edge = graph.add_edge(a, b, "team")

    assert edge is not None
    assert edge.kind == "team"
    assert edge.data.relationship_type == "collaborator"
    assert edge.style.stroke == TEAM_COLOR
    assert edge.style.stroke_width == 2
    assert graph.edges == [edge]


def test_add_hierarchy_edge():
    graph, a, b = _graph_with_two_people()
    edge = graph.add_edge(a, b, "hierarchy")
    assert edge.data.relationship_type == "direct-report"
    assert edge.style.stroke == HIERARCHY_COLOR


def test_self_loop_rejected():
    graph, a, _ = _graph_with_two_people()
    assert graph.add_edge(a, a, "team") is None
    assert graph.edges == []


def test_no_pending_kind_is_noop():
    graph, a, b = _graph_with_two_people()
    assert graph.add_edge(a, b, None) is None
    assert graph.edges == []


def test_unknown_endpoint_rejected():
    graph, a, _ = _graph_with_two_people()
    assert graph.add_edge(a, "ghost", "team") is None


def test_edges_to_same_pair_are_allowed():
    graph, a, b = _graph_with_two_people()
    first = graph.add_edge(a, b, "team")
    second = graph.add_edge(a, b, "hierarchy")
    assert first.id != second.id
    assert len(graph.edges) == 2


# ---------------------------------------------------------------------------
# Removal and integrity
# ---------------------------------------------------------------------------

def test_remove_node_keeps_edges_until_pruned():
    graph, a, b = _graph_with_two_people()
    edge = graph.add_edge(a, b, "team")

    assert graph.remove_node(b) is True
    assert graph.get_edge(edge.id) is not None
    assert graph.dangling_edges() == [edge]

    assert graph.prune_dangling_edges() == [edge]
    assert graph.edges == []


def test_remove_missing_returns_false():
    graph = ChartGraph()
    assert graph.remove_node("x") is False
    assert graph.remove_edge("x") is False


def test_dangling_references():
    graph, a, b = _graph_with_two_people()
    graph.update_node_data(a, {"reportsTo": "gone", "teamConnections": [b, "missing"]})

    assert sorted(graph.dangling_references()) == [
        (a, "reportsTo", "gone"),
        (a, "teamConnections", "missing"),
    ]


def test_prune_invalid_edges_drops_self_loops_and_dangling():
    nodes = [AnnotationNode(id="a"), AnnotationNode(id="b")]
    keep = Edge(id="e1", source="a", target="b", kind="team")
    loop = Edge(id="e2", source="a", target="a", kind="hierarchy")
    dangling = Edge(id="e3", source="b", target="ghost", kind="team")
    graph = ChartGraph(nodes, [keep, loop, dangling])

    assert graph.self_loops() == [loop]
    assert graph.prune_invalid_edges() == [loop, dangling]
    assert graph.edges == [keep]
