"""
Chart editor tests.

Verifies the connection state machine, palette drops with viewport
conversion and staged node editing.
"""

import pytest

from orgflow.chart.editor import ChartEditor, ConnectionState, PaletteItem, Viewport
from orgflow.core.exceptions import NotFoundError, ValidationError
from orgflow.schemas.chart import AnnotationNode, PersonnelNode


def _editor_with_two_people() -> tuple[ChartEditor, str, str]:
    editor = ChartEditor()
    a = editor.graph.add_node("personnel", {"x": 0, "y": 0})
    b = editor.graph.add_node("personnel", {"x": 100, "y": 0})
    return editor, a.id, b.id


# ---------------------------------------------------------------------------
# Connection state machine
# ---------------------------------------------------------------------------

def test_starts_idle():
    editor = ChartEditor()
    assert editor.state is ConnectionState.IDLE
    assert editor.pending_connection_kind is None


def test_team_arrow_drop_arms_connection():
    editor, a, b = _editor_with_two_people()

    assert editor.drop_palette_item(PaletteItem.TEAM_ARROW, 0, 0) is None
    assert editor.state is ConnectionState.CONNECTING_TEAM

    edge = editor.connect(a, b)
    assert edge.kind == "team"
    assert editor.state is ConnectionState.IDLE


def test_hierarchy_arrow_drop_arms_connection():
    editor, a, b = _editor_with_two_people()
    editor.drop_palette_item("hierarchy-arrow", 0, 0)

    edge = editor.connect(a, b)
    assert edge.kind == "hierarchy"
    assert edge.data.relationship_type == "direct-report"


def test_connect_while_idle_is_noop():
    editor, a, b = _editor_with_two_people()
    assert editor.connect(a, b) is None
    assert editor.graph.edges == []


def test_rejected_connect_keeps_pending_kind():
    editor, a, _ = _editor_with_two_people()
    editor.select_connection_kind("team")

    assert editor.connect(a, a) is None
    assert editor.state is ConnectionState.CONNECTING_TEAM


def test_canvas_click_does_not_cancel_connection():
    editor, a, _ = _editor_with_two_people()
    editor.select_node(a)
    editor.select_connection_kind("hierarchy")

    editor.click_canvas()

    assert editor.selected_node_id is None
    assert editor.state is ConnectionState.CONNECTING_HIERARCHY


def test_cancel_connection():
    editor = ChartEditor()
    editor.select_connection_kind("team")
    editor.cancel_connection()
    assert editor.state is ConnectionState.IDLE


def test_unknown_connection_kind():
    with pytest.raises(ValidationError):
        ChartEditor().select_connection_kind("sideways")


# ---------------------------------------------------------------------------
# Palette drops
# ---------------------------------------------------------------------------

def test_drop_personnel_converts_screen_position_and_opens_edit():
    editor = ChartEditor(viewport=Viewport(x=50, y=20, zoom=2.0, left=10, top=30))

    node = editor.drop_palette_item("personnel", 210, 130)

    assert isinstance(node, PersonnelNode)
    assert node.position.x == 75.0
    assert node.position.y == 40.0
    assert editor.editing_node_id == node.id
    assert editor.draft["email"] == ""


def test_drop_annotation_does_not_open_edit():
    editor = ChartEditor()
    node = editor.drop_palette_item(PaletteItem.ANNOTATION, 5, 5)
    assert isinstance(node, AnnotationNode)
    assert editor.editing_node_id is None


def test_drop_unknown_item():
    with pytest.raises(ValidationError) as exc_info:
        ChartEditor().drop_palette_item("spaceship", 0, 0)
    assert exc_info.value.code == "UNKNOWN_PALETTE_ITEM"


def test_zero_zoom_rejected():
    with pytest.raises(ValidationError):
        Viewport(zoom=0).screen_to_canvas(1, 1)


# ---------------------------------------------------------------------------
# Staged editing
# ---------------------------------------------------------------------------

def test_draft_edits_do_not_touch_graph_until_commit():
    editor, a, _ = _editor_with_two_people()
    editor.begin_edit(a)
    editor.edit_draft({"name": "Grace", "email": "grace@example.com"})

    assert editor.graph.get_node(a).data.name == ""

    committed = editor.commit_edit()
    assert committed.data.name == "Grace"
    assert committed.data.email == "grace@example.com"
    assert editor.editing_node_id is None


def test_commit_resets_invite_status():
    editor, a, _ = _editor_with_two_people()
    editor.graph.update_node_data(a, {"inviteStatus": "accepted"})
    editor.begin_edit(a)
    editor.edit_draft({"email": "new@example.com"})

    assert editor.commit_edit().data.invite_status == "pending"


def test_cancel_edit_discards_draft():
    editor, a, _ = _editor_with_two_people()
    editor.begin_edit(a)
    editor.edit_draft({"name": "Discarded"})
    editor.cancel_edit()

    assert editor.draft is None
    assert editor.graph.get_node(a).data.name == ""


def test_draft_copy_is_detached():
    editor, a, _ = _editor_with_two_people()
    draft = editor.begin_edit(a)
    draft["name"] = "mutated outside"
    assert editor.draft["name"] == ""


def test_edit_without_draft():
    with pytest.raises(ValidationError) as exc_info:
        ChartEditor().edit_draft({"name": "x"})
    assert exc_info.value.code == "NO_OPEN_DRAFT"


def test_select_missing_node():
    with pytest.raises(NotFoundError):
        ChartEditor().select_node("missing")


def test_delete_node_clears_draft_and_selection():
    editor, a, b = _editor_with_two_people()
    editor.select_connection_kind("team")
    edge = editor.connect(a, b)
    editor.begin_edit(a)

    assert editor.delete_node(a) is True
    assert editor.editing_node_id is None
    assert editor.selected_node_id is None
    assert editor.graph.get_edge(edge.id) is not None
    assert editor.delete_edge(edge.id) is True
