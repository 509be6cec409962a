"""Tests for canvas/renderer node id mapping and node matching."""

from __future__ import annotations

from datetime import UTC, datetime

from sophera.canvas.mapping import NodeMapping, find_canvas_node_match
from sophera.canvas.models import CanvasNode

CREATED = datetime(2024, 3, 1, 12, 0, 0, tzinfo=UTC)


def make_node(node_id, title="New Node", created_at=CREATED):
    return CanvasNode(id=node_id, title=title, created_at=created_at)


class TestNodeMapping:
    def test_lookup_both_directions(self):
        mapping = NodeMapping()
        mapping.add_mapping("canvas-1", "r-1")

        assert mapping.get_renderer_node_id("canvas-1") == "r-1"
        assert mapping.get_canvas_node_id("r-1") == "canvas-1"
        assert len(mapping) == 1

    def test_remapping_drops_stale_pairs(self):
        """Re-pairing either id keeps both directions consistent"""
        mapping = NodeMapping()
        mapping.add_mapping("canvas-1", "r-1")
        mapping.add_mapping("canvas-1", "r-2")

        assert mapping.get_canvas_node_id("r-1") is None
        assert mapping.get_renderer_node_id("canvas-1") == "r-2"

        mapping.add_mapping("canvas-2", "r-2")
        assert mapping.get_renderer_node_id("canvas-1") is None
        assert len(mapping) == 1

    def test_remove_and_clear(self):
        mapping = NodeMapping()
        mapping.add_mapping("canvas-1", "r-1")
        mapping.add_mapping("canvas-2", "r-2")

        mapping.remove_mapping("canvas-1")
        assert mapping.get_canvas_node_id("r-1") is None

        mapping.clear()
        assert len(mapping) == 0


class TestFindCanvasNodeMatch:
    def test_matches_by_title(self):
        nodes = [make_node("a", "Chemo"), make_node("b", "Scan")]
        assert find_canvas_node_match({"title": "Scan"}, nodes).id == "b"

    def test_title_without_match_does_not_fall_back_to_time(self):
        nodes = [make_node("a", "Chemo")]
        renderer_node = {
            "title": "Unknown",
            "properties": {"createdAt": CREATED.isoformat()},
        }
        assert find_canvas_node_match(renderer_node, nodes) is None

    def test_matches_by_creation_time_within_a_second(self):
        nodes = [make_node("a")]
        renderer_node = {"properties": {"createdAt": "2024-03-01T12:00:00.500Z"}}

        assert find_canvas_node_match(renderer_node, nodes).id == "a"

    def test_matches_epoch_milliseconds(self):
        nodes = [make_node("a")]
        millis = CREATED.timestamp() * 1000

        assert find_canvas_node_match({"properties": {"createdAt": int(millis) + 400}}, nodes).id == "a"
        assert find_canvas_node_match({"properties": {"createdAt": millis + 2500.0}}, nodes) is None
        assert find_canvas_node_match({"properties": {"createdAt": True}}, nodes) is None

    def test_creation_time_outside_window(self):
        nodes = [make_node("a")]
        renderer_node = {"properties": {"createdAt": "2024-03-01T12:00:02Z"}}

        assert find_canvas_node_match(renderer_node, nodes) is None

    def test_unparseable_creation_time(self):
        nodes = [make_node("a")]
        assert find_canvas_node_match({"properties": {"createdAt": "yesterday"}}, nodes) is None
        assert find_canvas_node_match({}, nodes) is None
