"""
Two-way mapping between stored canvas node ids and renderer node ids.

The graph renderer assigns its own node ids. NodeMapping keeps the two id
spaces paired so edits on either side can be applied to the other.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from sophera.canvas.models import CanvasNode
from sophera.utils.db_fields import parse_dt

MATCH_WINDOW_SECONDS = 1.0


class NodeMapping:
    def __init__(self) -> None:
        self._renderer_to_canvas: dict[str, str] = {}
        self._canvas_to_renderer: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._canvas_to_renderer)

    def add_mapping(self, canvas_node_id: str, renderer_node_id: str) -> None:
        # Drop stale pairs so both dicts stay inverse to each other
        old_renderer = self._canvas_to_renderer.pop(canvas_node_id, None)
        if old_renderer is not None:
            self._renderer_to_canvas.pop(old_renderer, None)
        old_canvas = self._renderer_to_canvas.pop(renderer_node_id, None)
        if old_canvas is not None:
            self._canvas_to_renderer.pop(old_canvas, None)

        self._canvas_to_renderer[canvas_node_id] = renderer_node_id
        self._renderer_to_canvas[renderer_node_id] = canvas_node_id

    def get_canvas_node_id(self, renderer_node_id: str) -> str | None:
        return self._renderer_to_canvas.get(renderer_node_id)

    def get_renderer_node_id(self, canvas_node_id: str) -> str | None:
        return self._canvas_to_renderer.get(canvas_node_id)

    def remove_mapping(self, canvas_node_id: str) -> None:
        renderer_node_id = self._canvas_to_renderer.pop(canvas_node_id, None)
        if renderer_node_id is not None:
            self._renderer_to_canvas.pop(renderer_node_id, None)

    def clear(self) -> None:
        self._renderer_to_canvas.clear()
        self._canvas_to_renderer.clear()


def _created_at(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return parse_dt(value.isoformat())
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Renderer timestamps are epoch milliseconds
        try:
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            return parse_dt(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def find_canvas_node_match(
    renderer_node: Mapping[str, Any],
    canvas_nodes: Iterable[CanvasNode],
) -> CanvasNode | None:
    """
    Canvas node a renderer node corresponds to.

    A renderer node with a title matches only by title. Without a title it
    matches the first node created within MATCH_WINDOW_SECONDS of its
    properties["createdAt"].
    """
    title = renderer_node.get("title")
    if title:
        return next((n for n in canvas_nodes if n.title == title), None)

    properties = renderer_node.get("properties") or {}
    created = _created_at(properties.get("createdAt"))
    if created is None:
        return None

    for node in canvas_nodes:
        if abs((node.created_at - created).total_seconds()) < MATCH_WINDOW_SECONDS:
            return node
    return None
