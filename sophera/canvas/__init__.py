"""
Canvas: freeform node graphs of a patient's treatment journey.

state.py edits tabs in memory, mapping.py pairs stored node ids with the
renderer's ids, and repository.py persists whole tabs.
"""

from sophera.canvas.mapping import NodeMapping, find_canvas_node_match
from sophera.canvas.models import CanvasEdge, CanvasNode, CanvasTab, CanvasType, NodeType
from sophera.canvas.repository import CanvasRepository
from sophera.canvas.state import CanvasItemNotFoundError, CanvasState, NoActiveTabError

__all__ = [
    "CanvasEdge",
    "CanvasItemNotFoundError",
    "CanvasNode",
    "CanvasRepository",
    "CanvasState",
    "CanvasTab",
    "CanvasType",
    "NoActiveTabError",
    "NodeMapping",
    "NodeType",
    "find_canvas_node_match",
]
