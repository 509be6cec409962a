"""
In-memory canvas state: tabs, the active tab, and node/edge editing.

CanvasState does no I/O. Route handlers load a tab from CanvasRepository,
apply one operation here and save the tab back.

Invariants kept by every operation:
    - every edge on a tab connects two nodes that exist on that tab
    - a mutation bumps updated_at on the touched node and on its tab
"""

from __future__ import annotations

import calendar
import uuid
from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel

from sophera.canvas.models import (
    CanvasEdge,
    CanvasNode,
    CanvasTab,
    CanvasType,
    Position,
)
from sophera.utils.db_fields import utc_now

_IMMUTABLE_FIELDS = frozenset({"id", "user_id", "created_at", "updated_at", "nodes", "edges"})
_EDGE_ENDPOINT_FIELDS = frozenset({"source_node_id", "target_node_id"})


class NoActiveTabError(RuntimeError):
    """Raised when a node or edge operation runs with no active tab."""


class CanvasItemNotFoundError(LookupError):
    """Raised when a tab, node or edge id is unknown."""


def _as_dict(data: BaseModel | Mapping[str, Any] | None) -> dict[str, Any]:
    if data is None:
        return {}
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=True, exclude_none=True)
    return {k: v for k, v in data.items() if v is not None}


def current_month_range(today: date | None = None) -> dict[str, str]:
    today = today or date.today()
    last_day = calendar.monthrange(today.year, today.month)[1]
    return {
        "start": today.replace(day=1).isoformat(),
        "end": today.replace(day=last_day).isoformat(),
    }


class CanvasState:
    """
    Tabs for one user plus the active tab selection.

    Args:
        user_id: Owner stamped on new tabs
        tabs: Existing tabs (loaded from storage)
        active_tab_id: Initially active tab; must be one of tabs
        clock: Timestamp source, utc_now by default
    """

    def __init__(
        self,
        user_id: str,
        tabs: Iterable[CanvasTab] = (),
        active_tab_id: str | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.user_id = user_id
        self.tabs: list[CanvasTab] = list(tabs)
        self.active_tab_id: str | None = None
        self._clock = clock
        if active_tab_id is not None:
            self.set_active_tab(active_tab_id)

    # --- tabs ---

    def get_tab(self, tab_id: str) -> CanvasTab:
        for tab in self.tabs:
            if tab.id == tab_id:
                return tab
        raise CanvasItemNotFoundError(f"Canvas tab not found: {tab_id}")

    @property
    def active_tab(self) -> CanvasTab | None:
        if self.active_tab_id is None:
            return None
        return self.get_tab(self.active_tab_id)

    def _require_active_tab(self) -> CanvasTab:
        tab = self.active_tab
        if tab is None:
            raise NoActiveTabError("No active canvas tab")
        return tab

    def set_active_tab(self, tab_id: str | None) -> None:
        if tab_id is not None:
            self.get_tab(tab_id)
        self.active_tab_id = tab_id

    def add_tab(self, type: CanvasType | str = CanvasType.FREEFORM, title: str | None = None) -> str:
        """Create a tab, make it active and return its id."""
        canvas_type = CanvasType(type)
        now = self._clock()
        config: dict[str, Any] = {}
        if canvas_type == CanvasType.CALENDAR:
            config["date_range"] = current_month_range(now.date())

        default_title = "New Calendar" if canvas_type == CanvasType.CALENDAR else "New Canvas"
        tab = CanvasTab(
            id=str(uuid.uuid4()),
            user_id=self.user_id,
            title=title or default_title,
            type=canvas_type,
            config=config,
            created_at=now,
            updated_at=now,
        )
        self.tabs.append(tab)
        self.active_tab_id = tab.id
        return tab.id

    def update_tab(self, tab_id: str, **changes: Any) -> CanvasTab:
        tab = self.get_tab(tab_id)
        changes = {k: v for k, v in changes.items() if v is not None}
        bad = _IMMUTABLE_FIELDS.intersection(changes)
        if bad:
            raise ValueError(f"Cannot change tab fields: {', '.join(sorted(bad))}")

        merged = tab.model_dump()
        merged.update(
            {k: v.model_dump() if isinstance(v, BaseModel) else v for k, v in changes.items()}
        )
        merged["updated_at"] = self._clock()
        updated = CanvasTab.model_validate(merged)
        self.tabs[self.tabs.index(tab)] = updated
        return updated

    def delete_tab(self, tab_id: str) -> None:
        tab = self.get_tab(tab_id)
        self.tabs.remove(tab)
        if self.active_tab_id == tab_id:
            self.active_tab_id = None

    def _touch_tab(self, tab: CanvasTab) -> None:
        tab.updated_at = self._clock()

    # --- nodes ---

    def _require_node(self, tab: CanvasTab, node_id: str) -> CanvasNode:
        node = tab.get_node(node_id)
        if node is None:
            raise CanvasItemNotFoundError(f"Canvas node not found: {node_id}")
        return node

    def add_node(self, partial: BaseModel | Mapping[str, Any] | None = None) -> str:
        """
        Add a node to the active tab and return its id.

        Unset fields default to a "note" node titled "New Node" at (0, 0),
        200 wide and 100 high.

        Raises:
            NoActiveTabError: If no tab is active
            ValueError: If a node with the given id already exists on the tab
        """
        tab = self._require_active_tab()
        data = _as_dict(partial)
        node_id = data.pop("id", None) or str(uuid.uuid4())
        if tab.get_node(node_id) is not None:
            raise ValueError(f"Canvas node already exists: {node_id}")

        now = self._clock()
        node = CanvasNode.model_validate(
            {**data, "id": node_id, "created_at": now, "updated_at": now}
        )
        tab.nodes.append(node)
        self._touch_tab(tab)
        return node.id

    def update_node(self, node_id: str, **changes: Any) -> CanvasNode:
        tab = self._require_active_tab()
        node = self._require_node(tab, node_id)
        changes = {k: v for k, v in changes.items() if v is not None}
        bad = _IMMUTABLE_FIELDS.intersection(changes)
        if bad:
            raise ValueError(f"Cannot change node fields: {', '.join(sorted(bad))}")

        merged = node.model_dump()
        merged.update(
            {k: v.model_dump() if isinstance(v, BaseModel) else v for k, v in changes.items()}
        )
        merged["updated_at"] = self._clock()
        updated = CanvasNode.model_validate(merged)
        tab.nodes[tab.nodes.index(node)] = updated
        self._touch_tab(tab)
        return updated

    def move_node(self, node_id: str, position: Position | Mapping[str, float]) -> CanvasNode:
        return self.update_node(node_id, position=Position.model_validate(position))

    def delete_node(self, node_id: str) -> None:
        """Remove a node and every edge attached to it."""
        tab = self._require_active_tab()
        node = self._require_node(tab, node_id)
        tab.nodes.remove(node)
        tab.edges = [
            e for e in tab.edges if node_id not in (e.source_node_id, e.target_node_id)
        ]
        self._touch_tab(tab)

    # --- edges ---

    def _require_edge(self, tab: CanvasTab, edge_id: str) -> CanvasEdge:
        edge = tab.get_edge(edge_id)
        if edge is None:
            raise CanvasItemNotFoundError(f"Canvas edge not found: {edge_id}")
        return edge

    def add_edge(self, partial: BaseModel | Mapping[str, Any]) -> str:
        """
        Connect two nodes on the active tab and return the edge id.

        Raises:
            NoActiveTabError: If no tab is active
            ValueError: If an endpoint is missing from the tab or the id is taken
        """
        tab = self._require_active_tab()
        data = _as_dict(partial)
        for field in ("source_node_id", "target_node_id"):
            node_id = data.get(field)
            if not node_id or tab.get_node(node_id) is None:
                raise ValueError(f"{field} does not reference a node on this tab")

        edge_id = data.pop("id", None) or str(uuid.uuid4())
        if tab.get_edge(edge_id) is not None:
            raise ValueError(f"Canvas edge already exists: {edge_id}")

        edge = CanvasEdge.model_validate({**data, "id": edge_id})
        tab.edges.append(edge)
        self._touch_tab(tab)
        return edge.id

    def update_edge(self, edge_id: str, **changes: Any) -> CanvasEdge:
        tab = self._require_active_tab()
        edge = self._require_edge(tab, edge_id)
        changes = {k: v for k, v in changes.items() if v is not None}
        if "id" in changes or _EDGE_ENDPOINT_FIELDS.intersection(changes):
            raise ValueError("Edge id and endpoints cannot be changed; delete and re-add instead")

        updated = CanvasEdge.model_validate({**edge.model_dump(), **changes})
        tab.edges[tab.edges.index(edge)] = updated
        self._touch_tab(tab)
        return updated

    def delete_edge(self, edge_id: str) -> None:
        tab = self._require_active_tab()
        tab.edges.remove(self._require_edge(tab, edge_id))
        self._touch_tab(tab)
