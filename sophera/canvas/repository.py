"""
Canvas repository - whole-tab persistence across canvas_tabs, canvas_nodes
and canvas_edges.

A tab is always written as a unit: the tab row is upserted and its node and
edge rows are replaced inside one transaction, so a reader never sees a
half-saved graph.
"""

from __future__ import annotations

from typing import Any

from sophera.canvas.models import (
    CanvasEdge,
    CanvasNode,
    CanvasTab,
    CanvasTabSummary,
    CanvasType,
    Position,
    Size,
)
from sophera.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from sophera.observability.logging import get_logger
from sophera.utils.db_fields import dumps, loads, parse_dt, utc_now

logger = get_logger(__name__)


def _node_row(tab_id: str, index: int, node: CanvasNode) -> dict[str, Any]:
    return {
        "id": node.id,
        "tab_id": tab_id,
        "sort_order": index,
        "type": node.type,
        "title": node.title,
        "position_x": node.position.x,
        "position_y": node.position.y,
        "width": node.size.width,
        "height": node.size.height,
        "inputs": dumps(node.inputs),
        "outputs": dumps(node.outputs),
        "properties": dumps(node.properties),
        "data_ref": dumps(node.data_ref) if node.data_ref else None,
        "visual": dumps(node.visual) if node.visual else None,
        "created_at": node.created_at.isoformat(),
        "updated_at": node.updated_at.isoformat(),
    }


def _node_from_row(row: dict[str, Any]) -> CanvasNode:
    return CanvasNode(
        id=row["id"],
        type=row["type"],
        title=row["title"],
        position=Position(x=row["position_x"], y=row["position_y"]),
        size=Size(width=row["width"], height=row["height"]),
        inputs=loads(row.get("inputs"), []),
        outputs=loads(row.get("outputs"), []),
        properties=loads(row.get("properties"), {}),
        data_ref=loads(row.get("data_ref"), None),
        visual=loads(row.get("visual"), None),
        created_at=parse_dt(row.get("created_at")) or utc_now(),
        updated_at=parse_dt(row.get("updated_at")) or utc_now(),
    )


def _edge_row(tab_id: str, index: int, edge: CanvasEdge) -> dict[str, Any]:
    return {
        "id": edge.id,
        "tab_id": tab_id,
        "sort_order": index,
        "source_node_id": edge.source_node_id,
        "source_output_index": edge.source_output_index,
        "target_node_id": edge.target_node_id,
        "target_input_index": edge.target_input_index,
        "type": edge.type,
        "properties": dumps(edge.properties),
    }


def _edge_from_row(row: dict[str, Any]) -> CanvasEdge:
    return CanvasEdge(
        id=row["id"],
        source_node_id=row["source_node_id"],
        source_output_index=row["source_output_index"],
        target_node_id=row["target_node_id"],
        target_input_index=row["target_input_index"],
        type=row.get("type"),
        properties=loads(row.get("properties"), {}),
    )


class CanvasRepository:
    @staticmethod
    @retry_on_db_lock()
    def save_tab(tab: CanvasTab) -> CanvasTab:
        """
        Upsert a tab and replace its nodes and edges.

        Side Effects:
            - Deletes and re-inserts every node and edge row of the tab
        """
        tab_row = {
            "id": tab.id,
            "user_id": tab.user_id,
            "title": tab.title,
            "type": tab.type,
            "config": dumps(tab.config),
            "scale": tab.scale,
            "offset_x": tab.offset.x,
            "offset_y": tab.offset.y,
            "created_at": tab.created_at.isoformat(),
            "updated_at": tab.updated_at.isoformat(),
        }

        with db_transaction() as conn:
            owner = conn.execute(
                "SELECT user_id FROM canvas_tabs WHERE id = ?", (tab.id,)
            ).fetchone()
            if owner is not None and owner["user_id"] != tab.user_id:
                raise PermissionError(f"Canvas tab {tab.id} belongs to another user")

            conn.execute(
                """
                INSERT INTO canvas_tabs (
                    id, user_id, title, type, config, scale, offset_x, offset_y,
                    created_at, updated_at
                ) VALUES (
                    :id, :user_id, :title, :type, :config, :scale, :offset_x, :offset_y,
                    :created_at, :updated_at
                )
                ON CONFLICT(id) DO UPDATE SET
                    title = excluded.title,
                    type = excluded.type,
                    config = excluded.config,
                    scale = excluded.scale,
                    offset_x = excluded.offset_x,
                    offset_y = excluded.offset_y,
                    updated_at = excluded.updated_at
                """,
                tab_row,
            )
            conn.execute("DELETE FROM canvas_edges WHERE tab_id = ?", (tab.id,))
            conn.execute("DELETE FROM canvas_nodes WHERE tab_id = ?", (tab.id,))
            conn.executemany(
                """
                INSERT INTO canvas_nodes (
                    id, tab_id, sort_order, type, title, position_x, position_y, width,
                    height, inputs, outputs, properties, data_ref, visual, created_at,
                    updated_at
                ) VALUES (
                    :id, :tab_id, :sort_order, :type, :title, :position_x, :position_y,
                    :width, :height, :inputs, :outputs, :properties, :data_ref, :visual,
                    :created_at, :updated_at
                )
                """,
                [_node_row(tab.id, i, node) for i, node in enumerate(tab.nodes)],
            )
            conn.executemany(
                """
                INSERT INTO canvas_edges (
                    id, tab_id, sort_order, source_node_id, source_output_index,
                    target_node_id, target_input_index, type, properties
                ) VALUES (
                    :id, :tab_id, :sort_order, :source_node_id, :source_output_index,
                    :target_node_id, :target_input_index, :type, :properties
                )
                """,
                [_edge_row(tab.id, i, edge) for i, edge in enumerate(tab.edges)],
            )

        logger.debug(
            "Saved canvas tab %s (%d nodes, %d edges)", tab.id, len(tab.nodes), len(tab.edges)
        )
        return tab

    @staticmethod
    def load(tab_id: str, user_id: str) -> CanvasTab | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM canvas_tabs WHERE id = ? AND user_id = ?",
                (tab_id, user_id),
            ).fetchone()
            if row is None:
                return None
            nodes = conn.execute(
                "SELECT * FROM canvas_nodes WHERE tab_id = ? ORDER BY sort_order",
                (tab_id,),
            ).fetchall()
            edges = conn.execute(
                "SELECT * FROM canvas_edges WHERE tab_id = ? ORDER BY sort_order",
                (tab_id,),
            ).fetchall()

        tab = dict(row)
        return CanvasTab(
            id=tab["id"],
            user_id=tab["user_id"],
            title=tab["title"],
            type=CanvasType(tab["type"]),
            nodes=[_node_from_row(dict(n)) for n in nodes],
            edges=[_edge_from_row(dict(e)) for e in edges],
            config=loads(tab.get("config"), {}),
            scale=tab["scale"],
            offset=Position(x=tab["offset_x"], y=tab["offset_y"]),
            created_at=parse_dt(tab.get("created_at")) or utc_now(),
            updated_at=parse_dt(tab.get("updated_at")) or utc_now(),
        )

    @staticmethod
    def list_by_user(user_id: str) -> list[CanvasTabSummary]:
        """Tab summaries, oldest first (tab bar order)."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT t.id, t.title, t.type, t.created_at, t.updated_at,
                    (SELECT COUNT(*) FROM canvas_nodes n WHERE n.tab_id = t.id) AS node_count,
                    (SELECT COUNT(*) FROM canvas_edges e WHERE e.tab_id = t.id) AS edge_count
                FROM canvas_tabs t
                WHERE t.user_id = ?
                ORDER BY t.created_at ASC
                """,
                (user_id,),
            ).fetchall()

        return [
            CanvasTabSummary(
                id=row["id"],
                title=row["title"],
                type=CanvasType(row["type"]),
                node_count=row["node_count"],
                edge_count=row["edge_count"],
                created_at=parse_dt(row["created_at"]) or utc_now(),
                updated_at=parse_dt(row["updated_at"]) or utc_now(),
            )
            for row in rows
        ]

    @staticmethod
    @retry_on_db_lock()
    def delete(tab_id: str, user_id: str) -> bool:
        """Delete a tab; nodes and edges go with it (ON DELETE CASCADE)."""
        with db_transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM canvas_tabs WHERE id = ? AND user_id = ?",
                (tab_id, user_id),
            )
            return cursor.rowcount > 0
