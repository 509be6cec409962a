"""
Canvas API endpoints.

Every mutation loads the tab into a CanvasState with that tab active,
applies one operation and saves the whole tab back.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response

from sophera.api.middleware.user_auth import AuthenticatedUser, get_current_user
from sophera.canvas import (
    CanvasEdge,
    CanvasItemNotFoundError,
    CanvasNode,
    CanvasRepository,
    CanvasState,
    CanvasTab,
)
from sophera.canvas.models import (
    CanvasTabSummary,
    EdgeCreate,
    EdgeUpdate,
    NodeCreate,
    NodeUpdate,
    TabCreate,
    TabUpdate,
)
from sophera.observability.logging import get_logger
from sophera.utils.error_sanitizer import sanitize_error_message

router = APIRouter(prefix="/api/canvas", tags=["canvas"])
logger = get_logger(__name__)

TAB_NOT_FOUND = "Canvas tab not found"


def _load_state(tab_id: str, user: AuthenticatedUser) -> CanvasState:
    tab = CanvasRepository.load(tab_id, user.id)
    if tab is None:
        raise HTTPException(status_code=404, detail=TAB_NOT_FOUND)
    return CanvasState(user.id, tabs=[tab], active_tab_id=tab.id)


def _save(state: CanvasState) -> CanvasTab:
    tab = state.active_tab
    if tab is None:
        raise RuntimeError("Canvas state lost its active tab")
    return CanvasRepository.save_tab(tab)


@router.get("/tabs", response_model=list[CanvasTabSummary])
async def list_tabs(user: AuthenticatedUser = Depends(get_current_user)) -> list[CanvasTabSummary]:
    try:
        return CanvasRepository.list_by_user(user.id)
    except Exception as e:
        logger.error("Failed to list canvas tabs: %s", e)
        raise HTTPException(status_code=500, detail="Failed to list canvas tabs") from None


@router.post("/tabs", response_model=CanvasTab, status_code=201)
async def create_tab(
    request: TabCreate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> CanvasTab:
    """New freeform or calendar tab; calendar tabs cover the current month."""
    state = CanvasState(user.id)
    try:
        state.add_tab(request.type, request.title)
        return _save(state)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to create canvas tab: %s", e)
        raise HTTPException(status_code=500, detail="Failed to create canvas tab") from None


@router.get("/tabs/{tab_id}", response_model=CanvasTab)
async def get_tab(tab_id: str, user: AuthenticatedUser = Depends(get_current_user)) -> CanvasTab:
    tab = CanvasRepository.load(tab_id, user.id)
    if tab is None:
        raise HTTPException(status_code=404, detail=TAB_NOT_FOUND)
    return tab


@router.put("/tabs/{tab_id}", response_model=CanvasTab)
async def update_tab(
    tab_id: str,
    request: TabUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> CanvasTab:
    state = _load_state(tab_id, user)
    try:
        state.update_tab(tab_id, **request.model_dump(exclude_unset=True))
        return _save(state)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to update canvas tab: %s", e)
        raise HTTPException(status_code=500, detail="Failed to update canvas tab") from None


@router.delete("/tabs/{tab_id}", status_code=204)
async def delete_tab(tab_id: str, user: AuthenticatedUser = Depends(get_current_user)) -> Response:
    """Delete a tab with all its nodes and edges."""
    if not CanvasRepository.delete(tab_id, user.id):
        raise HTTPException(status_code=404, detail=TAB_NOT_FOUND)
    return Response(status_code=204)


@router.post("/tabs/{tab_id}/nodes", response_model=CanvasNode, status_code=201)
async def add_node(
    tab_id: str,
    request: NodeCreate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> CanvasNode:
    state = _load_state(tab_id, user)
    try:
        node_id = state.add_node(request)
        tab = _save(state)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to add canvas node: %s", e)
        raise HTTPException(status_code=500, detail="Failed to add canvas node") from None

    return tab.get_node(node_id)


@router.patch("/tabs/{tab_id}/nodes/{node_id}", response_model=CanvasNode)
async def update_node(
    tab_id: str,
    node_id: str,
    request: NodeUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> CanvasNode:
    state = _load_state(tab_id, user)
    try:
        node = state.update_node(node_id, **request.model_dump(exclude_unset=True))
        _save(state)
        return node
    except CanvasItemNotFoundError:
        raise HTTPException(status_code=404, detail="Canvas node not found") from None
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to update canvas node: %s", e)
        raise HTTPException(status_code=500, detail="Failed to update canvas node") from None


@router.delete("/tabs/{tab_id}/nodes/{node_id}", status_code=204)
async def delete_node(
    tab_id: str,
    node_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Response:
    """Delete a node and every edge attached to it."""
    state = _load_state(tab_id, user)
    try:
        state.delete_node(node_id)
        _save(state)
    except CanvasItemNotFoundError:
        raise HTTPException(status_code=404, detail="Canvas node not found") from None
    except Exception as e:
        logger.error("Failed to delete canvas node: %s", e)
        raise HTTPException(status_code=500, detail="Failed to delete canvas node") from None
    return Response(status_code=204)


@router.post("/tabs/{tab_id}/edges", response_model=CanvasEdge, status_code=201)
async def add_edge(
    tab_id: str,
    request: EdgeCreate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> CanvasEdge:
    state = _load_state(tab_id, user)
    try:
        edge_id = state.add_edge(request)
        tab = _save(state)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to add canvas edge: %s", e)
        raise HTTPException(status_code=500, detail="Failed to add canvas edge") from None

    return tab.get_edge(edge_id)


@router.patch("/tabs/{tab_id}/edges/{edge_id}", response_model=CanvasEdge)
async def update_edge(
    tab_id: str,
    edge_id: str,
    request: EdgeUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> CanvasEdge:
    state = _load_state(tab_id, user)
    try:
        edge = state.update_edge(edge_id, **request.model_dump(exclude_unset=True))
        _save(state)
        return edge
    except CanvasItemNotFoundError:
        raise HTTPException(status_code=404, detail="Canvas edge not found") from None
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to update canvas edge: %s", e)
        raise HTTPException(status_code=500, detail="Failed to update canvas edge") from None


@router.delete("/tabs/{tab_id}/edges/{edge_id}", status_code=204)
async def delete_edge(
    tab_id: str,
    edge_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Response:
    state = _load_state(tab_id, user)
    try:
        state.delete_edge(edge_id)
        _save(state)
    except CanvasItemNotFoundError:
        raise HTTPException(status_code=404, detail="Canvas edge not found") from None
    except Exception as e:
        logger.error("Failed to delete canvas edge: %s", e)
        raise HTTPException(status_code=500, detail="Failed to delete canvas edge") from None
    return Response(status_code=204)
