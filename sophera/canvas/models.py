"""
Canvas models: tabs holding a node graph of the patient's journey.

Node types use the camelCase values the web client's renderer expects.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sophera.utils.db_fields import utc_now
from sophera.utils.validators import require_text


class CanvasType(str, Enum):
    FREEFORM = "freeform"
    CALENDAR = "calendar"
    SPREADSHEET = "spreadsheet"
    JOURNEY = "journey"
    TEMPLATE = "template"


class NodeType(str, Enum):
    # Medical data
    TREATMENT = "treatment"
    MEDICATION = "medication"
    SYMPTOM = "symptom"
    LAB_RESULT = "labResult"
    # Documents
    RESEARCH = "research"
    DOCTOR_NOTE = "doctorNote"
    MEDICAL_IMAGE = "medicalImage"
    # Journal
    SYMPTOM_LOG = "symptomLog"
    DIET_LOG = "dietLog"
    EXERCISE_LOG = "exerciseLog"
    MOOD_ENTRY = "moodEntry"
    # Support
    HOPE_SNIPPET = "hopeSnippet"
    CAREGIVER_NOTE = "caregiverNote"
    MILESTONE = "milestone"
    VICTORY = "victory"
    # Generic
    NOTE = "note"
    CUSTOM = "custom"


class Position(BaseModel):
    x: float = 0.0
    y: float = 0.0


class Size(BaseModel):
    width: float = Field(default=200.0, gt=0)
    height: float = Field(default=100.0, gt=0)


class InputLink(BaseModel):
    node_id: str
    output: int = 0


class NodeInput(BaseModel):
    name: str
    type: str
    linked_to: InputLink | None = None


class NodeOutput(BaseModel):
    name: str
    type: str


class NodeVisual(BaseModel):
    color: str | None = None
    icon: str | None = None
    shape: str | None = None


class DataRef(BaseModel):
    """Points a node at a stored record, e.g. collection "treatments"."""

    collection: str
    doc_id: str


class CanvasNode(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    type: NodeType = NodeType.NOTE
    title: str = "New Node"
    position: Position = Field(default_factory=Position)
    size: Size = Field(default_factory=Size)
    inputs: list[NodeInput] = Field(default_factory=list)
    outputs: list[NodeOutput] = Field(default_factory=list)
    properties: dict[str, Any] = Field(default_factory=dict)
    data_ref: DataRef | None = None
    visual: NodeVisual | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class CanvasEdge(BaseModel):
    id: str
    source_node_id: str
    source_output_index: int = Field(default=0, ge=0)
    target_node_id: str
    target_input_index: int = Field(default=0, ge=0)
    type: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)


class CanvasTab(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    user_id: str
    title: str
    type: CanvasType = CanvasType.FREEFORM
    nodes: list[CanvasNode] = Field(default_factory=list)
    edges: list[CanvasEdge] = Field(default_factory=list)
    config: dict[str, Any] = Field(default_factory=dict)
    scale: float = Field(default=1.0, gt=0)
    offset: Position = Field(default_factory=Position)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def get_node(self, node_id: str) -> CanvasNode | None:
        return next((n for n in self.nodes if n.id == node_id), None)

    def get_edge(self, edge_id: str) -> CanvasEdge | None:
        return next((e for e in self.edges if e.id == edge_id), None)


class CanvasTabSummary(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    title: str
    type: CanvasType
    node_count: int
    edge_count: int
    created_at: datetime
    updated_at: datetime


# --- Request bodies ---


class TabCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    type: CanvasType = CanvasType.FREEFORM
    title: str | None = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str | None) -> str | None:
        return None if v is None else require_text(v, "title")


class TabUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    title: str | None = None
    type: CanvasType | None = None
    config: dict[str, Any] | None = None
    scale: float | None = Field(default=None, gt=0)
    offset: Position | None = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str | None) -> str | None:
        return None if v is None else require_text(v, "title")


class NodeCreate(BaseModel):
    """Partial node; unset fields take CanvasNode defaults."""

    model_config = ConfigDict(use_enum_values=True)

    id: str | None = None
    type: NodeType | None = None
    title: str | None = None
    position: Position | None = None
    size: Size | None = None
    inputs: list[NodeInput] | None = None
    outputs: list[NodeOutput] | None = None
    properties: dict[str, Any] | None = None
    data_ref: DataRef | None = None
    visual: NodeVisual | None = None


class NodeUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    type: NodeType | None = None
    title: str | None = None
    position: Position | None = None
    size: Size | None = None
    inputs: list[NodeInput] | None = None
    outputs: list[NodeOutput] | None = None
    properties: dict[str, Any] | None = None
    data_ref: DataRef | None = None
    visual: NodeVisual | None = None


class EdgeCreate(BaseModel):
    id: str | None = None
    source_node_id: str
    source_output_index: int = Field(default=0, ge=0)
    target_node_id: str
    target_input_index: int = Field(default=0, ge=0)
    type: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)


class EdgeUpdate(BaseModel):
    source_output_index: int | None = Field(default=None, ge=0)
    target_input_index: int | None = Field(default=None, ge=0)
    type: str | None = None
    properties: dict[str, Any] | None = None
