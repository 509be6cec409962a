"""
Shared assistant enums and response shapes.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class ModelType(str, Enum):
    """Models a chat query can be routed to."""

    CLAUDE = "claude"
    GPT = "gpt"
    GEMINI = "gemini"
    BIOBERT = "biobert"


class QueryType(str, Enum):
    TREATMENT = "treatment"
    CLINICAL_TRIAL = "clinical_trial"
    RESEARCH = "research"
    MEDICAL_TERM = "medical_term"
    GENERAL = "general"
    HOPE = "hope"
    EMOTIONAL_SUPPORT = "emotional_support"


class Source(BaseModel):
    title: str
    url: str | None = None
    type: str
    date: str | None = None


class QueryResponse(BaseModel):
    content: str
    sources: list[Source] | None = None
    model_used: str
