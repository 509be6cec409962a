"""
Hope snippets: short quotes, stories and affirmations shown to patients.
"""

from sophera.hope.models import (
    HopeCategory,
    HopeResponse,
    HopeSnippet,
    HopeSnippetCreate,
    HopeSnippetUpdate,
)
from sophera.hope.repository import HopeSnippetRepository

__all__ = [
    "HopeCategory",
    "HopeResponse",
    "HopeSnippet",
    "HopeSnippetCreate",
    "HopeSnippetRepository",
    "HopeSnippetUpdate",
]
