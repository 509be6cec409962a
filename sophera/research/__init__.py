"""
Saved research: articles, studies and book excerpts a patient keeps for later.
"""

from sophera.research.models import EvidenceLevel, ResearchItem, ResearchItemCreate
from sophera.research.repository import ResearchItemRepository

__all__ = [
    "EvidenceLevel",
    "ResearchItem",
    "ResearchItemCreate",
    "ResearchItemRepository",
]
