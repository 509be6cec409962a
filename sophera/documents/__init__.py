"""
Patient documents: lab reports, imaging, clinical notes and book excerpts.

Text is stored as uploaded; analyzer.py turns it into structured key
information on request and service.py answers questions about it.
"""

from sophera.documents.models import (
    Document,
    DocumentAnalysis,
    DocumentAnswer,
    DocumentCreate,
    DocumentType,
)
from sophera.documents.repository import DocumentRepository

__all__ = [
    "Document",
    "DocumentAnalysis",
    "DocumentAnswer",
    "DocumentCreate",
    "DocumentRepository",
    "DocumentType",
]
