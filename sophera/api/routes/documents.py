"""
Document API endpoints.

Upload (JSON or plain-text file), rule-based extraction, keyword search and
LLM question answering over a single document.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile

from sophera.api.middleware.user_auth import AuthenticatedUser, get_current_user
from sophera.config import API_LIST_LIMIT_DEFAULT, API_LIST_LIMIT_MAX, API_UPLOAD_MAX_BYTES
from sophera.documents import Document, DocumentAnswer, DocumentCreate, DocumentRepository, DocumentType
from sophera.documents import service as document_service
from sophera.documents.models import (
    DocumentQuestion,
    DocumentSearchRequest,
    DocumentSearchResult,
    DocumentSummary,
)
from sophera.infrastructure.llm_budget import BudgetExceededError, ensure_budget, record_llm_call
from sophera.observability.logging import get_logger
from sophera.observability.telemetry import log_event
from sophera.utils.error_sanitizer import sanitize_error_message

router = APIRouter(prefix="/api/documents", tags=["documents"])
logger = get_logger(__name__)

NOT_FOUND = "Document not found"

TEXT_CONTENT_TYPES = frozenset({"text/plain", "text/markdown", "text/x-markdown"})
TEXT_SUFFIXES = frozenset({".txt", ".md", ".markdown"})


def _is_text_upload(file: UploadFile) -> bool:
    content_type = (file.content_type or "").split(";")[0].strip().lower()
    suffix = Path(file.filename or "").suffix.lower()
    return content_type in TEXT_CONTENT_TYPES or suffix in TEXT_SUFFIXES


@router.get("", response_model=list[DocumentSummary])
async def list_documents(
    user: AuthenticatedUser = Depends(get_current_user),
    type: DocumentType | None = Query(None),
    limit: int = Query(API_LIST_LIMIT_DEFAULT, ge=1, le=API_LIST_LIMIT_MAX),
    offset: int = Query(0, ge=0),
) -> list[DocumentSummary]:
    """List documents without their text, newest first."""
    try:
        documents = DocumentRepository.list_by_user(
            user.id, doc_type=type.value if type else None, limit=limit, offset=offset
        )
        return [DocumentSummary.from_document(d) for d in documents]
    except Exception as e:
        logger.error("Failed to list documents: %s", e)
        raise HTTPException(status_code=500, detail="Failed to list documents") from None


@router.post("", response_model=Document, status_code=201)
async def create_document(
    request: DocumentCreate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Document:
    try:
        return DocumentRepository.create(user.id, request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to create document: %s", e)
        raise HTTPException(status_code=500, detail="Failed to create document") from None


@router.post("/upload", response_model=Document, status_code=201)
async def upload_document(
    file: UploadFile = File(...),
    title: str | None = Form(None),
    type: DocumentType = Form(DocumentType.OTHER),
    source_date: date | None = Form(None),
    tags: str | None = Form(None, description="Comma-separated tags"),
    user: AuthenticatedUser = Depends(get_current_user),
) -> Document:
    """
    Store an uploaded text or markdown file as a document.

    The body is decoded as UTF-8 and capped at API_UPLOAD_MAX_BYTES.
    """
    if not _is_text_upload(file):
        raise HTTPException(status_code=415, detail="Only plain text and markdown files are supported")

    raw = await file.read(API_UPLOAD_MAX_BYTES + 1)
    if len(raw) > API_UPLOAD_MAX_BYTES:
        log_event("documents.upload.too_large", limit=API_UPLOAD_MAX_BYTES)
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {API_UPLOAD_MAX_BYTES} bytes.",
        )

    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="File must be UTF-8 encoded text") from None

    try:
        data = DocumentCreate(
            title=title or Path(file.filename or "").stem or "Untitled document",
            type=type,
            content=content,
            source_date=source_date,
            tags=[t for t in (tags or "").split(",") if t.strip()],
        )
        document = DocumentRepository.create(user.id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to store uploaded document: %s", e)
        raise HTTPException(status_code=500, detail="Failed to store document") from None

    log_event("documents.upload.stored", size=len(raw), type=document.type)
    return document


@router.post("/search", response_model=list[DocumentSearchResult])
async def search_documents(
    request: DocumentSearchRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> list[DocumentSearchResult]:
    """Keyword search over titles and text; title hits weigh more."""
    try:
        return document_service.search(user.id, request.query)
    except Exception as e:
        logger.error("Document search failed: %s", e)
        raise HTTPException(status_code=500, detail="Document search failed") from None


@router.get("/{document_id}", response_model=Document)
async def get_document(
    document_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Document:
    document = DocumentRepository.get(document_id, user.id)
    if document is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return document


@router.delete("/{document_id}", status_code=204)
async def delete_document(
    document_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Response:
    if not DocumentRepository.delete(document_id, user.id):
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return Response(status_code=204)


@router.post("/{document_id}/extract", response_model=Document)
async def extract_document(
    document_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Document:
    """Run the analyzer over the stored text and save the result."""
    try:
        document = document_service.extract(document_id, user.id)
    except Exception as e:
        logger.error("Document extraction failed for %s: %s", document_id, e)
        raise HTTPException(status_code=500, detail="Document extraction failed") from None

    if document is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return document


@router.post("/{document_id}/ask", response_model=DocumentAnswer)
async def ask_document(
    document_id: str,
    request: DocumentQuestion,
    user: AuthenticatedUser = Depends(get_current_user),
) -> DocumentAnswer:
    """Answer a question about one document."""
    document = DocumentRepository.get(document_id, user.id)
    if document is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)

    try:
        ensure_budget(user.id)
    except BudgetExceededError:
        raise HTTPException(status_code=429, detail="Daily AI usage limit reached") from None

    answer = document_service.ask(document, request.question)
    if answer.model_used:
        record_llm_call(user.id, "document_qa")
    return answer
