"""
Document operations beyond CRUD: analysis, keyword search and Q&A.
"""

from __future__ import annotations

import re

from sophera.config import LLM_DOCUMENT_CONTEXT_CHARS
from sophera.documents.analyzer import analyze
from sophera.documents.models import (
    Document,
    DocumentAnswer,
    DocumentSearchResult,
    DocumentType,
)
from sophera.documents.repository import DocumentRepository
from sophera.llm import available_providers, call_llm
from sophera.observability.logging import get_logger
from sophera.observability.telemetry import counter, time_block
from sophera.utils.redaction import sanitize_for_prompt

logger = get_logger(__name__)

TITLE_WEIGHT = 3
SNIPPET_RADIUS = 80
SEARCH_SCAN_LIMIT = 1000

DOCUMENT_QA_SYSTEM_INSTRUCTION = (
    "You answer questions about a patient's medical document. Use only the "
    "document text you are given. If the answer is not in the document, say so. "
    "Do not give medical advice; suggest discussing results with the care team."
)


def extract(document_id: str, user_id: str) -> Document | None:
    """
    Analyze a stored document and persist the result.

    The stored type is replaced by the classifier's only when it is "other".
    Returns None when the document does not exist for user_id.
    """
    document = DocumentRepository.get(document_id, user_id)
    if document is None:
        return None

    analysis = analyze(document.content)
    new_type = analysis.source_type if document.type == DocumentType.OTHER.value else None
    return DocumentRepository.update_parsed(document_id, user_id, analysis, new_type)


def _snippet(content: str, position: int) -> str:
    start = max(0, position - SNIPPET_RADIUS)
    end = min(len(content), position + SNIPPET_RADIUS)
    text = " ".join(content[start:end].split())
    if start > 0:
        text = "..." + text
    if end < len(content):
        text += "..."
    return text


def search(user_id: str, query: str) -> list[DocumentSearchResult]:
    """
    Case-insensitive term search over the user's documents.

    Score is the number of term occurrences in the content plus TITLE_WEIGHT
    per occurrence in the title. Documents with score 0 are left out. The
    snippet surrounds the first content hit (or starts the document when only
    the title matched).
    """
    # Matched against the original text so hit offsets index document.content
    patterns = [re.compile(re.escape(term), re.IGNORECASE) for term in query.split()]
    if not patterns:
        return []

    results = []
    for document in DocumentRepository.list_by_user(user_id, limit=SEARCH_SCAN_LIMIT):
        score = 0
        first_hit: int | None = None
        for pattern in patterns:
            score += len(pattern.findall(document.title)) * TITLE_WEIGHT
            hits = [m.start() for m in pattern.finditer(document.content)]
            score += len(hits)
            if hits:
                first_hit = hits[0] if first_hit is None else min(first_hit, hits[0])

        if score == 0:
            continue

        results.append(
            DocumentSearchResult(
                document_id=document.id,
                title=document.title,
                type=document.type,
                score=score,
                snippet=_snippet(document.content, first_hit or 0),
            )
        )

    results.sort(key=lambda r: r.score, reverse=True)
    counter("documents.search")
    return results


def build_question_prompt(document: Document, question: str) -> str:
    content = document.content
    if len(content) > LLM_DOCUMENT_CONTEXT_CHARS:
        content = content[:LLM_DOCUMENT_CONTEXT_CHARS] + "\n[document truncated]"

    return (
        f"Document title: {document.title}\n"
        f"Document type: {document.type}\n\n"
        f"--- DOCUMENT START ---\n{content}\n--- DOCUMENT END ---\n\n"
        f"Question: {sanitize_for_prompt(question, max_length=1000)}"
    )


def _fallback_answer(document: Document) -> DocumentAnswer:
    analysis = document.parsed_content or analyze(document.content)
    return DocumentAnswer(
        answer=(
            "I can't answer questions about this document right now. "
            f"Here is what was extracted from it: {analysis.summary}"
        ),
        model_used=None,
        grounded=False,
    )


def ask(document: Document, question: str) -> DocumentAnswer:
    """
    Answer a question from the document's text.

    Uses the first configured provider. With none configured, or when the
    call fails, answers from the analysis summary with grounded=False and
    model_used None.
    """
    providers = available_providers()
    if not providers:
        counter("documents.ask.no_provider")
        return _fallback_answer(document)

    provider = providers[0]
    try:
        with time_block("documents.ask"):
            answer = call_llm(
                build_question_prompt(document, question),
                provider=provider,
                counter_prefix="documents.ask",
                system_instruction=DOCUMENT_QA_SYSTEM_INSTRUCTION,
            ).strip()
    except Exception as e:
        logger.error("Document Q&A failed for %s: %s", document.id, e)
        counter("documents.ask.error")
        return _fallback_answer(document)

    if not answer:
        return _fallback_answer(document)

    counter("documents.ask.answered")
    return DocumentAnswer(answer=answer, model_used=provider.value, grounded=True)
