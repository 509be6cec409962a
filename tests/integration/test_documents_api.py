"""
Integration tests for /api/documents.

Covers:
- JSON creation, listing and per-user isolation
- text/markdown uploads and their size/type/encoding checks
- rule-based extraction
- keyword search scoring
- question answering with and without a configured provider
"""

from __future__ import annotations

import pytest

from sophera.api.routes import documents as documents_route
from sophera.documents import service as document_service
from sophera.infrastructure.llm_budget import get_daily_usage_report
from sophera.llm import Provider

OTHER_USER_ID = "user-test-2"

LAB_TEXT = """CBC results
Hemoglobin: 10.5 g/dL
WBC: 6.2 K/uL
Platelets: 210 K/uL
"""


def create_document(client, **overrides):
    payload = {"title": "Blood work", "content": LAB_TEXT}
    payload.update(overrides)
    response = client.post("/api/documents", json=payload)
    assert response.status_code == 201
    return response.json()


# ============================================================================
# CRUD
# ============================================================================


class TestDocumentCrud:
    def test_create_and_get(self, client):
        doc = create_document(client, tags=["Labs"], source_date="2024-03-01")

        assert doc["type"] == "other"
        assert doc["tags"] == ["labs"]
        assert doc["parsed_content"] is None

        fetched = client.get(f"/api/documents/{doc['id']}").json()
        assert fetched["content"] == LAB_TEXT
        assert fetched["source_date"] == "2024-03-01"

    def test_list_omits_content(self, client):
        create_document(client)
        create_document(client, title="Scan", type="imaging", content="CT scan of chest")

        listed = client.get("/api/documents").json()
        assert len(listed) == 2
        assert "content" not in listed[0]

        imaging = client.get("/api/documents?type=imaging").json()
        assert [d["title"] for d in imaging] == ["Scan"]

    def test_blank_content_rejected(self, client):
        response = client.post("/api/documents", json={"title": "Empty", "content": "  "})
        assert response.status_code == 422

    def test_numeric_source_date_rejected(self, client):
        response = client.post(
            "/api/documents", json={"title": "Scan", "content": "CT", "source_date": 20240101}
        )
        assert response.status_code == 422

    def test_delete(self, client):
        doc = create_document(client)

        assert client.delete(f"/api/documents/{doc['id']}").status_code == 204
        assert client.get(f"/api/documents/{doc['id']}").status_code == 404
        assert client.delete(f"/api/documents/{doc['id']}").status_code == 404

    def test_other_user_cannot_read(self, client, login):
        doc = create_document(client)

        login(OTHER_USER_ID)

        response = client.get(f"/api/documents/{doc['id']}")
        assert response.status_code == 404
        assert response.json()["detail"] == "Document not found"
        assert client.get("/api/documents").json() == []


# ============================================================================
# Uploads
# ============================================================================


class TestUpload:
    def test_text_upload(self, client):
        response = client.post(
            "/api/documents/upload",
            files={"file": ("cbc-march.txt", LAB_TEXT.encode(), "text/plain")},
            data={"type": "lab_report", "tags": "labs, march"},
        )

        assert response.status_code == 201
        doc = response.json()
        assert doc["title"] == "cbc-march"
        assert doc["type"] == "lab_report"
        assert doc["tags"] == ["labs", "march"]

    def test_markdown_by_suffix(self, client):
        response = client.post(
            "/api/documents/upload",
            files={"file": ("notes.md", b"# Visit\nAll good", "application/octet-stream")},
            data={"title": "Visit notes"},
        )

        assert response.status_code == 201
        assert response.json()["title"] == "Visit notes"

    def test_unsupported_type(self, client):
        response = client.post(
            "/api/documents/upload",
            files={"file": ("scan.pdf", b"%PDF-1.4", "application/pdf")},
        )
        assert response.status_code == 415

    def test_too_large(self, client, monkeypatch):
        monkeypatch.setattr(documents_route, "API_UPLOAD_MAX_BYTES", 16)

        response = client.post(
            "/api/documents/upload",
            files={"file": ("big.txt", b"x" * 17, "text/plain")},
        )
        assert response.status_code == 413

    def test_not_utf8(self, client):
        response = client.post(
            "/api/documents/upload",
            files={"file": ("latin.txt", "café".encode("latin-1"), "text/plain")},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "File must be UTF-8 encoded text"


# ============================================================================
# Extraction and search
# ============================================================================


class TestExtraction:
    def test_extract_classifies_other(self, client):
        doc = create_document(client)

        response = client.post(f"/api/documents/{doc['id']}/extract")

        assert response.status_code == 200
        body = response.json()
        assert body["type"] == "lab_report"
        assert body["parsed_content"]["key_info"]["lab_values"]["hemoglobin"] == 10.5
        assert "low hemoglobin (10.5 g/dL)" in body["parsed_content"]["summary"]

        listed = client.get("/api/documents").json()
        assert listed[0]["has_analysis"] is True

    def test_extract_keeps_explicit_type(self, client):
        doc = create_document(client, type="notes")

        body = client.post(f"/api/documents/{doc['id']}/extract").json()

        assert body["type"] == "notes"
        assert body["parsed_content"]["source_type"] == "lab_report"

    def test_extract_missing(self, client):
        assert client.post("/api/documents/nope/extract").status_code == 404


class TestSearch:
    def test_title_hits_weigh_more(self, client):
        titled = create_document(client, title="Hemoglobin trend", content="Stable this month")
        create_document(client)

        results = client.post("/api/documents/search", json={"query": "hemoglobin"}).json()

        assert [r["score"] for r in results] == [3, 1]
        assert results[0]["document_id"] == titled["id"]
        assert "Hemoglobin: 10.5" in results[1]["snippet"]

    def test_snippet_offsets_follow_original_text(self, client):
        # Each "\u0130" lowercases to two characters
        content = (
            "\u0130ZM\u0130R " * 60
            + "Ferritin LOW at 12 ng/mL. "
            + "Follow-up in six weeks. " * 10
        )
        create_document(client, title="Visit notes", content=content)

        results = client.post("/api/documents/search", json={"query": "ferritin"}).json()

        assert results[0]["score"] == 1
        assert "Ferritin LOW at 12" in results[0]["snippet"]

    def test_no_matches(self, client):
        create_document(client)

        assert client.post("/api/documents/search", json={"query": "mri"}).json() == []

    def test_search_scoped_to_user(self, client, login):
        create_document(client)

        login(OTHER_USER_ID)

        assert client.post("/api/documents/search", json={"query": "hemoglobin"}).json() == []


# ============================================================================
# Question answering
# ============================================================================


class TestAsk:
    def test_fallback_without_provider(self, client):
        doc = create_document(client)

        response = client.post(
            f"/api/documents/{doc['id']}/ask", json={"question": "Is my hemoglobin low?"}
        )

        body = response.json()
        assert body["model_used"] is None
        assert body["grounded"] is False
        assert body["answer"].startswith("I can't answer questions about this document right now.")
        assert get_daily_usage_report()["total_calls"] == 0

    def test_answer_from_provider(self, client, monkeypatch):
        prompts = []

        def fake_call_llm(prompt, **kwargs):
            prompts.append(prompt)
            return "Yes, 10.5 g/dL is below the usual range."

        monkeypatch.setattr(document_service, "available_providers", lambda: [Provider.GPT])
        monkeypatch.setattr(document_service, "call_llm", fake_call_llm)
        doc = create_document(client)

        body = client.post(
            f"/api/documents/{doc['id']}/ask", json={"question": "Is my hemoglobin low?"}
        ).json()

        assert body == {
            "answer": "Yes, 10.5 g/dL is below the usual range.",
            "model_used": "gpt",
            "grounded": True,
        }
        assert "Hemoglobin: 10.5 g/dL" in prompts[0]
        assert get_daily_usage_report()["by_type"] == {"document_qa": 1}

    def test_provider_error_falls_back(self, client, monkeypatch):
        def failing(prompt, **kwargs):
            raise ConnectionError("down")

        monkeypatch.setattr(document_service, "available_providers", lambda: [Provider.CLAUDE])
        monkeypatch.setattr(document_service, "call_llm", failing)
        doc = create_document(client)

        body = client.post(f"/api/documents/{doc['id']}/ask", json={"question": "Why?"}).json()

        assert body["grounded"] is False
        assert body["model_used"] is None

    def test_missing_document(self, client):
        response = client.post("/api/documents/nope/ask", json={"question": "Why?"})
        assert response.status_code == 404

    @pytest.mark.parametrize("question", ["", "   "])
    def test_blank_question(self, client, question):
        doc = create_document(client)
        response = client.post(f"/api/documents/{doc['id']}/ask", json={"question": question})
        assert response.status_code == 422
