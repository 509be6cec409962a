"""
Integration tests for saved research and saved clinical trials.

Both are plain per-user bookmarks: anything saved by one user is a 404 for
every other user.
"""

from __future__ import annotations

import pytest

OTHER_USER_ID = "user-test-2"

ARTICLE = {
    "title": "Exercise during chemotherapy",
    "content": "Moderate aerobic exercise reduced fatigue scores.",
    "source_type": "PubMed",
    "source_id": "PMID:123456",
    "tags": ["Exercise", "fatigue", "exercise"],
    "evidence_level": "high",
}

TRIAL = {
    "trial_id": " nct01234567 ",
    "title": "Neoadjuvant FLOT with immunotherapy",
    "phase": "Phase 2",
    "status": "Recruiting",
    "locations": ["Boston, MA", "  "],
    "match_score": 82,
}


# ============================================================================
# Research items
# ============================================================================


class TestResearchItems:
    def test_create_and_get(self, client):
        response = client.post("/api/research", json=ARTICLE)

        assert response.status_code == 201
        created = response.json()
        assert created["source_type"] == "pubmed"
        assert created["tags"] == ["exercise", "fatigue"]
        assert created["evidence_level"] == "high"
        assert created["date_added"]

        fetched = client.get(f"/api/research/{created['id']}").json()
        assert fetched == created

    def test_list_filters_by_source_type(self, client):
        client.post("/api/research", json=ARTICLE)
        client.post(
            "/api/research",
            json={"title": "Anticancer cookbook", "content": "Chapter 3", "source_type": "book"},
        )

        assert len(client.get("/api/research").json()) == 2
        books = client.get("/api/research?source_type=BOOK").json()
        assert [item["title"] for item in books] == ["Anticancer cookbook"]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"title": "  "},
            {"source_type": ""},
            {"evidence_level": "certain"},
            {"tags": ["<script>"]},
        ],
    )
    def test_invalid_item_rejected(self, client, overrides):
        response = client.post("/api/research", json={**ARTICLE, **overrides})
        assert response.status_code == 422

    def test_delete(self, client):
        item_id = client.post("/api/research", json=ARTICLE).json()["id"]

        assert client.delete(f"/api/research/{item_id}").status_code == 204
        assert client.get(f"/api/research/{item_id}").status_code == 404
        assert client.delete(f"/api/research/{item_id}").status_code == 404

    def test_isolated_per_user(self, client, login):
        item_id = client.post("/api/research", json=ARTICLE).json()["id"]

        login(OTHER_USER_ID)

        assert client.get("/api/research").json() == []
        response = client.get(f"/api/research/{item_id}")
        assert response.status_code == 404
        assert response.json()["detail"] == "Research item not found"
        assert client.delete(f"/api/research/{item_id}").status_code == 404


# ============================================================================
# Saved trials
# ============================================================================


class TestSavedTrials:
    def test_save_normalizes_fields(self, client):
        response = client.post("/api/trials/saved", json=TRIAL)

        assert response.status_code == 201
        saved = response.json()
        assert saved["trial_id"] == "NCT01234567"
        assert saved["locations"] == ["Boston, MA"]
        assert saved["match_score"] == 82
        assert client.get(f"/api/trials/saved/{saved['id']}").json() == saved

    def test_saving_twice_updates_in_place(self, client):
        first = client.post("/api/trials/saved", json=TRIAL).json()

        second = client.post(
            "/api/trials/saved",
            json={**TRIAL, "trial_id": "NCT01234567", "status": "Active, not recruiting"},
        ).json()

        assert second["id"] == first["id"]
        assert second["date_added"] == first["date_added"]
        assert second["status"] == "Active, not recruiting"
        assert len(client.get("/api/trials/saved").json()) == 1

    @pytest.mark.parametrize(
        "overrides",
        [
            {"trial_id": " "},
            {"title": ""},
            {"match_score": 101},
            {"match_score": -1},
        ],
    )
    def test_invalid_trial_rejected(self, client, overrides):
        response = client.post("/api/trials/saved", json={**TRIAL, **overrides})
        assert response.status_code == 422

    def test_same_trial_saved_by_two_users(self, client, login):
        mine = client.post("/api/trials/saved", json=TRIAL).json()

        login(OTHER_USER_ID)

        assert client.get("/api/trials/saved").json() == []
        assert client.get(f"/api/trials/saved/{mine['id']}").status_code == 404
        assert client.delete(f"/api/trials/saved/{mine['id']}").status_code == 404

        theirs = client.post("/api/trials/saved", json=TRIAL).json()
        assert theirs["id"] != mine["id"]

    def test_delete(self, client):
        saved_id = client.post("/api/trials/saved", json=TRIAL).json()["id"]

        assert client.delete(f"/api/trials/saved/{saved_id}").status_code == 204
        assert client.get("/api/trials/saved").json() == []
