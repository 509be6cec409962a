"""
Integration tests for the patient record endpoints.

Covers profile, treatments, journal logs, diet logs and plan items through
the real FastAPI app, including per-user isolation: a record created by one
user is a 404 for every other user.
"""

from __future__ import annotations

from datetime import date, timedelta

import pytest

TEST_USER_ID = "user-test-1"
OTHER_USER_ID = "user-test-2"

# ============================================================================
# Profile
# ============================================================================


class TestProfile:
    def test_get_creates_profile(self, client):
        response = client.get("/api/profile")

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == TEST_USER_ID
        assert body["username"] == f"{TEST_USER_ID}@example.com"
        assert body["display_name"] == "Test Patient"
        assert body["preferences"] == {}

    def test_update_profile(self, client):
        response = client.patch(
            "/api/profile",
            json={"diagnosis": "Esophageal adenocarcinoma", "diagnosis_date": "2023-11-02"},
        )

        assert response.status_code == 200
        assert response.json()["diagnosis"] == "Esophageal adenocarcinoma"
        assert response.json()["diagnosis_date"] == "2023-11-02"
        assert client.get("/api/profile").json()["diagnosis"] == "Esophageal adenocarcinoma"

    def test_update_preferences(self, client):
        response = client.patch("/api/profile/preferences", json={"theme": "dark"})

        assert response.status_code == 200
        assert response.json()["preferences"]["theme"] == "dark"

    def test_invalid_diagnosis_date(self, client):
        response = client.patch("/api/profile", json={"diagnosis_date": "yesterday"})
        assert response.status_code == 422


# ============================================================================
# Treatments
# ============================================================================


class TestTreatments:
    def create(self, client, **overrides):
        payload = {"name": "FLOT", "type": "chemotherapy", "start_date": "2024-01-10"}
        payload.update(overrides)
        response = client.post("/api/treatments", json=payload)
        assert response.status_code == 201
        return response.json()

    def test_create_and_get(self, client):
        created = self.create(client)

        response = client.get(f"/api/treatments/{created['id']}")

        assert response.status_code == 200
        assert response.json()["name"] == "FLOT"
        assert response.json()["active"] is True
        assert response.json()["user_id"] == TEST_USER_ID

    def test_list_filters_active(self, client):
        self.create(client, name="FLOT")
        self.create(client, name="Radiation", type="radiation", active=False)

        names = {t["name"] for t in client.get("/api/treatments").json()}
        active = {t["name"] for t in client.get("/api/treatments?active=true").json()}

        assert names == {"FLOT", "Radiation"}
        assert active == {"FLOT"}

    def test_update(self, client):
        created = self.create(client)

        response = client.patch(
            f"/api/treatments/{created['id']}", json={"active": False, "notes": "Paused"}
        )

        assert response.status_code == 200
        assert response.json()["active"] is False
        assert response.json()["notes"] == "Paused"

    def test_side_effects_and_effectiveness(self, client):
        created = self.create(client)

        response = client.post(
            f"/api/treatments/{created['id']}/side-effects",
            json={"name": "Nausea", "severity": 4},
        )
        assert response.status_code == 201
        assert response.json()["side_effects"][0]["name"] == "Nausea"

        response = client.post(
            f"/api/treatments/{created['id']}/effectiveness",
            json={"metric": "Tumor response", "rating": 7},
        )
        assert response.status_code == 201
        assert response.json()["effectiveness"][0]["rating"] == 7
        assert len(response.json()["side_effects"]) == 1

    def test_severity_out_of_range(self, client):
        created = self.create(client)
        response = client.post(
            f"/api/treatments/{created['id']}/side-effects",
            json={"name": "Nausea", "severity": 11},
        )
        assert response.status_code == 422
        assert "severity" in response.json()["invalid_fields"]

    def test_delete(self, client):
        created = self.create(client)

        assert client.delete(f"/api/treatments/{created['id']}").status_code == 204
        assert client.get(f"/api/treatments/{created['id']}").status_code == 404
        assert client.delete(f"/api/treatments/{created['id']}").status_code == 404

    def test_other_user_cannot_see_treatment(self, client, login):
        created = self.create(client)

        login(OTHER_USER_ID)

        assert client.get(f"/api/treatments/{created['id']}").status_code == 404
        assert client.get("/api/treatments").json() == []
        response = client.patch(f"/api/treatments/{created['id']}", json={"notes": "x"})
        assert response.status_code == 404
        assert response.json()["detail"] == "Treatment not found"


# ============================================================================
# Journal logs
# ============================================================================


class TestJournalLogs:
    def test_crud(self, client):
        response = client.post(
            "/api/journal-logs",
            json={
                "entry_date": "2024-03-01",
                "content": "Tired but okay",
                "mood": "calm",
                "pain_level": 3,
                "symptoms": ["fatigue"],
            },
        )
        assert response.status_code == 201
        log_id = response.json()["id"]

        response = client.put(f"/api/journal-logs/{log_id}", json={"pain_level": 5})
        assert response.status_code == 200
        assert response.json()["pain_level"] == 5
        assert response.json()["content"] == "Tired but okay"

        assert client.get(f"/api/journal-logs/{log_id}").json()["symptoms"] == ["fatigue"]
        assert client.delete(f"/api/journal-logs/{log_id}").status_code == 204
        assert client.get(f"/api/journal-logs/{log_id}").status_code == 404

    def test_date_range_filter(self, client):
        for day in ("2024-03-01", "2024-03-05", "2024-03-10"):
            client.post("/api/journal-logs", json={"entry_date": day, "content": f"Day {day}"})

        response = client.get("/api/journal-logs?date_from=2024-03-02&date_to=2024-03-10")

        assert response.status_code == 200
        assert sorted(log["entry_date"] for log in response.json()) == ["2024-03-05", "2024-03-10"]

    def test_reversed_date_range_rejected(self, client):
        response = client.get("/api/journal-logs?date_from=2024-03-10&date_to=2024-03-01")

        assert response.status_code == 400
        assert response.json()["detail"] == "date_to must not be before date_from"

    @pytest.mark.parametrize(
        "payload",
        [
            {"content": "   "},
            {"content": "ok", "pain_level": 11},
            {"content": "ok", "entry_date": "03/01/2024"},
        ],
    )
    def test_invalid_entries_rejected(self, client, payload):
        assert client.post("/api/journal-logs", json=payload).status_code == 422

    def test_isolated_per_user(self, client, login):
        log_id = client.post("/api/journal-logs", json={"content": "Private"}).json()["id"]

        login(OTHER_USER_ID)

        assert client.get(f"/api/journal-logs/{log_id}").status_code == 404
        assert client.delete(f"/api/journal-logs/{log_id}").status_code == 404


# ============================================================================
# Diet logs
# ============================================================================


class TestDietLogs:
    def test_daily_totals(self, client):
        for meal, calories, protein in (("breakfast", 350, 12), ("lunch", 600, 30)):
            response = client.post(
                "/api/diet-logs",
                json={
                    "meal_date": "2024-03-01",
                    "meal_type": meal,
                    "food_items": ["oats"],
                    "calories": calories,
                    "protein": protein,
                },
            )
            assert response.status_code == 201
        client.post("/api/diet-logs", json={"meal_date": "2024-03-02", "calories": 900})

        totals = client.get("/api/diet-logs/totals?day=2024-03-01").json()

        assert totals["day"] == "2024-03-01"
        assert totals["meals"] == 2
        assert totals["calories"] == 950
        assert totals["protein"] == 42
        assert totals["fat"] == 0

    def test_update_and_delete(self, client):
        log_id = client.post("/api/diet-logs", json={"meal_type": "dinner"}).json()["id"]

        response = client.put(f"/api/diet-logs/{log_id}", json={"notes": "Soup"})
        assert response.json()["notes"] == "Soup"
        assert response.json()["meal_type"] == "dinner"

        assert client.delete(f"/api/diet-logs/{log_id}").status_code == 204

    def test_negative_amount_rejected(self, client):
        response = client.post("/api/diet-logs", json={"calories": -5})
        assert response.status_code == 422

    def test_unknown_meal_type_rejected(self, client):
        response = client.post("/api/diet-logs", json={"meal_type": "brunch"})
        assert response.status_code == 422


# ============================================================================
# Plan items
# ============================================================================


class TestPlanItems:
    def test_upcoming_and_completion(self, client):
        today = date.today()
        soon = client.post(
            "/api/plan-items",
            json={"title": "Blood work", "due_date": (today + timedelta(days=2)).isoformat()},
        ).json()
        client.post(
            "/api/plan-items",
            json={"title": "Scan", "due_date": (today + timedelta(days=30)).isoformat()},
        )
        client.post("/api/plan-items", json={"title": "Someday"})

        upcoming = client.get("/api/plan-items/upcoming").json()
        assert [item["title"] for item in upcoming] == ["Blood work"]

        wider = client.get("/api/plan-items/upcoming?days=60").json()
        assert [item["title"] for item in wider] == ["Blood work", "Scan"]

        response = client.post(f"/api/plan-items/{soon['id']}/complete", json={})
        assert response.status_code == 200
        assert response.json()["is_completed"] is True
        assert response.json()["completed_at"] is not None

        assert client.get("/api/plan-items/upcoming").json() == []
        titles = {i["title"] for i in client.get("/api/plan-items?include_completed=false").json()}
        assert "Blood work" not in titles

        response = client.post(
            f"/api/plan-items/{soon['id']}/complete", json={"is_completed": False}
        )
        assert response.json()["is_completed"] is False
        assert response.json()["completed_at"] is None

    def test_upcoming_days_bounds(self, client):
        assert client.get("/api/plan-items/upcoming?days=0").status_code == 422
        assert client.get("/api/plan-items/upcoming?days=91").status_code == 422

    def test_update_and_isolation(self, client, login):
        item = client.post("/api/plan-items", json={"title": "Walk", "category": "exercise"}).json()

        response = client.put(f"/api/plan-items/{item['id']}", json={"priority": "high"})
        assert response.json()["priority"] == "high"
        assert response.json()["category"] == "exercise"

        login(OTHER_USER_ID)
        assert client.get(f"/api/plan-items/{item['id']}").status_code == 404
        assert client.post(f"/api/plan-items/{item['id']}/complete", json={}).status_code == 404


# ============================================================================
# Date fields
# ============================================================================


@pytest.mark.parametrize(
    "method,path,payload",
    [
        ("post", "/api/treatments", {"name": "FOLFOX", "type": "chemo", "start_date": 20240101}),
        ("post", "/api/treatments", {"name": "FOLFOX", "type": "chemo", "end_date": 1.5}),
        ("post", "/api/journal-logs", {"content": "ok", "entry_date": 5}),
        ("post", "/api/diet-logs", {"meal_date": 20240301}),
        ("post", "/api/plan-items", {"title": "Walk", "due_date": 7}),
        ("patch", "/api/profile", {"diagnosis_date": 2024}),
    ],
)
def test_numeric_date_rejected(client, method, path, payload):
    response = getattr(client, method)(path, json=payload)

    assert response.status_code == 422
