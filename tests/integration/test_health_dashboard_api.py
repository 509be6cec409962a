"""
Integration tests for the health, debug and dashboard endpoints.
"""

from __future__ import annotations

from datetime import date, timedelta

# ============================================================================
# Health
# ============================================================================


def test_root_lists_endpoints(client):
    body = client.get("/").json()

    assert body["service"] == "Sophera API"
    assert body["endpoints"]["dashboard"] == "/api/dashboard"


def test_health_without_providers(client):
    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["llm"] == {
        "ready": False,
        "providers": {"claude": False, "gpt": False, "gemini": False},
        "google_cloud_project": False,
    }


def test_health_reports_configured_provider(client, with_provider):
    with_provider("OPENAI_API_KEY")

    llm = client.get("/health").json()["llm"]

    assert llm["ready"] is True
    assert llm["providers"]["gpt"] is True
    assert llm["providers"]["claude"] is False


def test_health_skips_authentication(db):
    from fastapi.testclient import TestClient

    from sophera.api.app import app

    with TestClient(app) as anonymous:
        assert anonymous.get("/health").status_code == 200
        assert anonymous.get("/api/dashboard").status_code == 401


def test_database_health(client):
    body = client.get("/health/db").json()

    assert body["status"] == "healthy"
    assert body["pool"]["closed"] is False
    assert body["warning"] is None


def test_debug_stats_counts_records(client):
    client.post("/api/documents", json={"title": "Scan", "type": "imaging", "content": "CT"})
    client.post("/api/treatments", json={"name": "FLOT", "type": "chemotherapy"})

    body = client.get("/debug/stats").json()

    assert body["records"]["documents"] == 1
    assert body["records"]["treatments"] == 1
    assert body["records"]["hope_snippets"] == 5
    assert body["records"]["saved_trials"] == 0
    assert body["documents_by_type"] == {"imaging": 1}
    assert body["llm"]["total_calls"] == 0


def test_debug_stats_reports_telemetry(client):
    client.get("/api/dashboard")
    client.post("/api/documents/search", json={"query": "scan"})

    telemetry = client.get("/debug/stats").json()["telemetry"]

    assert telemetry["counters"]["documents.search"] == 1
    assert telemetry["latency"]["dashboard.build"]["count"] == 1


def test_wal_checkpoint(client):
    from sophera.infrastructure.database import checkpoint_wal

    client.post("/api/treatments", json={"name": "FLOT", "type": "chemotherapy"})

    stats = checkpoint_wal()

    assert stats["wal_size_after_bytes"] <= stats["wal_size_before_bytes"]
    assert stats["bytes_freed"] >= 0


# ============================================================================
# Dashboard
# ============================================================================


def test_empty_dashboard(client):
    body = client.get("/api/dashboard").json()

    assert body["active_treatments"] == []
    assert body["upcoming_plan_items"] == []
    assert body["hope_snippet"]["id"].startswith("seed-hope-")
    assert body["stats"] == {
        "treatments_active": 0,
        "journal_entries_7d": 0,
        "plan_items_due_7d": 0,
        "plan_items_completed": 0,
    }


def test_dashboard_aggregates_records(client):
    today = date.today()
    client.get("/api/profile")
    client.post("/api/treatments", json={"name": "FLOT", "type": "chemotherapy"})
    client.post("/api/treatments", json={"name": "Old", "type": "radiation", "active": False})
    client.post("/api/journal-logs", json={"entry_date": today.isoformat(), "content": "Tired"})
    client.post(
        "/api/journal-logs",
        json={"entry_date": (today - timedelta(days=10)).isoformat(), "content": "Earlier"},
    )
    due = client.post(
        "/api/plan-items",
        json={"title": "Blood work", "due_date": (today + timedelta(days=1)).isoformat()},
    ).json()
    done = client.post(
        "/api/plan-items",
        json={"title": "Consult", "due_date": (today + timedelta(days=3)).isoformat()},
    ).json()
    client.post(f"/api/plan-items/{done['id']}/complete", json={})

    body = client.get("/api/dashboard").json()

    assert body["profile"]["id"] == "user-test-1"
    assert [t["name"] for t in body["active_treatments"]] == ["FLOT"]
    assert len(body["recent_journal_logs"]) == 2
    assert [p["id"] for p in body["upcoming_plan_items"]] == [due["id"]]
    assert body["stats"] == {
        "treatments_active": 1,
        "journal_entries_7d": 1,
        "plan_items_due_7d": 1,
        "plan_items_completed": 1,
    }
