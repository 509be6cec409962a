"""Health check and debug endpoints for the Sophera API.

- /health - Service health including LLM credential presence
- /health/db - Database connection pool health
- /debug/stats - Aggregate record counts (no PII)
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

from sophera.config import APP_VERSION
from sophera.llm import Provider, available_providers
from sophera.observability.telemetry import get_counters, get_latency_stats, latency_metric_names

router = APIRouter(tags=["health"])

_COUNTED_TABLES = (
    "users",
    "treatments",
    "journal_logs",
    "diet_logs",
    "plan_items",
    "hope_snippets",
    "documents",
    "research_items",
    "saved_trials",
    "messages",
    "canvas_tabs",
)


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Service status, version and credential readiness per LLM provider (no API calls)."""
    configured = set(available_providers())

    return {
        "status": "healthy",
        "service": "Sophera API",
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "llm": {
            "ready": bool(configured),
            "providers": {p.value: p in configured for p in Provider},
            "google_cloud_project": bool(os.getenv("GOOGLE_CLOUD_PROJECT")),
        },
    }


@router.get("/health/db")
async def database_health() -> dict[str, Any]:
    """
    Connection pool health. Reports degraded above 80% pool usage.
    """
    from sophera.infrastructure.database import get_pool_stats

    stats = get_pool_stats()
    usage_percent = stats["usage_percent"]

    return {
        "status": "degraded" if usage_percent > 80 else "healthy",
        "pool": stats,
        "warning": "Pool usage high" if usage_percent > 80 else None,
    }


@router.get("/debug/stats")
async def debug_stats() -> dict[str, Any]:
    """Aggregate system statistics for debugging. Contains no PII."""
    from sophera.infrastructure.database import get_db_connection, get_pool_stats
    from sophera.infrastructure.llm_budget import get_daily_usage_report

    with get_db_connection() as conn:
        # Table names come from the fixed tuple above
        records = {
            table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
            for table in _COUNTED_TABLES
        }
        cursor = conn.execute("SELECT type, COUNT(*) AS count FROM documents GROUP BY type")
        documents_by_type = {row["type"]: row["count"] for row in cursor.fetchall()}

    return {
        "records": records,
        "documents_by_type": documents_by_type,
        "llm": get_daily_usage_report(),
        "database": get_pool_stats(),
        "telemetry": {
            "counters": get_counters(),
            "latency": {name: get_latency_stats(name) for name in latency_metric_names()},
        },
        "timestamp": datetime.now(UTC).isoformat(),
    }
