"""FastAPI server for Sophera"""

from __future__ import annotations

import asyncio
import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sophera.api.middleware.rate_limit import RateLimitMiddleware
from sophera.api.middleware.security_headers import SecurityHeadersMiddleware
from sophera.api.routes.action_steps import router as action_steps_router
from sophera.api.routes.assistant import router as assistant_router
from sophera.api.routes.canvas import router as canvas_router
from sophera.api.routes.dashboard import router as dashboard_router
from sophera.api.routes.diet_logs import router as diet_logs_router
from sophera.api.routes.documents import router as documents_router
from sophera.api.routes.health import router as health_router
from sophera.api.routes.hope_snippets import router as hope_snippets_router
from sophera.api.routes.journal_logs import router as journal_logs_router
from sophera.api.routes.messages import router as messages_router
from sophera.api.routes.plan_items import router as plan_items_router
from sophera.api.routes.profile import router as profile_router
from sophera.api.routes.research import router as research_router
from sophera.api.routes.timeline import router as timeline_router
from sophera.api.routes.treatments import router as treatments_router
from sophera.api.routes.trials import router as trials_router
from sophera.config import (
    APP_VERSION,
    RATE_LIMIT_RPH,
    RATE_LIMIT_RPM,
    WAL_CHECKPOINT_INTERVAL_SECONDS,
    WEB_CLIENT_ORIGIN,
)
from sophera.infrastructure.database import checkpoint_wal, init_database, validate_schema
from sophera.infrastructure.settings import is_development
from sophera.observability.logging import get_logger
from sophera.observability.telemetry import log_event

# Load environment variables from .env file
load_dotenv()

logger = get_logger(__name__)


async def _wal_checkpoint_loop() -> None:
    """
    Periodically merge the WAL file back into the database.

    Side Effects:
        - Runs checkpoint_wal() in a worker thread every WAL_CHECKPOINT_INTERVAL_SECONDS
        - Logs failures; runs until cancelled at shutdown
    """
    while True:
        await asyncio.sleep(WAL_CHECKPOINT_INTERVAL_SECONDS)
        try:
            stats = await asyncio.to_thread(checkpoint_wal)
            if stats["bytes_freed"] > 1024 * 1024:
                logger.info("WAL checkpoint freed %d MB", stats["bytes_freed"] // (1024 * 1024))
        except Exception as e:
            logger.error("WAL checkpoint failed: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Fail fast if the schema drifted from what the repositories expect
    validate_schema()
    log_event("api.startup", service="sophera-api", version=APP_VERSION)

    checkpoint_task = asyncio.create_task(_wal_checkpoint_loop())
    try:
        yield
    finally:
        checkpoint_task.cancel()
        with suppress(asyncio.CancelledError):
            await checkpoint_task


app = FastAPI(title="Sophera API", version=APP_VERSION, lifespan=lifespan)


# Custom validation error handler to prevent information leakage
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Answer validation failures without echoing the submitted values back.
    """
    from sophera.observability.telemetry import counter
    from sophera.utils.redaction import redact

    logger.warning("Validation error on %s: %s", redact(str(request.url)), exc.errors())
    counter("api.validation_errors")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


ALLOWED_ORIGINS = [WEB_CLIENT_ORIGIN]

# Local web client dev servers
if is_development():
    ALLOWED_ORIGINS.extend(
        [
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ]
    )
ALLOWED_ORIGINS = list(dict.fromkeys(ALLOWED_ORIGINS))

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)

app.add_middleware(
    RateLimitMiddleware,
    requests_per_minute=RATE_LIMIT_RPM,
    requests_per_hour=RATE_LIMIT_RPH,
    allowed_origins=ALLOWED_ORIGINS,
)

app.add_middleware(SecurityHeadersMiddleware)

# Initialize database schema
try:
    logger.info("Initializing database schema...")
    init_database()
    logger.info("Database initialization complete")
except sqlite3.OperationalError as e:
    logger.critical("Database schema error: %s", e)
    raise RuntimeError(f"Database initialization failed: {e}") from e
except Exception as e:
    logger.critical("Unexpected database initialization error: %s", e)
    raise RuntimeError(f"Database initialization failed: {e}") from e

app.include_router(health_router)
app.include_router(profile_router)
app.include_router(treatments_router)
app.include_router(journal_logs_router)
app.include_router(diet_logs_router)
app.include_router(plan_items_router)
app.include_router(hope_snippets_router)
app.include_router(documents_router)
app.include_router(research_router)
app.include_router(trials_router)
app.include_router(messages_router)
app.include_router(assistant_router)
app.include_router(action_steps_router)
app.include_router(timeline_router)
app.include_router(canvas_router)
app.include_router(dashboard_router)


@app.get("/")
def root() -> dict[str, Any]:
    return {
        "service": "Sophera API",
        "version": APP_VERSION,
        "status": "running",
        "endpoints": {
            "health": "/health",
            "profile": "/api/profile",
            "treatments": "/api/treatments",
            "journal_logs": "/api/journal-logs",
            "diet_logs": "/api/diet-logs",
            "plan_items": "/api/plan-items",
            "hope_snippets": "/api/hope-snippets",
            "documents": "/api/documents",
            "research": "/api/research",
            "saved_trials": "/api/trials/saved",
            "messages": "/api/messages",
            "action_steps": "/api/action-steps",
            "timeline": "/api/timeline",
            "canvas": "/api/canvas/tabs",
            "dashboard": "/api/dashboard",
            "debug_stats": "/debug/stats",
        },
    }
