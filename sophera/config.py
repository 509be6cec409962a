"""Centralized configuration for the Sophera backend.

Re-exports everything from sophera.infrastructure.settings, then adds typed
constants for database, LLM, rate-limiting, and API settings. Environment
variable overrides use safe defaults so the app starts without extra env
configuration.
"""

from __future__ import annotations

import os

from sophera.infrastructure.settings import *  # noqa: F401, F403

# --- App ---
APP_VERSION: str = "0.1.0"

# --- Database ---
DB_POOL_SIZE: int = int(os.getenv("SOPHERA_DB_POOL_SIZE", "5"))
DB_POOL_TIMEOUT: float = float(os.getenv("SOPHERA_DB_POOL_TIMEOUT", "5.0"))
DB_CONNECT_TIMEOUT: float = float(os.getenv("SOPHERA_DB_CONNECT_TIMEOUT", "30.0"))
DB_TEMP_CONN_MAX: int = int(os.getenv("SOPHERA_DB_TEMP_CONN_MAX", "10"))
DB_RETRY_MAX: int = int(os.getenv("SOPHERA_DB_RETRY_MAX", "5"))
DB_RETRY_BASE_DELAY: float = float(os.getenv("SOPHERA_DB_RETRY_BASE_DELAY", "0.1"))
DB_RETRY_MAX_DELAY: float = float(os.getenv("SOPHERA_DB_RETRY_MAX_DELAY", "2.0"))
DB_RETRY_JITTER: float = float(os.getenv("SOPHERA_DB_RETRY_JITTER", "0.1"))

# --- LLM ---
LLM_TIMEOUT_SECONDS: int = int(os.getenv("SOPHERA_LLM_TIMEOUT", "30"))
LLM_MAX_RETRIES: int = int(os.getenv("SOPHERA_LLM_MAX_RETRIES", "3"))
LLM_DOCUMENT_CONTEXT_CHARS: int = 12000
LLM_HISTORY_MESSAGES: int = 10

# --- Rate Limiting ---
RATE_LIMIT_RPM: int = int(os.getenv("SOPHERA_RATE_LIMIT_RPM", "60"))
RATE_LIMIT_RPH: int = int(os.getenv("SOPHERA_RATE_LIMIT_RPH", "1000"))
RATE_LIMIT_MAX_IPS: int = 10000

# --- API ---
API_LIST_LIMIT_DEFAULT: int = 100
API_LIST_LIMIT_MAX: int = 500
API_UPCOMING_DAYS_DEFAULT: int = 7
API_UPLOAD_MAX_BYTES: int = int(os.getenv("SOPHERA_UPLOAD_MAX_BYTES", str(2 * 1024 * 1024)))
DASHBOARD_RECENT_ITEMS: int = 5

# --- LLM Budget ---
LLM_USER_DAILY_LIMIT: int = int(os.getenv("SOPHERA_LLM_USER_DAILY_LIMIT", "200"))
LLM_GLOBAL_DAILY_LIMIT: int = int(os.getenv("SOPHERA_LLM_GLOBAL_DAILY_LIMIT", "10000"))

# --- Maintenance ---
WAL_CHECKPOINT_INTERVAL_SECONDS: int = int(os.getenv("SOPHERA_WAL_CHECKPOINT_INTERVAL", "300"))
