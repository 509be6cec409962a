"""
Application-wide settings and environment configuration

Credentials (ANTHROPIC_API_KEY, OPENAI_API_KEY, GOOGLE_API_KEY,
GOOGLE_CLOUD_PROJECT, SOPHERA_DEV_USER_ID) are read at call time by the code
that uses them, so they can change without a restart.
"""

from __future__ import annotations

import os

# Environment
ENV = os.getenv("SOPHERA_ENV", "development")

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))

# Web client origin (Vite dev server by default)
WEB_CLIENT_ORIGIN = os.getenv("SOPHERA_WEB_ORIGIN", "http://localhost:5173")

# Gemini
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash-001")
GEMINI_LOCATION = os.getenv("GEMINI_LOCATION", "us-central1")
GEMINI_MAX_TOKENS = int(os.getenv("GEMINI_MAX_TOKENS", "2048"))
GEMINI_TEMPERATURE = float(os.getenv("GEMINI_TEMPERATURE", "0.7"))

# OpenAI
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")

# Anthropic
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-3-7-sonnet-20250219")
ANTHROPIC_MAX_TOKENS = int(os.getenv("ANTHROPIC_MAX_TOKENS", "2048"))


def is_production() -> bool:
    """Check if running in production"""
    return os.getenv("SOPHERA_ENV", ENV) == "production"


def is_development() -> bool:
    """Check if running in development"""
    return os.getenv("SOPHERA_ENV", ENV) == "development"
