"""Sophera HTTP API."""

from __future__ import annotations


def main() -> None:
    """Run the API with uvicorn (console script: sophera-api)."""
    import uvicorn

    from sophera.config import API_HOST, API_PORT

    uvicorn.run("sophera.api.app:app", host=API_HOST, port=API_PORT)
