"""Logger factory shared by every Sophera module.

Root level comes from SOPHERA_LOG_LEVEL. Individual loggers can be tuned with
SOPHERA_LOG_LEVELS, a comma-separated list such as
``sophera.llm=DEBUG,sophera.infrastructure.database=WARNING``.
"""

from __future__ import annotations

import logging
import os
from typing import Final

_HANDLER_ATTACHED: bool = False
_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _level_from_name(level_name: str) -> int:
    return getattr(logging, level_name.strip().upper(), logging.INFO)


def _resolve_level() -> int:
    return _level_from_name(os.getenv("SOPHERA_LOG_LEVEL", "INFO"))


def _resolve_overrides() -> dict[str, int]:
    raw = os.getenv("SOPHERA_LOG_LEVELS", "")
    overrides: dict[str, int] = {}
    for item in raw.split(","):
        if "=" not in item:
            continue
        logger_name, level_name = item.split("=", 1)
        if logger_name.strip():
            overrides[logger_name.strip()] = _level_from_name(level_name)
    return overrides


def _level_for(name: str, default: int) -> int:
    """Most specific override wins (``sophera.llm.retry`` beats ``sophera.llm``)."""
    best_match = ""
    level = default
    for prefix, override in _resolve_overrides().items():
        if (name == prefix or name.startswith(prefix + ".")) and len(prefix) > len(best_match):
            best_match = prefix
            level = override
    return level


def get_logger(name: str) -> logging.Logger:
    """Return a module logger configured with a single stream handler."""
    global _HANDLER_ATTACHED

    level = _resolve_level()

    if not _HANDLER_ATTACHED:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root = logging.getLogger()
        root.addHandler(handler)
        root.setLevel(level)
        _HANDLER_ATTACHED = True
    else:
        logging.getLogger().setLevel(level)

    logger = logging.getLogger(name)
    logger.setLevel(_level_for(name, level))
    return logger
