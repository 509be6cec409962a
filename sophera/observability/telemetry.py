"""
In-process telemetry: structured log events, counters and latency samples.

Nothing leaves the process. The /debug/stats endpoint reads the snapshot so
operators can see LLM fallbacks and request timings without an external sink.
"""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import Iterator
from typing import Any

logger = logging.getLogger("sophera.telemetry")

_COUNTERS: dict[str, int] = {}
_LATENCIES: dict[str, list[float]] = {}

# Keep latency samples bounded per metric
_MAX_SAMPLES = 1000


def _normalize_latency_name(metric_name: str) -> str:
    if metric_name.endswith("_ms"):
        return metric_name
    if metric_name.endswith(".latency"):
        return f"{metric_name}_ms"
    return metric_name


def log_event(event_name: str, **fields: Any) -> None:
    """
    Structured log event. Caller must redact health data and identifiers.

    Side Effects:
        - Writes to logger (info level)
    """
    logger.info("event=%s %s", event_name, fields)


def counter(name: str, increment: int = 1) -> int:
    """
    Increment an in-memory counter and emit a debug log.

    Side Effects:
        - Modifies _COUNTERS dict (in-memory state)
        - Writes to logger (debug level)
    """
    value = _COUNTERS.get(name, 0) + increment
    _COUNTERS[name] = value
    logger.debug("counter=%s value=%s", name, value)
    return value


def get_counter(name: str) -> int:
    return _COUNTERS.get(name, 0)


def get_counters(prefix: str = "") -> dict[str, int]:
    """Snapshot of counters, optionally restricted to a name prefix."""
    return {k: v for k, v in sorted(_COUNTERS.items()) if k.startswith(prefix)}


def reset_counters() -> None:
    _COUNTERS.clear()


@contextlib.contextmanager
def time_block(metric_name: str) -> Iterator[None]:
    """
    Time a code block and keep the sample for percentile reporting.

    Side Effects:
        - Appends to _LATENCIES dict (in-memory state)
        - Writes to logger (debug level) with timing
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        normalized = _normalize_latency_name(metric_name)
        logger.debug("timing=%s seconds=%.6f", normalized, elapsed)

        samples = _LATENCIES.setdefault(normalized, [])
        samples.append(elapsed)
        if len(samples) > _MAX_SAMPLES:
            del samples[: len(samples) - _MAX_SAMPLES]


def get_p95(metric_name: str) -> float:
    """
    Calculate P95 latency for a given metric.
    Returns 0.0 if no samples recorded.
    """
    normalized = _normalize_latency_name(metric_name)
    samples = _LATENCIES.get(normalized, [])
    if not samples:
        return 0.0

    sorted_samples = sorted(samples)
    idx = int(len(sorted_samples) * 0.95)
    return sorted_samples[min(idx, len(sorted_samples) - 1)]


def get_latency_stats(metric_name: str) -> dict[str, float]:
    """Latency statistics (count, min, max, avg, p50, p95) for a metric."""
    normalized = _normalize_latency_name(metric_name)
    samples = _LATENCIES.get(normalized, [])
    if not samples:
        return {"count": 0, "min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p95": 0.0}

    sorted_samples = sorted(samples)
    count = len(sorted_samples)

    return {
        "count": count,
        "min": sorted_samples[0],
        "max": sorted_samples[-1],
        "avg": sum(sorted_samples) / count,
        "p50": sorted_samples[int(count * 0.50)],
        "p95": get_p95(normalized),
    }


def latency_metric_names() -> list[str]:
    return sorted(_LATENCIES)


def reset_latencies() -> None:
    """
    Clear all recorded latencies (useful for tests).

    Side Effects:
        - Clears _LATENCIES dict (in-memory state)
    """
    _LATENCIES.clear()
