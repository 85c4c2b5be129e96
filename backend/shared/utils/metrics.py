"""
Lightweight metrics collection for the tracker.
Wraps prometheus_client with async-safe patterns.
"""
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from prometheus_client import Counter, Histogram, start_http_server

from shared.config import get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Counters ────────────────────────────────────────────────────────────
PROVIDER_REQUESTS = Counter(
    "mpt_provider_requests_total",
    "Total provider HTTP requests",
    ["provider", "status"],
)
TOKEN_REFRESHES = Counter(
    "mpt_token_refreshes_total",
    "OAuth client-credentials exchanges",
    ["outcome"],
)
SYNC_PASSES = Counter(
    "mpt_sync_passes_total",
    "Completed or aborted sync passes",
    ["outcome"],
)
CHARACTER_OUTCOMES = Counter(
    "mpt_character_outcomes_total",
    "Per-character results within sync passes",
    ["outcome"],
)
NOTIFICATIONS = Counter(
    "mpt_notifications_total",
    "Notification deliveries",
    ["kind", "status"],
)

# ── Histograms ──────────────────────────────────────────────────────────
PROVIDER_LATENCY = Histogram(
    "mpt_provider_latency_seconds",
    "Provider request latency in seconds",
    ["provider"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)
PASS_DURATION = Histogram(
    "mpt_sync_pass_seconds",
    "Wall time of a full sync pass",
    buckets=(1, 5, 10, 30, 60, 120, 300, 600),
)


@asynccontextmanager
async def atrack_latency(histogram: Histogram, **labels: str) -> AsyncIterator[None]:
    """Async context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if labels:
            histogram.labels(**labels).observe(elapsed)
        else:
            histogram.observe(elapsed)


def start_metrics_server(port: int | None = None) -> None:
    """Start the Prometheus metrics HTTP server."""
    settings = get_settings()
    if not settings.metrics_enabled:
        return
    metrics_port = port or settings.metrics_port
    try:
        start_http_server(metrics_port)
        logger.info("metrics_server_started", port=metrics_port)
    except OSError as exc:
        logger.warning("metrics_server_failed", error=str(exc), port=metrics_port)
