"""Prometheus metrics for search golden signals."""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest


if TYPE_CHECKING:
    from collections.abc import Generator


SEARCH_REQUESTS = Counter(
    "easy_search_requests_total",
    "Total search requests",
    ["status"],
)

SEARCH_LATENCY = Histogram(
    "easy_search_latency_seconds",
    "End-to-end search latency across all collections",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

COLLECTION_LATENCY = Histogram(
    "easy_search_collection_latency_seconds",
    "Retrieval plus ranking latency for one collection",
    ["collection", "strategy"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

COLLECTION_FAILURES = Counter(
    "easy_search_collection_failures_total",
    "Collections that degraded to empty results",
    ["collection", "error_type"],
)

COLLECTION_RESULTS = Histogram(
    "easy_search_collection_results",
    "Ranked matches per collection before pagination",
    ["collection"],
    buckets=(0, 1, 5, 10, 50, 100, 500, 1000, 5000),
)


@contextmanager
def track_latency(histogram: Histogram, **labels: str) -> Generator[None, None, None]:
    """Context manager to track operation latency."""
    metric = histogram.labels(**labels) if labels else histogram
    start = time.perf_counter()
    try:
        yield
    finally:
        metric.observe(time.perf_counter() - start)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get content type for metrics endpoint."""
    return CONTENT_TYPE_LATEST
