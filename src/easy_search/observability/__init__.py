"""Structured logging, trace correlation, spans and Prometheus metrics."""

from easy_search.observability.context import bind_collection, get_trace_context, set_trace_context
from easy_search.observability.logging import JsonFormatter, configure_logging
from easy_search.observability.metrics import (
    COLLECTION_FAILURES,
    COLLECTION_LATENCY,
    COLLECTION_RESULTS,
    SEARCH_LATENCY,
    SEARCH_REQUESTS,
    get_metrics,
    get_metrics_content_type,
    track_latency,
)
from easy_search.observability.tracing import TraceContextMiddleware, create_span, init_tracing


__all__ = [
    "COLLECTION_FAILURES",
    "COLLECTION_LATENCY",
    "COLLECTION_RESULTS",
    "SEARCH_LATENCY",
    "SEARCH_REQUESTS",
    "JsonFormatter",
    "TraceContextMiddleware",
    "bind_collection",
    "configure_logging",
    "create_span",
    "get_metrics",
    "get_metrics_content_type",
    "get_trace_context",
    "init_tracing",
    "set_trace_context",
    "track_latency",
]
