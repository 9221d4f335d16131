"""OpenTelemetry spans for search requests and collection searches."""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import SpanKind
from starlette.datastructures import Headers

from easy_search.observability.context import new_span_id, new_trace_id, set_trace_context, update_span_id


if TYPE_CHECKING:
    from collections.abc import Iterator

    from opentelemetry.trace import Span, Tracer
    from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)

TRACE_HEADER = "x-trace-id"

_tracer_state: dict[str, Tracer | None] = {"tracer": None}


def init_tracing(
    service_name: str = "easy-search",
    resource_attributes: dict[str, str] | None = None,
) -> TracerProvider:
    """Install a global tracer provider for this process."""
    provider = TracerProvider(resource=Resource.create({"service.name": service_name, **(resource_attributes or {})}))
    trace.set_tracer_provider(provider)
    _tracer_state["tracer"] = provider.get_tracer("easy_search")
    logger.info("Tracing initialized for service: %s", service_name)
    return provider


def get_tracer() -> Tracer:
    tracer = _tracer_state["tracer"]
    if tracer is None:
        tracer = _tracer_state["tracer"] = trace.get_tracer("easy_search")
    return tracer


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span]:
    """Open a span and mirror its id into the logging context.

    Exceptions leaving the block are recorded on the span, which is marked
    as failed.
    """
    with get_tracer().start_as_current_span(name, kind=kind, attributes=attributes) as span:
        span_context = span.get_span_context()
        if span_context.is_valid:
            update_span_id(trace.format_span_id(span_context.span_id))
        yield span


class TraceContextMiddleware:
    """Start a fresh trace context for every HTTP request.

    A caller-supplied ``x-trace-id`` header is reused as the trace id.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            trace_id = Headers(scope=scope).get(TRACE_HEADER) or new_trace_id()
            set_trace_context(trace_id, new_span_id())
        await self.app(scope, receive, send)
