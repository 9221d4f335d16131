"""Unit tests for observability module."""

import json
import logging
import sys

from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode
from prometheus_client import REGISTRY
import pytest
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from easy_search.observability import (
    COLLECTION_LATENCY,
    JsonFormatter,
    TraceContextMiddleware,
    bind_collection,
    configure_logging,
    create_span,
    get_metrics,
    get_trace_context,
    init_tracing,
    set_trace_context,
    tracing as tracing_module,
    track_latency,
)
from easy_search.observability.context import update_span_id


def _record(msg: str = "test message", level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(
        name="easy_search.search.scorer",
        level=level,
        pathname="scorer.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


@pytest.mark.unit
class TestJsonFormatter:
    """Tests for structured JSON logging."""

    def test_format_includes_trace_context(self):
        set_trace_context("ab" * 16, "cd" * 8)

        data = json.loads(JsonFormatter().format(_record()))

        assert data["message"] == "test message"
        assert data["level"] == "INFO"
        assert data["trace_id"] == "ab" * 16
        assert data["span_id"] == "cd" * 8
        assert data["component"] == "scorer"
        assert "timestamp" in data

    def test_format_includes_bound_collection(self):
        set_trace_context("ab" * 16, "cd" * 8)
        bind_collection("article")

        data = json.loads(JsonFormatter().format(_record()))

        assert data["collection"] == "article"

    def test_format_includes_extra_fields(self):
        record = _record(level=logging.ERROR)
        record.strategy = "hybrid"

        data = json.loads(JsonFormatter().format(record))

        assert data["strategy"] == "hybrid"

    def test_format_truncates_and_redacts(self):
        record = _record(msg="x" * 5000)
        record.token = "secret"

        data = json.loads(JsonFormatter().format(record))

        assert data["message"].endswith("...")
        assert data["token"] == "[REDACTED]"

    def test_format_includes_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord("easy_search", logging.ERROR, "x.py", 1, "failed", (), exc_info=sys.exc_info())

        data = json.loads(JsonFormatter().format(record))

        assert "ValueError: boom" in data["exception"]

    def test_json_default_handles_set_and_bytes(self):
        formatter = JsonFormatter()
        assert formatter._json_default({3, 1, 2}) == [1, 2, 3]
        assert formatter._json_default(b"ok") == "ok"


@pytest.mark.unit
class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)
        logging.getLogger("easy_search.search").setLevel(logging.NOTSET)
        logging.getLogger("uvicorn.access").setLevel(logging.NOTSET)

    def test_json_handler_and_overrides(self):
        configure_logging("warning", json_output=True, logger_levels={"easy_search.search": "debug"})

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert logging.getLogger("easy_search.search").level == logging.DEBUG
        assert logging.getLogger("uvicorn.access").level == logging.WARNING

    def test_plain_text_output(self):
        configure_logging("info", json_output=False)

        assert not isinstance(logging.getLogger().handlers[0].formatter, JsonFormatter)


@pytest.mark.unit
class TestTraceContext:
    """Tests for trace context propagation."""

    def test_get_trace_context_generates_ids(self):
        ctx = get_trace_context()
        assert len(ctx["trace_id"]) == 32
        assert len(ctx["span_id"]) == 16

    def test_update_span_id_preserves_trace_id(self):
        set_trace_context("aa" * 16, "bb" * 8, collection="page")
        update_span_id("cc" * 8)
        ctx = get_trace_context()
        assert ctx["trace_id"] == "aa" * 16
        assert ctx["span_id"] == "cc" * 8
        assert ctx["collection"] == "page"

    def test_middleware_uses_incoming_trace_id(self):
        async def echo(request):
            return JSONResponse(get_trace_context())

        app = Starlette(routes=[Route("/", echo)], middleware=[Middleware(TraceContextMiddleware)])

        with TestClient(app) as client:
            ctx = client.get("/", headers={"x-trace-id": "f" * 32}).json()

        assert ctx["trace_id"] == "f" * 32
        assert len(ctx["span_id"]) == 16


@pytest.mark.unit
class TestTracing:
    """Tests for OpenTelemetry tracing."""

    @pytest.fixture
    def exporter(self, monkeypatch):
        exporter = InMemorySpanExporter()
        provider = TracerProvider()
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        monkeypatch.setitem(tracing_module._tracer_state, "tracer", provider.get_tracer("test"))
        return exporter

    def test_init_tracing_applies_resource_attributes(self):
        provider = init_tracing("test-service", resource_attributes={"service.version": "2.0.0"})
        assert provider.resource.attributes["service.version"] == "2.0.0"
        assert provider.resource.attributes["service.name"] == "test-service"

    def test_create_span_records_attributes(self, exporter):
        with create_span("search.collection", attributes={"search.collection": "article"}):
            pass

        (span,) = exporter.get_finished_spans()
        assert span.name == "search.collection"
        assert span.attributes["search.collection"] == "article"

    def test_create_span_marks_errors(self, exporter):
        with pytest.raises(RuntimeError), create_span("search.request"):
            raise RuntimeError("store down")

        (span,) = exporter.get_finished_spans()
        assert span.status.status_code == StatusCode.ERROR

    def test_get_tracer_initializes_when_missing(self, monkeypatch):
        monkeypatch.setitem(tracing_module._tracer_state, "tracer", None)
        assert tracing_module.get_tracer() is not None


@pytest.mark.unit
class TestMetrics:
    def test_track_latency_observes_labelled_histogram(self):
        labels = {"collection": "metrics-test", "strategy": "hybrid"}
        before = REGISTRY.get_sample_value("easy_search_collection_latency_seconds_count", labels) or 0.0

        with track_latency(COLLECTION_LATENCY, **labels):
            pass

        assert REGISTRY.get_sample_value("easy_search_collection_latency_seconds_count", labels) == before + 1

    def test_get_metrics_exposes_search_metrics(self):
        output = get_metrics().decode()

        assert "easy_search_latency_seconds" in output
