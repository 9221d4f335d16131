"""Per-task trace context used to correlate log lines.

Every collection search runs in its own asyncio task, which receives a copy
of the request's context; binding a collection key inside one task never
leaks into its siblings.
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, replace
import secrets


@dataclass(frozen=True)
class TraceContext:
    trace_id: str
    span_id: str
    collection: str | None = None

    def as_dict(self) -> dict[str, str]:
        data = {"trace_id": self.trace_id, "span_id": self.span_id}
        if self.collection:
            data["collection"] = self.collection
        return data


_current: ContextVar[TraceContext | None] = ContextVar("easy_search_trace", default=None)


def new_trace_id() -> str:
    return secrets.token_hex(16)


def new_span_id() -> str:
    return secrets.token_hex(8)


def current_context() -> TraceContext:
    """Return the active context, starting a new trace when none exists."""
    ctx = _current.get()
    if ctx is None:
        ctx = TraceContext(trace_id=new_trace_id(), span_id=new_span_id())
        _current.set(ctx)
    return ctx


def get_trace_context() -> dict[str, str]:
    return current_context().as_dict()


def set_trace_context(trace_id: str, span_id: str, collection: str | None = None) -> None:
    _current.set(TraceContext(trace_id=trace_id, span_id=span_id, collection=collection))


def update_span_id(span_id: str) -> None:
    _current.set(replace(current_context(), span_id=span_id))


def bind_collection(collection: str) -> None:
    """Tag log lines emitted from the current task with the collection key."""
    _current.set(replace(current_context(), collection=collection))
