"""TraceRecorder: span bookkeeping on top of Storage."""

import time
import uuid
from typing import Protocol

from ..models import SpanStatus, TraceSpan
from ..storage import IStorage


def new_trace_id() -> str:
    return str(uuid.uuid4())


class Stopwatch:
    """Monotonic wall-clock timer, started on construction."""

    def __init__(self):
        self._start = time.monotonic()

    def elapsed_ms(self) -> int:
        return max(0, int((time.monotonic() - self._start) * 1000))


class ITracer(Protocol):
    """Creating and closing TraceSpans."""

    async def start_span(
        self,
        trace_id: str,
        service: str,
        operation: str,
        parent_id: str | None = None,
        metadata: dict | None = None,
        span_id: str | None = None,
    ) -> str:
        """Insert an open span and return its ID."""
        ...

    async def record_span(
        self,
        trace_id: str,
        parent_id: str,
        service: str,
        operation: str,
        duration_ms: int,
        metadata: dict | None = None,
        status: SpanStatus = SpanStatus.OK,
    ) -> str:
        """Insert an already-finished child span and return its ID."""
        ...

    async def end_span(
        self, span_id: str, duration_ms: int, status: SpanStatus = SpanStatus.OK
    ) -> None:
        """Set the terminal fields of an open span."""
        ...


class TraceRecorder:
    """Writes the causal span tree of each flow to Storage."""

    def __init__(self, storage: IStorage):
        self._storage = storage

    async def start_span(
        self,
        trace_id: str,
        service: str,
        operation: str,
        parent_id: str | None = None,
        metadata: dict | None = None,
        span_id: str | None = None,
    ) -> str:
        """Insert an open span (no duration, no status) and return its ID."""
        span = TraceSpan(
            id=span_id or str(uuid.uuid4()),
            trace_id=trace_id,
            parent_id=parent_id,
            service=service,
            operation=operation,
            metadata=metadata or {},
        )
        await self._storage.create_span(span)
        return span.id

    async def record_span(
        self,
        trace_id: str,
        parent_id: str,
        service: str,
        operation: str,
        duration_ms: int,
        metadata: dict | None = None,
        status: SpanStatus = SpanStatus.OK,
    ) -> str:
        """Insert an already-finished child span in a single write."""
        span = TraceSpan(
            id=str(uuid.uuid4()),
            trace_id=trace_id,
            parent_id=parent_id,
            service=service,
            operation=operation,
            duration_ms=duration_ms,
            status=status,
            metadata=metadata or {},
        )
        await self._storage.create_span(span)
        return span.id

    async def end_span(
        self, span_id: str, duration_ms: int, status: SpanStatus = SpanStatus.OK
    ) -> None:
        """Set the terminal fields. Raises PersistenceError for unknown IDs."""
        await self._storage.update_span(span_id, duration_ms, status)
