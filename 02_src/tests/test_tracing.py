"""Tests for TraceRecorder."""

import pytest

from egap.errors import PersistenceError
from egap.models import SpanStatus
from egap.tracing import Stopwatch, new_trace_id


class TestStartSpan:
    """Tests for TraceRecorder.start_span()."""

    async def test_start_span_creates_open_span(self, recorder, storage):
        """Test that start_span inserts a span without terminal fields."""
        span_id = await recorder.start_span(
            "trace-1", "ingress", "webhook_receive", metadata={"source": "github"}
        )

        span = await storage.get_span(span_id)
        assert span.trace_id == "trace-1"
        assert span.service == "ingress"
        assert span.operation == "webhook_receive"
        assert span.metadata == {"source": "github"}
        assert span.duration_ms is None
        assert span.status is None

    async def test_start_span_with_given_id(self, recorder, storage):
        """Test that a caller-chosen span ID is used."""
        span_id = await recorder.start_span("t", "orchestrator", "op", span_id="fixed")
        assert span_id == "fixed"
        assert await storage.get_span("fixed") is not None


class TestRecordSpan:
    """Tests for TraceRecorder.record_span()."""

    async def test_record_span_links_to_parent(self, recorder, storage):
        """Test that finished child spans link to their parent."""
        root = await recorder.start_span("t", "orchestrator", "process_message")
        child = await recorder.record_span(
            "t", root, "orchestrator", "agent_lookup", 7, metadata={"found": True}
        )

        span = await storage.get_span(child)
        assert span.parent_id == root
        assert span.trace_id == "t"
        assert span.duration_ms == 7
        assert span.status == SpanStatus.OK

    async def test_record_span_without_parent_fails(self, recorder):
        """Test that a child cannot be written before its parent."""
        with pytest.raises(PersistenceError):
            await recorder.record_span("t", "not-yet", "orchestrator", "op", 1)


class TestEndSpan:
    """Tests for TraceRecorder.end_span()."""

    async def test_end_span_sets_terminal_fields(self, recorder, storage):
        """Test closing a span."""
        root = await recorder.start_span("t", "ingress", "webhook_receive")
        await recorder.end_span(root, 12)

        span = await storage.get_span(root)
        assert span.duration_ms == 12
        assert span.status == SpanStatus.OK

    async def test_end_unknown_span_raises(self, recorder):
        """Test that closing an unknown span propagates on the happy path."""
        with pytest.raises(PersistenceError):
            await recorder.end_span("missing", 1, SpanStatus.ERROR)


class TestHelpers:
    """Tests for tracing helpers."""

    def test_stopwatch_non_negative(self):
        assert Stopwatch().elapsed_ms() >= 0

    def test_trace_ids_unique(self):
        assert new_trace_id() != new_trace_id()
