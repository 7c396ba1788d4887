"""Tracing module."""

from .recorder import ITracer, Stopwatch, TraceRecorder, new_trace_id

__all__ = ["ITracer", "Stopwatch", "TraceRecorder", "new_trace_id"]
