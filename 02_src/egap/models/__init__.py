"""Core data models for the EGAP relay."""

from .agents import Agent, Tool
from .signals import (
    RESUME_TYPE,
    TRACE_ID_ATTRIBUTE,
    ResumeSignal,
    Signal,
    decode_message,
    encode_message,
    is_resume,
)
from .tasks import Task, UsageAction, UsageLog
from .tracing import SpanStatus, TraceSpan

__all__ = [
    # Agents
    "Agent",
    "Tool",
    # Tasks
    "Task",
    "UsageAction",
    "UsageLog",
    # Tracing
    "SpanStatus",
    "TraceSpan",
    # Signals
    "RESUME_TYPE",
    "TRACE_ID_ATTRIBUTE",
    "ResumeSignal",
    "Signal",
    "decode_message",
    "encode_message",
    "is_resume",
]
