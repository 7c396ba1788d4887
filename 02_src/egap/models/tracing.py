"""Tracing and observability data models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class SpanStatus(str, Enum):
    """Terminal status of a span."""

    OK = "OK"
    ERROR = "ERROR"


@dataclass
class TraceSpan:
    """One timed sub-operation within a trace."""

    id: str
    trace_id: str
    service: str  # "ingress" | "orchestrator"
    operation: str  # e.g. "webhook_receive", "task_create"
    parent_id: str | None = None
    duration_ms: int | None = None  # set once, at operation end
    status: SpanStatus | None = None  # set once, at operation end
    metadata: dict = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def is_closed(self) -> bool:
        return self.duration_ms is not None
