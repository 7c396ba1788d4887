"""EGAP event relay core."""

from .app import Application, IApplication
from .config import Settings, load_settings
from .errors import (
    ConfigError,
    EgapError,
    NotFoundError,
    ParseError,
    PersistenceError,
    PublishError,
    ValidationError,
)
from .ingress import AuditCounters, IIngressGateway, IngressGateway
from .models import (
    Agent,
    ResumeSignal,
    Signal,
    SpanStatus,
    Task,
    Tool,
    TraceSpan,
    UsageAction,
    UsageLog,
)
from .queue import InMemoryQueue, IQueueClient, ReceivedMessage
from .storage import IStorage, Storage
from .tracing import ITracer, TraceRecorder
from .worker import IOrchestratorWorker, MessageOutcome, OrchestratorWorker

__all__ = [
    # Application
    "Application",
    "IApplication",
    "Settings",
    "load_settings",
    # Errors
    "EgapError",
    "ConfigError",
    "ValidationError",
    "PublishError",
    "ParseError",
    "NotFoundError",
    "PersistenceError",
    # Models
    "Agent",
    "Tool",
    "Task",
    "UsageAction",
    "UsageLog",
    "SpanStatus",
    "TraceSpan",
    "Signal",
    "ResumeSignal",
    # Components
    "IStorage",
    "Storage",
    "IQueueClient",
    "InMemoryQueue",
    "ReceivedMessage",
    "ITracer",
    "TraceRecorder",
    "AuditCounters",
    "IIngressGateway",
    "IngressGateway",
    "IOrchestratorWorker",
    "MessageOutcome",
    "OrchestratorWorker",
]
