"""Ingress module."""

from .counters import AuditCounters
from .gateway import (
    INVALID_BODY,
    IIngressGateway,
    IngressGateway,
    ResumeQueued,
    WebhookAccepted,
)

__all__ = [
    "AuditCounters",
    "INVALID_BODY",
    "IIngressGateway",
    "IngressGateway",
    "ResumeQueued",
    "WebhookAccepted",
]
