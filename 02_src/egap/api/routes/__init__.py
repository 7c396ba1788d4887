"""API routes."""

from .approvals import create_approvals_router
from .system import create_system_router
from .webhook import create_webhook_router

__all__ = [
    "create_approvals_router",
    "create_system_router",
    "create_webhook_router",
]
