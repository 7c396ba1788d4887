"""Health and audit stats routes."""

from fastapi import APIRouter
from pydantic import BaseModel

from ...app import Application


class HealthResponse(BaseModel):
    """Response model for health."""

    status: str
    service: str


class StatsResponse(BaseModel):
    """Response model for ingress audit counters."""

    totalReceived: int
    totalPublished: int
    totalFailed: int
    startedAt: str
    uptime: str


def create_system_router(app: Application) -> APIRouter:
    """Create health/stats router."""
    router = APIRouter(tags=["system"])

    @router.get("/health", response_model=HealthResponse)
    async def health() -> dict:
        """Liveness only; no dependency checks."""
        return {"status": "ok", "service": app.settings.service_name}

    @router.get("/api/stats", response_model=StatsResponse)
    async def stats() -> dict:
        """Audit counters plus process uptime."""
        return app.counters.snapshot()

    return router
