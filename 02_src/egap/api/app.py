"""FastAPI application setup."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..app import Application
from .routes import (
    create_approvals_router,
    create_system_router,
    create_webhook_router,
)


def create_fastapi_app(application: Application) -> FastAPI:
    """Create and configure the ingress FastAPI application."""

    @asynccontextmanager
    async def lifespan(fastapi_app: FastAPI):
        """Manage application lifespan."""
        await application.start()
        yield
        await application.stop()

    fastapi_app = FastAPI(
        title="EGAP Ingress Gateway",
        description="Webhook relay into the orchestration queue",
        version="0.1.0",
        lifespan=lifespan,
    )

    fastapi_app.include_router(create_system_router(application))
    fastapi_app.include_router(create_webhook_router(application))
    fastapi_app.include_router(create_approvals_router(application))

    return fastapi_app
