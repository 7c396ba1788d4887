"""Webhook ingestion route."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ...app import Application
from ...errors import PersistenceError, PublishError, ValidationError
from ...logging_config import get_logger

logger = get_logger(__name__)


class WebhookResponse(BaseModel):
    """Response model for a queued webhook."""

    status: str
    messageId: str
    traceId: str


class ErrorResponse(BaseModel):
    """Response model for errors."""

    error: str


def create_webhook_router(app: Application) -> APIRouter:
    """Create webhook router."""
    router = APIRouter(tags=["ingress"])

    @router.post(
        "/webhook",
        response_model=WebhookResponse,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    )
    async def receive_webhook(request: Request):
        """Accept a webhook body {source, payload} and queue it."""
        try:
            body = await request.json()
        except ValueError:
            body = None

        try:
            accepted = await app.gateway.receive(body)
        except ValidationError as e:
            return JSONResponse(status_code=400, content={"error": str(e)})
        except PublishError:
            return JSONResponse(
                status_code=500, content={"error": "Failed to queue message"}
            )
        except PersistenceError as e:
            logger.error("Could not open trace for webhook: %s", e)
            return JSONResponse(
                status_code=500, content={"error": "Failed to record trace"}
            )

        return {
            "status": "queued",
            "messageId": accepted.message_id,
            "traceId": accepted.trace_id,
        }

    return router
