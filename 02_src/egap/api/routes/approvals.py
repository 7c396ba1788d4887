"""Approval route: turns a human approval into a RESUME signal."""

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ...app import Application
from ...errors import NotFoundError, PersistenceError, PublishError
from ...logging_config import get_logger

logger = get_logger(__name__)


class ApprovalResponse(BaseModel):
    """Response model for a queued RESUME signal."""

    status: str
    messageId: str
    taskId: str
    traceId: str


def create_approvals_router(app: Application) -> APIRouter:
    """Create approvals router."""
    router = APIRouter(prefix="/api/tasks", tags=["approvals"])

    @router.post("/{task_id}/approve", response_model=ApprovalResponse)
    async def approve_task(task_id: str):
        """Approve a pending task by queueing a RESUME signal for it."""
        try:
            queued = await app.gateway.approve(task_id)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Task not found")
        except PublishError:
            return JSONResponse(
                status_code=500, content={"error": "Failed to queue resume signal"}
            )
        except PersistenceError as e:
            logger.error("Could not load or trace task %s: %s", task_id, e)
            return JSONResponse(
                status_code=500, content={"error": "Failed to process approval"}
            )

        return {
            "status": "resume_queued",
            "messageId": queued.message_id,
            "taskId": queued.task_id,
            "traceId": queued.trace_id,
        }

    return router
