"""Ingress gateway: webhook receive, publish, and approval signals."""

from dataclasses import dataclass
from typing import Any, Protocol

from ..errors import NotFoundError, PublishError, ValidationError, best_effort
from ..logging_config import get_logger
from ..models import (
    TRACE_ID_ATTRIBUTE,
    ResumeSignal,
    Signal,
    SpanStatus,
    encode_message,
)
from ..queue import IQueueClient
from ..storage import IStorage
from ..tracing import ITracer, Stopwatch, new_trace_id
from .counters import AuditCounters

logger = get_logger(__name__)

SERVICE = "ingress"
INVALID_BODY = "Request body must be a JSON object"


@dataclass
class WebhookAccepted:
    """A webhook that made it onto the queue."""

    message_id: str
    trace_id: str


@dataclass
class ResumeQueued:
    """An approval that was turned into a RESUME signal."""

    message_id: str
    task_id: str
    trace_id: str


class IIngressGateway(Protocol):
    """Front door of the relay."""

    async def receive(self, body: Any) -> WebhookAccepted:
        """Validate a webhook body, trace it and publish it."""
        ...

    async def approve(self, task_id: str) -> ResumeQueued:
        """Publish a RESUME signal for an approved task."""
        ...


class IngressGateway:
    """Turns webhook bodies and approvals into queue messages."""

    def __init__(
        self,
        queue: IQueueClient,
        recorder: ITracer,
        counters: AuditCounters,
        storage: IStorage,
        topic: str,
    ):
        self._queue = queue
        self._recorder = recorder
        self._counters = counters
        self._storage = storage
        self._topic = topic

    @property
    def topic(self) -> str:
        return self._topic

    async def receive(self, body: Any) -> WebhookAccepted:
        """
        Validate a webhook body, open its trace and publish it.

        Args:
            body: Decoded JSON body, or None when missing or unparsable.

        Returns:
            Message and trace IDs of the queued signal.

        Raises:
            ValidationError: body is not a JSON object. Counters untouched.
            PersistenceError: the root span could not be written.
            PublishError: the queue refused the message.
        """
        root_watch = Stopwatch()

        if not isinstance(body, dict):
            raise ValidationError(INVALID_BODY)

        self._counters.record_received()

        trace_id = new_trace_id()
        source = body.get("source") or "unknown"
        payload = body.get("payload")
        if payload is None:
            payload = body

        # The root span must exist before any child references it.
        root_span_id = await self._recorder.start_span(
            trace_id,
            SERVICE,
            "webhook_receive",
            metadata={"source": source},
        )

        signal = Signal(source=source, payload=payload, trace_id=trace_id)
        data = encode_message(signal.to_dict())

        publish_watch = Stopwatch()
        try:
            message_id = await self._queue.publish(
                self._topic, data, {TRACE_ID_ATTRIBUTE: trace_id}
            )
        except PublishError as e:
            self._counters.record_failed()
            await best_effort(
                self._recorder.end_span(
                    root_span_id, root_watch.elapsed_ms(), SpanStatus.ERROR
                ),
                action="mark_root_span_error",
                traceId=trace_id,
            )
            logger.error(
                "Failed to publish webhook from %s: %s",
                source,
                e,
                extra={
                    "context": {
                        "source": source,
                        "traceId": trace_id,
                        "audit": self._counters.snapshot(),
                    }
                },
            )
            raise

        self._counters.record_published()

        # The message is already queued; trace writes from here on must not
        # turn the reply into a failure.
        await best_effort(
            self._recorder.record_span(
                trace_id,
                root_span_id,
                SERVICE,
                "pubsub_publish",
                publish_watch.elapsed_ms(),
                metadata={"messageId": message_id, "topic": self._topic},
            ),
            action="record_publish_span",
            traceId=trace_id,
        )
        await best_effort(
            self._recorder.end_span(root_span_id, root_watch.elapsed_ms(), SpanStatus.OK),
            action="close_root_span",
            traceId=trace_id,
        )

        logger.info(
            "Published webhook from %s as message %s",
            source,
            message_id,
            extra={
                "context": {
                    "messageId": message_id,
                    "source": source,
                    "traceId": trace_id,
                    "audit": self._counters.snapshot(),
                }
            },
        )
        return WebhookAccepted(message_id=message_id, trace_id=trace_id)

    async def approve(self, task_id: str) -> ResumeQueued:
        """
        Publish a RESUME signal for a task, continuing the task's trace.

        The task row itself is not modified.

        Raises:
            NotFoundError: no task with this ID.
            PublishError: the queue refused the message.
        """
        root_watch = Stopwatch()

        task = await self._storage.get_task(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")

        trace_id = task.input_payload.get("traceId") or new_trace_id()
        span_id = await self._recorder.start_span(
            trace_id,
            SERVICE,
            "task_approve",
            metadata={"taskId": task.id, "agentId": task.agent_id},
        )

        resume = ResumeSignal(task_id=task.id, agent_id=task.agent_id, trace_id=trace_id)
        try:
            message_id = await self._queue.publish(
                self._topic,
                encode_message(resume.to_dict()),
                {TRACE_ID_ATTRIBUTE: trace_id},
            )
        except PublishError as e:
            await best_effort(
                self._recorder.end_span(span_id, root_watch.elapsed_ms(), SpanStatus.ERROR),
                action="mark_approve_span_error",
                traceId=trace_id,
            )
            logger.error(
                "Failed to publish RESUME for task %s: %s",
                task.id,
                e,
                extra={"context": {"taskId": task.id, "traceId": trace_id}},
            )
            raise

        await best_effort(
            self._recorder.end_span(span_id, root_watch.elapsed_ms(), SpanStatus.OK),
            action="close_approve_span",
            traceId=trace_id,
        )
        logger.info(
            "Queued RESUME for task %s as message %s",
            task.id,
            message_id,
            extra={"context": {"taskId": task.id, "traceId": trace_id}},
        )
        return ResumeQueued(message_id=message_id, task_id=task.id, trace_id=trace_id)
