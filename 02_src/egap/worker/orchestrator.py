"""Orchestrator worker: consumes signals, opens governance tasks, resumes."""

import json
import uuid
from enum import Enum
from typing import Protocol

from ..errors import ParseError, best_effort
from ..logging_config import get_logger
from ..models import (
    TRACE_ID_ATTRIBUTE,
    SpanStatus,
    Task,
    decode_message,
    is_resume,
)
from ..queue import IQueueClient, ReceivedMessage
from ..storage import IStorage
from ..tracing import ITracer, Stopwatch, new_trace_id
from .accounting import UsageAccountant

logger = get_logger(__name__)

SERVICE = "orchestrator"


class MessageOutcome(str, Enum):
    """Where a delivery ended up before it was acknowledged."""

    RESUME_HANDLED = "resume_handled"
    AGENT_MATCHED = "agent_matched"
    NO_AGENT = "no_agent"
    FAILED = "failed"


class IOrchestratorWorker(Protocol):
    """Long-lived queue subscriber."""

    async def start(self) -> None:
        """Subscribe to the signal subscription."""
        ...

    async def stop(self) -> None:
        """Stop accepting deliveries."""
        ...

    async def handle_message(self, message: ReceivedMessage) -> MessageOutcome:
        """Process one delivery and acknowledge it."""
        ...


def describe_signal(source: str, data: dict) -> str:
    """Task description: the source plus the compact JSON of the payload."""
    payload = data.get("payload")
    if payload is None:
        payload = data
    rendered = json.dumps(payload, separators=(',', ':'), ensure_ascii=False)
    return f"Signal from {source}: {rendered}"


class OrchestratorWorker:
    """
    Routes each delivery to the resume protocol or to agent matching.

    Every delivery is acknowledged exactly once, whatever happens: a bad
    message is logged (and optionally dead-lettered) and dropped rather than
    redelivered forever. Processing is not idempotent; a redelivered signal
    creates a second task.
    """

    def __init__(
        self,
        queue: IQueueClient,
        storage: IStorage,
        recorder: ITracer,
        subscription: str,
        dead_letter_topic: str | None = None,
    ):
        self._queue = queue
        self._storage = storage
        self._recorder = recorder
        self._accountant = UsageAccountant(storage)
        self._subscription = subscription
        self._dead_letter_topic = dead_letter_topic
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Subscribe to the signal subscription."""
        self._running = True
        await self._queue.subscribe(
            self._subscription, self._on_message, self._on_subscription_error
        )
        logger.info("Orchestrator worker listening on %s", self._subscription)

    async def stop(self) -> None:
        """Stop accepting deliveries; late ones are left unacknowledged."""
        self._running = False
        logger.info("Orchestrator worker stopped")

    async def _on_message(self, message: ReceivedMessage) -> None:
        if not self._running:
            return
        await self.handle_message(message)

    async def _on_subscription_error(self, error: Exception) -> None:
        logger.error(
            "Subscription error on %s (still listening): %s",
            self._subscription,
            error,
        )

    async def handle_message(self, message: ReceivedMessage) -> MessageOutcome:
        """
        Process one delivery and acknowledge it.

        Returns:
            The routing outcome. FAILED covers parse errors and any exception
            raised while processing; the message is acknowledged regardless.
        """
        root_watch = Stopwatch()
        trace_id: str | None = None
        root_span_id = str(uuid.uuid4())

        try:
            data = decode_message(message.data)
            logger.info(
                "Received message %s",
                message.id,
                extra={"context": {"messageId": message.id, "data": data}},
            )

            trace_id = (
                message.attributes.get(TRACE_ID_ATTRIBUTE)
                or data.get("traceId")
                or new_trace_id()
            )

            await self._recorder.start_span(
                trace_id,
                SERVICE,
                "process_message",
                metadata={"messageId": message.id},
                span_id=root_span_id,
            )

            if is_resume(data):
                outcome = await self._handle_resume(
                    data, trace_id, root_span_id, root_watch
                )
            else:
                outcome = await self._handle_signal(data, trace_id, root_span_id)

            await self._recorder.end_span(
                root_span_id, root_watch.elapsed_ms(), SpanStatus.OK
            )
        except Exception as e:
            outcome = MessageOutcome.FAILED
            if isinstance(e, ParseError):
                logger.error("Unparsable message %s: %s", message.id, e)
            else:
                logger.error(
                    "Error processing message %s: %s",
                    message.id,
                    e,
                    exc_info=True,
                    extra={"context": {"messageId": message.id, "traceId": trace_id}},
                )
            if trace_id:
                await best_effort(
                    self._recorder.end_span(
                        root_span_id, root_watch.elapsed_ms(), SpanStatus.ERROR
                    ),
                    action="mark_root_span_error",
                    traceId=trace_id,
                    messageId=message.id,
                )
            if self._dead_letter_topic:
                await best_effort(
                    self._dead_letter(message, trace_id, e),
                    action="dead_letter",
                    messageId=message.id,
                )

        message.ack()
        logger.info(
            "Message %s acknowledged (%s)",
            message.id,
            outcome.value,
            extra={"context": {"messageId": message.id, "traceId": trace_id}},
        )
        return outcome

    async def _handle_resume(
        self,
        data: dict,
        trace_id: str,
        root_span_id: str,
        root_watch: Stopwatch,
    ) -> MessageOutcome:
        task_id = data.get("taskId")
        agent_id = data.get("agentId")
        logger.info(
            "Resuming agent for task %s",
            task_id,
            extra={"context": {"taskId": task_id, "traceId": trace_id}},
        )

        if agent_id:
            await self._accountant.charge_resume(agent_id, task_id, trace_id)
            logger.info("Logged resume usage for agent %s", agent_id)

        await self._recorder.record_span(
            trace_id,
            root_span_id,
            SERVICE,
            "resume_agent",
            root_watch.elapsed_ms(),
            metadata={"taskId": task_id},
        )
        return MessageOutcome.RESUME_HANDLED

    async def _handle_signal(
        self, data: dict, trace_id: str, root_span_id: str
    ) -> MessageOutcome:
        lookup_watch = Stopwatch()
        source = data.get("source") or "unknown"
        agent = await self._storage.find_agent_by_role(source)

        await self._recorder.record_span(
            trace_id,
            root_span_id,
            SERVICE,
            "agent_lookup",
            lookup_watch.elapsed_ms(),
            metadata={"source": source, "found": agent is not None},
        )

        if agent is None:
            logger.warning(
                "No agent found for source %s",
                source,
                extra={"context": {"source": source, "traceId": trace_id}},
            )
            return MessageOutcome.NO_AGENT

        logger.info("Found agent %s (%s) for source %s", agent.name, agent.id, source)

        create_watch = Stopwatch()
        task = await self._storage.create_task(
            Task(
                id=str(uuid.uuid4()),
                description=describe_signal(source, data),
                input_payload=data,
                agent_id=agent.id,
            )
        )
        logger.info(
            "Created task %s, waiting for approval",
            task.id,
            extra={"context": {"taskId": task.id, "traceId": trace_id}},
        )

        await self._recorder.record_span(
            trace_id,
            root_span_id,
            SERVICE,
            "task_create",
            create_watch.elapsed_ms(),
            metadata={"taskId": task.id, "agentName": agent.name},
        )

        await self._accountant.charge_tool_call(agent.id, task.id, source, trace_id)
        logger.info("Logged tool_call usage for agent %s", agent.name)
        return MessageOutcome.AGENT_MATCHED

    async def _dead_letter(
        self, message: ReceivedMessage, trace_id: str | None, error: Exception
    ) -> None:
        attributes = {"error": str(error)[:1024], "sourceMessageId": message.id}
        if trace_id:
            attributes[TRACE_ID_ATTRIBUTE] = trace_id
        dead_letter_id = await self._queue.publish(
            self._dead_letter_topic, message.data, attributes
        )
        logger.warning(
            "Message %s dead-lettered to %s as %s",
            message.id,
            self._dead_letter_topic,
            dead_letter_id,
        )
