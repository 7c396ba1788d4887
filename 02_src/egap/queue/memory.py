"""In-process queue with Pub/Sub delivery semantics."""

import asyncio
import uuid

from ..errors import PublishError
from ..logging_config import get_logger
from .base import (
    ErrorHandler,
    MessageHandler,
    PublishedMessage,
    ReceivedMessage,
)

logger = get_logger(__name__)


class InMemoryQueue:
    """
    In-memory pub/sub queue.

    Topics fan out to bound subscriptions. Each delivery runs as its own
    asyncio task; nack() or a handler crash redelivers the message until
    max_delivery_attempts is reached. Messages published to a subscription
    without a handler wait in its backlog.
    """

    def __init__(self, max_delivery_attempts: int = 5):
        self._max_attempts = max_delivery_attempts
        self._bindings: dict[str, list[str]] = {}  # topic -> subscriptions
        self._handlers: dict[str, tuple[MessageHandler, ErrorHandler]] = {}
        self._backlog: dict[str, list[tuple[PublishedMessage, int]]] = {}
        self._published: dict[str, list[PublishedMessage]] = {}
        self._pending: set[asyncio.Task] = set()
        self._acked: list[str] = []
        self._closed = False

    def create_subscription(self, subscription: str, topic: str) -> None:
        """Bind a subscription to a topic."""
        subscriptions = self._bindings.setdefault(topic, [])
        if subscription not in subscriptions:
            subscriptions.append(subscription)
        self._backlog.setdefault(subscription, [])

    async def publish(
        self, topic: str, data: bytes, attributes: dict[str, str] | None = None
    ) -> str:
        """Accept a message and schedule delivery to every bound subscription."""
        if self._closed:
            raise PublishError("Queue is closed")
        if not isinstance(data, bytes):
            raise PublishError(f"Message data must be bytes, got {type(data).__name__}")

        message = PublishedMessage(
            id=str(uuid.uuid4()),
            topic=topic,
            data=data,
            attributes={str(k): str(v) for k, v in (attributes or {}).items()},
        )
        self._published.setdefault(topic, []).append(message)

        for subscription in self._bindings.get(topic, []):
            self._enqueue(subscription, message, attempt=1)

        return message.id

    async def subscribe(
        self,
        subscription: str,
        on_message: MessageHandler,
        on_error: ErrorHandler,
    ) -> None:
        """Register the handler and flush the subscription's backlog."""
        if subscription not in self._backlog:
            await on_error(LookupError(f"Subscription {subscription} does not exist"))
            return

        self._handlers[subscription] = (on_message, on_error)

        backlog, self._backlog[subscription] = self._backlog[subscription], []
        for message, attempt in backlog:
            self._enqueue(subscription, message, attempt)

    async def fail_subscription(self, subscription: str, error: Exception) -> None:
        """Report a transport-level error to the subscription's error handler."""
        handlers = self._handlers.get(subscription)
        if handlers:
            await handlers[1](error)

    def messages(self, topic: str) -> list[PublishedMessage]:
        """Messages accepted by a topic, oldest first."""
        return list(self._published.get(topic, []))

    @property
    def acked(self) -> list[str]:
        """IDs of acknowledged deliveries, in ack order."""
        return list(self._acked)

    async def drain(self) -> None:
        """Wait until no delivery is in flight."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        """Cancel in-flight deliveries and refuse new publishes."""
        self._closed = True
        for task in list(self._pending):
            task.cancel()
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        self._handlers.clear()

    def _enqueue(self, subscription: str, message: PublishedMessage, attempt: int) -> None:
        if self._closed:
            return
        if attempt > self._max_attempts:
            logger.error(
                "Dropping message %s on %s after %s delivery attempts",
                message.id,
                subscription,
                attempt - 1,
            )
            return
        if subscription not in self._handlers:
            self._backlog[subscription].append((message, attempt))
            return

        task = asyncio.create_task(self._deliver(subscription, message, attempt))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(
        self, subscription: str, message: PublishedMessage, attempt: int
    ) -> None:
        on_message, _ = self._handlers[subscription]
        received = ReceivedMessage(
            id=message.id,
            data=message.data,
            attributes=message.attributes,
            on_ack=lambda: self._acked.append(message.id),
            on_nack=lambda: self._enqueue(subscription, message, attempt + 1),
            delivery_attempt=attempt,
        )

        try:
            await on_message(received)
        except Exception as e:
            logger.error(
                "Handler for %s raised on message %s: %s",
                subscription,
                message.id,
                e,
                exc_info=True,
            )
            received.nack()
