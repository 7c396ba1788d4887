"""Queue client abstraction: publish to a topic, consume a subscription."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Protocol


class ReceivedMessage:
    """A single delivery of a message from a subscription.

    ack() removes the message from redelivery, nack() forces redelivery.
    Only the first of the two calls has an effect.
    """

    def __init__(
        self,
        id: str,
        data: bytes,
        attributes: dict[str, str] | None = None,
        on_ack: Callable[[], None] | None = None,
        on_nack: Callable[[], None] | None = None,
        delivery_attempt: int = 1,
    ):
        self.id = id
        self.data = data
        self.attributes = dict(attributes or {})
        self.delivery_attempt = delivery_attempt
        self._on_ack = on_ack
        self._on_nack = on_nack
        self._outcome: str | None = None

    def ack(self) -> None:
        if self._outcome is not None:
            return
        self._outcome = "ack"
        if self._on_ack:
            self._on_ack()

    def nack(self) -> None:
        if self._outcome is not None:
            return
        self._outcome = "nack"
        if self._on_nack:
            self._on_nack()

    @property
    def acked(self) -> bool:
        return self._outcome == "ack"

    @property
    def settled(self) -> bool:
        return self._outcome is not None

    def __repr__(self) -> str:
        return (
            f"ReceivedMessage(id={self.id!r}, attempt={self.delivery_attempt}, "
            f"outcome={self._outcome!r})"
        )


@dataclass
class PublishedMessage:
    """A message as accepted by a topic."""

    id: str
    topic: str
    data: bytes
    attributes: dict[str, str] = field(default_factory=dict)
    published_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


MessageHandler = Callable[[ReceivedMessage], Awaitable[None]]
ErrorHandler = Callable[[Exception], Awaitable[None]]


class IQueueClient(Protocol):
    """At-least-once queue with no ordering guarantee across messages."""

    async def publish(
        self, topic: str, data: bytes, attributes: dict[str, str] | None = None
    ) -> str:
        """Publish bytes to a topic and return the message ID.

        Raises PublishError on transport or quota failure.
        """
        ...

    async def subscribe(
        self,
        subscription: str,
        on_message: MessageHandler,
        on_error: ErrorHandler,
    ) -> None:
        """Register a long-lived handler for a subscription."""
        ...

    async def close(self) -> None:
        """Stop deliveries and release transport resources."""
        ...
