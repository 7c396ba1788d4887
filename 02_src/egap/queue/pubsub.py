"""Google Cloud Pub/Sub queue client."""

import asyncio

from google.cloud import pubsub_v1

from ..errors import PublishError
from ..logging_config import get_logger
from .base import ErrorHandler, MessageHandler, ReceivedMessage

logger = get_logger(__name__)

# Seconds to wait before reopening a streaming pull that ended with an error.
RESUBSCRIBE_DELAY = 5.0


class PubSubQueue:
    """
    Pub/Sub-backed queue.

    Publishes are awaited through the client's futures. Subscriptions use
    streaming pull; the client invokes callbacks on its own thread pool and
    each callback hands the message to the event loop, blocking until the
    handler finishes. A stream that dies is reported to on_error and reopened.
    """

    def __init__(
        self,
        project_id: str,
        publisher: pubsub_v1.PublisherClient | None = None,
        subscriber: pubsub_v1.SubscriberClient | None = None,
    ):
        self._project_id = project_id
        self._publisher = publisher or pubsub_v1.PublisherClient()
        self._subscriber = subscriber or pubsub_v1.SubscriberClient()
        self._streams: dict[str, object] = {}
        self._error_tasks: set[asyncio.Task] = set()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._closed = False

    async def publish(
        self, topic: str, data: bytes, attributes: dict[str, str] | None = None
    ) -> str:
        """Publish and wait for the server-assigned message ID."""
        topic_path = self._publisher.topic_path(self._project_id, topic)
        try:
            future = self._publisher.publish(topic_path, data, **(attributes or {}))
            return await asyncio.wrap_future(future)
        except Exception as e:
            raise PublishError(f"Publish to {topic} failed: {e}") from e

    async def subscribe(
        self,
        subscription: str,
        on_message: MessageHandler,
        on_error: ErrorHandler,
    ) -> None:
        """Open a streaming pull on the subscription."""
        self._loop = asyncio.get_running_loop()
        self._open_stream(subscription, on_message, on_error)

    async def close(self) -> None:
        """Cancel streaming pulls and close both clients."""
        self._closed = True
        for stream in self._streams.values():
            stream.cancel()
        self._streams.clear()
        if self._error_tasks:
            await asyncio.gather(*list(self._error_tasks), return_exceptions=True)
        self._subscriber.close()
        self._publisher.stop()

    def _open_stream(
        self,
        subscription: str,
        on_message: MessageHandler,
        on_error: ErrorHandler,
    ) -> None:
        if self._closed:
            return

        loop = self._loop
        subscription_path = self._subscriber.subscription_path(
            self._project_id, subscription
        )

        def callback(message) -> None:
            received = ReceivedMessage(
                id=message.message_id,
                data=message.data,
                attributes=dict(message.attributes),
                on_ack=message.ack,
                on_nack=message.nack,
                delivery_attempt=message.delivery_attempt or 1,
            )
            future = asyncio.run_coroutine_threadsafe(on_message(received), loop)
            try:
                future.result()
            except Exception as e:
                logger.error(
                    "Handler for %s raised on message %s: %s",
                    subscription,
                    message.message_id,
                    e,
                )
                received.nack()

        stream = self._subscriber.subscribe(subscription_path, callback=callback)
        self._streams[subscription] = stream
        stream.add_done_callback(
            lambda done: loop.call_soon_threadsafe(
                self._on_stream_done, subscription, done, on_message, on_error
            )
        )
        logger.info("Streaming pull opened on %s", subscription_path)

    def _on_stream_done(
        self,
        subscription: str,
        stream,
        on_message: MessageHandler,
        on_error: ErrorHandler,
    ) -> None:
        if self._closed or stream.cancelled():
            return

        error = stream.exception()
        if error is None:
            error = RuntimeError(f"Streaming pull on {subscription} ended")
        task = asyncio.ensure_future(on_error(error))
        self._error_tasks.add(task)
        task.add_done_callback(self._on_error_handled)

        self._loop.call_later(
            RESUBSCRIBE_DELAY, self._open_stream, subscription, on_message, on_error
        )

    def _on_error_handled(self, task: asyncio.Task) -> None:
        self._error_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Subscription error handler raised: %s", task.exception())
