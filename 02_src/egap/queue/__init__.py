"""Queue module."""

from .base import (
    ErrorHandler,
    IQueueClient,
    MessageHandler,
    PublishedMessage,
    ReceivedMessage,
)
from .memory import InMemoryQueue

__all__ = [
    "ErrorHandler",
    "IQueueClient",
    "InMemoryQueue",
    "MessageHandler",
    "PublishedMessage",
    "ReceivedMessage",
]
