"""Error taxonomy and the best-effort helper for secondary writes."""

import logging
from typing import Awaitable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EgapError(Exception):
    """Base class for all relay errors."""


class ConfigError(EgapError):
    """Required configuration is missing or malformed."""


class ValidationError(EgapError):
    """Inbound webhook body is not acceptable (HTTP 400)."""


class PublishError(EgapError):
    """The queue rejected or failed a publish (HTTP 500, not retried)."""


class ParseError(EgapError):
    """A delivered queue message is not a JSON object."""


class NotFoundError(EgapError):
    """A referenced row (e.g. a task to approve) does not exist."""


class PersistenceError(EgapError):
    """The store failed a read or write, or the target row does not exist."""


async def best_effort(awaitable: Awaitable[T], *, action: str, **context) -> T | None:
    """
    Await a secondary write whose failure must not reach the caller.

    The failure is logged with the given context and None is returned.

    Args:
        awaitable: The operation to run.
        action: Short name used in the log line, e.g. "close_root_span".
        **context: Extra fields attached to the log record.
    """
    try:
        return await awaitable
    except Exception as e:
        logger.warning(
            "Best-effort %s failed: %s",
            action,
            e,
            extra={"context": {"action": action, **context}},
        )
        return None
