"""Queue wire format for signals and RESUME control messages."""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone

from ..errors import ParseError

RESUME_TYPE = "RESUME"
TRACE_ID_ATTRIBUTE = "traceId"


@dataclass
class Signal:
    """An inbound event relayed from the ingress gateway."""

    source: str
    payload: dict
    trace_id: str
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "payload": self.payload,
            "traceId": self.trace_id,
            "receivedAt": self.received_at.isoformat(),
        }


@dataclass
class ResumeSignal:
    """Control message continuing a task after human approval."""

    task_id: str
    agent_id: str | None = None
    trace_id: str | None = None

    def to_dict(self) -> dict:
        data = {"type": RESUME_TYPE, "taskId": self.task_id}
        if self.agent_id:
            data["agentId"] = self.agent_id
        if self.trace_id:
            data["traceId"] = self.trace_id
        return data


def encode_message(data: dict) -> bytes:
    """Serialize a message body for publishing."""
    return json.dumps(data).encode("utf-8")


def decode_message(raw: bytes) -> dict:
    """
    Decode a delivered message body.

    Raises:
        ParseError: if the bytes are not UTF-8 JSON or not a JSON object.
    """
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise ParseError(f"Message body is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ParseError(
            f"Message body must be a JSON object, got {type(data).__name__}"
        )
    return data


def is_resume(data: dict) -> bool:
    return data.get("type") == RESUME_TYPE
