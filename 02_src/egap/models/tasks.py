"""Governance task and usage accounting models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class UsageAction(str, Enum):
    """Billable actions recorded in the usage ledger."""

    TOOL_CALL = "tool_call"
    RESUME = "resume"


@dataclass
class Task:
    """One unit of work awaiting human approval."""

    id: str
    description: str
    input_payload: dict  # the full decoded queue message
    agent_id: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class UsageLog:
    """Append-only ledger row, one per billable action."""

    id: str
    agent_id: str
    action: UsageAction
    tokens: int
    cost_usd: float
    metadata: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
