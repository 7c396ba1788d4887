"""Agent-related data models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class Tool:
    """A capability an agent may use. Reference data."""

    id: str
    name: str
    description: str = ""


@dataclass
class Agent:
    """A registered automation profile. Routed to by role."""

    id: str
    name: str
    role: str  # matched against a signal's source
    goal: str = ""
    system_prompt: str = ""
    tools: list[Tool] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
