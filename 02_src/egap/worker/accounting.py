"""Fixed-cost usage accounting for agent actions."""

import uuid
from dataclasses import dataclass

from ..models import UsageAction, UsageLog
from ..storage import IStorage


@dataclass(frozen=True)
class UsageCharge:
    """Tokens and cost booked for one action."""

    tokens: int
    cost_usd: float


# Placeholders until real tool invocation reports its own usage.
TOOL_CALL_CHARGE = UsageCharge(tokens=120, cost_usd=0.0012)
RESUME_CHARGE = UsageCharge(tokens=50, cost_usd=0.0005)


class UsageAccountant:
    """Appends usage rows to the ledger."""

    def __init__(self, storage: IStorage):
        self._storage = storage

    async def charge_tool_call(
        self, agent_id: str, task_id: str, source: str, trace_id: str
    ) -> UsageLog:
        return await self._charge(
            agent_id,
            UsageAction.TOOL_CALL,
            TOOL_CALL_CHARGE,
            {"taskId": task_id, "source": source, "traceId": trace_id},
        )

    async def charge_resume(
        self, agent_id: str, task_id: str | None, trace_id: str
    ) -> UsageLog:
        return await self._charge(
            agent_id,
            UsageAction.RESUME,
            RESUME_CHARGE,
            {"taskId": task_id, "traceId": trace_id},
        )

    async def _charge(
        self, agent_id: str, action: UsageAction, charge: UsageCharge, metadata: dict
    ) -> UsageLog:
        log = UsageLog(
            id=str(uuid.uuid4()),
            agent_id=agent_id,
            action=action,
            tokens=charge.tokens,
            cost_usd=charge.cost_usd,
            metadata=metadata,
        )
        return await self._storage.create_usage_log(log)
