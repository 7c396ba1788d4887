"""Worker module."""

from .accounting import (
    RESUME_CHARGE,
    TOOL_CALL_CHARGE,
    UsageAccountant,
    UsageCharge,
)
from .orchestrator import (
    IOrchestratorWorker,
    MessageOutcome,
    OrchestratorWorker,
    describe_signal,
)

__all__ = [
    "IOrchestratorWorker",
    "MessageOutcome",
    "OrchestratorWorker",
    "RESUME_CHARGE",
    "TOOL_CALL_CHARGE",
    "UsageAccountant",
    "UsageCharge",
    "describe_signal",
]
