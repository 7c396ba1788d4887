"""Process-local ingress audit counters."""

import time
from datetime import datetime, timezone


class AuditCounters:
    """
    Running totals of webhook traffic for this process.

    Created once at application start, read through snapshot(), never
    persisted. Mutated only from the event loop thread, so plain integers
    are enough. Totals from several ingress instances are not aggregated.
    """

    def __init__(self):
        self.total_received = 0
        self.total_published = 0
        self.total_failed = 0
        self.started_at = datetime.now(timezone.utc)
        self._started_monotonic = time.monotonic()

    def record_received(self) -> None:
        self.total_received += 1

    def record_published(self) -> None:
        self.total_published += 1

    def record_failed(self) -> None:
        self.total_failed += 1

    def uptime_seconds(self) -> int:
        return int(time.monotonic() - self._started_monotonic)

    def snapshot(self) -> dict:
        """Counters plus start time and uptime, in the /api/stats shape."""
        return {
            "totalReceived": self.total_received,
            "totalPublished": self.total_published,
            "totalFailed": self.total_failed,
            "startedAt": self.started_at.isoformat(),
            "uptime": f"{self.uptime_seconds()}s",
        }
