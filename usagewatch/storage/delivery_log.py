"""Bounded webhook activity log."""

import uuid
from collections import deque
from datetime import datetime

from pydantic import BaseModel, Field

from usagewatch.models.notification import DeliveryOutcome, DeliveryStatus, utcnow


class DeliveryLogEntry(BaseModel):
    """One webhook delivery attempt."""

    id: str = Field(..., description="Entry identifier")
    company_id: str
    company_name: str = ""
    feature_name: str = ""
    threshold: int
    status: DeliveryStatus
    error: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_outcome(cls, outcome: DeliveryOutcome) -> "DeliveryLogEntry":
        event = outcome.event
        return cls(
            id=f"{event.company_id}-{event.threshold}-{uuid.uuid4().hex[:8]}",
            company_id=event.company_id,
            company_name=event.company_name,
            feature_name=event.feature_name,
            threshold=event.threshold,
            status=outcome.status,
            error=outcome.error_detail,
        )


class DeliveryLog:
    """Newest-first log of webhook deliveries, capped at ``max_entries``."""

    def __init__(self, max_entries: int = 50):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._entries: deque[DeliveryLogEntry] = deque(maxlen=max_entries)

    @property
    def max_entries(self) -> int:
        return self._entries.maxlen or 0

    def append(self, outcome: DeliveryOutcome) -> DeliveryLogEntry | None:
        """Record a delivery outcome.

        Skipped deliveries (no webhook configured) are not recorded.

        Returns:
            The new entry, or None if nothing was recorded
        """
        if not outcome.delivered:
            return None
        entry = DeliveryLogEntry.from_outcome(outcome)
        self._entries.appendleft(entry)
        return entry

    def entries(self) -> list[DeliveryLogEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
