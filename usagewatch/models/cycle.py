"""Polling cycle models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from usagewatch.models.notification import DeliveryOutcome, NotificationEvent, utcnow
from usagewatch.models.usage import UsageRecord


class CycleTrigger(str, Enum):
    """What started a polling cycle."""

    INTERVAL = "interval"
    MANUAL = "manual"
    FEATURE_CHANGE = "feature_change"
    LOAD_MORE = "load_more"
    API = "api"


class CycleState(str, Enum):
    """Orchestrator state."""

    IDLE = "idle"
    FETCHING = "fetching"
    EVALUATING = "evaluating"
    DISPATCHING = "dispatching"


class CycleResult(BaseModel):
    """Outcome of one fetch -> evaluate -> dispatch pass."""

    cycle_id: str = Field(..., description="Cycle identifier, bound to log context")
    feature_id: str = Field(..., description="Feature captured at cycle start")
    trigger: CycleTrigger
    records: list[UsageRecord] = Field(default_factory=list, description="Records evaluated")
    events: list[NotificationEvent] = Field(default_factory=list)
    outcomes: list[DeliveryOutcome] = Field(default_factory=list)
    error: str | None = Field(default=None, description="Fetch failure, if the cycle aborted")
    discarded: bool = Field(
        default=False,
        description="Results dropped because the feature changed mid-cycle",
    )
    has_more: bool = False
    next_offset: int = 0
    started_at: datetime = Field(default_factory=utcnow)
    finished_at: datetime | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.discarded
