"""Threshold notification domain models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Evaluated highest-first so only the highest newly crossed threshold fires
THRESHOLDS: tuple[int, ...] = (100, 90, 80)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UsageObservation(BaseModel):
    """Last observed usage/allocation pair for a company."""

    model_config = ConfigDict(frozen=True)

    usage: float = Field(default=0, ge=0)
    allocation: float | None = Field(default=None, ge=0)


class NotificationEvent(BaseModel):
    """A company crossed a usage threshold."""

    model_config = ConfigDict(frozen=True)

    company_id: str = Field(..., description="Company identifier")
    company_name: str = Field(default="", description="Company display name")
    feature_name: str = Field(default="", description="Feature display name")
    threshold: int = Field(..., description="Crossed threshold percentage")
    usage: float = Field(..., ge=0, description="Usage when the threshold was crossed")
    allocation: float | None = Field(default=None, description="Allocation, None for unlimited")
    timestamp: datetime = Field(default_factory=utcnow)

    def to_webhook_payload(self) -> dict[str, Any]:
        """JSON body posted to the webhook endpoint."""
        return {
            "companyId": self.company_id,
            "companyName": self.company_name,
            "feature": self.feature_name,
            "threshold": self.threshold,
            "usage": self.usage,
            "allocation": self.allocation,
            "timestamp": self.timestamp.isoformat(),
        }


class DeliveryStatus(str, Enum):
    """Webhook delivery status."""

    SUCCESS = "success"
    ERROR = "error"


class DeliveryOutcome(BaseModel):
    """Result of delivering one notification event."""

    event: NotificationEvent
    status: DeliveryStatus
    error_detail: str | None = Field(default=None, description="Failure reason")
    status_code: int | None = Field(default=None, description="Webhook HTTP status code")
    delivered: bool = Field(
        default=True,
        description="False when no webhook is configured and delivery was skipped",
    )

    @property
    def ok(self) -> bool:
        return self.status == DeliveryStatus.SUCCESS
