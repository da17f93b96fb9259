"""Usage and notification API schemas."""

import math
from datetime import datetime

from pydantic import Field

from usagewatch.models.cycle import CycleResult, CycleState, CycleTrigger
from usagewatch.models.notification import DeliveryOutcome, DeliveryStatus, NotificationEvent
from usagewatch.models.usage import UsagePeriod, UsageRecord
from usagewatch.schemas.common import CamelModel, PaginationInfo
from usagewatch.storage.delivery_log import DeliveryLogEntry


class FeatureRequest(CamelModel):
    """Request body naming a feature."""

    feature_id: str = Field(..., min_length=1, description="Feature ID")


class UsageItem(CamelModel):
    """A company's usage as shown in the usage list."""

    company_id: str
    company_name: str
    company_logo_url: str | None = None
    plan_name: str | None = None
    feature_id: str
    feature_name: str
    period: UsagePeriod
    period_label: str | None = None
    usage: float
    allocation: float | None = Field(default=None, description="None for unlimited")
    unlimited: bool
    usage_percentage: float | None = Field(
        default=None,
        description="None when usage is charged against a zero allocation",
    )

    @classmethod
    def from_record(cls, record: UsageRecord) -> "UsageItem":
        return cls(
            company_id=record.company_id,
            company_name=record.company_name,
            company_logo_url=record.company_logo_url,
            plan_name=record.plan_name,
            feature_id=record.feature_id,
            feature_name=record.feature_name,
            period=record.period,
            period_label=record.period.label,
            usage=record.usage,
            allocation=record.allocation,
            unlimited=record.is_unlimited,
            usage_percentage=(
                round(record.usage_percentage, 1)
                if math.isfinite(record.usage_percentage)
                else None
            ),
        )


class FeatureUsagePage(CamelModel):
    """One page of the usage feed."""

    data: list[UsageItem] = Field(default_factory=list)
    pagination: PaginationInfo


class UsageSnapshot(CamelModel):
    """Current usage snapshot held by the poller."""

    feature_id: str
    state: CycleState
    polling: bool = Field(default=False, description="Whether the interval timer is running")
    last_updated: datetime | None = None
    has_more: bool = False
    last_error: str | None = None
    data: list[UsageItem] = Field(default_factory=list)


class NotificationItem(CamelModel):
    """A fired threshold notification."""

    company_id: str
    company_name: str
    feature: str
    threshold: int
    usage: float
    allocation: float | None = None
    timestamp: datetime

    @classmethod
    def from_event(cls, event: NotificationEvent) -> "NotificationItem":
        return cls(
            company_id=event.company_id,
            company_name=event.company_name,
            feature=event.feature_name,
            threshold=event.threshold,
            usage=event.usage,
            allocation=event.allocation,
            timestamp=event.timestamp,
        )


class DeliveryItem(CamelModel):
    """Webhook delivery outcome for one notification."""

    company_id: str
    threshold: int
    status: DeliveryStatus
    delivered: bool
    status_code: int | None = None
    error: str | None = None

    @classmethod
    def from_outcome(cls, outcome: DeliveryOutcome) -> "DeliveryItem":
        return cls(
            company_id=outcome.event.company_id,
            threshold=outcome.event.threshold,
            status=outcome.status,
            delivered=outcome.delivered,
            status_code=outcome.status_code,
            error=outcome.error_detail,
        )


class CycleResponse(CamelModel):
    """Summary of a polling cycle."""

    cycle_id: str
    feature_id: str
    trigger: CycleTrigger
    discarded: bool = False
    records_evaluated: int = 0
    has_more: bool = False
    notifications: list[NotificationItem] = Field(default_factory=list)
    deliveries: list[DeliveryItem] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: CycleResult) -> "CycleResponse":
        return cls(
            cycle_id=result.cycle_id,
            feature_id=result.feature_id,
            trigger=result.trigger,
            discarded=result.discarded,
            records_evaluated=len(result.records),
            has_more=result.has_more,
            notifications=[NotificationItem.from_event(e) for e in result.events],
            deliveries=[DeliveryItem.from_outcome(o) for o in result.outcomes],
        )


class WebhookLogItem(CamelModel):
    """Webhook activity log entry."""

    id: str
    company_id: str
    company_name: str
    feature: str
    threshold: int
    status: DeliveryStatus
    error: str | None = None
    timestamp: datetime

    @classmethod
    def from_entry(cls, entry: DeliveryLogEntry) -> "WebhookLogItem":
        return cls(
            id=entry.id,
            company_id=entry.company_id,
            company_name=entry.company_name,
            feature=entry.feature_name,
            threshold=entry.threshold,
            status=entry.status,
            error=entry.error,
            timestamp=entry.timestamp,
        )
