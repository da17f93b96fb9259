"""Usage feed domain models."""

import math
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class UsagePeriod(str, Enum):
    """Metering period of a company's allocation."""

    CURRENT_DAY = "current_day"
    CURRENT_MONTH = "current_month"
    CURRENT_YEAR = "current_year"
    OTHER = "other"

    @property
    def label(self) -> str | None:
        """Human readable limit label, if the period has one."""
        return _PERIOD_LABELS.get(self)


_PERIOD_LABELS = {
    UsagePeriod.CURRENT_DAY: "Daily Limit",
    UsagePeriod.CURRENT_MONTH: "Monthly Limit",
    UsagePeriod.CURRENT_YEAR: "Yearly Limit",
}


def usage_percentage(usage: float, allocation: float | None) -> float:
    """Percentage of allocation consumed.

    Unlimited (None) allocations and zero usage are 0%. Any usage against a
    zero allocation is infinitely over quota.
    """
    if allocation is None or usage == 0:
        return 0.0
    if allocation == 0:
        return math.inf
    return usage / allocation * 100


class UsageRecord(BaseModel):
    """Usage of one feature by one company, as reported by the feed."""

    company_id: str = Field(..., description="Company identifier")
    company_name: str = Field(default="", description="Company display name")
    feature_id: str = Field(default="", description="Feature identifier")
    feature_name: str = Field(default="", description="Feature display name")
    period: UsagePeriod = Field(default=UsagePeriod.OTHER, description="Allocation period")
    usage: float = Field(default=0, ge=0, description="Usage in the current period")
    allocation: float | None = Field(
        default=None,
        ge=0,
        description="Allocated quota, None for unlimited",
    )
    company_logo_url: str | None = Field(default=None, description="Company logo URL")
    plan_name: str | None = Field(default=None, description="Company plan name")

    @field_validator("period", mode="before")
    @classmethod
    def coerce_period(cls, value: Any) -> Any:
        if isinstance(value, UsagePeriod):
            return value
        try:
            return UsagePeriod(value)
        except ValueError:
            return UsagePeriod.OTHER

    @property
    def is_unlimited(self) -> bool:
        return self.allocation is None

    @property
    def usage_percentage(self) -> float:
        return usage_percentage(self.usage, self.allocation)

    @classmethod
    def from_feed_item(cls, item: dict[str, Any], feature_id: str = "") -> "UsageRecord":
        """Build a record from a Schematic ``feature-companies`` item.

        Raises:
            KeyError: If the item has no company id
        """
        company = item.get("company") or {}
        feature = item.get("feature") or {}
        plan = company.get("plan") or {}

        return cls(
            company_id=company["id"],
            company_name=company.get("name") or "",
            company_logo_url=company.get("logo_url"),
            plan_name=plan.get("name"),
            feature_id=feature.get("id") or feature_id,
            feature_name=feature.get("name") or "",
            period=item.get("period") or UsagePeriod.OTHER,
            usage=item.get("usage") or 0,
            allocation=item.get("allocation"),
        )


class UsagePage(BaseModel):
    """One offset/limit page of usage records."""

    records: list[UsageRecord] = Field(default_factory=list)
    offset: int = Field(default=0, ge=0)
    limit: int = Field(..., ge=1)
    has_more: bool = Field(default=False, description="Whether another page may exist")

    @property
    def next_offset(self) -> int:
        return self.offset + len(self.records)
