"""Pytest configuration and fixtures."""

from typing import Any, Callable

import pytest

from usagewatch.core.config import Settings
from usagewatch.core.errors import UsageFetchError
from usagewatch.models.notification import (
    DeliveryOutcome,
    DeliveryStatus,
    NotificationEvent,
)
from usagewatch.models.usage import UsagePage, UsageRecord


def make_record(
    company_id: str,
    usage: float,
    allocation: float | None = 100,
    name: str | None = None,
) -> UsageRecord:
    return UsageRecord(
        company_id=company_id,
        company_name=name or f"Company {company_id}",
        feature_id="feat_test",
        feature_name="API Calls",
        period="current_month",
        usage=usage,
        allocation=allocation,
    )


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "schematic_api_key": "sch_test_key",
        "schematic_base_url": "https://schematic.test",
        "webhook_url": "",
        "feature_id": "feat_test",
        "polling_interval_seconds": 300,
        "page_size": 100,
        "_env_file": None,
    }
    values.update(overrides)
    return Settings(**values)


class FakeFeed:
    """In-memory usage feed serving fixed offset/limit pages."""

    def __init__(self, records: list[UsageRecord] | None = None):
        self.records = list(records or [])
        self.fail_at_offset: int | None = None
        self.calls: list[tuple[str, int, int]] = []
        self.before_return: Callable[[], Any] | None = None

    async def fetch_page(
        self,
        feature_id: str,
        offset: int = 0,
        limit: int | None = None,
    ) -> UsagePage:
        limit = limit or 100
        self.calls.append((feature_id, offset, limit))
        if self.fail_at_offset is not None and offset >= self.fail_at_offset:
            raise UsageFetchError("Usage feed returned HTTP 500", status_code=500)
        records = self.records[offset:offset + limit]
        if self.before_return is not None:
            await self.before_return()
        return UsagePage(
            records=records,
            offset=offset,
            limit=limit,
            has_more=len(records) == limit,
        )

    async def fetch_all(
        self,
        feature_id: str,
        offset: int = 0,
        page_size: int | None = None,
        max_pages: int | None = None,
    ) -> UsagePage:
        limit = page_size or 100
        records: list[UsageRecord] = []
        next_offset = offset
        pages = 0
        while True:
            page = await self.fetch_page(feature_id, offset=next_offset, limit=limit)
            records.extend(page.records)
            next_offset = page.next_offset
            pages += 1
            if not page.has_more:
                return UsagePage(records=records, offset=offset, limit=limit, has_more=False)
            if max_pages is not None and pages >= max_pages:
                return UsagePage(records=records, offset=offset, limit=limit, has_more=True)


class FakeDispatcher:
    """Dispatcher recording events, failing for selected companies."""

    def __init__(self, failing_companies: set[str] | None = None):
        self.delivered: list[NotificationEvent] = []
        self.failing_companies = failing_companies or set()

    async def deliver_all(self, events: list[NotificationEvent]) -> list[DeliveryOutcome]:
        outcomes = []
        for event in events:
            self.delivered.append(event)
            if event.company_id in self.failing_companies:
                outcomes.append(
                    DeliveryOutcome(
                        event=event,
                        status=DeliveryStatus.ERROR,
                        error_detail="HTTP 500: Internal Server Error",
                        status_code=500,
                    )
                )
            else:
                outcomes.append(DeliveryOutcome(event=event, status=DeliveryStatus.SUCCESS))
        return outcomes


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def sample_feed_item() -> dict:
    """Item as returned by the Schematic feature-companies endpoint."""
    return {
        "company": {
            "id": "comp_acme",
            "name": "Acme Corp",
            "logo_url": "https://img.example.com/acme.png",
            "plan": {"name": "Pro"},
        },
        "feature": {"id": "feat_test", "name": "API Calls"},
        "period": "current_month",
        "usage": 850,
        "allocation": 1000,
    }
