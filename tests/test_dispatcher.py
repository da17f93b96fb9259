"""Tests for webhook delivery."""

import json

import httpx
import pytest

from conftest import make_settings
from usagewatch.models.notification import DeliveryStatus, NotificationEvent
from usagewatch.notification.dispatcher import WebhookDispatcher

WEBHOOK_URL = "https://hooks.example.com/usage"


def make_event(company_id: str = "c1", threshold: int = 80) -> NotificationEvent:
    return NotificationEvent(
        company_id=company_id,
        company_name="Acme Corp",
        feature_name="API Calls",
        threshold=threshold,
        usage=85,
        allocation=100,
    )


def make_dispatcher(handler, webhook_url: str = WEBHOOK_URL) -> WebhookDispatcher:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WebhookDispatcher(webhook_url=webhook_url, client=http, settings=make_settings())


@pytest.mark.asyncio
async def test_deliver_posts_event_json() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    dispatcher = make_dispatcher(handler)
    event = make_event()
    outcome = await dispatcher.deliver(event)

    assert outcome.status == DeliveryStatus.SUCCESS
    assert outcome.delivered is True
    assert outcome.status_code == 204
    assert len(seen) == 1
    assert seen[0].method == "POST"
    assert str(seen[0].url) == WEBHOOK_URL
    body = json.loads(seen[0].content)
    assert body == {
        "companyId": "c1",
        "companyName": "Acme Corp",
        "feature": "API Calls",
        "threshold": 80,
        "usage": 85,
        "allocation": 100,
        "timestamp": event.timestamp.isoformat(),
    }
    await dispatcher.close()


@pytest.mark.asyncio
async def test_deliver_without_webhook_url_is_noop_success() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200)

    dispatcher = make_dispatcher(handler, webhook_url="")
    outcomes = await dispatcher.deliver_all([make_event("c1"), make_event("c2", 100)])

    assert dispatcher.enabled is False
    assert [o.status for o in outcomes] == [DeliveryStatus.SUCCESS, DeliveryStatus.SUCCESS]
    assert all(o.delivered is False for o in outcomes)
    assert calls == []
    await dispatcher.close()


@pytest.mark.asyncio
async def test_deliver_error_status_is_captured() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    dispatcher = make_dispatcher(handler)
    outcome = await dispatcher.deliver(make_event())

    assert outcome.status == DeliveryStatus.ERROR
    assert outcome.status_code == 503
    assert outcome.error_detail == "HTTP 503: Service Unavailable"
    await dispatcher.close()


@pytest.mark.asyncio
async def test_deliver_network_error_is_captured() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    dispatcher = make_dispatcher(handler)
    outcome = await dispatcher.deliver(make_event())

    assert outcome.status == DeliveryStatus.ERROR
    assert outcome.error_detail == "timed out"
    assert outcome.status_code is None
    await dispatcher.close()


@pytest.mark.asyncio
async def test_deliver_all_keeps_order_and_isolates_failures() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        return httpx.Response(500 if body["companyId"] == "bad" else 200)

    dispatcher = make_dispatcher(handler)
    events = [make_event("c1"), make_event("bad"), make_event("c3")]

    outcomes = await dispatcher.deliver_all(events)

    assert [o.event.company_id for o in outcomes] == ["c1", "bad", "c3"]
    assert [o.ok for o in outcomes] == [True, False, True]
    assert await dispatcher.deliver_all([]) == []
    await dispatcher.close()


@pytest.mark.asyncio
async def test_deliver_invalid_webhook_url_is_captured() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200)

    dispatcher = make_dispatcher(handler, webhook_url="http://[::1")
    outcomes = await dispatcher.deliver_all([make_event("c1"), make_event("c2")])

    assert [o.status for o in outcomes] == [DeliveryStatus.ERROR, DeliveryStatus.ERROR]
    assert all(o.error_detail for o in outcomes)
    assert all(o.status_code is None for o in outcomes)
    await dispatcher.close()
