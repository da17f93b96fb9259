"""Tests for notification state and the delivery log."""

import pytest

from usagewatch.models.notification import (
    DeliveryOutcome,
    DeliveryStatus,
    NotificationEvent,
    UsageObservation,
)
from usagewatch.storage.delivery_log import DeliveryLog
from usagewatch.storage.state_store import NotificationStateStore


def make_outcome(
    company_id: str,
    status: DeliveryStatus = DeliveryStatus.SUCCESS,
    delivered: bool = True,
    error: str | None = None,
) -> DeliveryOutcome:
    event = NotificationEvent(
        company_id=company_id,
        company_name=f"Company {company_id}",
        feature_name="API Calls",
        threshold=90,
        usage=91,
        allocation=100,
    )
    return DeliveryOutcome(event=event, status=status, delivered=delivered, error_detail=error)


def test_state_store_get_set_overwrite() -> None:
    store = NotificationStateStore()

    assert store.get("c1") is None
    assert "c1" not in store

    store.set("c1", 50, 100)
    store.set("c1", 75, None)

    assert store.get("c1") == UsageObservation(usage=75, allocation=None)
    assert "c1" in store
    assert len(store) == 1


def test_state_store_snapshot_is_a_copy() -> None:
    store = NotificationStateStore({"c1": UsageObservation(usage=1, allocation=10)})

    snapshot = store.snapshot()
    store.set("c1", 9, 10)
    store.set("c2", 5, 10)

    assert snapshot == {"c1": UsageObservation(usage=1, allocation=10)}
    assert len(store) == 2


def test_delivery_log_is_newest_first_and_bounded() -> None:
    log = DeliveryLog(max_entries=3)

    for i in range(5):
        log.append(make_outcome(f"c{i}"))

    entries = log.entries()
    assert len(log) == 3
    assert [e.company_id for e in entries] == ["c4", "c3", "c2"]


def test_delivery_log_records_errors_and_skips_undelivered() -> None:
    log = DeliveryLog()

    skipped = log.append(make_outcome("c1", delivered=False))
    failed = log.append(
        make_outcome("c2", status=DeliveryStatus.ERROR, error="HTTP 503: Service Unavailable")
    )

    assert skipped is None
    assert failed is not None
    assert failed.status == DeliveryStatus.ERROR
    assert failed.error == "HTTP 503: Service Unavailable"
    assert failed.id.startswith("c2-90-")
    assert [e.company_id for e in log.entries()] == ["c2"]

    log.clear()
    assert log.entries() == []


def test_delivery_log_rejects_zero_size() -> None:
    with pytest.raises(ValueError):
        DeliveryLog(max_entries=0)
