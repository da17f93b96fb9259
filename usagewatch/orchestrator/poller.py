"""Polling orchestrator driving fetch -> evaluate -> dispatch cycles."""

import asyncio
import time
from collections.abc import Iterable
from datetime import datetime
from typing import Protocol

from usagewatch.core.config import Settings, get_settings
from usagewatch.core.errors import MissingConfigurationError, UsageWatchError
from usagewatch.core.logging import get_logger
from usagewatch.engine.threshold import (
    ThresholdEvaluator,
    get_threshold_evaluator,
    sort_by_utilization,
)
from usagewatch.models.cycle import CycleResult, CycleState, CycleTrigger
from usagewatch.models.notification import (
    DeliveryOutcome,
    NotificationEvent,
    utcnow,
)
from usagewatch.models.usage import UsagePage, UsageRecord
from usagewatch.observability.metrics import (
    CYCLE_DURATION,
    CYCLES_TOTAL,
    NOTIFICATIONS_FIRED,
    TRACKED_COMPANIES,
)
from usagewatch.observability.tracing import cycle_context, generate_cycle_id
from usagewatch.storage.delivery_log import DeliveryLog
from usagewatch.storage.state_store import NotificationStateStore

logger = get_logger(__name__)


class UsageFeed(Protocol):
    """Source of paginated usage records."""

    async def fetch_page(
        self,
        feature_id: str,
        offset: int = 0,
        limit: int | None = None,
    ) -> UsagePage: ...

    async def fetch_all(
        self,
        feature_id: str,
        offset: int = 0,
        page_size: int | None = None,
        max_pages: int | None = None,
    ) -> UsagePage: ...


class Dispatcher(Protocol):
    """Delivers notification events."""

    async def deliver_all(self, events: list[NotificationEvent]) -> list[DeliveryOutcome]: ...


class PollingOrchestrator:
    """Runs polling cycles for one feature on a fixed interval.

    Cycles are serialized: a timer tick that finds a cycle in flight is
    skipped, manual triggers wait their turn. Notification state is kept per
    feature for the life of the process, so switching back to a feature resumes
    its state instead of re-announcing crossings. Changing the feature cancels
    the timer and discards results of any cycle still running for the previous
    feature.
    """

    def __init__(
        self,
        feed: UsageFeed,
        dispatcher: Dispatcher,
        state_store: NotificationStateStore | None = None,
        delivery_log: DeliveryLog | None = None,
        evaluator: ThresholdEvaluator | None = None,
        settings: Settings | None = None,
        feature_id: str | None = None,
    ):
        """Initialize orchestrator.

        Args:
            feed: Usage feed to poll
            dispatcher: Notification dispatcher
            state_store: Last-observed usage per company for the initial feature
                (created if omitted)
            delivery_log: Webhook activity log (created if omitted)
            evaluator: Threshold evaluator (shared singleton if omitted)
            settings: Application settings (defaults to cached settings)
            feature_id: Feature to watch (defaults to ``settings.feature_id``)
        """
        self._settings = settings or get_settings()
        self._feed = feed
        self._dispatcher = dispatcher
        self._delivery_log = (
            delivery_log
            if delivery_log is not None
            else DeliveryLog(self._settings.delivery_log_size)
        )
        self._evaluator = evaluator or get_threshold_evaluator()
        self._feature_id = feature_id if feature_id is not None else self._settings.feature_id
        self._stores: dict[str, NotificationStateStore] = {
            self._feature_id: (
                state_store if state_store is not None else NotificationStateStore()
            ),
        }

        self._lock = asyncio.Lock()
        self._generation = 0
        self._state = CycleState.IDLE
        self._timer_task: asyncio.Task | None = None

        # Current snapshot of the feature's usage
        self._records: list[UsageRecord] = []
        self._next_offset = 0
        self._has_more = False
        self._last_result: CycleResult | None = None
        self._last_updated: datetime | None = None

    @property
    def feature_id(self) -> str:
        return self._feature_id

    @property
    def state(self) -> CycleState:
        return self._state

    @property
    def running(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    @property
    def state_store(self) -> NotificationStateStore:
        """Notification state of the current feature."""
        return self._store_for(self._feature_id)

    @property
    def delivery_log(self) -> DeliveryLog:
        return self._delivery_log

    @property
    def last_result(self) -> CycleResult | None:
        return self._last_result

    @property
    def last_updated(self) -> datetime | None:
        """Time of the last cycle that refreshed the snapshot."""
        return self._last_updated

    @property
    def records(self) -> list[UsageRecord]:
        """Current usage snapshot, highest utilization first."""
        return sort_by_utilization(self._records)

    @property
    def has_more(self) -> bool:
        return self._has_more

    async def start(self, run_immediately: bool = True) -> None:
        """Start the polling timer.

        Args:
            run_immediately: Run the first cycle now instead of after one interval
        """
        if self.running:
            return
        logger.info(
            "Polling started",
            feature_id=self._feature_id,
            interval_seconds=self._settings.polling_interval_seconds,
        )
        self._start_timer(run_immediately)

    async def stop(self) -> None:
        """Stop the polling timer and discard any in-flight results."""
        self._generation += 1
        await self._cancel_timer()
        logger.info("Polling stopped", feature_id=self._feature_id)

    async def refresh(self) -> CycleResult:
        """Run a cycle now without resetting the timer."""
        return await self.run_cycle(CycleTrigger.MANUAL)

    async def run_cycle(self, trigger: CycleTrigger = CycleTrigger.MANUAL) -> CycleResult:
        """Run one complete cycle over every page of the current feature."""
        async with self._lock:
            return await self._run_locked(trigger)

    async def load_more(self) -> CycleResult:
        """Fetch and evaluate the page after the current snapshot."""
        async with self._lock:
            return await self._run_locked(
                CycleTrigger.LOAD_MORE,
                offset=self._next_offset,
                append=True,
            )

    async def set_feature(self, feature_id: str) -> CycleResult:
        """Switch to another feature and run a cycle for it.

        Pagination is reset; the new feature's notification state is whatever
        was recorded the last time it was watched. The timer is restarted if it
        was running.
        """
        was_running = self.running
        self._generation += 1
        await self._cancel_timer()

        async with self._lock:
            logger.info(
                "Feature changed",
                previous_feature_id=self._feature_id,
                feature_id=feature_id,
            )
            self._feature_id = feature_id
            self._reset_snapshot()
            TRACKED_COMPANIES.set(len(self.state_store))
            result = await self._run_locked(CycleTrigger.FEATURE_CHANGE)

        if was_running:
            self._start_timer(run_immediately=False)
        return result

    def _start_timer(self, run_immediately: bool) -> None:
        self._timer_task = asyncio.create_task(self._poll_loop(run_immediately))

    async def _cancel_timer(self) -> None:
        task = self._timer_task
        self._timer_task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _poll_loop(self, run_immediately: bool) -> None:
        """Timer loop; a failing cycle never stops it."""
        interval = self._settings.polling_interval_seconds
        trigger = CycleTrigger.MANUAL if run_immediately else None

        while True:
            if trigger is None:
                await asyncio.sleep(interval)
                trigger = CycleTrigger.INTERVAL

            if self._lock.locked():
                logger.info("Cycle in flight, skipping tick", feature_id=self._feature_id)
            else:
                try:
                    await self.run_cycle(trigger)
                except Exception as e:
                    logger.error("Polling cycle error", error=str(e), exc_info=True)

            trigger = None

    async def _run_locked(
        self,
        trigger: CycleTrigger,
        offset: int = 0,
        append: bool = False,
    ) -> CycleResult:
        feature_id = self._feature_id
        generation = self._generation
        result = CycleResult(
            cycle_id=generate_cycle_id(),
            feature_id=feature_id,
            trigger=trigger,
        )
        started = time.perf_counter()

        with cycle_context(result.cycle_id):
            logger.info(
                "Cycle started",
                feature_id=feature_id,
                trigger=trigger.value,
                offset=offset,
            )
            try:
                await self._execute(result, generation, offset, append)
            finally:
                self._state = CycleState.IDLE
                result.finished_at = utcnow()
                self._last_result = result

            elapsed = time.perf_counter() - started
            status = "error" if result.error else "discarded" if result.discarded else "ok"
            CYCLES_TOTAL.labels(trigger=trigger.value, status=status).inc()
            CYCLE_DURATION.observe(elapsed)
            logger.info(
                "Cycle complete",
                feature_id=feature_id,
                status=status,
                records=len(result.records),
                notifications=len(result.events),
                failed_deliveries=sum(1 for o in result.outcomes if not o.ok),
                elapsed_ms=int(elapsed * 1000),
            )

        return result

    async def _execute(
        self,
        result: CycleResult,
        generation: int,
        offset: int,
        append: bool,
    ) -> None:
        feature_id = result.feature_id

        # Fetching: all pages land before anything is evaluated
        self._state = CycleState.FETCHING
        try:
            if not feature_id:
                raise MissingConfigurationError("feature_id")
            page = await self._fetch(feature_id, offset, append)
        except UsageWatchError as e:
            result.error = str(e)
            logger.warning("Cycle aborted, state not advanced", error=result.error)
            return

        if self._is_stale(feature_id, generation):
            result.discarded = True
            logger.info("Feature changed during fetch, discarding results")
            return

        result.has_more = page.has_more
        result.next_offset = page.next_offset

        # Evaluating: every company once, against state at cycle start
        self._state = CycleState.EVALUATING
        seen = {record.company_id for record in self._records} if append else set()
        records = _unique_records(page.records, seen)
        store = self._store_for(feature_id)
        previous = store.snapshot()

        events: list[NotificationEvent] = []
        for record in records:
            event = self._evaluator.evaluate(record, previous.get(record.company_id))
            if event is not None:
                logger.info(
                    "Threshold crossed",
                    company_id=record.company_id,
                    company_name=record.company_name,
                    threshold=event.threshold,
                    usage=record.usage,
                    allocation=record.allocation,
                )
                NOTIFICATIONS_FIRED.labels(threshold=str(event.threshold)).inc()
                events.append(event)

        result.records = records
        result.events = events

        # Dispatching: deliveries run concurrently; failures are outcomes
        self._state = CycleState.DISPATCHING
        result.outcomes = await self._dispatcher.deliver_all(events)
        for outcome in result.outcomes:
            self._delivery_log.append(outcome)

        if self._is_stale(feature_id, generation):
            result.discarded = True
            logger.info("Feature changed during dispatch, state not advanced")
            return

        for record in records:
            store.set(record.company_id, record.usage, record.allocation)
        TRACKED_COMPANIES.set(len(store))

        if append:
            self._records.extend(records)
        else:
            self._records = list(records)
        self._next_offset = page.next_offset
        self._has_more = page.has_more
        self._last_updated = utcnow()

    async def _fetch(self, feature_id: str, offset: int, append: bool) -> UsagePage:
        if append:
            return await self._feed.fetch_page(
                feature_id,
                offset=offset,
                limit=self._settings.page_size,
            )
        return await self._feed.fetch_all(
            feature_id,
            offset=offset,
            page_size=self._settings.page_size,
            max_pages=self._settings.max_pages,
        )

    def _store_for(self, feature_id: str) -> NotificationStateStore:
        store = self._stores.get(feature_id)
        if store is None:
            store = self._stores[feature_id] = NotificationStateStore()
        return store

    def _is_stale(self, feature_id: str, generation: int) -> bool:
        return feature_id != self._feature_id or generation != self._generation

    def _reset_snapshot(self) -> None:
        self._records = []
        self._next_offset = 0
        self._has_more = False
        self._last_updated = None


def _unique_records(records: Iterable[UsageRecord], seen: set[str]) -> list[UsageRecord]:
    """Drop records for companies already in ``seen`` (first occurrence wins)."""
    unique: list[UsageRecord] = []
    seen = set(seen)
    for record in records:
        if record.company_id in seen:
            continue
        seen.add(record.company_id)
        unique.append(record)
    return unique
