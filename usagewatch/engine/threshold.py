"""Threshold crossing evaluation."""

from collections.abc import Iterable, Sequence
from datetime import datetime

from usagewatch.models.notification import (
    THRESHOLDS,
    NotificationEvent,
    UsageObservation,
    utcnow,
)
from usagewatch.models.usage import UsageRecord, usage_percentage


class ThresholdEvaluator:
    """Decides whether a company's usage crossed a threshold since it was last seen.

    The evaluator holds no state. Callers read the previous observation from a
    ``NotificationStateStore`` and store the record's usage and allocation after
    every evaluation, whether or not an event fired.
    """

    def __init__(self, thresholds: Sequence[int] = THRESHOLDS):
        self._thresholds = tuple(sorted(thresholds, reverse=True))

    @property
    def thresholds(self) -> tuple[int, ...]:
        return self._thresholds

    def crossed_threshold(
        self,
        current: UsageRecord,
        previous: UsageObservation | None,
    ) -> int | None:
        """Return the highest threshold newly crossed, or None.

        Previous usage is measured against the current allocation, so an
        allocation change alone can move a company across a threshold.
        """
        current_pct = usage_percentage(current.usage, current.allocation)
        previous_pct = (
            usage_percentage(previous.usage, current.allocation) if previous else 0.0
        )

        for threshold in self._thresholds:
            if current_pct >= threshold and previous_pct < threshold:
                return threshold
        return None

    def evaluate(
        self,
        current: UsageRecord,
        previous: UsageObservation | None,
        now: datetime | None = None,
    ) -> NotificationEvent | None:
        """Evaluate one company's usage.

        Args:
            current: Usage observed in this cycle
            previous: Last observed usage, None if the company is new
            now: Event timestamp (defaults to the current UTC time)

        Returns:
            Event for the crossed threshold, or None
        """
        threshold = self.crossed_threshold(current, previous)
        if threshold is None:
            return None

        return NotificationEvent(
            timestamp=now or utcnow(),
            company_id=current.company_id,
            company_name=current.company_name,
            feature_name=current.feature_name,
            threshold=threshold,
            usage=current.usage,
            allocation=current.allocation,
        )


def sort_by_utilization(records: Iterable[UsageRecord]) -> list[UsageRecord]:
    """Sort records by usage percentage, highest first."""
    return sorted(records, key=lambda record: record.usage_percentage, reverse=True)


# Singleton instance
_evaluator: ThresholdEvaluator | None = None


def get_threshold_evaluator() -> ThresholdEvaluator:
    """Get threshold evaluator singleton."""
    global _evaluator
    if _evaluator is None:
        _evaluator = ThresholdEvaluator()
    return _evaluator
