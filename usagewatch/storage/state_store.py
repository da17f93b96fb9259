"""In-memory notification state."""

from usagewatch.models.notification import UsageObservation


class NotificationStateStore:
    """Last observed usage per company.

    Entries are overwritten every cycle and never removed. The store is not
    synchronized; one orchestrator owns it and serializes its cycles.
    """

    def __init__(self, initial: dict[str, UsageObservation] | None = None):
        self._observations: dict[str, UsageObservation] = dict(initial or {})

    def get(self, company_id: str) -> UsageObservation | None:
        return self._observations.get(company_id)

    def set(self, company_id: str, usage: float, allocation: float | None) -> None:
        self._observations[company_id] = UsageObservation(usage=usage, allocation=allocation)

    def snapshot(self) -> dict[str, UsageObservation]:
        """Copy of the current state."""
        return dict(self._observations)

    def __len__(self) -> int:
        return len(self._observations)

    def __contains__(self, company_id: object) -> bool:
        return company_id in self._observations
