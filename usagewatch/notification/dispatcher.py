"""Webhook dispatcher for threshold notifications."""

import asyncio

import httpx

from usagewatch.core.config import Settings, get_settings
from usagewatch.core.logging import get_logger
from usagewatch.models.notification import DeliveryOutcome, DeliveryStatus, NotificationEvent
from usagewatch.observability.metrics import WEBHOOK_DELIVERIES

logger = get_logger(__name__)


class WebhookDispatcher:
    """Posts notification events to the configured webhook.

    Delivery is best-effort: one POST per event, no retries. Failures are
    reported in the returned outcome and never raised.
    """

    def __init__(
        self,
        webhook_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ):
        """Initialize dispatcher.

        Args:
            webhook_url: Endpoint override (defaults to ``settings.webhook_url``)
            client: HTTP client to use instead of creating one
            settings: Application settings (defaults to cached settings)
        """
        settings = settings or get_settings()
        self._webhook_url = webhook_url if webhook_url is not None else settings.webhook_url
        self._client = client or httpx.AsyncClient()

    @property
    def enabled(self) -> bool:
        return bool(self._webhook_url)

    async def deliver(self, event: NotificationEvent) -> DeliveryOutcome:
        """Deliver a single event.

        Args:
            event: Event to deliver

        Returns:
            Delivery outcome; success without an HTTP call when disabled
        """
        if not self.enabled:
            logger.debug(
                "Webhook not configured, skipping delivery",
                company_id=event.company_id,
                threshold=event.threshold,
            )
            return DeliveryOutcome(event=event, status=DeliveryStatus.SUCCESS, delivered=False)

        try:
            response = await self._client.post(self._webhook_url, json=event.to_webhook_payload())
        except Exception as e:
            # Covers transport failures and requests httpx refuses to build (bad URL)
            logger.error(
                "Webhook send error",
                company_id=event.company_id,
                threshold=event.threshold,
                error=str(e),
            )
            WEBHOOK_DELIVERIES.labels(status=DeliveryStatus.ERROR.value).inc()
            return DeliveryOutcome(
                event=event,
                status=DeliveryStatus.ERROR,
                error_detail=str(e) or type(e).__name__,
            )

        if not response.is_success:
            detail = f"HTTP {response.status_code}: {response.reason_phrase}"
            logger.warning(
                "Webhook send failed",
                company_id=event.company_id,
                threshold=event.threshold,
                status_code=response.status_code,
            )
            WEBHOOK_DELIVERIES.labels(status=DeliveryStatus.ERROR.value).inc()
            return DeliveryOutcome(
                event=event,
                status=DeliveryStatus.ERROR,
                error_detail=detail,
                status_code=response.status_code,
            )

        logger.info(
            "Webhook sent",
            company_id=event.company_id,
            company_name=event.company_name,
            threshold=event.threshold,
        )
        WEBHOOK_DELIVERIES.labels(status=DeliveryStatus.SUCCESS.value).inc()
        return DeliveryOutcome(
            event=event,
            status=DeliveryStatus.SUCCESS,
            status_code=response.status_code,
        )

    async def deliver_all(self, events: list[NotificationEvent]) -> list[DeliveryOutcome]:
        """Deliver events concurrently, returning outcomes in event order."""
        if not events:
            return []
        return list(await asyncio.gather(*(self.deliver(event) for event in events)))

    async def close(self) -> None:
        """Close HTTP client."""
        await self._client.aclose()
