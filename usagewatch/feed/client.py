"""Schematic usage feed client."""

from typing import Any

import httpx

from usagewatch.core.config import Settings, get_settings
from usagewatch.core.errors import MissingConfigurationError, UsageFetchError
from usagewatch.core.logging import get_logger
from usagewatch.models.usage import UsagePage, UsageRecord

logger = get_logger(__name__)

API_KEY_HEADER = "X-Schematic-Api-Key"
FEATURE_COMPANIES_PATH = "/feature-companies"


class UsageFeedClient:
    """Reads per-company feature usage from the Schematic API."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize feed client.

        Args:
            settings: Application settings (defaults to cached settings)
            client: HTTP client to use instead of creating one
        """
        self._settings = settings or get_settings()
        self._client = client or httpx.AsyncClient(
            base_url=self._settings.schematic_base_url,
            timeout=self._settings.schematic_timeout,
        )

    async def fetch_page(
        self,
        feature_id: str,
        offset: int = 0,
        limit: int | None = None,
    ) -> UsagePage:
        """Fetch one page of usage records.

        Args:
            feature_id: Feature to read usage for
            offset: Number of companies to skip
            limit: Page size (defaults to the configured page size)

        Returns:
            Usage page; ``has_more`` is set when the page is full

        Raises:
            MissingConfigurationError: If no API key is configured
            UsageFetchError: On network failure, non-2xx status or bad payload
        """
        api_key = self._settings.schematic_api_key
        if not api_key:
            raise MissingConfigurationError("schematic_api_key")

        limit = limit or self._settings.page_size
        params = {"feature_id": feature_id, "limit": limit, "offset": offset}

        try:
            response = await self._client.get(
                FEATURE_COMPANIES_PATH,
                params=params,
                headers={API_KEY_HEADER: api_key},
            )
        except httpx.HTTPError as e:
            logger.warning(
                "Usage feed request failed",
                feature_id=feature_id,
                offset=offset,
                error=str(e),
            )
            raise UsageFetchError(f"Usage feed request failed: {e}") from e

        if not response.is_success:
            logger.warning(
                "Usage feed returned error status",
                feature_id=feature_id,
                offset=offset,
                status_code=response.status_code,
            )
            raise UsageFetchError(
                f"Usage feed returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        records = self._parse_records(response, feature_id)

        logger.debug(
            "Usage page fetched",
            feature_id=feature_id,
            offset=offset,
            limit=limit,
            count=len(records),
        )

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
        """Fetch pages until the feed is exhausted or ``max_pages`` is reached.

        A failure on any page fails the whole fetch; no partial result is
        returned.

        Returns:
            Single page spanning everything fetched; ``has_more`` reflects the
            last page read
        """
        limit = page_size or self._settings.page_size
        records: list[UsageRecord] = []
        next_offset = offset
        pages = 0

        while True:
            page = await self.fetch_page(feature_id, offset=next_offset, limit=limit)
            records.extend(page.records)
            next_offset = page.next_offset
            pages += 1

            if not page.has_more:
                has_more = False
                break
            if max_pages is not None and pages >= max_pages:
                has_more = True
                break

        return UsagePage(records=records, offset=offset, limit=limit, has_more=has_more)

    async def close(self) -> None:
        """Close HTTP client."""
        await self._client.aclose()

    @staticmethod
    def _parse_records(response: httpx.Response, feature_id: str) -> list[UsageRecord]:
        try:
            body: Any = response.json()
            items = body["data"] if isinstance(body, dict) else None
            if not isinstance(items, list):
                raise ValueError("response has no data list")
            return [UsageRecord.from_feed_item(item, feature_id) for item in items]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise UsageFetchError(f"Malformed usage feed response: {e}") from e
