"""Standalone poller process entry point."""

import asyncio
import signal

from usagewatch.core.config import get_settings
from usagewatch.core.logging import get_logger, setup_logging
from usagewatch.feed.client import UsageFeedClient
from usagewatch.notification.dispatcher import WebhookDispatcher
from usagewatch.orchestrator.poller import PollingOrchestrator

logger = get_logger(__name__)


class WorkerManager:
    """Runs the polling orchestrator until asked to stop."""

    def __init__(self):
        """Initialize worker manager."""
        self._settings = get_settings()
        self._feed_client: UsageFeedClient | None = None
        self._dispatcher: WebhookDispatcher | None = None
        self._orchestrator: PollingOrchestrator | None = None
        self._shutdown_event = asyncio.Event()

    async def start(self) -> None:
        """Start polling and block until stopped."""
        setup_logging(self._settings)
        logger.info("Starting worker manager")

        if not self._settings.feature_id:
            logger.error("No feature configured, set FEATURE_ID to start polling")
            return

        self._feed_client = UsageFeedClient(self._settings)
        self._dispatcher = WebhookDispatcher(settings=self._settings)
        self._orchestrator = PollingOrchestrator(
            self._feed_client,
            self._dispatcher,
            settings=self._settings,
        )

        try:
            await self._orchestrator.start()
            await self._shutdown_event.wait()
        finally:
            await self._cleanup()

    async def stop(self) -> None:
        """Signal the worker to stop."""
        logger.info("Stopping worker")
        self._shutdown_event.set()

    async def _cleanup(self) -> None:
        """Clean up resources."""
        logger.info("Cleaning up resources")
        if self._orchestrator:
            await self._orchestrator.stop()
        if self._feed_client:
            await self._feed_client.close()
        if self._dispatcher:
            await self._dispatcher.close()
        logger.info("Cleanup complete")


async def main() -> None:
    """Main entry point for worker process."""
    manager = WorkerManager()

    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        asyncio.create_task(manager.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    await manager.start()


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
