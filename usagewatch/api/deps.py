"""API dependency injection."""

from typing import Annotated

from fastapi import Depends, Request

from usagewatch.core.config import Settings, get_settings
from usagewatch.feed.client import UsageFeedClient
from usagewatch.orchestrator.poller import PollingOrchestrator


def get_feed_client(request: Request) -> UsageFeedClient:
    """Get the usage feed client created at startup."""
    return request.app.state.feed_client


def get_orchestrator(request: Request) -> PollingOrchestrator:
    """Get the polling orchestrator created at startup."""
    return request.app.state.orchestrator


# Type aliases for dependency injection
FeedClientDep = Annotated[UsageFeedClient, Depends(get_feed_client)]
OrchestratorDep = Annotated[PollingOrchestrator, Depends(get_orchestrator)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
