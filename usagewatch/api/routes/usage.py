"""Usage feed and poller API routes."""

from fastapi import APIRouter, HTTPException, Query

from usagewatch.api.deps import FeedClientDep, OrchestratorDep, SettingsDep
from usagewatch.core.errors import MissingConfigurationError
from usagewatch.engine.threshold import sort_by_utilization
from usagewatch.models.cycle import CycleResult
from usagewatch.schemas.common import APIResponse, PaginationInfo
from usagewatch.schemas.usage import (
    CycleResponse,
    FeatureRequest,
    FeatureUsagePage,
    UsageItem,
    UsageSnapshot,
)

router = APIRouter(tags=["usage"])


def cycle_response(result: CycleResult) -> APIResponse[CycleResponse]:
    """Wrap a cycle result, turning fetch failures into 502 responses."""
    if result.error:
        raise HTTPException(status_code=502, detail=result.error)
    return APIResponse(data=CycleResponse.from_result(result))


def require_api_key(settings: SettingsDep) -> None:
    if not settings.schematic_api_key:
        raise MissingConfigurationError("schematic_api_key")


@router.get("/feature-usage", response_model=APIResponse[FeatureUsagePage])
async def get_feature_usage(
    feed: FeedClientDep,
    settings: SettingsDep,
    feature_id: str = Query(..., alias="featureId", min_length=1, description="Feature ID"),
    offset: int = Query(default=0, ge=0, description="Companies to skip"),
    limit: int | None = Query(default=None, ge=1, le=1000, description="Page size"),
) -> APIResponse[FeatureUsagePage]:
    """Read one page of usage straight from the feed.

    Nothing is evaluated or stored; use the poller routes for notifications.
    """
    page = await feed.fetch_page(feature_id, offset=offset, limit=limit or settings.page_size)

    return APIResponse(
        data=FeatureUsagePage(
            data=[UsageItem.from_record(r) for r in sort_by_utilization(page.records)],
            pagination=PaginationInfo(
                offset=page.offset,
                limit=page.limit,
                total=len(page.records),
                has_more=page.has_more,
            ),
        )
    )


@router.get("/usage", response_model=APIResponse[UsageSnapshot])
async def get_usage(orchestrator: OrchestratorDep) -> APIResponse[UsageSnapshot]:
    """Current usage snapshot, sorted by utilization."""
    last = orchestrator.last_result

    return APIResponse(
        data=UsageSnapshot(
            feature_id=orchestrator.feature_id,
            state=orchestrator.state,
            polling=orchestrator.running,
            last_updated=orchestrator.last_updated,
            has_more=orchestrator.has_more,
            last_error=last.error if last else None,
            data=[UsageItem.from_record(r) for r in orchestrator.records],
        )
    )


@router.post("/usage/refresh", response_model=APIResponse[CycleResponse])
async def refresh_usage(
    orchestrator: OrchestratorDep,
    settings: SettingsDep,
) -> APIResponse[CycleResponse]:
    """Run a polling cycle now."""
    require_api_key(settings)
    if not orchestrator.feature_id:
        raise HTTPException(status_code=400, detail="Feature ID is required")
    return cycle_response(await orchestrator.refresh())


@router.post("/usage/load-more", response_model=APIResponse[CycleResponse])
async def load_more_usage(
    orchestrator: OrchestratorDep,
    settings: SettingsDep,
) -> APIResponse[CycleResponse]:
    """Fetch and evaluate the next page of companies."""
    require_api_key(settings)
    if not orchestrator.feature_id:
        raise HTTPException(status_code=400, detail="Feature ID is required")
    return cycle_response(await orchestrator.load_more())


@router.put("/usage/feature", response_model=APIResponse[CycleResponse])
async def change_feature(
    data: FeatureRequest,
    orchestrator: OrchestratorDep,
    settings: SettingsDep,
) -> APIResponse[CycleResponse]:
    """Watch another feature; resets pagination and notification state."""
    require_api_key(settings)
    return cycle_response(await orchestrator.set_feature(data.feature_id))
