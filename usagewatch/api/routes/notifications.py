"""Threshold notification API routes."""

from fastapi import APIRouter

from usagewatch.api.deps import OrchestratorDep, SettingsDep
from usagewatch.api.routes.usage import cycle_response, require_api_key
from usagewatch.models.cycle import CycleTrigger
from usagewatch.schemas.common import APIResponse
from usagewatch.schemas.usage import CycleResponse, FeatureRequest, WebhookLogItem

router = APIRouter(tags=["notifications"])


@router.post("/usage-notifications", response_model=APIResponse[CycleResponse])
async def check_usage_notifications(
    data: FeatureRequest,
    orchestrator: OrchestratorDep,
    settings: SettingsDep,
) -> APIResponse[CycleResponse]:
    """Check a feature's usage against thresholds and send notifications.

    Runs through the shared poller so a crossing is never reported twice by
    the API and the interval timer.
    """
    require_api_key(settings)

    if data.feature_id != orchestrator.feature_id:
        result = await orchestrator.set_feature(data.feature_id)
    else:
        result = await orchestrator.run_cycle(CycleTrigger.API)

    return cycle_response(result)


@router.get("/webhook-logs", response_model=APIResponse[list[WebhookLogItem]])
async def list_webhook_logs(orchestrator: OrchestratorDep) -> APIResponse[list[WebhookLogItem]]:
    """Recent webhook deliveries, newest first."""
    entries = orchestrator.delivery_log.entries()
    return APIResponse(data=[WebhookLogItem.from_entry(e) for e in entries])


@router.delete("/webhook-logs", response_model=APIResponse[dict])
async def clear_webhook_logs(orchestrator: OrchestratorDep) -> APIResponse[dict]:
    """Clear the webhook activity log."""
    orchestrator.delivery_log.clear()
    return APIResponse(message="Webhook logs cleared")
