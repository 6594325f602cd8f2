"""Service descriptor and connection status endpoints."""

from fastapi import APIRouter

from webhook_relay.dependencies import RegistryDep
from webhook_relay.schemas.status import ServiceInfoResponse, StatusResponse
from webhook_relay.settings import app_settings
from webhook_relay.utils.timestamps import iso_timestamp, uptime_seconds

router = APIRouter(tags=["status"])

ENDPOINTS = {
    "webhook": "POST /alert/{webhook_id}",
    "legacyWebhook": "POST /alert",
    "status": "GET /status",
    "health": "GET /health",
    "test": "GET /test",
    "metrics": "GET /metrics",
    "websocket": "WS /",
}


@router.get("/", response_model=ServiceInfoResponse, summary="Service descriptor")
async def service_info(registry: RegistryDep) -> ServiceInfoResponse:
    return ServiceInfoResponse(
        name=app_settings.SERVICE_NAME,
        connected_clients=len(registry),
        uptime=uptime_seconds(),
        timestamp=iso_timestamp(),
        endpoints=ENDPOINTS,
    )


@router.get(
    "/status",
    response_model=StatusResponse,
    summary="Connected subscribers and routing totals",
)
async def connection_status(registry: RegistryDep) -> StatusResponse:
    """
    List live connections and aggregate counts.

    Webhook ids are redacted in the listing; transports are never exposed.
    """
    with registry.lock:
        counts = registry.counts()
        clients = registry.snapshot()

    return StatusResponse(
        connected_clients=counts.total,
        webhook_clients=counts.webhook,
        legacy_clients=counts.legacy,
        webhook_ids=counts.webhook_ids,
        clients=clients,
        uptime=uptime_seconds(),
        timestamp=iso_timestamp(),
    )
