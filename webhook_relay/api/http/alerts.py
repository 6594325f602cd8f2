"""Webhook intake: relays posted alerts to subscribed connections."""

import json
from typing import Any

from fastapi import APIRouter

from webhook_relay.constants import TEST_ALERT
from webhook_relay.dependencies import AlertPayloadDep, AlertRouterDep
from webhook_relay.logging import logger
from webhook_relay.managers.alert_router import RouteResult
from webhook_relay.managers.connection_registry import redact_webhook_id
from webhook_relay.schemas.alert import DeliveryResponse
from webhook_relay.settings import app_settings
from webhook_relay.types import WebhookId
from webhook_relay.utils.metrics import MetricsCollector

router = APIRouter(tags=["alerts"])


def _preview(payload: Any) -> str:
    text = payload if isinstance(payload, str) else json.dumps(payload, default=str)
    return text[: app_settings.ALERT_LOG_PREVIEW_LENGTH]


def _log_delivery(target: str, result: RouteResult) -> None:
    skipped = ", ".join(f"{k}={v}" for k, v in result.skipped.items())
    logger.info(
        f"Alert delivered to {result.delivered}/{result.candidates} {target} clients"
        + (f" (skipped: {skipped})" if skipped else "")
        + (f" (failed: {result.failed})" if result.failed else "")
    )


def _masked(webhook_id: str) -> str:
    return redact_webhook_id(webhook_id, app_settings.WEBHOOK_ID_PREVIEW_LENGTH)


@router.post(
    "/alert",
    response_model=DeliveryResponse,
    response_model_exclude_none=True,
    summary="Broadcast an alert to legacy subscribers",
)
async def receive_legacy_alert(
    payload: AlertPayloadDep, alert_router: AlertRouterDep
) -> DeliveryResponse:
    """
    Relay a webhook to every legacy connection whose symbol filter admits it.

    Returns the number of connections the alert was handed to; zero
    subscribers is not an error.
    """
    MetricsCollector.record_alert_received("legacy")
    logger.info(f"Webhook received: {_preview(payload)}")

    result = alert_router.route_legacy(payload)
    _log_delivery("legacy", result)

    return DeliveryResponse(
        message="Alert received and broadcast",
        delivered_to=result.delivered,
        timestamp=result.timestamp,
    )


@router.post(
    "/alert/{webhook_id}",
    response_model=DeliveryResponse,
    response_model_exclude_none=True,
    summary="Relay an alert to the subscribers of one webhook id",
)
async def receive_webhook_alert(
    webhook_id: str, payload: AlertPayloadDep, alert_router: AlertRouterDep
) -> DeliveryResponse:
    """
    Relay a webhook to the connections registered for `webhook_id`.

    An id nobody is registered for yields `deliveredTo: 0`, not an error.
    """
    MetricsCollector.record_alert_received("webhook")
    logger.info(
        f"Webhook received for {_masked(webhook_id)}: {_preview(payload)}"
    )

    result = alert_router.route_keyed(WebhookId(webhook_id), payload)
    _log_delivery(f"webhook {_masked(webhook_id)}", result)

    return DeliveryResponse(
        message="Alert received and relayed",
        delivered_to=result.delivered,
        timestamp=result.timestamp,
        webhook_id=webhook_id,
    )


@router.get(
    "/test",
    response_model=DeliveryResponse,
    response_model_exclude_none=True,
    summary="Send a test alert to legacy subscribers",
)
async def send_legacy_test_alert(alert_router: AlertRouterDep) -> DeliveryResponse:
    result = alert_router.route_legacy(dict(TEST_ALERT))
    _log_delivery("legacy (test)", result)
    return DeliveryResponse(
        message="Test alert sent",
        delivered_to=result.delivered,
        timestamp=result.timestamp,
        data=TEST_ALERT,
    )


@router.get(
    "/test/{webhook_id}",
    response_model=DeliveryResponse,
    response_model_exclude_none=True,
    summary="Send a test alert to the subscribers of one webhook id",
)
async def send_webhook_test_alert(
    webhook_id: str, alert_router: AlertRouterDep
) -> DeliveryResponse:
    result = alert_router.route_keyed(WebhookId(webhook_id), dict(TEST_ALERT))
    _log_delivery(f"webhook {_masked(webhook_id)} (test)", result)
    return DeliveryResponse(
        message="Test alert sent",
        delivered_to=result.delivered,
        timestamp=result.timestamp,
        webhook_id=webhook_id,
        data=TEST_ALERT,
    )
