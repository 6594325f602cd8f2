"""
Dependency injection configuration for FastAPI.

Routes receive the registry, the router and the decoded alert body through
Depends(), so tests can swap them with app.dependency_overrides.

Example:
    ```python
    @router.post("/alert")
    async def receive(router: AlertRouterDep, payload: AlertPayloadDep):
        return router.route_legacy(payload).delivered
    ```
"""

import json
from typing import Annotated, Any

from fastapi import Depends, Request

from webhook_relay.managers.alert_router import AlertRouter, alert_router
from webhook_relay.managers.connection_registry import (
    ConnectionRegistry,
    connection_registry,
)


def get_connection_registry() -> ConnectionRegistry:
    """Process-wide connection registry."""
    return connection_registry


def get_alert_router() -> AlertRouter:
    """Process-wide alert router bound to the process-wide registry."""
    return alert_router


async def read_alert_payload(request: Request) -> Any:
    """
    Decode a webhook body.

    JSON bodies are relayed as parsed JSON whatever their Content-Type
    (TradingView posts JSON as text/plain). Any other body is relayed as
    text (including JSON nested too deeply to parse), and an empty body as
    an empty object.
    """
    body = await request.body()
    if not body.strip():
        return {}
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError, RecursionError):
        return body.decode("utf-8", errors="replace")


RegistryDep = Annotated[ConnectionRegistry, Depends(get_connection_registry)]
AlertRouterDep = Annotated[AlertRouter, Depends(get_alert_router)]
AlertPayloadDep = Annotated[Any, Depends(read_alert_payload)]
