"""
Prometheus metrics definitions and utilities.

Metrics are organized into submodules by subsystem (HTTP, WebSocket,
alerts) and re-exported here:

    from webhook_relay.utils.metrics import ws_connections_active

Application code should prefer the MetricsCollector facade:

    from webhook_relay.utils.metrics import MetricsCollector
    MetricsCollector.record_ws_message_received("ping")
"""

from webhook_relay.utils.metrics.alerts import (
    alerts_delivered_total,
    alerts_delivery_failures_total,
    alerts_received_total,
    alerts_skipped_total,
)
from webhook_relay.utils.metrics.collector import MetricsCollector
from webhook_relay.utils.metrics.http import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)
from webhook_relay.utils.metrics.websocket import (
    get_active_websocket_connections,
    ws_connections_active,
    ws_connections_total,
    ws_messages_received_total,
    ws_messages_sent_total,
    ws_send_failures_total,
)

# Application info
from webhook_relay.utils.metrics._helpers import _get_or_create_gauge

app_info = _get_or_create_gauge(
    "app_info",
    "Application information",
    ["version", "python_version", "environment"],
)

__all__ = [
    "MetricsCollector",
    "alerts_delivered_total",
    "alerts_delivery_failures_total",
    "alerts_received_total",
    "alerts_skipped_total",
    "app_info",
    "get_active_websocket_connections",
    "http_request_duration_seconds",
    "http_requests_in_progress",
    "http_requests_total",
    "ws_connections_active",
    "ws_connections_total",
    "ws_messages_received_total",
    "ws_messages_sent_total",
    "ws_send_failures_total",
]
