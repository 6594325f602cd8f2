"""
Prometheus metrics for WebSocket connection monitoring.

This module defines metrics for tracking subscriber connections, inbound
client messages and outbound writes.
"""

from webhook_relay.utils.metrics._helpers import (
    _get_or_create_counter,
    _get_or_create_gauge,
)

ws_connections_active = _get_or_create_gauge(
    "ws_connections_active", "Number of active WebSocket connections"
)

ws_connections_total = _get_or_create_counter(
    "ws_connections_total",
    "Total WebSocket connections",
    ["status"],  # accepted, closed
)

ws_messages_received_total = _get_or_create_counter(
    "ws_messages_received_total",
    "Total WebSocket messages received",
    ["type"],  # register, subscribe, ping, clear_session, ignored
)

ws_messages_sent_total = _get_or_create_counter(
    "ws_messages_sent_total", "Total WebSocket messages written to sockets"
)

ws_send_failures_total = _get_or_create_counter(
    "ws_send_failures_total",
    "Total WebSocket socket writes that raised",
)


def get_active_websocket_connections() -> int:
    """
    Get the current number of active WebSocket connections.

    Returns:
        int: Number of active WebSocket connections.
    """
    try:
        return int(ws_connections_active._value.get())
    except (AttributeError, ValueError):
        return 0


__all__ = [
    "ws_connections_active",
    "ws_connections_total",
    "ws_messages_received_total",
    "ws_messages_sent_total",
    "ws_send_failures_total",
    "get_active_websocket_connections",
]
