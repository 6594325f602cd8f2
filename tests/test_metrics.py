"""Tests for the MetricsCollector facade."""

from prometheus_client import REGISTRY

from webhook_relay.utils.metrics import (
    MetricsCollector,
    get_active_websocket_connections,
)
from webhook_relay.types import WebhookId
from tests.mocks.registry_mocks import add_connection
from tests.mocks.websocket_mocks import RecordingSink


def sample(name: str, **labels) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_connection_gauge_tracks_accept_and_close():
    before = get_active_websocket_connections()

    MetricsCollector.record_ws_connection_accepted()
    assert get_active_websocket_connections() == before + 1

    MetricsCollector.record_ws_disconnection()
    assert get_active_websocket_connections() == before


def test_fanout_metrics(registry, router, clock):
    delivered_before = sample("alerts_delivered_total", route="webhook")
    failed_before = sample("alerts_delivery_failures_total", route="webhook")
    skipped_before = sample(
        "alerts_skipped_total", route="webhook", reason="ignore_window"
    )

    for sink in (RecordingSink(), RecordingSink(accept=False), RecordingSink()):
        connection = add_connection(registry, sink=sink)
        registry.bind_routing_key(connection.id, WebhookId("metrics"))
    registry.set_ignore_window(connection.id, clock() + 10)

    router.route_keyed(WebhookId("metrics"), {"x": 1})

    assert sample("alerts_delivered_total", route="webhook") == delivered_before + 1
    assert (
        sample("alerts_delivery_failures_total", route="webhook")
        == failed_before + 1
    )
    assert (
        sample("alerts_skipped_total", route="webhook", reason="ignore_window")
        == skipped_before + 1
    )


def test_message_received_by_type():
    before = sample("ws_messages_received_total", type="ping")

    MetricsCollector.record_ws_message_received("ping")

    assert sample("ws_messages_received_total", type="ping") == before + 1
