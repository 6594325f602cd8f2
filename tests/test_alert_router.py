"""
Tests for alert routing.

Covers keyed and legacy fan-out, ignore windows, legacy symbol filters,
failure isolation and retraction racing with delivery.
"""

import json
import threading

import pytest

from webhook_relay.managers.alert_router import AlertRouter, alert_symbol
from webhook_relay.types import WebhookId
from tests.mocks.registry_mocks import add_connection, assert_registry_consistent
from tests.mocks.websocket_mocks import RecordingSink


def bound(registry, webhook_id=None, legacy=False, sink=None, symbol=None):
    connection = add_connection(registry, sink=sink or RecordingSink())
    if webhook_id is not None:
        registry.bind_routing_key(connection.id, WebhookId(webhook_id))
    if legacy:
        registry.bind_legacy(connection.id)
    if symbol is not None:
        registry.set_symbol_filter(connection.id, symbol)
    return connection


class TestKeyedRoute:
    """Tests for route_keyed()."""

    def test_delivers_to_every_connection_on_the_key(self, registry, router):
        """Two connections on abc123 get the alert; xyz gets nothing."""
        a = bound(registry, "abc123")
        b = bound(registry, "abc123")
        c = bound(registry, "xyz")

        result = router.route_keyed(WebhookId("abc123"), {"price": 100})

        assert result.delivered == 2
        assert result.route == "webhook"
        for connection in (a, b):
            (envelope,) = connection.transport.messages
            assert envelope["type"] == "alert"
            assert envelope["data"] == {"price": 100}
            assert envelope["webhookId"] == "abc123"
            assert envelope["timestamp"] == result.timestamp
            assert "legacy" not in envelope
        assert c.transport.frames == []

    def test_unknown_key_delivers_nothing_and_mutates_nothing(
        self, registry, router
    ):
        bound(registry, "abc123")
        before = registry.counts()

        result = router.route_keyed(WebhookId("nobody"), {"x": 1})

        assert result.delivered == 0
        assert result.candidates == 0
        assert registry.counts() == before
        assert "nobody" not in registry._by_key
        assert_registry_consistent(registry)

    def test_symbol_filter_is_ignored_on_keyed_route(self, registry, router):
        connection = bound(registry, "abc", symbol="BTCUSD")

        result = router.route_keyed(WebhookId("abc"), {"symbol": "ETHUSD"})

        assert result.delivered == 1
        assert len(connection.transport.frames) == 1

    def test_legacy_connections_do_not_receive_keyed_alerts(self, registry, router):
        legacy = bound(registry, legacy=True)

        router.route_keyed(WebhookId("abc"), {"x": 1})

        assert legacy.transport.frames == []


class TestLegacyRoute:
    """Tests for route_legacy()."""

    def test_broadcasts_to_legacy_connections_only(self, registry, router):
        legacy = bound(registry, legacy=True)
        keyed = bound(registry, "abc")
        bare = bound(registry)

        result = router.route_legacy({"symbol": "BTCUSD"})

        assert result.delivered == 1
        (envelope,) = legacy.transport.messages
        assert envelope["legacy"] is True
        assert "webhookId" not in envelope
        assert keyed.transport.frames == []
        assert bare.transport.frames == []

    @pytest.mark.parametrize(
        "symbol_filter,alert,expected",
        [
            ("BTCUSD", {"symbol": "BTCUSD"}, 1),
            ("BTCUSD", {"symbol": "ETHUSD"}, 0),
            ("BTCUSD", {"symbol": "btcusd"}, 0),
            ("BTCUSD", {"price": 1}, 1),
            ("BTCUSD", {"symbol": ""}, 1),
            ("BTCUSD", "plain text alert", 1),
            (None, {"symbol": "ETHUSD"}, 1),
        ],
    )
    def test_symbol_filter(self, registry, router, symbol_filter, alert, expected):
        bound(registry, legacy=True, symbol=symbol_filter)

        result = router.route_legacy(alert)

        assert result.delivered == expected
        assert result.skipped["symbol_filter"] == 1 - expected

    def test_non_object_payload_is_relayed_verbatim(self, registry, router):
        connection = bound(registry, legacy=True)

        router.route_legacy("BUY BTCUSD")
        router.route_legacy(None)

        first, second = connection.transport.messages
        assert first["data"] == "BUY BTCUSD"
        assert second["data"] is None


class TestIgnoreWindow:
    """Tests for ignore-window suppression."""

    def test_suppressed_then_released(self, registry, router, clock):
        """A connection inside its window gets nothing until it lapses."""
        connection = bound(registry, "abc")
        registry.set_ignore_window(connection.id, clock() + 10)

        clock.advance(9.5)
        suppressed = router.route_keyed(WebhookId("abc"), {"n": 1})
        clock.advance(0.5)
        released = router.route_keyed(WebhookId("abc"), {"n": 2})

        assert suppressed.delivered == 0
        assert suppressed.skipped["ignore_window"] == 1
        assert released.delivered == 1
        assert [m["data"]["n"] for m in connection.transport.messages] == [2]

    def test_window_applies_to_legacy_route(self, registry, router, clock):
        connection = bound(registry, legacy=True)
        registry.set_ignore_window(connection.id, clock() + 5)

        assert router.route_legacy({"x": 1}).delivered == 0

    def test_window_is_per_connection(self, registry, router, clock):
        quiet = bound(registry, "abc")
        loud = bound(registry, "abc")
        registry.set_ignore_window(quiet.id, clock() + 5)

        result = router.route_keyed(WebhookId("abc"), {"x": 1})

        assert result.delivered == 1
        assert quiet.transport.frames == []
        assert len(loud.transport.frames) == 1


class TestFailureIsolation:
    """A refused write only affects that connection."""

    def test_failed_offer_does_not_stop_fan_out(self, registry, router):
        broken = bound(registry, "abc", sink=RecordingSink(accept=False))
        healthy = bound(registry, "abc")

        result = router.route_keyed(WebhookId("abc"), {"x": 1})

        assert result.delivered == 1
        assert result.failed == 1
        assert broken.transport.attempts == 1
        assert len(healthy.transport.frames) == 1

    def test_failed_offer_does_not_unregister(self, registry, router):
        broken = bound(registry, "abc", sink=RecordingSink(accept=False))

        router.route_keyed(WebhookId("abc"), {"x": 1})

        assert broken.id in registry
        assert registry.lookup_by_key(WebhookId("abc")) == [broken]


class TestRetraction:
    """Unregistered connections are never written to."""

    def test_unregister_before_route(self, registry, router):
        connection = bound(registry, "abc")
        registry.unregister(connection.id)

        result = router.route_keyed(WebhookId("abc"), {"x": 1})

        assert result.delivered == 0
        assert connection.transport.attempts == 0

    def test_unregister_racing_with_delivery(self, registry):
        """
        Concurrent unregister calls never interleave with a fan-out: every
        write happens while the target is still registered.
        """
        router = AlertRouter(registry)
        violations = []

        def make_sink():
            holder = {}

            def check(frame):
                if holder["connection"].id not in registry:
                    violations.append(frame)

            sink = RecordingSink(on_offer=check)
            connection = bound(registry, "race", sink=sink)
            holder["connection"] = connection
            return connection

        connections = [make_sink() for _ in range(50)]
        stop = threading.Event()

        def route_forever():
            while not stop.is_set():
                router.route_keyed(WebhookId("race"), {"x": 1})

        worker = threading.Thread(target=route_forever)
        worker.start()
        try:
            for connection in connections:
                registry.unregister(connection.id)
        finally:
            stop.set()
            worker.join(timeout=5)

        assert violations == []
        assert registry.lookup_by_key(WebhookId("race")) == []
        assert_registry_consistent(registry)


class TestAlertSymbol:
    """Tests for alert_symbol()."""

    @pytest.mark.parametrize(
        "alert,expected",
        [
            ({"symbol": "BTCUSD"}, "BTCUSD"),
            ({"symbol": ""}, None),
            ({"symbol": None}, None),
            ({}, None),
            ("text", None),
            ([{"symbol": "BTCUSD"}], None),
        ],
    )
    def test_alert_symbol(self, alert, expected):
        assert alert_symbol(alert) == expected


def test_envelope_is_valid_json(registry, router):
    connection = bound(registry, legacy=True)

    router.route_legacy({"nested": {"list": [1, 2, 3]}})

    assert json.loads(connection.transport.frames[0])["data"] == {
        "nested": {"list": [1, 2, 3]}
    }


def test_keyed_and_legacy_connections_are_routed_independently(registry, router):
    """A bound to abc123 and B on the legacy feed each get only their alert."""
    a = bound(registry, "abc123")
    b = bound(registry, legacy=True)

    keyed = router.route_keyed(WebhookId("abc123"), {"side": "buy"})
    legacy = router.route_legacy({"side": "sell"})

    assert keyed.delivered == 1
    assert legacy.delivered == 1
    assert [m["data"] for m in a.transport.messages] == [{"side": "buy"}]
    assert [m["data"] for m in b.transport.messages] == [{"side": "sell"}]
    assert a.transport.messages[0]["webhookId"] == "abc123"
    assert b.transport.messages[0]["legacy"] is True


def test_deeply_nested_alert_is_delivered(registry, router):
    connection = bound(registry, legacy=True)
    payload: dict = {"symbol": "BTCUSD"}
    for _ in range(300):
        payload = {"inner": payload}

    result = router.route_legacy(payload)

    assert result.delivered == 1
    assert connection.transport.messages[0]["data"] == payload
