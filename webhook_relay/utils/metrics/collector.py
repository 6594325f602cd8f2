"""
Facade for centralized metrics emission.

Provides high-level methods for recording metrics without exposing
Prometheus implementation details to the rest of the codebase.
"""

from webhook_relay.types import RouteName, SkipReason


class MetricsCollector:
    """
    Centralized facade for all Prometheus metrics.

    All methods are static for easy use without instantiation.
    """

    # ========== WebSocket Metrics ==========

    @staticmethod
    def record_ws_connection_accepted() -> None:
        """Record successful WebSocket connection."""
        from webhook_relay.utils.metrics import (
            ws_connections_active,
            ws_connections_total,
        )

        ws_connections_total.labels(status="accepted").inc()
        ws_connections_active.inc()

    @staticmethod
    def record_ws_disconnection() -> None:
        """Record WebSocket disconnection."""
        from webhook_relay.utils.metrics import (
            ws_connections_active,
            ws_connections_total,
        )

        ws_connections_total.labels(status="closed").inc()
        ws_connections_active.dec()

    @staticmethod
    def record_ws_message_received(message_type: str) -> None:
        """
        Record an inbound client message.

        Args:
            message_type: Parsed message kind, or "ignored"
        """
        from webhook_relay.utils.metrics import ws_messages_received_total

        ws_messages_received_total.labels(type=message_type).inc()

    @staticmethod
    def record_ws_message_sent() -> None:
        """Record a frame written to a socket."""
        from webhook_relay.utils.metrics import ws_messages_sent_total

        ws_messages_sent_total.inc()

    @staticmethod
    def record_ws_send_failure() -> None:
        """Record a socket write that raised."""
        from webhook_relay.utils.metrics import ws_send_failures_total

        ws_send_failures_total.inc()

    # ========== Alert Metrics ==========

    @staticmethod
    def record_alert_received(route: RouteName) -> None:
        """Record an alert accepted over HTTP."""
        from webhook_relay.utils.metrics import alerts_received_total

        alerts_received_total.labels(route=route).inc()

    @staticmethod
    def record_alert_fanout(
        route: RouteName,
        delivered: int,
        failed: int,
        skipped: dict[SkipReason, int],
    ) -> None:
        """
        Record the outcome of routing one alert.

        Args:
            route: Index the alert was routed through
            delivered: Outboxes that accepted the envelope
            failed: Outboxes that refused the envelope
            skipped: Per-reason count of connections filtered out
        """
        from webhook_relay.utils.metrics import (
            alerts_delivered_total,
            alerts_delivery_failures_total,
            alerts_skipped_total,
        )

        if delivered:
            alerts_delivered_total.labels(route=route).inc(delivered)
        if failed:
            alerts_delivery_failures_total.labels(route=route).inc(failed)
        for reason, count in skipped.items():
            if count:
                alerts_skipped_total.labels(route=route, reason=reason).inc(
                    count
                )
