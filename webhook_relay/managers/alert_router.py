from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from webhook_relay.logging import logger
from webhook_relay.managers.connection_registry import (
    Connection,
    ConnectionRegistry,
    connection_registry,
)
from webhook_relay.schemas.alert import AlertEnvelope
from webhook_relay.types import RouteName, SkipReason, WebhookId
from webhook_relay.utils.metrics import MetricsCollector
from webhook_relay.utils.timestamps import iso_timestamp


@dataclass
class RouteResult:
    """
    Outcome of routing one alert.

    `delivered` counts connections whose outbox accepted the envelope; it
    is the number reported back to the webhook sender.
    """

    route: RouteName
    timestamp: str
    candidates: int = 0
    delivered: int = 0
    failed: int = 0
    skipped: Counter[SkipReason] = field(default_factory=Counter)


def alert_symbol(alert: Any) -> Any | None:
    """
    The `symbol` field of an alert payload.

    Returns None for non-object payloads and for a missing or empty symbol,
    which legacy symbol filters treat as "matches everything".
    """
    if isinstance(alert, dict):
        symbol = alert.get("symbol")
        if symbol not in (None, ""):
            return symbol
    return None


class AlertRouter:
    """
    Decides which live connections receive an alert and hands each one the
    serialized envelope.

    Keyed alerts go to every connection bound to the webhook id; legacy
    alerts go to every legacy connection whose symbol filter admits them.
    Connections inside their ignore window are skipped on both routes.
    """

    def __init__(self, registry: ConnectionRegistry) -> None:
        self.registry = registry

    def route_keyed(self, webhook_id: WebhookId, alert: Any) -> RouteResult:
        """
        Deliver an alert to the connections bound to `webhook_id`.

        Symbol filters do not apply: the key already scopes the channel.
        An unknown key yields zero deliveries and leaves the registry as is.
        """
        timestamp = iso_timestamp()
        frame = AlertEnvelope(
            data=alert, timestamp=timestamp, webhook_id=webhook_id
        ).to_frame()

        with self.registry.lock:
            return self._fan_out(
                "webhook",
                self.registry.lookup_by_key(webhook_id),
                frame,
                timestamp,
                symbol=None,
            )

    def route_legacy(self, alert: Any) -> RouteResult:
        """Deliver an alert to the legacy connections its symbol admits."""
        timestamp = iso_timestamp()
        frame = AlertEnvelope(data=alert, timestamp=timestamp, legacy=True).to_frame()

        with self.registry.lock:
            return self._fan_out(
                "legacy",
                self.registry.lookup_legacy(),
                frame,
                timestamp,
                symbol=alert_symbol(alert),
            )

    def _fan_out(
        self,
        route: RouteName,
        connections: list[Connection],
        frame: str,
        timestamp: str,
        symbol: Any | None,
    ) -> RouteResult:
        """
        Offer `frame` to each admitted connection.

        Called with the registry lock held, so a connection unregistered
        before this call can never be written to. Offers never block; a
        refused offer counts as a failure for that connection only.
        """
        result = RouteResult(
            route=route, timestamp=timestamp, candidates=len(connections)
        )
        now = self.registry.clock()

        for connection in connections:
            reason = self._skip_reason(connection, now, symbol)
            if reason is not None:
                logger.debug(
                    f"Skipping alert for client {connection.id} - {reason}"
                )
                result.skipped[reason] += 1
                continue

            if connection.deliver(frame):
                result.delivered += 1
            else:
                result.failed += 1
                logger.warning(
                    f"Could not queue alert for client {connection.id}"
                )

        MetricsCollector.record_alert_fanout(
            route, result.delivered, result.failed, dict(result.skipped)
        )
        return result

    @staticmethod
    def _skip_reason(
        connection: Connection, now: float, symbol: Any | None
    ) -> SkipReason | None:
        if connection.in_ignore_window(now):
            return "ignore_window"
        if (
            connection.symbol_filter
            and symbol is not None
            and connection.symbol_filter != symbol
        ):
            return "symbol_filter"
        return None


alert_router = AlertRouter(connection_registry)
