"""Prometheus metrics for alert intake and fan-out."""

from webhook_relay.utils.metrics._helpers import _get_or_create_counter

alerts_received_total = _get_or_create_counter(
    "alerts_received_total",
    "Total alerts received over HTTP",
    ["route"],  # webhook, legacy
)

alerts_delivered_total = _get_or_create_counter(
    "alerts_delivered_total",
    "Total alert envelopes accepted by subscriber outboxes",
    ["route"],
)

alerts_skipped_total = _get_or_create_counter(
    "alerts_skipped_total",
    "Total alert deliveries skipped by admission filters",
    ["route", "reason"],  # ignore_window, symbol_filter
)

alerts_delivery_failures_total = _get_or_create_counter(
    "alerts_delivery_failures_total",
    "Total alert deliveries refused by a subscriber outbox",
    ["route"],
)

__all__ = [
    "alerts_received_total",
    "alerts_delivered_total",
    "alerts_skipped_total",
    "alerts_delivery_failures_total",
]
