"""
Type definitions and aliases for improved type safety.

NewType ids keep connection ids and webhook ids from being mixed up with
other ints and strings, and Literal types pin down the small string
vocabularies used in metrics labels and acknowledgments.
"""

from typing import Literal, NewType

ConnectionId = NewType("ConnectionId", int)
"""Process-unique connection id assigned by the registry."""

WebhookId = NewType("WebhookId", str)
"""Routing key identifying a subscriber's private alert channel."""

RouteName = Literal["webhook", "legacy"]
"""Which registry index an alert was routed through."""

SkipReason = Literal["ignore_window", "symbol_filter"]
"""Why an otherwise-addressed connection did not receive an alert."""
