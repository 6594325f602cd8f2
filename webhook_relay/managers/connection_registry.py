import itertools
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, NamedTuple, Protocol

from webhook_relay.schemas.status import ConnectionSummary
from webhook_relay.settings import app_settings
from webhook_relay.types import ConnectionId, WebhookId
from webhook_relay.utils.timestamps import utc_now


class FrameSink(Protocol):
    def offer(self, frame: str) -> bool: ...


@dataclass(eq=False)
class Connection:
    """
    One live subscriber session.

    Fields other than `transport`, `remote_address` and `connected_at` are
    owned by `ConnectionRegistry` and must only change through its methods,
    which keep the routing indexes in step with them.
    """

    transport: FrameSink
    remote_address: str = "unknown"
    connected_at: datetime = field(default_factory=utc_now)
    ignore_until: float = 0.0
    id: ConnectionId | None = None
    symbol_filter: str | None = None
    routing_key: WebhookId | None = None
    is_legacy_admin: bool = False

    def in_ignore_window(self, now: float) -> bool:
        return now < self.ignore_until

    def deliver(self, frame: str) -> bool:
        return self.transport.offer(frame)


class RegistryCounts(NamedTuple):
    total: int
    webhook: int
    legacy: int
    webhook_ids: int


def redact_webhook_id(webhook_id: str, preview_length: int) -> str:
    """Show at most half of the key so a status listing never leaks it."""
    visible = min(preview_length, len(webhook_id) // 2)
    return f"{webhook_id[:visible]}..."


class ConnectionRegistry:
    """
    Registry of live subscriber connections.

    Keeps the primary id-keyed table and two routing indexes:
    - webhook id -> connections bound to that key
    - legacy set -> connections receiving the unkeyed admin feed

    A connection sits in at most one index at a time. Every read and
    mutation runs under one re-entrant lock, so index/primary-table
    agreement holds after each call. The lock is exposed as `lock` so the
    router can hold it from lookup through its last write.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self.clock = clock
        self.lock = threading.RLock()
        self._ids = itertools.count(1)
        self._connections: dict[ConnectionId, Connection] = {}
        self._by_key: dict[WebhookId, dict[ConnectionId, Connection]] = {}
        self._legacy: dict[ConnectionId, Connection] = {}

    def __len__(self) -> int:
        with self.lock:
            return len(self._connections)

    def __contains__(self, connection_id: object) -> bool:
        with self.lock:
            return connection_id in self._connections

    def register(self, connection: Connection) -> ConnectionId:
        """
        Assign the next id and add the connection to the primary table.

        No routing index is touched; see `bind_routing_key`/`bind_legacy`.
        """
        with self.lock:
            connection_id = ConnectionId(next(self._ids))
            connection.id = connection_id
            self._connections[connection_id] = connection
            return connection_id

    def get(self, connection_id: ConnectionId) -> Connection | None:
        with self.lock:
            return self._connections.get(connection_id)

    def _unbind(self, connection: Connection) -> None:
        """Remove a connection from whichever index holds it."""
        if connection.routing_key is not None:
            bucket = self._by_key.get(connection.routing_key)
            if bucket is not None:
                bucket.pop(connection.id, None)
                if not bucket:
                    del self._by_key[connection.routing_key]
            connection.routing_key = None

        if connection.is_legacy_admin:
            self._legacy.pop(connection.id, None)
            connection.is_legacy_admin = False

    def bind_routing_key(
        self, connection_id: ConnectionId, webhook_id: WebhookId
    ) -> bool:
        """
        Index a connection under a webhook id, moving it out of any previous
        key bucket or the legacy set.

        Returns:
            False if the id is not registered (nothing changes).
        """
        with self.lock:
            connection = self._connections.get(connection_id)
            if connection is None:
                return False

            self._unbind(connection)
            self._by_key.setdefault(webhook_id, {})[connection_id] = connection
            connection.routing_key = webhook_id
            return True

    def bind_legacy(self, connection_id: ConnectionId) -> bool:
        """
        Index a connection in the legacy set, moving it out of any key
        bucket.

        Returns:
            False if the id is not registered (nothing changes).
        """
        with self.lock:
            connection = self._connections.get(connection_id)
            if connection is None:
                return False

            self._unbind(connection)
            self._legacy[connection_id] = connection
            connection.is_legacy_admin = True
            return True

    def set_symbol_filter(
        self, connection_id: ConnectionId, symbol: str | None
    ) -> bool:
        """Set (or clear with None/"") the legacy-path symbol filter."""
        with self.lock:
            connection = self._connections.get(connection_id)
            if connection is None:
                return False
            connection.symbol_filter = symbol or None
            return True

    def set_ignore_window(
        self, connection_id: ConnectionId, until: float
    ) -> float | None:
        """
        Extend a connection's ignore window to `until`.

        The deadline only ever moves forward; an earlier `until` leaves it
        unchanged.

        Returns:
            The effective deadline, or None if the id is not registered.
        """
        with self.lock:
            connection = self._connections.get(connection_id)
            if connection is None:
                return None
            connection.ignore_until = max(connection.ignore_until, until)
            return connection.ignore_until

    def unregister(self, connection_id: ConnectionId) -> Connection | None:
        """
        Remove a connection from the primary table and every index.

        Idempotent: unknown ids are ignored.

        Returns:
            The removed connection, or None if it was not registered.
        """
        with self.lock:
            connection = self._connections.pop(connection_id, None)
            if connection is None:
                return None

            self._unbind(connection)
            return connection

    def lookup_by_key(self, webhook_id: WebhookId) -> list[Connection]:
        with self.lock:
            return list(self._by_key.get(webhook_id, {}).values())

    def lookup_legacy(self) -> list[Connection]:
        with self.lock:
            return list(self._legacy.values())

    def connections(self) -> list[Connection]:
        with self.lock:
            return list(self._connections.values())

    def counts(self) -> RegistryCounts:
        with self.lock:
            return RegistryCounts(
                total=len(self._connections),
                webhook=sum(len(bucket) for bucket in self._by_key.values()),
                legacy=len(self._legacy),
                webhook_ids=len(self._by_key),
            )

    def snapshot(self) -> list[ConnectionSummary]:
        """
        Summaries of all live connections ordered by id.

        The transport is never exposed and webhook ids are redacted.
        """
        preview_length = app_settings.WEBHOOK_ID_PREVIEW_LENGTH
        with self.lock:
            return [
                ConnectionSummary(
                    id=connection.id,
                    connected_at=connection.connected_at,
                    symbol=connection.symbol_filter,
                    legacy=connection.is_legacy_admin,
                    webhook_id=(
                        redact_webhook_id(connection.routing_key, preview_length)
                        if connection.routing_key is not None
                        else None
                    ),
                )
                for connection in sorted(
                    self._connections.values(), key=lambda c: c.id
                )
            ]


connection_registry = ConnectionRegistry()
