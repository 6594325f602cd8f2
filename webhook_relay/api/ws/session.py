import asyncio
import contextlib
from typing import Any

from starlette.websockets import WebSocket

from webhook_relay.constants import MODE_LEGACY, MODE_WEBHOOK, WS_GOING_AWAY_CODE
from webhook_relay.logging import logger
from webhook_relay.managers.connection_registry import (
    Connection,
    ConnectionRegistry,
    connection_registry,
)
from webhook_relay.managers.outbox import Outbox
from webhook_relay.schemas.messages import (
    ClearSessionMessage,
    ClientMessage,
    ConnectedMessage,
    IgnoredMessage,
    PingMessage,
    PongMessage,
    RegisteredMessage,
    RegisterMessage,
    ServerMessage,
    SessionClearedMessage,
    SubscribeMessage,
    parse_client_message,
)
from webhook_relay.settings import app_settings
from webhook_relay.types import WebhookId
from webhook_relay.utils.metrics import MetricsCollector
from webhook_relay.utils.timestamps import iso_timestamp

# Sessions currently open in this process, closed on application shutdown
live_sessions: set["ConnectionSession"] = set()


def remote_address(websocket: WebSocket) -> str:
    """
    Best-effort peer address: first X-Forwarded-For hop, then the socket
    peer, then "unknown".
    """
    forwarded = websocket.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if websocket.client is not None:
        return websocket.client.host
    return "unknown"


class ConnectionSession:
    """
    State machine for one subscriber connection.

    Inbound frames are handled one at a time by the owning receive loop.
    A session only ever mutates its own connection, always through the
    registry so routing indexes stay consistent.
    """

    def __init__(
        self,
        connection: Connection,
        outbox: Outbox,
        registry: ConnectionRegistry,
    ) -> None:
        self.connection = connection
        self.outbox = outbox
        self.registry = registry
        self._closed = False

    @property
    def connection_id(self) -> int:
        return self.connection.id

    @property
    def closed(self) -> bool:
        return self._closed

    @classmethod
    def open(
        cls,
        websocket: Any,
        address: str = "unknown",
        registry: ConnectionRegistry | None = None,
    ) -> "ConnectionSession":
        """
        Register a freshly accepted transport and greet the client.

        The connection starts inside a short ignore window so that alerts
        already in flight when the client (re)connects are not replayed
        as if they were new.
        """
        if registry is None:
            registry = connection_registry
        outbox = Outbox(websocket, app_settings.OUTBOX_MAX_SIZE)
        connection = Connection(
            transport=outbox,
            remote_address=address,
            ignore_until=registry.clock() + app_settings.CONNECT_IGNORE_SECONDS,
        )
        connection_id = registry.register(connection)
        outbox.label = f"client {connection_id}"
        outbox.start()

        session = cls(connection, outbox, registry)
        live_sessions.add(session)
        MetricsCollector.record_ws_connection_accepted()
        logger.info(
            f"Client {connection_id} connected from {address}. "
            f"Total: {len(registry)}"
        )

        session.reply(
            ConnectedMessage(
                client_id=connection_id,
                message=f"Connected to {app_settings.SERVICE_NAME}",
                timestamp=iso_timestamp(),
            )
        )
        return session

    def reply(self, message: ServerMessage) -> bool:
        return self.outbox.offer(message.to_frame())

    def handle(self, raw: str | bytes) -> ClientMessage | IgnoredMessage:
        """
        Parse and apply one inbound frame.

        Unrecognized or malformed frames are dropped without a reply; the
        connection stays open.
        """
        message = parse_client_message(raw)
        MetricsCollector.record_ws_message_received(
            "ignored" if isinstance(message, IgnoredMessage) else message.type
        )

        match message:
            case RegisterMessage(webhook_id=webhook_id) if webhook_id:
                self._register_webhook(WebhookId(webhook_id))
            case RegisterMessage():
                self._register_legacy()
            case SubscribeMessage(symbol=symbol):
                self._subscribe(symbol)
            case PingMessage():
                self.reply(PongMessage(timestamp=iso_timestamp()))
            case ClearSessionMessage():
                self._clear_session()
            case IgnoredMessage(reason=reason):
                logger.debug(
                    f"Ignoring message from client {self.connection_id}: {reason}"
                )

        return message

    def _register_webhook(self, webhook_id: WebhookId) -> None:
        if not self.registry.bind_routing_key(self.connection_id, webhook_id):
            return
        logger.info(f"Client {self.connection_id} registered for webhook alerts")
        self.reply(
            RegisteredMessage(
                mode=MODE_WEBHOOK,
                webhook_id=webhook_id,
                timestamp=iso_timestamp(),
            )
        )

    def _register_legacy(self) -> None:
        if not self.registry.bind_legacy(self.connection_id):
            return
        logger.info(f"Client {self.connection_id} registered for legacy alerts")
        self.reply(RegisteredMessage(mode=MODE_LEGACY, timestamp=iso_timestamp()))

    def _subscribe(self, symbol: str | None) -> None:
        if self.registry.set_symbol_filter(self.connection_id, symbol):
            logger.info(f"Client {self.connection_id} subscribed to {symbol}")

    def _clear_session(self) -> None:
        seconds = app_settings.CLEAR_SESSION_IGNORE_SECONDS
        deadline = self.registry.set_ignore_window(
            self.connection_id, self.registry.clock() + seconds
        )
        if deadline is None:
            return
        logger.info(
            f"Client {self.connection_id} requested clear_session - "
            f"ignoring alerts for {seconds:g}s"
        )
        self.reply(
            SessionClearedMessage(ignore_seconds=seconds, timestamp=iso_timestamp())
        )

    async def close(self) -> None:
        """
        Retract the connection and stop its writer. Idempotent.

        The registry entry is removed before anything is awaited, so no
        router call made after this point can select the connection.
        """
        if self._closed:
            return
        self._closed = True

        self.registry.unregister(self.connection_id)
        live_sessions.discard(self)
        MetricsCollector.record_ws_disconnection()
        logger.info(
            f"Client {self.connection_id} disconnected. Total: {len(self.registry)}"
        )

        await self.outbox.close()


async def shutdown_sessions() -> int:
    """
    Close every live session, telling clients the server is going away.

    Returns:
        Number of sessions closed.
    """
    sessions = list(live_sessions)
    for session in sessions:
        with contextlib.suppress(RuntimeError, ConnectionError):
            await session.outbox.transport.close(code=WS_GOING_AWAY_CODE)
    await asyncio.gather(
        *(session.close() for session in sessions), return_exceptions=True
    )
    return len(sessions)
