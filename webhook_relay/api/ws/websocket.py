from typing import Any

from starlette import status
from starlette.endpoints import WebSocketEndpoint
from starlette.websockets import WebSocket

from webhook_relay.api.ws.session import ConnectionSession, remote_address
from webhook_relay.logging import clear_log_context, logger, set_log_context


class RelayWebSocketEndpoint(WebSocketEndpoint):  # type: ignore[misc]
    """
    WebSocket endpoint for alert subscribers.

    Accepts the connection, registers a `ConnectionSession`, feeds it every
    inbound frame in arrival order and retracts it when the socket closes
    or the receive loop fails. Both text and binary frames are accepted so
    a stray binary frame is ignored instead of closing the connection.
    """

    encoding = None

    session: ConnectionSession | None = None

    async def dispatch(self) -> None:
        """
        Run the connection lifecycle.

        1. Accept and register the connection (`on_connect`).
        2. Hand each "websocket.receive" frame to `on_receive`.
        3. Stop on "websocket.disconnect", recording its close code.
        4. Always run `on_disconnect`, also when the loop raised, so the
           connection is retracted exactly once.
        """
        websocket = WebSocket(self.scope, receive=self.receive, send=self.send)
        await self.on_connect(websocket)

        close_code = status.WS_1000_NORMAL_CLOSURE

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.receive":
                    data = await self.decode(websocket, message)
                    await self.on_receive(websocket, data)
                elif message["type"] == "websocket.disconnect":
                    close_code = int(
                        message.get("code") or status.WS_1000_NORMAL_CLOSURE
                    )
                    break
        except Exception as exc:
            # Transport error: retract below, then let Starlette log it
            close_code = status.WS_1011_INTERNAL_ERROR
            raise exc
        finally:
            await self.on_disconnect(websocket, close_code)

    async def decode(
        self, websocket: WebSocket, message: dict[str, Any]
    ) -> str | bytes:
        """Return the raw frame; parsing happens in the session."""
        if message.get("text") is not None:
            return message["text"]
        return message.get("bytes") or b""

    async def on_connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.session = ConnectionSession.open(
            websocket, address=remote_address(websocket)
        )
        set_log_context(client_id=self.session.connection_id)

    async def on_receive(self, websocket: WebSocket, data: str | bytes) -> None:
        self.session.handle(data)

    async def on_disconnect(self, websocket: WebSocket, close_code: int) -> None:
        if self.session is not None:
            logger.debug(
                f"Client {self.session.connection_id} closed with code {close_code}"
            )
            await self.session.close()
        clear_log_context()
