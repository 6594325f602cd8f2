"""
Wire models for the subscriber WebSocket protocol.

Inbound frames are parsed into a closed set of message types keyed by their
`type` field. Anything that does not parse into one of them becomes an
`IgnoredMessage`, which callers treat as a no-op.
"""

import json
from dataclasses import dataclass
from typing import Annotated, Literal, Union

from pydantic import (
    Field,
    StrictBool,
    StrictStr,
    TypeAdapter,
    ValidationError,
    model_validator,
)

from webhook_relay.constants import (
    MSG_CONNECTED,
    MSG_PONG,
    MSG_REGISTERED,
    MSG_SESSION_CLEARED,
)
from webhook_relay.schemas.status import CamelModel

# ============================================================================
# Client -> server
# ============================================================================


class RegisterMessage(CamelModel):
    """
    Bind the connection to a webhook id, or to the legacy feed.

    A non-empty `webhookId` takes precedence over `legacy: true`; a register
    message with neither is rejected.
    """

    type: Literal["register"]
    webhook_id: StrictStr | None = Field(default=None, alias="webhookId")
    legacy: StrictBool = False

    @model_validator(mode="after")
    def check_target(self) -> "RegisterMessage":
        if not self.webhook_id and not self.legacy:
            raise ValueError("register requires webhookId or legacy: true")
        return self


class SubscribeMessage(CamelModel):
    type: Literal["subscribe"]
    symbol: StrictStr | None = None


class PingMessage(CamelModel):
    type: Literal["ping"]


class ClearSessionMessage(CamelModel):
    type: Literal["clear_session"]


ClientMessage = Annotated[
    Union[RegisterMessage, SubscribeMessage, PingMessage, ClearSessionMessage],
    Field(discriminator="type"),
]

_client_message_adapter: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)


@dataclass(frozen=True)
class IgnoredMessage:
    """A frame that is not a recognized client message."""

    reason: str
    type: str | None = None


def parse_client_message(raw: str | bytes) -> ClientMessage | IgnoredMessage:
    """
    Parse one inbound frame.

    Never raises: undecodable bytes, invalid or too deeply nested JSON,
    non-object JSON, unknown `type` values and invalid fields all map to
    `IgnoredMessage`.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            return IgnoredMessage(reason="binary frame is not UTF-8")

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        return IgnoredMessage(reason="invalid JSON")
    except RecursionError:
        return IgnoredMessage(reason="JSON nested too deeply")

    if not isinstance(payload, dict):
        return IgnoredMessage(reason="message is not a JSON object")

    message_type = payload.get("type")
    try:
        return _client_message_adapter.validate_python(payload)
    except ValidationError as e:
        return IgnoredMessage(
            reason=f"invalid message ({e.error_count()} errors)",
            type=message_type if isinstance(message_type, str) else None,
        )


# ============================================================================
# Server -> client
# ============================================================================


class ServerMessage(CamelModel):
    type: str
    timestamp: str

    def to_frame(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class ConnectedMessage(ServerMessage):
    type: Literal["connected"] = MSG_CONNECTED
    client_id: int = Field(alias="clientId")
    message: str


class RegisteredMessage(ServerMessage):
    type: Literal["registered"] = MSG_REGISTERED
    mode: Literal["webhook", "legacy"]
    webhook_id: str | None = Field(default=None, alias="webhookId")


class PongMessage(ServerMessage):
    type: Literal["pong"] = MSG_PONG


class SessionClearedMessage(ServerMessage):
    type: Literal["session_cleared"] = MSG_SESSION_CLEARED
    ignore_seconds: float = Field(alias="ignoreSeconds")


__all__ = [
    "ClearSessionMessage",
    "ClientMessage",
    "ConnectedMessage",
    "IgnoredMessage",
    "PingMessage",
    "PongMessage",
    "RegisterMessage",
    "RegisteredMessage",
    "ServerMessage",
    "SessionClearedMessage",
    "SubscribeMessage",
    "parse_client_message",
]
