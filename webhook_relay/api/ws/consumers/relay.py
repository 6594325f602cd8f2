from fastapi import APIRouter

from webhook_relay.api.ws.websocket import RelayWebSocketEndpoint

router = APIRouter()


@router.websocket_route("/ws")
@router.websocket_route("/")
class Relay(RelayWebSocketEndpoint):
    """
    Subscriber endpoint. Clients connect, optionally `register` a webhook id
    or the legacy feed, and then receive alert envelopes.
    """
