import json
from typing import Any

from pydantic import Field

from webhook_relay.constants import MSG_ALERT
from webhook_relay.schemas.status import CamelModel


class AlertEnvelope(CamelModel):
    """
    Frame delivered to every admitted subscriber.

    Exactly one of `webhook_id` (keyed route) and `legacy` (legacy route)
    is set; the other is omitted from the JSON.
    """

    type: str = MSG_ALERT
    data: Any = None
    timestamp: str
    webhook_id: str | None = Field(default=None, alias="webhookId")
    legacy: bool | None = None

    def to_frame(self) -> str:
        """
        Serialize the envelope.

        `data` is an opaque payload of any nesting depth, so it goes through
        `json.dumps` rather than pydantic's serializer, which caps nesting.
        It is kept even when the payload is JSON null.
        """
        fields = self.model_dump(by_alias=True, exclude={"data"}, exclude_none=True)
        frame = {"type": fields.pop("type"), "data": self.data, **fields}
        return json.dumps(frame, separators=(",", ":"), default=str)


class DeliveryResponse(CamelModel):
    """Summary returned to the webhook sender."""

    success: bool = True
    message: str
    delivered_to: int = Field(alias="deliveredTo")
    timestamp: str
    webhook_id: str | None = Field(default=None, alias="webhookId")
    data: Any = None
