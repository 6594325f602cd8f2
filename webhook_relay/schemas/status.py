from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    """Base for wire models whose JSON keys are camelCase."""

    model_config = ConfigDict(populate_by_name=True)


class ConnectionSummary(CamelModel):
    """Status listing entry; never carries the transport or a full key."""

    id: int
    connected_at: datetime = Field(alias="connectedAt")
    symbol: str | None = None
    legacy: bool = False
    webhook_id: str | None = Field(default=None, alias="webhookId")


class StatusResponse(CamelModel):
    status: str = "running"
    connected_clients: int = Field(alias="connectedClients")
    webhook_clients: int = Field(alias="webhookClients")
    legacy_clients: int = Field(alias="legacyClients")
    webhook_ids: int = Field(alias="webhookIds")
    clients: list[ConnectionSummary]
    uptime: float
    timestamp: str


class ServiceInfoResponse(CamelModel):
    name: str
    status: str = "running"
    connected_clients: int = Field(alias="connectedClients")
    uptime: float
    timestamp: str
    endpoints: dict[str, str]
