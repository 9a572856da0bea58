"""Integration Schemas — OAuth callback input and token-free connection output."""

from datetime import datetime

from pydantic import Field

from app.schemas.common import ORMResponse, RequestModel


class OAuthCallback(RequestModel):
    code: str = Field(min_length=1, max_length=2000)
    state: str = Field(min_length=1, max_length=4000)


class ConnectionResponse(ORMResponse):
    provider: str
    status: str
    external_account_id: str | None
    expires_at: datetime | None
    scopes: list
    connected_at: datetime | None
