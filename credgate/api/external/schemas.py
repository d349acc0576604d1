"""External (API key authenticated) schemas."""

from uuid import UUID

from pydantic import BaseModel

from credgate.api.core.messages import APIResponse
from credgate.modules.keys.models import UsageStats


class CallerKey(BaseModel):
    id: UUID
    name: str
    key_prefix: str
    permissions: list[str]


class ClientInfo(BaseModel):
    client_id: str
    api_key: CallerKey


class CallerUsage(BaseModel):
    api_key_id: UUID
    days: int
    usage: UsageStats


ClientInfoResponse = APIResponse[ClientInfo]
CallerUsageResponse = APIResponse[CallerUsage]
