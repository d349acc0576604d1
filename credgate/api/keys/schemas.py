"""Keys API schemas (combined models/requests)."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from credgate.api.core.constants import DEFAULT_ROUTE_API_KEY_PERMISSIONS
from credgate.api.core.messages import APIResponse
from credgate.modules.keys.lifecycle import KeyState
from credgate.modules.keys.models import UsageStats


class KeyModel(BaseModel):
    id: UUID
    name: str
    key_prefix: str
    client_id: str
    permissions: list[str]
    is_active: bool
    state: KeyState
    last_used_at: datetime | None = None
    expires_at: datetime | None = None
    created_at: datetime


class KeyWithSecret(KeyModel):
    key: str


class UsageRecordModel(BaseModel):
    endpoint: str
    method: str
    status_code: int
    tokens_consumed: int | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class KeyDetail(BaseModel):
    key: KeyModel
    usage: UsageStats
    recent_usage: list[UsageRecordModel]


class KeyCreateRequest(BaseModel):
    # Length and vocabulary are checked by the issuer so errors carry field/reason
    name: str
    permissions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ROUTE_API_KEY_PERMISSIONS)
    )
    expires_at: datetime | None = None


class KeyUpdateRequest(BaseModel):
    name: str | None = None
    permissions: list[str] | None = None
    is_active: bool | None = None
    expires_at: datetime | None = None


class KeyList(BaseModel):
    keys: list[KeyModel]
    total: int


KeyCreateResponse = APIResponse[KeyWithSecret]
KeyResponse = APIResponse[KeyModel]
KeyDetailResponse = APIResponse[KeyDetail]
KeyListResponse = APIResponse[KeyList]
