"""Operator permission API schemas."""

from pydantic import BaseModel

from credgate.api.core.messages import APIResponse
from credgate.modules.access.roles import UserRole


class ResolvedPermissions(BaseModel):
    client_id: str
    user_id: str
    role: UserRole
    permissions: list[str]


class ClientOverrides(BaseModel):
    client_id: str
    user_id: str
    permissions: list[str]


class OverridesUpdateRequest(BaseModel):
    permissions: list[str]


ResolvedPermissionsResponse = APIResponse[ResolvedPermissions]
ClientOverridesResponse = APIResponse[ClientOverrides]
