"""Client visibility API schemas."""

from pydantic import BaseModel

from credgate.api.core.messages import APIResponse
from credgate.modules.access.roles import UserRole


class AccessibleClients(BaseModel):
    user_id: str
    role: UserRole
    agency_id: str | None = None
    client_ids: list[str]
    total: int


AccessibleClientsResponse = APIResponse[AccessibleClients]
