"""Authentication context models set on request.state by the auth middleware."""

from dataclasses import dataclass

from credgate.modules.access.roles import UserRole
from credgate.modules.keys.models import ApiKeyRecord


@dataclass
class OperatorContext:
    """A human operator authenticated by JWT."""

    user_id: str
    role: UserRole
    agency_id: str | None = None

    def __post_init__(self):
        if not self.user_id:
            raise ValueError("user_id is required in operator context")


@dataclass
class MachineContext:
    """A machine caller authenticated by API key."""

    api_key: ApiKeyRecord

    @property
    def client_id(self) -> str:
        return self.api_key.client_id
