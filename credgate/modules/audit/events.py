from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from credgate.utils.clock import utc_now


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    REVOKE = "REVOKE"
    PERMISSIONS_UPDATE = "PERMISSIONS_UPDATE"


class AuditResource(str, Enum):
    API_KEY = "API_KEY"
    USER_PERMISSIONS = "USER_PERMISSIONS"


class AuditEvent(BaseModel):
    actor: str
    action: AuditAction
    resource_type: AuditResource
    resource_id: str
    timestamp: datetime = Field(default_factory=utc_now)
    details: dict = Field(default_factory=dict)
