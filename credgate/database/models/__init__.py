"""Database models for CredGate."""

from .api_keys import ApiKey
from .audit import AuditLog
from .base import Base
from .clients import Client
from .usage import ApiKeyUsage
from .users import UserAccess

__all__ = [
    "Base",
    "ApiKey",
    "ApiKeyUsage",
    "AuditLog",
    "Client",
    "UserAccess",
]
