"""Test factories for CredGate records and models."""

from .base import AsyncSQLAlchemyModelFactory
from .api_keys import ApiKeyFactory, ApiKeyRecordFactory, make_api_key
from .clients import ClientFactory
from .usage import ApiKeyUsageFactory, UsageRecordFactory
from .users import UserAccessFactory

__all__ = [
    "AsyncSQLAlchemyModelFactory",
    "ApiKeyFactory",
    "ApiKeyRecordFactory",
    "ApiKeyUsageFactory",
    "ClientFactory",
    "UsageRecordFactory",
    "UserAccessFactory",
    "make_api_key",
]
