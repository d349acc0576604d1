"""Factories for API key records and rows."""

import factory

from credgate.database.models import ApiKey
from credgate.modules.keys.models import ApiKeyRecord
from credgate.utils.clock import utc_now
from credgate.utils.hashing import HashingService
from .base import AsyncSQLAlchemyModelFactory, UUIDFactory


class _ApiKeyFields(factory.Factory):
    class Meta:
        abstract = True

    class Params:
        secret = factory.LazyFunction(HashingService.generate_api_key)

    id = UUIDFactory()
    name = factory.Faker("word")
    key_prefix = factory.LazyAttribute(lambda o: HashingService.display_prefix(o.secret))
    hashed_key = factory.LazyAttribute(lambda o: HashingService.hash_api_key(o.secret))
    client_id = "c1"
    permissions = factory.LazyFunction(lambda: ["content:read"])
    is_active = True
    last_used_at = None
    expires_at = None
    created_at = factory.LazyFunction(utc_now)


class ApiKeyRecordFactory(_ApiKeyFields):
    """Builds domain ApiKeyRecord instances."""

    class Meta:
        model = ApiKeyRecord


class ApiKeyFactory(_ApiKeyFields, AsyncSQLAlchemyModelFactory[ApiKey]):
    """Builds and persists ApiKey rows."""

    class Meta:
        model = ApiKey


def make_api_key(**kwargs) -> tuple[ApiKeyRecord, str]:
    """Return a record together with the secret that hashes to it."""
    secret = kwargs.pop("secret", None) or HashingService.generate_api_key()
    return ApiKeyRecordFactory(secret=secret, **kwargs), secret
