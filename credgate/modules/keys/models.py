"""Domain types for API keys and their usage."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from credgate.core.errors import ValidationError
from credgate.utils.clock import ensure_utc, utc_now


class ApiKeyPermission(str, Enum):
    """Closed vocabulary of tokens an API key can carry."""

    CONTENT_GENERATE = "content:generate"
    CONTENT_READ = "content:read"
    CLIENT_READ = "client:read"
    JOBS_READ = "jobs:read"
    ALL = "*"


API_KEY_PERMISSION_VALUES = frozenset(p.value for p in ApiKeyPermission)


def validate_permission_tokens(
    tokens, vocabulary=API_KEY_PERMISSION_VALUES, field: str = "permissions"
) -> list[str]:
    """Check tokens against a closed vocabulary by exact string equality.

    Returns the de-duplicated tokens in input order. Raises ValidationError
    listing every unknown token.
    """
    if isinstance(tokens, str) or not isinstance(tokens, (list, tuple, set, frozenset)):
        raise ValidationError(field, "must be a list of permission tokens")
    offending = [t for t in tokens if not isinstance(t, str) or t not in vocabulary]
    if offending:
        raise ValidationError(
            field, "unknown permission tokens", [str(t) for t in offending]
        )
    return list(dict.fromkeys(tokens))


class _UtcModel(BaseModel):
    @field_validator("*", mode="after")
    @classmethod
    def _normalize_datetimes(cls, value):
        if isinstance(value, datetime):
            return ensure_utc(value)
        return value


class ApiKeyRecord(_UtcModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(default_factory=uuid4)
    name: str
    key_prefix: str
    hashed_key: str
    client_id: str
    permissions: list[str] = Field(default_factory=list)
    is_active: bool = True
    last_used_at: datetime | None = None
    expires_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)


class ApiKeyPatch(_UtcModel):
    """Explicit optional-field update.

    Only attributes present in ``model_fields_set`` are applied, so
    ``ApiKeyPatch(expires_at=None)`` clears the expiry while ``ApiKeyPatch()``
    leaves it alone.
    """

    name: str | None = None
    permissions: list[str] | None = None
    is_active: bool | None = None
    expires_at: datetime | None = None
    last_used_at: datetime | None = None

    def changes(self) -> dict:
        return {name: getattr(self, name) for name in self.model_fields_set}


class UsageRecord(_UtcModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(default_factory=uuid4)
    api_key_id: UUID
    endpoint: str
    method: str
    status_code: int
    tokens_consumed: int | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value):
        return value.upper() if isinstance(value, str) else value


class EndpointCount(BaseModel):
    endpoint: str
    count: int


class UsageStats(BaseModel):
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_tokens_consumed: int = 0
    requests_by_endpoint: list[EndpointCount] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "UsageStats":
        return cls()

    @classmethod
    def from_records(cls, records) -> "UsageStats":
        """Aggregate in Python. Used by storages without a query engine."""
        by_endpoint: dict[str, int] = {}
        stats = cls()
        for record in records:
            stats.total_requests += 1
            if 200 <= record.status_code <= 299:
                stats.successful_requests += 1
            elif record.status_code >= 400:
                stats.failed_requests += 1
            stats.total_tokens_consumed += record.tokens_consumed or 0
            by_endpoint[record.endpoint] = by_endpoint.get(record.endpoint, 0) + 1
        stats.requests_by_endpoint = sort_endpoint_counts(by_endpoint.items())
        return stats


def sort_endpoint_counts(pairs) -> list[EndpointCount]:
    """Count descending, then endpoint ascending for a stable order."""
    return [
        EndpointCount(endpoint=endpoint, count=count)
        for endpoint, count in sorted(pairs, key=lambda p: (-p[1], p[0]))
    ]
