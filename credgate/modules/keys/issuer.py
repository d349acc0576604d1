"""API key issuance."""

from dataclasses import dataclass
from datetime import datetime

from credgate.api.core.constants import (
    API_KEY_NAME_MAX_LENGTH,
    DEFAULT_API_KEY_PERMISSIONS,
)
from credgate.core.base import BaseService
from credgate.core.errors import ValidationError
from credgate.modules.audit.events import AuditAction, AuditEvent, AuditResource
from credgate.modules.audit.sink import AuditSink, emit_audit_event
from credgate.modules.keys.lifecycle import is_expired
from credgate.modules.keys.models import ApiKeyRecord, validate_permission_tokens
from credgate.utils.clock import ensure_utc
from credgate.utils.hashing import HashingService


@dataclass(frozen=True)
class GeneratedKey:
    secret: str
    prefix: str
    hashed: str

    def __repr__(self) -> str:
        return f"GeneratedKey(prefix={self.prefix!r})"


@dataclass(frozen=True)
class IssuedApiKey:
    """The only object that ever carries the raw secret."""

    secret: str
    record: ApiKeyRecord

    def __repr__(self) -> str:
        return f"IssuedApiKey(record={self.record.id}, prefix={self.record.key_prefix!r})"


def validate_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name", "must not be empty")
    name = name.strip()
    if len(name) > API_KEY_NAME_MAX_LENGTH:
        raise ValidationError(
            "name", f"must be at most {API_KEY_NAME_MAX_LENGTH} characters"
        )
    return name


def validate_expiry(expires_at: datetime | None, now: datetime) -> datetime | None:
    if expires_at is None:
        return None
    if not isinstance(expires_at, datetime):
        raise ValidationError("expires_at", "must be a datetime")
    if is_expired(expires_at, now):
        raise ValidationError("expires_at", "must be in the future")
    return ensure_utc(expires_at)


class CredentialIssuer(BaseService):
    def __init__(self, storage, audit_sink: AuditSink | None = None, **kwargs):
        super().__init__(storage, **kwargs)
        self.audit_sink = audit_sink

    @staticmethod
    def generate() -> GeneratedKey:
        secret = HashingService.generate_api_key()
        return GeneratedKey(
            secret=secret,
            prefix=HashingService.display_prefix(secret),
            hashed=HashingService.hash_api_key(secret),
        )

    async def create_api_key(
        self,
        client_id: str,
        name: str,
        permissions: list[str] | None = None,
        expires_at: datetime | None = None,
        *,
        actor: str,
    ) -> IssuedApiKey:
        if not client_id:
            raise ValidationError("client_id", "must not be empty")
        name = validate_name(name)
        if permissions is None:
            permissions = list(DEFAULT_API_KEY_PERMISSIONS)
        permissions = validate_permission_tokens(permissions)
        now = self.clock()
        expires_at = validate_expiry(expires_at, now)

        generated = self.generate()
        record = await self.storage.create_api_key(
            ApiKeyRecord(
                name=name,
                key_prefix=generated.prefix,
                hashed_key=generated.hashed,
                client_id=client_id,
                permissions=permissions,
                is_active=True,
                expires_at=expires_at,
                created_at=now,
            )
        )
        self.logger.info(
            "api_key_created",
            api_key_id=str(record.id),
            client_id=client_id,
            key_prefix=record.key_prefix,
        )

        await emit_audit_event(
            self.audit_sink,
            AuditEvent(
                actor=actor,
                action=AuditAction.CREATE,
                resource_type=AuditResource.API_KEY,
                resource_id=str(record.id),
                timestamp=now,
                details={
                    "client_id": client_id,
                    "name": name,
                    "permissions": permissions,
                    "expires_at": expires_at.isoformat() if expires_at else None,
                },
            ),
        )
        return IssuedApiKey(secret=generated.secret, record=record)
