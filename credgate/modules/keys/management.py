"""Operator-facing API key management: list, inspect, patch, revoke."""

from uuid import UUID

from credgate.core.base import BaseService
from credgate.core.errors import ApiKeyNotFound, ValidationError
from credgate.modules.audit.events import AuditAction, AuditEvent, AuditResource
from credgate.modules.audit.sink import AuditSink, emit_audit_event
from credgate.modules.keys.issuer import validate_expiry, validate_name
from credgate.modules.keys.lifecycle import KeyState, key_state
from credgate.modules.keys.models import (
    ApiKeyPatch,
    ApiKeyRecord,
    validate_permission_tokens,
)


def _audit_details(changes: dict) -> dict:
    return {
        field: value.isoformat() if hasattr(value, "isoformat") else value
        for field, value in changes.items()
    }


class ApiKeyManagementService(BaseService):
    def __init__(self, storage, audit_sink: AuditSink | None = None, **kwargs):
        super().__init__(storage, **kwargs)
        self.audit_sink = audit_sink

    async def list_client_api_keys(self, client_id: str) -> list[ApiKeyRecord]:
        return await self.storage.list_api_keys_by_client(client_id)

    async def get_api_key(self, client_id: str, api_key_id: UUID) -> ApiKeyRecord:
        """Raise ApiKeyNotFound for unknown keys and keys of another client alike."""
        record = await self.storage.find_api_key_by_id(api_key_id)
        if record is None or record.client_id != client_id:
            raise ApiKeyNotFound(api_key_id)
        return record

    def state_of(self, record: ApiKeyRecord) -> KeyState:
        return key_state(record, self.clock())

    def _validate_patch(self, record: ApiKeyRecord, patch: ApiKeyPatch) -> dict:
        changes = patch.changes()
        if "last_used_at" in changes:
            raise ValidationError("last_used_at", "is maintained by the validator")
        if not record.is_active:
            raise ValidationError("is_active", "revoked keys cannot be modified")
        if "name" in changes:
            changes["name"] = validate_name(changes["name"])
        if "permissions" in changes:
            if changes["permissions"] is None:
                raise ValidationError("permissions", "must not be null")
            changes["permissions"] = validate_permission_tokens(changes["permissions"])
        if "is_active" in changes and changes["is_active"] is None:
            raise ValidationError("is_active", "must not be null")
        if "expires_at" in changes:
            changes["expires_at"] = validate_expiry(changes["expires_at"], self.clock())
        return changes

    async def update_api_key(
        self,
        client_id: str,
        api_key_id: UUID,
        patch: ApiKeyPatch,
        *,
        actor: str,
    ) -> ApiKeyRecord:
        record = await self.get_api_key(client_id, api_key_id)
        changes = self._validate_patch(record, patch)
        if not changes:
            return record

        updated = await self.storage.update_api_key(
            api_key_id, ApiKeyPatch(**changes)
        )
        if updated is None:
            raise ApiKeyNotFound(api_key_id)

        action = (
            AuditAction.REVOKE if changes.get("is_active") is False else AuditAction.UPDATE
        )
        self.logger.info(
            "api_key_updated",
            api_key_id=str(api_key_id),
            client_id=client_id,
            fields=sorted(changes),
            action=action.value,
        )
        await emit_audit_event(
            self.audit_sink,
            AuditEvent(
                actor=actor,
                action=action,
                resource_type=AuditResource.API_KEY,
                resource_id=str(api_key_id),
                timestamp=self.clock(),
                details={"client_id": client_id, "changes": _audit_details(changes)},
            ),
        )
        return updated

    async def revoke_api_key(
        self, client_id: str, api_key_id: UUID, *, actor: str
    ) -> ApiKeyRecord:
        """Revocation is terminal. Revoking twice is a no-op without a second event."""
        record = await self.get_api_key(client_id, api_key_id)
        if not record.is_active:
            return record

        updated = await self.storage.update_api_key(
            api_key_id, ApiKeyPatch(is_active=False)
        )
        if updated is None:
            raise ApiKeyNotFound(api_key_id)

        self.logger.info(
            "api_key_revoked", api_key_id=str(api_key_id), client_id=client_id
        )
        await emit_audit_event(
            self.audit_sink,
            AuditEvent(
                actor=actor,
                action=AuditAction.REVOKE,
                resource_type=AuditResource.API_KEY,
                resource_id=str(api_key_id),
                timestamp=self.clock(),
                details={"client_id": client_id, "name": record.name},
            ),
        )
        return updated
