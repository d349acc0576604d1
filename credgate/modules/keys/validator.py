"""Resolves a presented secret to an active key record, or nothing."""

from datetime import datetime
from uuid import UUID

from credgate.core.base import BaseService
from credgate.modules.keys.models import ApiKeyPatch, ApiKeyPermission, ApiKeyRecord
from credgate.utils.hashing import HashingService


class CredentialValidator(BaseService):
    async def validate(self, raw_secret: str | None) -> ApiKeyRecord | None:
        """Return the matching active, unexpired record or None.

        Unknown, expired and revoked secrets are indistinguishable here.
        StorageUnavailable propagates so callers deny.
        """
        if not HashingService.is_well_formed(raw_secret):
            return None

        now = self.clock()
        record = await self.storage.find_api_key_by_hash(
            HashingService.hash_api_key(raw_secret), now
        )
        if record is None:
            return None

        self.dispatcher.dispatch(
            self._touch_last_used(record.id, now), name="api_key_last_used"
        )
        return record

    async def _touch_last_used(self, api_key_id: UUID, now: datetime) -> None:
        await self.storage.update_api_key(api_key_id, ApiKeyPatch(last_used_at=now))

    @staticmethod
    def has_permission(record: ApiKeyRecord, token: ApiKeyPermission | str) -> bool:
        """Flat membership test with ``*`` as the only wildcard."""
        if isinstance(token, ApiKeyPermission):
            token = token.value
        return token in record.permissions or ApiKeyPermission.ALL.value in record.permissions
