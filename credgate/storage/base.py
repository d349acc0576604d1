"""Storage contract required by the credential and permission services."""

from abc import ABC, abstractmethod
from datetime import datetime
from uuid import UUID

from credgate.modules.keys.models import (
    ApiKeyPatch,
    ApiKeyRecord,
    UsageRecord,
    UsageStats,
)


class Storage(ABC):
    """Durable store for key records, usage records and operator grants.

    Implementations raise ``StorageUnavailable`` when the backing store cannot
    be reached. Nothing here may cache records between calls.
    """

    @abstractmethod
    async def create_api_key(self, record: ApiKeyRecord) -> ApiKeyRecord: ...

    @abstractmethod
    async def find_api_key_by_hash(
        self, hashed_key: str, now: datetime
    ) -> ApiKeyRecord | None:
        """Return the record only if it is active and not expired at ``now``."""

    @abstractmethod
    async def find_api_key_by_id(self, api_key_id: UUID) -> ApiKeyRecord | None: ...

    @abstractmethod
    async def update_api_key(
        self, api_key_id: UUID, patch: ApiKeyPatch
    ) -> ApiKeyRecord | None: ...

    @abstractmethod
    async def list_api_keys_by_client(self, client_id: str) -> list[ApiKeyRecord]:
        """Newest first."""

    @abstractmethod
    async def insert_usage_record(self, record: UsageRecord) -> None: ...

    @abstractmethod
    async def aggregate_usage(
        self,
        api_key_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> UsageStats:
        """Inclusive range. An empty range yields ``UsageStats.empty()``."""

    @abstractmethod
    async def list_usage_records(
        self, api_key_id: UUID, since: datetime | None = None, limit: int = 50
    ) -> list[UsageRecord]:
        """Newest first."""

    @abstractmethod
    async def find_user_permission_overrides(self, user_id: str) -> str | None:
        """Raw override blob as persisted. Parsing is the caller's concern."""

    @abstractmethod
    async def save_user_permission_overrides(self, user_id: str, blob: str) -> None: ...

    @abstractmethod
    async def find_user_client_assignments(self, user_id: str) -> str | None:
        """Raw assigned-client blob as persisted."""

    @abstractmethod
    async def find_client_agency(self, client_id: str) -> str | None:
        """Agency owning the client, or None for an unknown client."""

    @abstractmethod
    async def list_agency_client_ids(self, agency_id: str) -> list[str]:
        """Ids of every client of the agency, sorted."""

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None
