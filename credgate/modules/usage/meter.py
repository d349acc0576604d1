"""Per-call usage metering and aggregate statistics."""

from collections import deque
from datetime import datetime
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from credgate.api.core.constants import RECENT_USAGE_LIMIT
from credgate.core.base import BaseService
from credgate.modules.keys.models import UsageRecord, UsageStats


class UsageMeter(BaseService):
    """Appends usage records without ever failing the caller.

    Records that could not be written are kept in a bounded retry queue,
    oldest dropped first, until ``retry_failed`` is called.
    """

    def __init__(self, storage, retry_queue_size: int = 1000, **kwargs):
        super().__init__(storage, **kwargs)
        self.retry_queue: deque[UsageRecord] = deque(maxlen=retry_queue_size)

    async def log_usage(
        self,
        api_key_id: UUID,
        endpoint: str,
        method: str,
        status_code: int,
        tokens_consumed: int | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> bool:
        try:
            record = UsageRecord(
                api_key_id=api_key_id,
                endpoint=endpoint,
                method=method,
                status_code=status_code,
                tokens_consumed=tokens_consumed,
                ip_address=ip_address,
                user_agent=user_agent,
                created_at=self.clock(),
            )
        except PydanticValidationError as e:
            self.logger.warning(
                "usage_record_invalid", endpoint=endpoint, errors=e.error_count()
            )
            return False
        return await self._write(record)

    def log_usage_in_background(
        self, api_key_id: UUID, endpoint: str, method: str, status_code: int, **kwargs
    ):
        """Dispatch ``log_usage`` without awaiting it."""
        return self.dispatcher.dispatch(
            self.log_usage(api_key_id, endpoint, method, status_code, **kwargs),
            name="usage_log",
        )

    async def _write(self, record: UsageRecord) -> bool:
        try:
            await self.storage.insert_usage_record(record)
            return True
        except Exception as e:
            self.retry_queue.append(record)
            self.logger.warning(
                "usage_log_failed",
                api_key_id=str(record.api_key_id),
                endpoint=record.endpoint,
                error_type=type(e).__name__,
                queued=len(self.retry_queue),
            )
            return False

    async def retry_failed(self) -> int:
        """Re-attempt queued records once each. Returns how many were written."""
        written = 0
        for _ in range(len(self.retry_queue)):
            record = self.retry_queue.popleft()
            try:
                await self.storage.insert_usage_record(record)
                written += 1
            except Exception as e:
                self.retry_queue.append(record)
                self.logger.warning(
                    "usage_retry_failed",
                    api_key_id=str(record.api_key_id),
                    error_type=type(e).__name__,
                )
        if written:
            self.logger.info("usage_retry_flushed", written=written)
        return written

    async def get_usage_stats(
        self,
        api_key_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> UsageStats:
        if start is not None and end is not None and start > end:
            return UsageStats.empty()
        return await self.storage.aggregate_usage(api_key_id, start, end)

    async def get_recent_usage(
        self,
        api_key_id: UUID,
        since: datetime | None = None,
        limit: int = RECENT_USAGE_LIMIT,
    ) -> list[UsageRecord]:
        return await self.storage.list_usage_records(api_key_id, since, limit)
