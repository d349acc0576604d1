"""Async SQLAlchemy implementation of the storage contract."""

from datetime import datetime
from functools import wraps
from uuid import UUID

from sqlalchemy import case, func, or_, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from credgate.core.errors import StorageUnavailable
from credgate.database.connection import session_scope
from credgate.database.models import ApiKey, ApiKeyUsage, Client, UserAccess
from credgate.modules.keys.models import (
    ApiKeyPatch,
    ApiKeyRecord,
    UsageRecord,
    UsageStats,
    sort_endpoint_counts,
)
from credgate.storage.base import Storage
from credgate.utils.clock import ensure_utc
from credgate.utils.logger import get_logger

logger = get_logger(__name__)


def storage_operation(func):
    """Translate driver and connection errors into StorageUnavailable."""

    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                "storage_operation_failed",
                operation=func.__name__,
                error_type=type(e).__name__,
            )
            raise StorageUnavailable(func.__name__) from e

    return wrapper


class SqlAlchemyStorage(Storage):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @storage_operation
    async def create_api_key(self, record: ApiKeyRecord) -> ApiKeyRecord:
        async with session_scope(self.session_factory) as session:
            api_key = ApiKey(**record.model_dump())
            session.add(api_key)
            await session.flush()
            return ApiKeyRecord.model_validate(api_key)

    @storage_operation
    async def find_api_key_by_hash(
        self, hashed_key: str, now: datetime
    ) -> ApiKeyRecord | None:
        now = ensure_utc(now)
        stmt = select(ApiKey).where(
            ApiKey.hashed_key == hashed_key,
            ApiKey.is_active.is_(True),
            or_(ApiKey.expires_at.is_(None), ApiKey.expires_at > now),
        )
        async with self.session_factory() as session:
            api_key = (await session.execute(stmt)).scalar_one_or_none()
            return ApiKeyRecord.model_validate(api_key) if api_key else None

    @storage_operation
    async def find_api_key_by_id(self, api_key_id: UUID) -> ApiKeyRecord | None:
        async with self.session_factory() as session:
            api_key = await session.get(ApiKey, api_key_id)
            return ApiKeyRecord.model_validate(api_key) if api_key else None

    @storage_operation
    async def update_api_key(
        self, api_key_id: UUID, patch: ApiKeyPatch
    ) -> ApiKeyRecord | None:
        async with session_scope(self.session_factory) as session:
            api_key = await session.get(ApiKey, api_key_id)
            if api_key is None:
                return None
            for field, value in patch.changes().items():
                setattr(api_key, field, value)
            await session.flush()
            return ApiKeyRecord.model_validate(api_key)

    @storage_operation
    async def list_api_keys_by_client(self, client_id: str) -> list[ApiKeyRecord]:
        stmt = (
            select(ApiKey)
            .where(ApiKey.client_id == client_id)
            .order_by(ApiKey.created_at.desc())
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return [ApiKeyRecord.model_validate(k) for k in result.scalars().all()]

    @storage_operation
    async def insert_usage_record(self, record: UsageRecord) -> None:
        async with session_scope(self.session_factory) as session:
            session.add(ApiKeyUsage(**record.model_dump()))

    def _usage_conditions(self, api_key_id, start, end) -> list:
        conditions = [ApiKeyUsage.api_key_id == api_key_id]
        if start is not None:
            conditions.append(ApiKeyUsage.created_at >= ensure_utc(start))
        if end is not None:
            conditions.append(ApiKeyUsage.created_at <= ensure_utc(end))
        return conditions

    @storage_operation
    async def aggregate_usage(
        self,
        api_key_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> UsageStats:
        conditions = self._usage_conditions(api_key_id, start, end)
        totals_stmt = select(
            func.count(ApiKeyUsage.id),
            func.coalesce(
                func.sum(
                    case((ApiKeyUsage.status_code.between(200, 299), 1), else_=0)
                ),
                0,
            ),
            func.coalesce(
                func.sum(case((ApiKeyUsage.status_code >= 400, 1), else_=0)), 0
            ),
            func.coalesce(func.sum(ApiKeyUsage.tokens_consumed), 0),
        ).where(*conditions)
        endpoint_stmt = (
            select(ApiKeyUsage.endpoint, func.count(ApiKeyUsage.id))
            .where(*conditions)
            .group_by(ApiKeyUsage.endpoint)
        )
        async with self.session_factory() as session:
            total, successful, failed, tokens = (
                await session.execute(totals_stmt)
            ).one()
            endpoint_rows = (await session.execute(endpoint_stmt)).all()

        return UsageStats(
            total_requests=total or 0,
            successful_requests=int(successful or 0),
            failed_requests=int(failed or 0),
            total_tokens_consumed=int(tokens or 0),
            requests_by_endpoint=sort_endpoint_counts(
                (endpoint, count) for endpoint, count in endpoint_rows
            ),
        )

    @storage_operation
    async def list_usage_records(
        self, api_key_id: UUID, since: datetime | None = None, limit: int = 50
    ) -> list[UsageRecord]:
        stmt = (
            select(ApiKeyUsage)
            .where(*self._usage_conditions(api_key_id, since, None))
            .order_by(ApiKeyUsage.created_at.desc())
            .limit(limit)
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return [UsageRecord.model_validate(r) for r in result.scalars().all()]

    @storage_operation
    async def find_user_permission_overrides(self, user_id: str) -> str | None:
        stmt = select(UserAccess.client_permissions).where(
            UserAccess.user_id == user_id
        )
        async with self.session_factory() as session:
            return (await session.execute(stmt)).scalar_one_or_none()

    @storage_operation
    async def save_user_permission_overrides(self, user_id: str, blob: str) -> None:
        async with session_scope(self.session_factory) as session:
            access = await session.get(UserAccess, user_id)
            if access is None:
                session.add(UserAccess(user_id=user_id, client_permissions=blob))
            else:
                access.client_permissions = blob

    @storage_operation
    async def find_user_client_assignments(self, user_id: str) -> str | None:
        stmt = select(UserAccess.assigned_client_ids).where(
            UserAccess.user_id == user_id
        )
        async with self.session_factory() as session:
            return (await session.execute(stmt)).scalar_one_or_none()

    @storage_operation
    async def find_client_agency(self, client_id: str) -> str | None:
        stmt = select(Client.agency_id).where(Client.id == client_id)
        async with self.session_factory() as session:
            return (await session.execute(stmt)).scalar_one_or_none()

    @storage_operation
    async def list_agency_client_ids(self, agency_id: str) -> list[str]:
        stmt = (
            select(Client.id).where(Client.agency_id == agency_id).order_by(Client.id)
        )
        async with self.session_factory() as session:
            return list((await session.execute(stmt)).scalars().all())

    @storage_operation
    async def ping(self) -> bool:
        async with self.session_factory() as session:
            await session.execute(text("SELECT 1"))
        return True

    async def close(self) -> None:
        bind = self.session_factory.kw.get("bind")
        if bind is not None:
            await bind.dispose()
