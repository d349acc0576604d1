"""Global test configuration and fixtures for CredGate."""

from collections.abc import AsyncGenerator
from typing import Callable

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from credgate.api.core.constants import JWT_ALGORITHM
from credgate.core.background import BackgroundDispatcher
from credgate.database.models import Base
from credgate.main import create_app
from credgate.modules.access.resolver import PermissionResolver
from credgate.modules.keys.issuer import CredentialIssuer
from credgate.modules.keys.management import ApiKeyManagementService
from credgate.modules.keys.validator import CredentialValidator
from credgate.modules.usage.meter import UsageMeter
from credgate.storage.sqlalchemy import SqlAlchemyStorage
from credgate.utils.settings.auth import AuthSettings
from tests.factories import ApiKeyRecordFactory, UsageRecordFactory
from tests.utils.audit import RecordingAuditSink
from tests.utils.clock import FrozenClock
from tests.utils.storage import InMemoryStorage

TEST_JWT_SECRET = "test-jwt-secret-key-for-testing-only"
TEST_BASE_URL = "http://test-credgate-api"


@pytest.fixture
def api_key_factory():
    return ApiKeyRecordFactory


@pytest.fixture
def usage_factory():
    return UsageRecordFactory


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def storage() -> InMemoryStorage:
    storage = InMemoryStorage()
    storage.clients.update(
        {"c1": "agency-1", "c2": "agency-1", "agency-2-client": "agency-2"}
    )
    return storage


@pytest.fixture
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def dispatcher() -> BackgroundDispatcher:
    return BackgroundDispatcher()


@pytest.fixture
def service_kwargs(clock, dispatcher) -> dict:
    return {"clock": clock, "dispatcher": dispatcher}


@pytest.fixture
def issuer(storage, audit_sink, service_kwargs) -> CredentialIssuer:
    return CredentialIssuer(storage, audit_sink, **service_kwargs)


@pytest.fixture
def key_service(storage, audit_sink, service_kwargs) -> ApiKeyManagementService:
    return ApiKeyManagementService(storage, audit_sink, **service_kwargs)


@pytest.fixture
def validator(storage, service_kwargs) -> CredentialValidator:
    return CredentialValidator(storage, **service_kwargs)


@pytest.fixture
def usage_meter(storage, service_kwargs) -> UsageMeter:
    return UsageMeter(storage, retry_queue_size=10, **service_kwargs)


@pytest.fixture
def resolver(storage, audit_sink, service_kwargs) -> PermissionResolver:
    return PermissionResolver(storage, audit_sink, **service_kwargs)


# Database fixtures
@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """File-backed SQLite database with all tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'credgate.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def sql_storage(session_factory) -> SqlAlchemyStorage:
    return SqlAlchemyStorage(session_factory)


# Application fixtures
@pytest.fixture
def app(storage, audit_sink, clock) -> FastAPI:
    return create_app(
        storage=storage,
        audit_sink=audit_sink,
        clock=clock,
        auth_settings=AuthSettings(JWT_SECRET=TEST_JWT_SECRET),
    )


@pytest.fixture()
def jwt_token_factory() -> Callable[..., str]:
    """Factory for creating operator JWT tokens."""

    def create_token(
        user_id: str,
        role: str = "OWNER",
        agency_id: str = "agency-1",
        audience: str = "authenticated",
        secret: str = TEST_JWT_SECRET,
    ) -> str:
        payload = {
            "sub": user_id,
            "role": role,
            "agency_id": agency_id,
            "aud": audience,
        }
        return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)

    return create_token


@pytest_asyncio.fixture
async def public_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client without credentials."""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url=TEST_BASE_URL
    ) as ac:
        yield ac


@pytest.fixture
def client_factory(app: FastAPI, jwt_token_factory):
    """Factory for HTTP clients authenticated as an operator or with an API key."""

    def create_client(
        *,
        user_id: str = "owner-1",
        role: str = "OWNER",
        agency_id: str | None = "agency-1",
        api_key: str | None = None,
    ) -> AsyncClient:
        token = api_key or jwt_token_factory(user_id, role, agency_id)
        return AsyncClient(
            transport=ASGITransport(app=app),
            base_url=TEST_BASE_URL,
            headers={"Authorization": f"Bearer {token}"},
        )

    return create_client


@pytest_asyncio.fixture
async def owner_client(client_factory) -> AsyncGenerator[AsyncClient, None]:
    async with client_factory(user_id="owner-1", role="OWNER") as ac:
        yield ac
