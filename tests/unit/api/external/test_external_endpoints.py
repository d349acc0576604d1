"""API key authenticated endpoints."""

from datetime import timedelta

import pytest
from fastapi import status
from httpx import ASGITransport, AsyncClient

from credgate.api.core.messages import MessageCode
from credgate.main import create_app
from credgate.utils.settings.auth import AuthSettings
from tests.factories import make_api_key
from tests.utils.assertions import assert_error_response, assert_success_response
from tests.utils.storage import FailingStorage

CLIENT_URL = "/v1/external/client"


@pytest.mark.asyncio
async def test_valid_key_reads_its_client(client_factory, storage, app):
    record, secret = make_api_key(client_id="c1", permissions=["client:read"])
    await storage.create_api_key(record)

    async with client_factory(api_key=secret) as client:
        response = await client.get(CLIENT_URL)
    await app.state.dispatcher.drain()

    data = assert_success_response(response)
    assert data["client_id"] == "c1"
    assert data["api_key"]["key_prefix"] == record.key_prefix
    assert "hashed_key" not in data["api_key"]
    assert storage.api_keys[record.id].last_used_at is not None


@pytest.mark.asyncio
async def test_usage_is_recorded_after_response(client_factory, storage, app):
    record, secret = make_api_key(permissions=["client:read"])
    await storage.create_api_key(record)

    async with client_factory(api_key=secret) as client:
        await client.get(CLIENT_URL, headers={"user-agent": "agent/1.0"})
    await app.state.dispatcher.drain()

    assert len(storage.usage) == 1
    usage = storage.usage[0]
    assert usage.api_key_id == record.id
    assert usage.endpoint == CLIENT_URL
    assert usage.method == "GET"
    assert usage.status_code == 200
    assert usage.user_agent == "agent/1.0"


@pytest.mark.asyncio
async def test_missing_permission_is_forbidden_and_still_metered(
    client_factory, storage, app
):
    record, secret = make_api_key(permissions=["content:read"])
    await storage.create_api_key(record)

    async with client_factory(api_key=secret) as client:
        response = await client.get(CLIENT_URL)
    await app.state.dispatcher.drain()

    details = assert_error_response(
        response, MessageCode.INSUFFICIENT_PERMISSIONS, status.HTTP_403_FORBIDDEN
    )
    assert details["permission"] == "client:read"
    assert [u.status_code for u in storage.usage] == [403]


@pytest.mark.asyncio
async def test_wildcard_key_passes_every_check(client_factory, storage):
    record, secret = make_api_key(permissions=["*"])
    await storage.create_api_key(record)

    async with client_factory(api_key=secret) as client:
        response = await client.get("/v1/external/usage", params={"days": 7})

    data = assert_success_response(response)
    assert data["api_key_id"] == str(record.id)
    assert data["usage"]["total_requests"] == 0


@pytest.mark.asyncio
async def test_missing_or_malformed_header(public_client, client_factory):
    response = await public_client.get(CLIENT_URL)
    assert_error_response(
        response, MessageCode.UNAUTHORIZED, status.HTTP_401_UNAUTHORIZED
    )

    response = await public_client.get(
        CLIENT_URL, headers={"Authorization": "Token pk_abc"}
    )
    assert_error_response(
        response, MessageCode.UNAUTHORIZED, status.HTTP_401_UNAUTHORIZED
    )


@pytest.mark.asyncio
async def test_rejected_keys_are_indistinguishable(client_factory, storage, clock):
    _, unknown = make_api_key()
    expired, expired_secret = make_api_key(expires_at=clock() - timedelta(seconds=1))
    revoked, revoked_secret = make_api_key(is_active=False)
    await storage.create_api_key(expired)
    await storage.create_api_key(revoked)

    bodies = []
    for secret in (unknown, expired_secret, revoked_secret, "pk_short", "not-a-key"):
        async with client_factory(api_key=secret) as client:
            response = await client.get(CLIENT_URL)
        assert_error_response(
            response, MessageCode.INVALID_API_KEY, status.HTTP_401_UNAUTHORIZED
        )
        bodies.append(response.json())

    assert all(body == bodies[0] for body in bodies)


@pytest.mark.asyncio
async def test_malformed_key_never_reaches_storage(client_factory, storage):
    async with client_factory(api_key="pk_" + "z" * 64) as client:
        await client.get(CLIENT_URL)

    assert storage.calls == []


@pytest.mark.asyncio
async def test_storage_outage_is_service_unavailable():
    app = create_app(
        storage=FailingStorage(),
        auth_settings=AuthSettings(JWT_SECRET="test-jwt-secret-key-for-testing-only"),
    )
    _, secret = make_api_key()

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {secret}"},
    ) as client:
        response = await client.get(CLIENT_URL)

    assert_error_response(
        response, MessageCode.SERVICE_UNAVAILABLE, status.HTTP_503_SERVICE_UNAVAILABLE
    )


@pytest.mark.asyncio
async def test_unhandled_route_error_is_still_metered(app, storage):
    async def failing_route():
        raise RuntimeError("route crashed")

    app.add_api_route("/v1/external/failing", failing_route, methods=["GET"])
    record, secret = make_api_key(permissions=["client:read"])
    await storage.create_api_key(record)

    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
        headers={"Authorization": f"Bearer {secret}"},
    ) as client:
        response = await client.get("/v1/external/failing")
    await app.state.dispatcher.drain()

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert [(u.endpoint, u.status_code) for u in storage.usage] == [
        ("/v1/external/failing", 500)
    ]


@pytest.mark.asyncio
async def test_scheme_name_is_case_insensitive(public_client, storage):
    record, secret = make_api_key(permissions=["client:read"])
    await storage.create_api_key(record)

    response = await public_client.get(
        CLIENT_URL, headers={"Authorization": f"bearer {secret}"}
    )

    assert assert_success_response(response)["client_id"] == record.client_id
