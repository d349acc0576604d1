"""Accessible client listing."""

import json

import pytest
from fastapi import status

from credgate.api.core.messages import MessageCode
from tests.factories import make_api_key
from tests.utils.assertions import assert_error_response, assert_success_response

ACCESSIBLE_URL = "/v1/clients/accessible"


@pytest.mark.asyncio
async def test_owner_sees_every_client_of_own_agency(owner_client):
    data = assert_success_response(await owner_client.get(ACCESSIBLE_URL))

    assert data["user_id"] == "owner-1"
    assert data["role"] == "OWNER"
    assert data["agency_id"] == "agency-1"
    assert data["client_ids"] == ["c1", "c2"]
    assert data["total"] == 2


@pytest.mark.asyncio
async def test_editor_sees_assigned_clients_within_agency(client_factory, storage):
    storage.assignments["editor-1"] = json.dumps(["c2", "agency-2-client"])

    async with client_factory(user_id="editor-1", role="EDITOR") as client:
        data = assert_success_response(await client.get(ACCESSIBLE_URL))

    assert data["client_ids"] == ["c2"]
    assert data["total"] == 1


@pytest.mark.asyncio
async def test_operator_without_agency_sees_nothing(client_factory):
    async with client_factory(user_id="owner-1", agency_id=None) as client:
        data = assert_success_response(await client.get(ACCESSIBLE_URL))

    assert data["agency_id"] is None
    assert data["client_ids"] == []
    assert data["total"] == 0


@pytest.mark.asyncio
async def test_requires_operator_token(public_client, client_factory, storage):
    response = await public_client.get(ACCESSIBLE_URL)
    assert_error_response(
        response, MessageCode.AUTH_REQUIRED, status.HTTP_401_UNAUTHORIZED
    )

    record, secret = make_api_key()
    await storage.create_api_key(record)
    async with client_factory(api_key=secret) as client:
        response = await client.get(ACCESSIBLE_URL)
    assert_error_response(
        response, MessageCode.UNAUTHORIZED, status.HTTP_401_UNAUTHORIZED
    )
