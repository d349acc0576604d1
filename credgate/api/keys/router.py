from datetime import timedelta
from uuid import UUID

from fastapi import APIRouter, Query, Request, status

from credgate.api.core.constants import DEFAULT_USAGE_WINDOW_DAYS, RECENT_USAGE_LIMIT
from credgate.api.core.decorators.auth import require_client_permission
from credgate.api.core.dependencies import (
    ApiKeyManagementServiceDep,
    CredentialIssuerDep,
    CurrentOperatorDep,
    UsageMeterDep,
)
from credgate.api.core.messages import APIResponse, MessageCode
from credgate.api.keys.schemas import (
    KeyCreateRequest,
    KeyCreateResponse,
    KeyDetail,
    KeyDetailResponse,
    KeyList,
    KeyListResponse,
    KeyModel,
    KeyResponse,
    KeyUpdateRequest,
    KeyWithSecret,
    UsageRecordModel,
)
from credgate.modules.access.roles import OperatorPermission
from credgate.modules.keys.lifecycle import KeyState
from credgate.modules.keys.models import ApiKeyPatch, ApiKeyRecord
from credgate.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/clients/{client_id}/api-keys", tags=["keys"])


def to_key_model(record: ApiKeyRecord, state: KeyState) -> KeyModel:
    return KeyModel(
        **record.model_dump(exclude={"hashed_key"}),
        state=state,
    )


@router.post("", response_model=KeyCreateResponse, status_code=status.HTTP_201_CREATED)
@require_client_permission(OperatorPermission.MANAGE_API_KEYS)
async def create_key(
    client_id: str,
    request: Request,
    key_data: KeyCreateRequest,
    issuer: CredentialIssuerDep,
    current_operator: CurrentOperatorDep,
) -> KeyCreateResponse:
    """Create a new API key. The secret is only ever returned here."""
    issued = await issuer.create_api_key(
        client_id=client_id,
        name=key_data.name,
        permissions=key_data.permissions,
        expires_at=key_data.expires_at,
        actor=current_operator.user_id,
    )
    key = to_key_model(issued.record, KeyState.ACTIVE)
    return APIResponse.success(
        message_code=MessageCode.API_KEY_CREATED,
        data=KeyWithSecret(**key.model_dump(), key=issued.secret),
    )


@router.get("", response_model=KeyListResponse)
@require_client_permission(OperatorPermission.MANAGE_API_KEYS)
async def list_keys(
    client_id: str,
    request: Request,
    service: ApiKeyManagementServiceDep,
) -> KeyListResponse:
    """List all API keys of a client, newest first, with lifecycle state."""
    records = await service.list_client_api_keys(client_id)
    keys = [to_key_model(r, service.state_of(r)) for r in records]
    return APIResponse.success(data=KeyList(keys=keys, total=len(keys)))


@router.get("/{key_id}", response_model=KeyDetailResponse)
@require_client_permission(OperatorPermission.MANAGE_API_KEYS)
async def get_key(
    client_id: str,
    key_id: UUID,
    request: Request,
    service: ApiKeyManagementServiceDep,
    meter: UsageMeterDep,
    days: int = Query(DEFAULT_USAGE_WINDOW_DAYS, ge=1, le=365),
) -> KeyDetailResponse:
    """Key details with usage statistics for the last ``days`` days."""
    record = await service.get_api_key(client_id, key_id)
    since = service.clock() - timedelta(days=days)
    usage = await meter.get_usage_stats(record.id, start=since)
    recent = await meter.get_recent_usage(record.id, since, RECENT_USAGE_LIMIT)
    return APIResponse.success(
        data=KeyDetail(
            key=to_key_model(record, service.state_of(record)),
            usage=usage,
            recent_usage=[UsageRecordModel.model_validate(r) for r in recent],
        )
    )


@router.patch("/{key_id}", response_model=KeyResponse)
@require_client_permission(OperatorPermission.MANAGE_API_KEYS)
async def update_key(
    client_id: str,
    key_id: UUID,
    request: Request,
    key_data: KeyUpdateRequest,
    service: ApiKeyManagementServiceDep,
    current_operator: CurrentOperatorDep,
) -> KeyResponse:
    """Update name, permissions, expiry or revoke through ``is_active=false``."""
    patch = ApiKeyPatch(**key_data.model_dump(exclude_unset=True))
    record = await service.update_api_key(
        client_id, key_id, patch, actor=current_operator.user_id
    )
    return APIResponse.success(
        message_code=MessageCode.API_KEY_UPDATED,
        data=to_key_model(record, service.state_of(record)),
    )


@router.delete("/{key_id}", response_model=KeyResponse)
@require_client_permission(OperatorPermission.MANAGE_API_KEYS)
async def revoke_key(
    client_id: str,
    key_id: UUID,
    request: Request,
    service: ApiKeyManagementServiceDep,
    current_operator: CurrentOperatorDep,
) -> KeyResponse:
    """Revoke an API key. Usage history is kept."""
    record = await service.revoke_api_key(
        client_id, key_id, actor=current_operator.user_id
    )
    return APIResponse.success(
        message_code=MessageCode.API_KEY_REVOKED,
        data=to_key_model(record, service.state_of(record)),
    )
