from datetime import timedelta

from fastapi import APIRouter, Query, Request

from credgate.api.core.constants import DEFAULT_USAGE_WINDOW_DAYS
from credgate.api.core.decorators.auth import require_api_key_permission
from credgate.api.core.dependencies import CurrentMachineDep, UsageMeterDep
from credgate.api.core.messages import APIResponse
from credgate.api.external.schemas import (
    CallerKey,
    CallerUsage,
    CallerUsageResponse,
    ClientInfo,
    ClientInfoResponse,
)
from credgate.modules.keys.models import ApiKeyPermission

router = APIRouter(prefix="/external", tags=["external"])


@router.get("/client", response_model=ClientInfoResponse)
@require_api_key_permission(ApiKeyPermission.CLIENT_READ)
async def get_client(
    request: Request,
    machine: CurrentMachineDep,
) -> ClientInfoResponse:
    """The client the calling key is scoped to."""
    key = machine.api_key
    return APIResponse.success(
        data=ClientInfo(
            client_id=key.client_id,
            api_key=CallerKey(
                id=key.id,
                name=key.name,
                key_prefix=key.key_prefix,
                permissions=key.permissions,
            ),
        )
    )


@router.get("/usage", response_model=CallerUsageResponse)
@require_api_key_permission(ApiKeyPermission.CLIENT_READ)
async def get_usage(
    request: Request,
    machine: CurrentMachineDep,
    meter: UsageMeterDep,
    days: int = Query(DEFAULT_USAGE_WINDOW_DAYS, ge=1, le=365),
) -> CallerUsageResponse:
    """Usage statistics of the calling key."""
    since = meter.clock() - timedelta(days=days)
    usage = await meter.get_usage_stats(machine.api_key.id, start=since)
    return APIResponse.success(
        data=CallerUsage(api_key_id=machine.api_key.id, days=days, usage=usage)
    )
