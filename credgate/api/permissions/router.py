from fastapi import APIRouter, Request

from credgate.api.core.decorators.auth import require_client_permission
from credgate.api.core.dependencies import CurrentOperatorDep, PermissionResolverDep
from credgate.api.core.messages import APIResponse, MessageCode
from credgate.api.permissions.schemas import (
    ClientOverrides,
    ClientOverridesResponse,
    OverridesUpdateRequest,
    ResolvedPermissions,
    ResolvedPermissionsResponse,
)
from credgate.modules.access.roles import OperatorPermission

router = APIRouter(prefix="/clients/{client_id}/permissions", tags=["permissions"])


@router.get("", response_model=ResolvedPermissionsResponse)
@require_client_permission()
async def get_my_permissions(
    client_id: str,
    request: Request,
    resolver: PermissionResolverDep,
    current_operator: CurrentOperatorDep,
) -> ResolvedPermissionsResponse:
    """Effective permissions of the calling operator on this client."""
    permissions = await resolver.resolve(
        current_operator.user_id, current_operator.role, client_id
    )
    return APIResponse.success(
        data=ResolvedPermissions(
            client_id=client_id,
            user_id=current_operator.user_id,
            role=current_operator.role,
            permissions=sorted(p.value for p in permissions),
        )
    )


@router.get("/users/{user_id}", response_model=ClientOverridesResponse)
@require_client_permission(OperatorPermission.MANAGE_PERMISSIONS)
async def get_user_overrides(
    client_id: str,
    user_id: str,
    request: Request,
    resolver: PermissionResolverDep,
) -> ClientOverridesResponse:
    """Per-client override grants stored for a user."""
    permissions = await resolver.get_client_overrides(user_id, client_id)
    return APIResponse.success(
        data=ClientOverrides(
            client_id=client_id, user_id=user_id, permissions=permissions
        )
    )


@router.put("/users/{user_id}", response_model=ClientOverridesResponse)
@require_client_permission(OperatorPermission.MANAGE_PERMISSIONS)
async def set_user_overrides(
    client_id: str,
    user_id: str,
    request: Request,
    body: OverridesUpdateRequest,
    resolver: PermissionResolverDep,
    current_operator: CurrentOperatorDep,
) -> ClientOverridesResponse:
    """Replace a user's override grants on this client. An empty list clears them."""
    permissions = await resolver.set_client_overrides(
        user_id, client_id, body.permissions, actor=current_operator.user_id
    )
    return APIResponse.success(
        message_code=MessageCode.PERMISSIONS_UPDATED,
        data=ClientOverrides(
            client_id=client_id, user_id=user_id, permissions=permissions
        ),
    )
