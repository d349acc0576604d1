from fastapi import APIRouter, Request

from credgate.api.clients.schemas import AccessibleClients, AccessibleClientsResponse
from credgate.api.core.dependencies import CurrentOperatorDep, PermissionResolverDep
from credgate.api.core.messages import APIResponse

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("/accessible", response_model=AccessibleClientsResponse)
async def list_accessible_clients(
    request: Request,
    resolver: PermissionResolverDep,
    current_operator: CurrentOperatorDep,
) -> AccessibleClientsResponse:
    """Clients of the operator's agency that the operator can act on."""
    client_ids = await resolver.get_accessible_client_ids(
        current_operator.user_id, current_operator.role, current_operator.agency_id
    )
    return APIResponse.success(
        data=AccessibleClients(
            user_id=current_operator.user_id,
            role=current_operator.role,
            agency_id=current_operator.agency_id,
            client_ids=client_ids,
            total=len(client_ids),
        )
    )
