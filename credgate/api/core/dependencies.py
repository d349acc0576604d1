from typing import Annotated

from fastapi import Depends, Request, status

from credgate.api.core.exceptions.base import CredGateException
from credgate.api.core.messages import MessageCode
from credgate.core.context import MachineContext, OperatorContext
from credgate.modules.access.resolver import PermissionResolver
from credgate.modules.audit.sink import AuditSink
from credgate.modules.keys.issuer import CredentialIssuer
from credgate.modules.keys.management import ApiKeyManagementService
from credgate.modules.usage.meter import UsageMeter
from credgate.storage.base import Storage


def get_storage(request: Request) -> Storage:
    """Get the storage backend from app state."""
    return request.app.state.storage


def get_audit_sink(request: Request) -> AuditSink | None:
    return request.app.state.audit_sink


def _service_kwargs(request: Request) -> dict:
    return {
        "clock": request.app.state.clock,
        "dispatcher": request.app.state.dispatcher,
    }


async def get_credential_issuer(request: Request) -> CredentialIssuer:
    return CredentialIssuer(
        get_storage(request), get_audit_sink(request), **_service_kwargs(request)
    )


async def get_api_key_management_service(
    request: Request,
) -> ApiKeyManagementService:
    return ApiKeyManagementService(
        get_storage(request), get_audit_sink(request), **_service_kwargs(request)
    )


async def get_permission_resolver(request: Request) -> PermissionResolver:
    return PermissionResolver(
        get_storage(request), get_audit_sink(request), **_service_kwargs(request)
    )


async def get_usage_meter(request: Request) -> UsageMeter:
    """The meter is shared so its retry queue outlives a single request."""
    return request.app.state.usage_meter


async def get_current_operator(request: Request) -> OperatorContext:
    """Assumes auth middleware has set request.state.operator."""
    operator = getattr(request.state, "operator", None)
    if operator is None:
        raise CredGateException(MessageCode.AUTH_REQUIRED, status.HTTP_401_UNAUTHORIZED)
    return operator


async def get_current_machine(request: Request) -> MachineContext:
    """Assumes auth middleware has set request.state.machine."""
    machine = getattr(request.state, "machine", None)
    if machine is None:
        raise CredGateException(MessageCode.UNAUTHORIZED, status.HTTP_401_UNAUTHORIZED)
    return machine


StorageDep = Annotated[Storage, Depends(get_storage)]
CredentialIssuerDep = Annotated[CredentialIssuer, Depends(get_credential_issuer)]
ApiKeyManagementServiceDep = Annotated[
    ApiKeyManagementService, Depends(get_api_key_management_service)
]
PermissionResolverDep = Annotated[PermissionResolver, Depends(get_permission_resolver)]
UsageMeterDep = Annotated[UsageMeter, Depends(get_usage_meter)]

CurrentOperatorDep = Annotated[OperatorContext, Depends(get_current_operator)]
CurrentMachineDep = Annotated[MachineContext, Depends(get_current_machine)]
