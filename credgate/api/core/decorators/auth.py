"""Authorization decorators for operator and machine routes."""

from functools import wraps

from fastapi import Request, status

from credgate.api.core.exceptions.base import CredGateException
from credgate.api.core.messages import MessageCode
from credgate.core.errors import AuthorizationDenied
from credgate.modules.access.resolver import PermissionResolver
from credgate.modules.access.roles import OperatorPermission
from credgate.modules.keys.models import ApiKeyPermission
from credgate.modules.keys.validator import CredentialValidator
from credgate.utils.logger import get_logger

logger = get_logger(__name__)


def _find_request(args, kwargs) -> Request:
    for value in (*args, *kwargs.values()):
        if isinstance(value, Request):
            return value
    raise CredGateException(
        MessageCode.AUTH_REQUIRED,
        status.HTTP_401_UNAUTHORIZED,
        {"description": "Request object not found"},
    )


def require_client_permission(permission: OperatorPermission | None = None):
    """
    Decorator gating operator routes scoped to ``{client_id}``.

    Args:
        permission: Optional permission the operator must hold on the client

    Client access is checked first and denied without detail. The permission
    check runs only for operators who can see the client.
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            request = _find_request(args, kwargs)
            operator = getattr(request.state, "operator", None)
            if operator is None:
                raise CredGateException(
                    MessageCode.AUTH_REQUIRED, status.HTTP_401_UNAUTHORIZED
                )

            client_id = kwargs.get("client_id") or request.path_params.get("client_id")
            state = request.app.state
            resolver = PermissionResolver(
                state.storage, clock=state.clock, dispatcher=state.dispatcher
            )

            if not await resolver.can_access_client(
                operator.user_id, operator.role, client_id, operator.agency_id
            ):
                logger.info(
                    "client_access_denied",
                    user_id=operator.user_id,
                    role=operator.role.value,
                )
                raise AuthorizationDenied()

            if permission is not None and not await resolver.has_permission(
                operator.user_id, operator.role, client_id, permission
            ):
                raise CredGateException(
                    MessageCode.INSUFFICIENT_PERMISSIONS,
                    status.HTTP_403_FORBIDDEN,
                    details={"permission": permission.value},
                )

            return await func(*args, **kwargs)

        return wrapper

    return decorator


def require_api_key_permission(permission: ApiKeyPermission):
    """Decorator checking that the calling API key carries ``permission``."""

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            request = _find_request(args, kwargs)
            machine = getattr(request.state, "machine", None)
            if machine is None:
                raise CredGateException(
                    MessageCode.UNAUTHORIZED, status.HTTP_401_UNAUTHORIZED
                )
            if not CredentialValidator.has_permission(machine.api_key, permission):
                raise CredGateException(
                    MessageCode.INSUFFICIENT_PERMISSIONS,
                    status.HTTP_403_FORBIDDEN,
                    details={"permission": permission.value},
                )
            return await func(*args, **kwargs)

        return wrapper

    return decorator
