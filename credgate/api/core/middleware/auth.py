from fastapi import Request, status
from jose import JWTError, jwt

from credgate.api.core.constants import (
    API_KEY_ALLOWED_PREFIXES,
    API_KEY_PREFIX,
    BEARER_SCHEME,
    JWT_ALGORITHM,
    SKIP_AUTH_PATHS,
)
from credgate.api.core.exceptions.base import CredGateException
from credgate.api.core.messages import MessageCode
from credgate.core.context import MachineContext, OperatorContext
from credgate.modules.access.roles import parse_role
from credgate.modules.keys.models import ApiKeyRecord
from credgate.modules.keys.validator import CredentialValidator
from credgate.utils.logger import get_client_ip, get_logger
from credgate.utils.settings.auth import AuthSettings

logger = get_logger(__name__)


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token of a well-formed ``Bearer <token>`` header.

    The scheme name is matched case-insensitively.
    """
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0].lower() != BEARER_SCHEME.lower() or not parts[1]:
        return None
    return parts[1]


def decode_operator_token(token: str, settings: AuthSettings) -> OperatorContext:
    try:
        claims = jwt.decode(
            token,
            settings.JWT_SECRET.get_secret_value(),
            algorithms=[JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
        )
    except JWTError as e:
        logger.debug("jwt_rejected", error=str(e))
        raise CredGateException(
            MessageCode.INVALID_TOKEN, status.HTTP_401_UNAUTHORIZED
        )

    user_id = claims.get("sub")
    role = parse_role(claims.get("role"))
    if not user_id or role is None:
        raise CredGateException(
            MessageCode.INVALID_TOKEN,
            status.HTTP_401_UNAUTHORIZED,
            {"description": "Token is missing subject or role"},
        )
    return OperatorContext(
        user_id=str(user_id), role=role, agency_id=claims.get("agency_id")
    )


async def _authenticate_machine(request: Request, call_next):
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        raise CredGateException(MessageCode.UNAUTHORIZED, status.HTTP_401_UNAUTHORIZED)

    state = request.app.state
    validator = CredentialValidator(
        state.storage, clock=state.clock, dispatcher=state.dispatcher
    )
    record = await validator.validate(token)
    if record is None:
        raise CredGateException(
            MessageCode.INVALID_API_KEY, status.HTTP_401_UNAUTHORIZED
        )

    request.state.machine = MachineContext(api_key=record)
    logger.debug(
        "api_key_authenticated",
        api_key_id=str(record.id),
        key_prefix=record.key_prefix,
        client_id=record.client_id,
    )

    try:
        response = await call_next(request)
    except Exception:
        # Unhandled route errors are answered by the server error middleware
        _record_usage(request, record, status.HTTP_500_INTERNAL_SERVER_ERROR)
        raise

    _record_usage(request, record, response.status_code)
    return response


def _record_usage(request: Request, record: ApiKeyRecord, status_code: int) -> None:
    request.app.state.usage_meter.log_usage_in_background(
        record.id,
        request.url.path,
        request.method,
        status_code,
        tokens_consumed=getattr(request.state, "tokens_consumed", None),
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )


def _authenticate_operator(request: Request) -> OperatorContext:
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        raise CredGateException(MessageCode.AUTH_REQUIRED, status.HTTP_401_UNAUTHORIZED)
    if token.startswith(API_KEY_PREFIX):
        raise CredGateException(
            MessageCode.UNAUTHORIZED,
            status.HTTP_401_UNAUTHORIZED,
            {"description": "API keys are not accepted on this endpoint"},
        )
    return decode_operator_token(token, request.app.state.auth_settings)


async def auth_middleware(request: Request, call_next):
    """Authenticate machine callers on external paths and operators elsewhere.

    Errors are answered here rather than raised, so they never reach the
    server error middleware.
    """
    request.state.operator = None
    request.state.machine = None

    path = request.url.path
    if path in SKIP_AUTH_PATHS:
        return await call_next(request)

    try:
        if path.startswith(API_KEY_ALLOWED_PREFIXES):
            return await _authenticate_machine(request, call_next)
        request.state.operator = _authenticate_operator(request)
    except CredGateException as e:
        logger.info(
            "auth_rejected",
            path=path,
            message_code=e.message_code.value,
            status_code=e.status_code,
        )
        return e.to_response()

    return await call_next(request)
