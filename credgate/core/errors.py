"""Domain errors raised by the credential and permission services."""

from fastapi import status

from credgate.api.core.exceptions.base import CredGateException
from credgate.api.core.messages import MessageCode


class ValidationError(CredGateException):
    """Malformed input at creation or update time. Never retried."""

    def __init__(self, field: str, reason: str, offending: list[str] | None = None):
        self.field = field
        self.reason = reason
        self.offending = list(offending or [])
        details: dict = {"field": field, "reason": reason}
        if self.offending:
            details["offending"] = self.offending
        super().__init__(
            MessageCode.VALIDATION_ERROR, status.HTTP_400_BAD_REQUEST, details
        )

    def __str__(self) -> str:
        return f"{self.field}: {self.reason}"


class AuthorizationDenied(CredGateException):
    """Generic denial. Carries no detail about why access was refused."""

    def __init__(self, message_code: MessageCode = MessageCode.FORBIDDEN):
        super().__init__(message_code, status.HTTP_403_FORBIDDEN)


class StorageUnavailable(CredGateException):
    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            MessageCode.SERVICE_UNAVAILABLE, status.HTTP_503_SERVICE_UNAVAILABLE
        )

    def __str__(self) -> str:
        return f"storage unavailable during {self.operation}"


class TelemetryFailure(CredGateException):
    """Usage or audit delivery failed. Recovered locally, never surfaced."""

    def __init__(self, channel: str):
        self.channel = channel
        super().__init__(MessageCode.TELEMETRY_FAILURE)


class ApiKeyNotFound(CredGateException):
    def __init__(self, key_id):
        self.key_id = key_id
        super().__init__(
            MessageCode.API_KEY_NOT_FOUND,
            status.HTTP_404_NOT_FOUND,
            {"description": f"API key {key_id} not found"},
        )
