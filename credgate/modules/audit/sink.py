"""Audit sinks.

Emission is awaited inside the mutating call so events reach the sink in
order. A sink failure never fails the mutation that produced the event.
"""

from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from credgate.core.errors import TelemetryFailure
from credgate.database.connection import session_scope
from credgate.database.models import AuditLog
from credgate.modules.audit.events import AuditEvent
from credgate.utils.logger import get_logger

logger = get_logger(__name__)


class AuditSink(Protocol):
    async def emit(self, event: AuditEvent) -> None: ...


class LoggingAuditSink:
    """Writes each event as a structured log line."""

    def __init__(self, logger_name: str = "credgate.audit"):
        self.logger = get_logger(logger_name)

    async def emit(self, event: AuditEvent) -> None:
        self.logger.info(
            "audit_event",
            actor=event.actor,
            action=event.action.value,
            resource_type=event.resource_type.value,
            resource_id=event.resource_id,
            timestamp=event.timestamp.isoformat(),
            details=event.details,
        )


class DatabaseAuditSink:
    """Appends events to the ``audit_logs`` table using its own session."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def emit(self, event: AuditEvent) -> None:
        try:
            async with session_scope(self.session_factory) as session:
                session.add(
                    AuditLog(
                        actor=event.actor,
                        action=event.action.value,
                        resource_type=event.resource_type.value,
                        resource_id=event.resource_id,
                        details=event.details,
                        created_at=event.timestamp,
                    )
                )
        except (SQLAlchemyError, OSError) as e:
            raise TelemetryFailure("audit") from e


async def emit_audit_event(sink: AuditSink | None, event: AuditEvent) -> bool:
    """Deliver one event, logging and swallowing any failure.

    Returns whether delivery succeeded.
    """
    if sink is None:
        return False
    try:
        await sink.emit(event)
        return True
    except Exception as e:
        logger.error(
            "audit_emit_failed",
            action=event.action.value,
            resource_type=event.resource_type.value,
            resource_id=event.resource_id,
            error_type=type(e).__name__,
            error=str(e),
        )
        return False
