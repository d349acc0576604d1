import pytest
from sqlalchemy import select

from credgate.database.models import AuditLog
from credgate.modules.audit.events import AuditAction, AuditEvent, AuditResource
from credgate.modules.audit.sink import (
    DatabaseAuditSink,
    LoggingAuditSink,
    emit_audit_event,
)
from tests.utils.audit import FailingAuditSink, RecordingAuditSink


def make_event(**kwargs) -> AuditEvent:
    defaults = {
        "actor": "owner-1",
        "action": AuditAction.CREATE,
        "resource_type": AuditResource.API_KEY,
        "resource_id": "key-1",
        "details": {"client_id": "c1"},
    }
    return AuditEvent(**{**defaults, **kwargs})


@pytest.mark.asyncio
async def test_emit_delivers_events_in_order():
    sink = RecordingAuditSink()
    for action in (AuditAction.CREATE, AuditAction.UPDATE, AuditAction.REVOKE):
        assert await emit_audit_event(sink, make_event(action=action)) is True

    assert sink.actions == ["CREATE", "UPDATE", "REVOKE"]


@pytest.mark.asyncio
async def test_emit_swallows_sink_failures():
    sink = FailingAuditSink()
    assert await emit_audit_event(sink, make_event()) is False
    assert sink.attempts == 1


@pytest.mark.asyncio
async def test_emit_without_sink_is_noop():
    assert await emit_audit_event(None, make_event()) is False


@pytest.mark.asyncio
async def test_logging_sink_accepts_events():
    await LoggingAuditSink().emit(make_event())


@pytest.mark.asyncio
async def test_database_sink_appends_rows(session_factory):
    sink = DatabaseAuditSink(session_factory)

    await sink.emit(make_event(action=AuditAction.CREATE))
    await sink.emit(make_event(action=AuditAction.REVOKE))

    async with session_factory() as session:
        rows = (await session.execute(select(AuditLog))).scalars().all()
    assert sorted(r.action for r in rows) == ["CREATE", "REVOKE"]
    assert all(r.details == {"client_id": "c1"} for r in rows)
