from datetime import timedelta

from credgate.modules.keys.lifecycle import KeyState, key_state
from tests.factories import ApiKeyRecordFactory


def test_active_key_without_expiry(clock):
    record = ApiKeyRecordFactory()
    assert key_state(record, clock()) is KeyState.ACTIVE


def test_expired_is_derived_from_time(clock):
    record = ApiKeyRecordFactory(expires_at=clock() + timedelta(hours=1))
    assert key_state(record, clock()) is KeyState.ACTIVE

    assert key_state(record, clock.advance(hours=1)) is KeyState.EXPIRED
    assert record.is_active is True


def test_revoked_takes_precedence_over_expiry(clock):
    record = ApiKeyRecordFactory(is_active=False, expires_at=clock() - timedelta(days=1))
    assert key_state(record, clock()) is KeyState.REVOKED


def test_revoked_with_future_expiry_is_still_revoked(clock):
    record = ApiKeyRecordFactory(is_active=False, expires_at=clock() + timedelta(days=30))
    assert key_state(record, clock()) is KeyState.REVOKED


def test_naive_expiry_is_read_as_utc(clock):
    naive = (clock() + timedelta(minutes=5)).replace(tzinfo=None)
    record = ApiKeyRecordFactory(expires_at=naive)

    assert record.expires_at.tzinfo is not None
    assert key_state(record, clock()) is KeyState.ACTIVE
