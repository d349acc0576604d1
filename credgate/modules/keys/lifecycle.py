"""Three-state API key lifecycle.

REVOKED is stored (``is_active=False``) and terminal. EXPIRED is derived from
``expires_at`` against the current time and is never persisted.
"""

from datetime import datetime
from enum import Enum

from credgate.modules.keys.models import ApiKeyRecord
from credgate.utils.clock import ensure_utc


class KeyState(str, Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    REVOKED = "REVOKED"


def is_expired(expires_at: datetime | None, now: datetime) -> bool:
    if expires_at is None:
        return False
    return ensure_utc(expires_at) <= ensure_utc(now)


def key_state(record: ApiKeyRecord, now: datetime) -> KeyState:
    if not record.is_active:
        return KeyState.REVOKED
    if is_expired(record.expires_at, now):
        return KeyState.EXPIRED
    return KeyState.ACTIVE
