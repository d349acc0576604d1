"""Parsing of the persisted per-user grant blobs.

Both blobs are JSON text written by other systems. Anything unreadable
degrades to "no grants" and is reported through the log so operators can
find corrupted rows.
"""

import json

from credgate.modules.access.roles import OPERATOR_PERMISSION_VALUES, OperatorPermission
from credgate.utils.logger import get_logger

logger = get_logger(__name__)


def parse_client_permissions(
    blob: str | None, *, user_id: str | None = None
) -> dict[str, list[str]]:
    if blob is None or blob == "":
        return {}
    try:
        data = json.loads(blob)
    except (TypeError, ValueError) as e:
        logger.warning(
            "permission_overrides_unparsable", user_id=user_id, error=str(e)
        )
        return {}
    if not isinstance(data, dict):
        logger.warning(
            "permission_overrides_unparsable",
            user_id=user_id,
            error=f"expected object, got {type(data).__name__}",
        )
        return {}

    parsed: dict[str, list[str]] = {}
    for client_id, tokens in data.items():
        if not isinstance(tokens, list):
            logger.warning(
                "permission_overrides_entry_skipped",
                user_id=user_id,
                client_id=client_id,
            )
            continue
        parsed[client_id] = [t for t in tokens if isinstance(t, str)]
    return parsed


def parse_assigned_client_ids(
    blob: str | None, *, user_id: str | None = None
) -> list[str]:
    if blob is None or blob == "":
        return []
    try:
        data = json.loads(blob)
    except (TypeError, ValueError) as e:
        logger.warning("client_assignments_unparsable", user_id=user_id, error=str(e))
        return []
    if not isinstance(data, list):
        logger.warning(
            "client_assignments_unparsable",
            user_id=user_id,
            error=f"expected array, got {type(data).__name__}",
        )
        return []
    return [c for c in data if isinstance(c, str)]


def to_operator_permissions(
    tokens: list[str], *, user_id: str | None = None, client_id: str | None = None
) -> set[OperatorPermission]:
    known = {OperatorPermission(t) for t in tokens if t in OPERATOR_PERMISSION_VALUES}
    unknown = [t for t in tokens if t not in OPERATOR_PERMISSION_VALUES]
    if unknown:
        logger.warning(
            "permission_overrides_unknown_tokens",
            user_id=user_id,
            client_id=client_id,
            tokens=unknown,
        )
    return known


def serialize_client_permissions(overrides: dict[str, list[str]]) -> str:
    return json.dumps(overrides, sort_keys=True)
