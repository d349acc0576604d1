"""Operator permission resolution and client-access checks."""

from credgate.core.base import BaseService
from credgate.core.errors import ValidationError
from credgate.modules.access.overrides import (
    parse_assigned_client_ids,
    parse_client_permissions,
    serialize_client_permissions,
    to_operator_permissions,
)
from credgate.modules.access.roles import (
    ALL_OPERATOR_PERMISSIONS,
    OPERATOR_PERMISSION_VALUES,
    OperatorPermission,
    UserRole,
    get_permissions_for_role,
    is_owner_equivalent,
    is_unrestricted,
)
from credgate.modules.audit.events import AuditAction, AuditEvent, AuditResource
from credgate.modules.audit.sink import AuditSink, emit_audit_event
from credgate.modules.keys.models import validate_permission_tokens


class PermissionResolver(BaseService):
    """Merges role defaults with per-client overrides.

    Every call reads current storage state. Nothing is cached.
    """

    def __init__(self, storage, audit_sink: AuditSink | None = None, **kwargs):
        super().__init__(storage, **kwargs)
        self.audit_sink = audit_sink

    async def resolve(
        self, user_id: str, role: UserRole, client_id: str
    ) -> set[OperatorPermission]:
        if is_owner_equivalent(role):
            return set(ALL_OPERATOR_PERMISSIONS)

        permissions = set(get_permissions_for_role(role))
        blob = await self.storage.find_user_permission_overrides(user_id)
        overrides = parse_client_permissions(blob, user_id=user_id)
        permissions |= to_operator_permissions(
            overrides.get(client_id, []), user_id=user_id, client_id=client_id
        )
        return permissions

    async def has_permission(
        self,
        user_id: str,
        role: UserRole,
        client_id: str,
        permission: OperatorPermission,
    ) -> bool:
        return permission in await self.resolve(user_id, role, client_id)

    async def can_access_client(
        self,
        user_id: str | None,
        role: UserRole | None,
        client_id: str,
        agency_id: str | None,
    ) -> bool:
        """Whether the operator may act on ``client_id`` at all.

        The client must belong to the operator's agency, whatever the role.
        Unknown clients are denied the same way as foreign ones.
        """
        if not user_id or role is None or not agency_id:
            return False
        if await self.storage.find_client_agency(client_id) != agency_id:
            return False
        if is_owner_equivalent(role) or is_unrestricted(role):
            return True
        blob = await self.storage.find_user_client_assignments(user_id)
        return client_id in parse_assigned_client_ids(blob, user_id=user_id)

    async def get_accessible_client_ids(
        self, user_id: str, role: UserRole, agency_id: str | None
    ) -> list[str]:
        """Sorted ids of the agency's clients the operator can reach."""
        if not agency_id:
            return []
        agency_clients = await self.storage.list_agency_client_ids(agency_id)
        if is_owner_equivalent(role) or is_unrestricted(role):
            return agency_clients
        blob = await self.storage.find_user_client_assignments(user_id)
        assigned = set(parse_assigned_client_ids(blob, user_id=user_id))
        return [client_id for client_id in agency_clients if client_id in assigned]

    async def get_client_overrides(self, user_id: str, client_id: str) -> list[str]:
        blob = await self.storage.find_user_permission_overrides(user_id)
        return parse_client_permissions(blob, user_id=user_id).get(client_id, [])

    async def set_client_overrides(
        self,
        user_id: str,
        client_id: str,
        permissions: list[str],
        *,
        actor: str,
    ) -> list[str]:
        if not user_id:
            raise ValidationError("user_id", "must not be empty")
        if not client_id:
            raise ValidationError("client_id", "must not be empty")
        permissions = validate_permission_tokens(
            permissions, vocabulary=OPERATOR_PERMISSION_VALUES
        )

        blob = await self.storage.find_user_permission_overrides(user_id)
        overrides = parse_client_permissions(blob, user_id=user_id)
        previous = overrides.get(client_id, [])
        if permissions:
            overrides[client_id] = permissions
        else:
            overrides.pop(client_id, None)
        await self.storage.save_user_permission_overrides(
            user_id, serialize_client_permissions(overrides)
        )

        self.logger.info(
            "permission_overrides_updated",
            user_id=user_id,
            client_id=client_id,
            permissions=permissions,
        )
        await emit_audit_event(
            self.audit_sink,
            AuditEvent(
                actor=actor,
                action=AuditAction.PERMISSIONS_UPDATE,
                resource_type=AuditResource.USER_PERMISSIONS,
                resource_id=user_id,
                timestamp=self.clock(),
                details={
                    "client_id": client_id,
                    "previous": previous,
                    "permissions": permissions,
                },
            ),
        )
        return permissions
