from enum import Enum


class UserRole(str, Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    EDITOR = "EDITOR"
    USER = "USER"
    VIEWER = "VIEWER"


class OperatorPermission(str, Enum):
    # Content
    READ = "read"
    WRITE = "write"
    GENERATE_CONTENT = "generate_content"
    APPROVE_CONTENT = "approve_content"
    PUBLISH_CONTENT = "publish_content"

    # Usage and API access
    VIEW_USAGE = "view_usage"
    MANAGE_API_KEYS = "manage_api_keys"

    # Administration
    MANAGE_PERMISSIONS = "manage_permissions"
    MANAGE_CLIENTS = "manage_clients"
    MANAGE_USERS = "manage_users"
    MANAGE_AGENCY = "manage_agency"
    VIEW_AUDIT_LOGS = "view_audit_logs"


ALL_OPERATOR_PERMISSIONS: frozenset[OperatorPermission] = frozenset(OperatorPermission)
OPERATOR_PERMISSION_VALUES = frozenset(p.value for p in OperatorPermission)

# Roles that bypass per-client overrides and receive every permission
OWNER_EQUIVALENT_ROLES = frozenset({UserRole.OWNER, UserRole.ADMIN})

# Roles that may access every client of their agency without an assignment
UNRESTRICTED_ROLES = frozenset({UserRole.OWNER, UserRole.ADMIN, UserRole.MANAGER})

ROLE_PERMISSIONS: dict[UserRole, frozenset[OperatorPermission]] = {
    UserRole.OWNER: ALL_OPERATOR_PERMISSIONS,
    UserRole.ADMIN: ALL_OPERATOR_PERMISSIONS,
    UserRole.MANAGER: frozenset(
        {
            OperatorPermission.READ,
            OperatorPermission.WRITE,
            OperatorPermission.GENERATE_CONTENT,
            OperatorPermission.APPROVE_CONTENT,
            OperatorPermission.PUBLISH_CONTENT,
            OperatorPermission.VIEW_USAGE,
            OperatorPermission.MANAGE_API_KEYS,
            OperatorPermission.MANAGE_CLIENTS,
        }
    ),
    UserRole.EDITOR: frozenset(
        {
            OperatorPermission.READ,
            OperatorPermission.WRITE,
            OperatorPermission.GENERATE_CONTENT,
        }
    ),
    UserRole.USER: frozenset(
        {
            OperatorPermission.READ,
            OperatorPermission.GENERATE_CONTENT,
        }
    ),
    UserRole.VIEWER: frozenset({OperatorPermission.READ}),
}


def get_permissions_for_role(role: UserRole) -> frozenset[OperatorPermission]:
    return ROLE_PERMISSIONS.get(role, frozenset())


def is_owner_equivalent(role: UserRole | None) -> bool:
    return role in OWNER_EQUIVALENT_ROLES


def is_unrestricted(role: UserRole | None) -> bool:
    return role in UNRESTRICTED_ROLES


def parse_role(value) -> UserRole | None:
    """Map a claim value onto a role, or None when it names no known role."""
    if isinstance(value, UserRole):
        return value
    if not isinstance(value, str):
        return None
    try:
        return UserRole(value.upper())
    except ValueError:
        return None
