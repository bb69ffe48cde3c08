"""
Canonical permissions matrix for AI Forge Studio.

IMPORTANT: This is the single source of truth for all permissions.
All permission checks MUST reference these constants.
UI permission gating is UX only - server-side enforcement is security.

Permissions are `resource:action` strings. Each role maps to a frozen set of
PermissionRule objects built once at import time. A rule is one of:
- EXACT: grants exactly one permission
- RESOURCE_WILDCARD: `resource:*`, grants every action on the resource
- ANY: grants everything (ADMIN)
"""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional, Union


class Role(str, Enum):
    """Tenant membership roles, highest privilege first."""
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    MEMBER = "MEMBER"
    VIEWER = "VIEWER"


# Roles allowed to act on resources owned by someone else
OWNER_OVERRIDE_ROLES: FrozenSet[Role] = frozenset([Role.ADMIN, Role.MANAGER])


class Permission(str, Enum):
    """
    All permissions in the system.

    Naming convention: RESOURCE_ACTION = "resource:action"
    """
    # Projects
    PROJECT_CREATE = "project:create"
    PROJECT_READ = "project:read"
    PROJECT_UPDATE = "project:update"
    PROJECT_DELETE = "project:delete"
    PROJECT_MANAGE = "project:manage"

    # Requirements
    REQUIREMENT_CREATE = "requirement:create"
    REQUIREMENT_READ = "requirement:read"
    REQUIREMENT_UPDATE = "requirement:update"
    REQUIREMENT_DELETE = "requirement:delete"
    REQUIREMENT_ANALYZE = "requirement:analyze"

    # Modules
    MODULE_CREATE = "module:create"
    MODULE_READ = "module:read"
    MODULE_UPDATE = "module:update"
    MODULE_DELETE = "module:delete"
    MODULE_GENERATE = "module:generate"

    # Tasks
    TASK_CREATE = "task:create"
    TASK_READ = "task:read"
    TASK_UPDATE = "task:update"
    TASK_DELETE = "task:delete"
    TASK_ASSIGN = "task:assign"
    TASK_GENERATE_CODE = "task:generate_code"

    # Tenant administration
    TENANT_READ = "tenant:read"
    TENANT_UPDATE = "tenant:update"
    TENANT_MANAGE_USERS = "tenant:manage_users"
    TENANT_MANAGE_SETTINGS = "tenant:manage_settings"

    # AI features
    AI_ANALYZE = "ai:analyze"
    AI_GENERATE = "ai:generate"
    AI_UNLIMITED = "ai:unlimited"

    @property
    def resource(self) -> str:
        return self.value.split(":", 1)[0]

    @property
    def action(self) -> str:
        return self.value.split(":", 1)[1]


def parse_permission(permission: Union[Permission, str]) -> tuple[str, str]:
    """
    Split a permission into (resource, action).

    Raises:
        ValueError: If the permission is not of the form `resource:action`
    """
    value = permission.value if isinstance(permission, Permission) else permission
    if not isinstance(value, str) or value.count(":") != 1:
        raise ValueError(f"Malformed permission: {permission!r}")
    resource, action = value.split(":", 1)
    if not resource or not action or action == "*":
        raise ValueError(f"Malformed permission: {permission!r}")
    return resource, action


class RuleKind(str, Enum):
    EXACT = "exact"
    RESOURCE_WILDCARD = "resource_wildcard"
    ANY = "any"


@dataclass(frozen=True)
class PermissionRule:
    """A single grant in a role's allow-list."""

    kind: RuleKind
    resource: Optional[str] = None
    action: Optional[str] = None

    @classmethod
    def exact(cls, permission: Union[Permission, str]) -> "PermissionRule":
        resource, action = parse_permission(permission)
        return cls(RuleKind.EXACT, resource, action)

    @classmethod
    def wildcard(cls, resource: str) -> "PermissionRule":
        if not resource or ":" in resource:
            raise ValueError(f"Invalid wildcard resource: {resource!r}")
        return cls(RuleKind.RESOURCE_WILDCARD, resource)

    @classmethod
    def any(cls) -> "PermissionRule":
        return cls(RuleKind.ANY)

    @classmethod
    def from_string(cls, entry: str) -> "PermissionRule":
        """Build a rule from table notation: `*`, `resource:*` or `resource:action`."""
        if entry == "*":
            return cls.any()
        if entry.endswith(":*"):
            return cls.wildcard(entry[:-2])
        return cls.exact(entry)

    def matches(self, resource: str, action: str) -> bool:
        if self.kind is RuleKind.ANY:
            return True
        if self.kind is RuleKind.RESOURCE_WILDCARD:
            return self.resource == resource
        return self.resource == resource and self.action == action

    def __str__(self) -> str:
        if self.kind is RuleKind.ANY:
            return "*"
        if self.kind is RuleKind.RESOURCE_WILDCARD:
            return f"{self.resource}:*"
        return f"{self.resource}:{self.action}"


def _rules(*permissions: Permission) -> FrozenSet[PermissionRule]:
    return frozenset(PermissionRule.exact(p) for p in permissions)


# Permission matrix: Role -> allow-list of rules
# ADMIN implicitly allows everything.
ROLE_RULES: dict[Role, FrozenSet[PermissionRule]] = {
    Role.ADMIN: frozenset([PermissionRule.any()]),

    Role.MANAGER: _rules(
        Permission.PROJECT_CREATE,
        Permission.PROJECT_READ,
        Permission.PROJECT_UPDATE,
        Permission.PROJECT_MANAGE,
        Permission.REQUIREMENT_CREATE,
        Permission.REQUIREMENT_READ,
        Permission.REQUIREMENT_UPDATE,
        Permission.REQUIREMENT_ANALYZE,
        Permission.MODULE_CREATE,
        Permission.MODULE_READ,
        Permission.MODULE_UPDATE,
        Permission.MODULE_GENERATE,
        Permission.TASK_CREATE,
        Permission.TASK_READ,
        Permission.TASK_UPDATE,
        Permission.TASK_ASSIGN,
        Permission.TASK_GENERATE_CODE,
        Permission.TENANT_READ,
        Permission.AI_ANALYZE,
        Permission.AI_GENERATE,
    ),

    Role.MEMBER: _rules(
        Permission.PROJECT_READ,
        Permission.REQUIREMENT_CREATE,
        Permission.REQUIREMENT_READ,
        Permission.REQUIREMENT_UPDATE,
        Permission.REQUIREMENT_ANALYZE,
        Permission.MODULE_READ,
        Permission.MODULE_UPDATE,
        Permission.MODULE_GENERATE,
        Permission.TASK_READ,
        Permission.TASK_UPDATE,
        Permission.TASK_GENERATE_CODE,
        Permission.TENANT_READ,
        Permission.AI_ANALYZE,
        Permission.AI_GENERATE,
    ),

    # Read-only
    Role.VIEWER: _rules(
        Permission.PROJECT_READ,
        Permission.REQUIREMENT_READ,
        Permission.MODULE_READ,
        Permission.TASK_READ,
        Permission.TENANT_READ,
    ),
}


def parse_role(role: Union[Role, str, None]) -> Optional[Role]:
    """Return the Role for a claim/membership value, or None if unrecognized."""
    if isinstance(role, Role):
        return role
    if not role or not isinstance(role, str):
        return None
    try:
        return Role(role.upper())
    except ValueError:
        return None


def get_rules_for_role(role: Union[Role, str, None]) -> FrozenSet[PermissionRule]:
    """Get the allow-list for a role (empty for unknown roles)."""
    parsed = parse_role(role)
    if parsed is None:
        return frozenset()
    return ROLE_RULES.get(parsed, frozenset())


def role_allows(role: Union[Role, str, None], permission: Union[Permission, str]) -> bool:
    """Static table lookup only; conditions are handled by the evaluator."""
    try:
        resource, action = parse_permission(permission)
    except ValueError:
        return False
    return any(rule.matches(resource, action) for rule in get_rules_for_role(role))


def get_permissions_for_role(role: Union[Role, str, None]) -> FrozenSet[Permission]:
    """Expand a role's rules into the concrete Permission members they grant."""
    return frozenset(p for p in Permission if role_allows(role, p))
