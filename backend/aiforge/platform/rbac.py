"""
Role-Based Access Control (RBAC) evaluation for AI Forge.

CRITICAL SECURITY REQUIREMENTS:
- RBAC MUST be enforced server-side for every protected endpoint
- All permission decisions MUST go through PermissionEvaluator
- Condition checks layer on top of the static role table:
    * ownerId differing from the caller passes only for ADMIN/MANAGER
    * tenantId differing from the caller's tenant is always denied,
      whatever the role

The evaluator is a pure function of (role, permission, conditions, caller).

Usage:
    from aiforge.platform.rbac import evaluate, PermissionConditions

    decision = evaluate("MEMBER", "task:update")
    if not decision.allowed:
        ...
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from aiforge.constants.permissions import (
    OWNER_OVERRIDE_ROLES,
    Permission,
    Role,
    get_rules_for_role,
    parse_permission,
    parse_role,
)
from aiforge.platform.errors import PermissionDeniedError

logger = logging.getLogger(__name__)


class DenyReason(str, enum.Enum):
    INVALID_ROLE = "INVALID_ROLE"
    INVALID_PERMISSION = "INVALID_PERMISSION"
    INSUFFICIENT_PERMISSION = "INSUFFICIENT_PERMISSION"
    OWNER_MISMATCH = "OWNER_MISMATCH"
    CROSS_TENANT = "CROSS_TENANT"


DENY_MESSAGES = {
    DenyReason.INVALID_ROLE: "User role is not defined",
    DenyReason.INVALID_PERMISSION: "Unknown permission",
    DenyReason.INSUFFICIENT_PERMISSION: "Insufficient permission",
    DenyReason.OWNER_MISMATCH: "You can only access your own resources",
    DenyReason.CROSS_TENANT: "Cross-tenant access denied",
}


@dataclass(frozen=True)
class PermissionConditions:
    """Optional per-resource conditions checked after the role table."""
    owner_id: Optional[str] = None
    tenant_id: Optional[str] = None


@dataclass(frozen=True)
class PermissionDecision:
    allowed: bool
    reason: Optional[DenyReason] = None

    @property
    def message(self) -> Optional[str]:
        return DENY_MESSAGES.get(self.reason) if self.reason else None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = PermissionDecision(allowed=True)


def _deny(reason: DenyReason) -> PermissionDecision:
    return PermissionDecision(allowed=False, reason=reason)


class PermissionEvaluator:
    """Maps (role, permission, conditions) to an allow/deny decision."""

    def evaluate(
        self,
        role: Union[Role, str, None],
        permission: Union[Permission, str],
        conditions: Optional[PermissionConditions] = None,
        *,
        user_id: Optional[str] = None,
        tenant_id: Optional[str] = None,
    ) -> PermissionDecision:
        """
        Decide whether a caller may perform an action.

        Args:
            role: Caller's role in the tenant (unknown or missing => INVALID_ROLE)
            permission: `resource:action` string
            conditions: Optional owner/tenant conditions for the target resource
            user_id: Caller's identity, compared against conditions.owner_id
            tenant_id: Caller's tenant, compared against conditions.tenant_id
        """
        parsed_role = parse_role(role)
        if parsed_role is None:
            return _deny(DenyReason.INVALID_ROLE)

        try:
            resource, action = parse_permission(permission)
        except ValueError:
            return _deny(DenyReason.INVALID_PERMISSION)

        if not any(rule.matches(resource, action) for rule in get_rules_for_role(parsed_role)):
            return _deny(DenyReason.INSUFFICIENT_PERMISSION)

        if conditions is not None:
            if conditions.tenant_id is not None and conditions.tenant_id != tenant_id:
                return _deny(DenyReason.CROSS_TENANT)

            if (
                conditions.owner_id is not None
                and conditions.owner_id != user_id
                and parsed_role not in OWNER_OVERRIDE_ROLES
            ):
                return _deny(DenyReason.OWNER_MISMATCH)

        return ALLOW


_evaluator = PermissionEvaluator()


def evaluate(
    role: Union[Role, str, None],
    permission: Union[Permission, str],
    conditions: Optional[PermissionConditions] = None,
    *,
    user_id: Optional[str] = None,
    tenant_id: Optional[str] = None,
) -> PermissionDecision:
    """Module-level shortcut for PermissionEvaluator.evaluate."""
    return _evaluator.evaluate(role, permission, conditions, user_id=user_id, tenant_id=tenant_id)


class RBACError(PermissionDeniedError):
    """RBAC-specific permission denied error."""

    def __init__(self, required: str, reason: DenyReason):
        super().__init__(
            message=DENY_MESSAGES[reason],
            details={"required": required, "reason": reason.value},
        )
        self.reason = reason


def check_permission_or_raise(
    context: Any,
    permission: Union[Permission, str],
    conditions: Optional[PermissionConditions] = None,
) -> None:
    """
    Evaluate a permission for a request context and raise on deny.

    `context` is anything with `user_id`, `tenant_id` and `role` attributes
    (normally a TenantContext).

    Raises:
        RBACError: If the decision is a deny
    """
    decision = evaluate(
        context.role,
        permission,
        conditions,
        user_id=context.user_id,
        tenant_id=context.tenant_id,
    )
    if decision.allowed:
        return

    required = permission.value if isinstance(permission, Permission) else str(permission)
    # Log detailed info server-side
    logger.warning(
        "Permission denied",
        extra={
            "tenant_id": context.tenant_id,
            "user_id": context.user_id,
            "role": getattr(context.role, "value", context.role),
            "permission": required,
            "reason": decision.reason.value,
        },
    )
    raise RBACError(required, decision.reason)
