"""
Tests for the role/permission table and the permission evaluator.

Covers:
- Static table contents per role (ADMIN allows everything, VIEWER read-only)
- `resource:*` wildcard rules as first-class rules
- Condition checks: owner mismatch (ADMIN/MANAGER override) and cross-tenant
- Unknown roles and malformed permissions
- check_permission_or_raise error envelope details
"""

from types import SimpleNamespace

import pytest

from aiforge.constants.permissions import (
    ROLE_RULES,
    Permission,
    PermissionRule,
    Role,
    RuleKind,
    get_permissions_for_role,
    parse_permission,
    parse_role,
    role_allows,
)
from aiforge.platform.rbac import (
    DenyReason,
    PermissionConditions,
    PermissionEvaluator,
    RBACError,
    check_permission_or_raise,
    evaluate,
)


class TestPermissionTable:

    def test_admin_has_every_permission(self):
        assert get_permissions_for_role(Role.ADMIN) == frozenset(Permission)

    def test_viewer_is_read_only(self):
        granted = get_permissions_for_role(Role.VIEWER)
        assert granted
        assert all(p.action == "read" for p in granted)

    def test_manager_cannot_delete(self):
        granted = get_permissions_for_role(Role.MANAGER)
        assert Permission.PROJECT_DELETE not in granted
        assert Permission.REQUIREMENT_DELETE not in granted
        assert Permission.TASK_ASSIGN in granted

    def test_member_permissions(self):
        granted = get_permissions_for_role(Role.MEMBER)
        assert Permission.TASK_UPDATE in granted
        assert Permission.REQUIREMENT_ANALYZE in granted
        assert Permission.PROJECT_CREATE not in granted
        assert Permission.TASK_ASSIGN not in granted

    def test_roles_are_nested(self):
        viewer = get_permissions_for_role(Role.VIEWER)
        member = get_permissions_for_role(Role.MEMBER)
        manager = get_permissions_for_role(Role.MANAGER)
        assert viewer < member
        assert member <= manager

    def test_every_role_has_rules(self):
        assert set(ROLE_RULES) == set(Role)

    @pytest.mark.parametrize("value,expected", [
        ("ADMIN", Role.ADMIN),
        ("manager", Role.MANAGER),
        (Role.VIEWER, Role.VIEWER),
        ("OWNER", None),
        ("", None),
        (None, None),
    ])
    def test_parse_role(self, value, expected):
        assert parse_role(value) is expected

    @pytest.mark.parametrize("value", ["project", "project:", ":read", "a:b:c", "project:*", ""])
    def test_parse_permission_rejects_malformed(self, value):
        with pytest.raises(ValueError):
            parse_permission(value)


class TestPermissionRule:

    def test_wildcard_matches_every_action_of_its_resource(self):
        rule = PermissionRule.from_string("task:*")
        assert rule.kind is RuleKind.RESOURCE_WILDCARD
        assert rule.matches("task", "update")
        assert rule.matches("task", "generate_code")
        assert not rule.matches("taskboard", "update")
        assert not rule.matches("project", "update")

    def test_exact_rule(self):
        rule = PermissionRule.from_string("project:read")
        assert rule.kind is RuleKind.EXACT
        assert rule.matches("project", "read")
        assert not rule.matches("project", "readall")

    def test_any_rule(self):
        rule = PermissionRule.from_string("*")
        assert rule.matches("anything", "at_all")
        assert str(rule) == "*"

    def test_round_trip_notation(self):
        for entry in ("*", "task:*", "project:read"):
            assert str(PermissionRule.from_string(entry)) == entry

    @pytest.mark.parametrize("entry", ["", ":*", "a:b:*"])
    def test_invalid_rules(self, entry):
        with pytest.raises(ValueError):
            PermissionRule.from_string(entry)

    def test_wildcard_rule_grants_unlisted_action(self, monkeypatch):
        rules = dict(ROLE_RULES)
        rules[Role.VIEWER] = frozenset([PermissionRule.wildcard("task")])
        monkeypatch.setattr("aiforge.constants.permissions.ROLE_RULES", rules)

        assert role_allows(Role.VIEWER, "task:archive")
        assert not role_allows(Role.VIEWER, "project:read")


class TestEvaluator:

    def test_member_cannot_delete_project(self):
        decision = evaluate("MEMBER", "project:delete")
        assert not decision.allowed
        assert decision.reason is DenyReason.INSUFFICIENT_PERMISSION

    def test_member_can_update_task(self):
        assert evaluate("MEMBER", "task:update").allowed

    @pytest.mark.parametrize("permission", list(Permission))
    def test_admin_allowed_everything_without_conditions(self, permission):
        assert evaluate(Role.ADMIN, permission).allowed

    def test_admin_allowed_unlisted_permission(self):
        assert evaluate(Role.ADMIN, "billing:refund").allowed

    @pytest.mark.parametrize("role", [Role.MANAGER, Role.MEMBER, Role.VIEWER])
    def test_permissions_outside_table_always_denied(self, role):
        granted = get_permissions_for_role(role)
        for permission in Permission:
            if permission not in granted:
                assert not evaluate(role, permission).allowed, permission

    def test_unknown_role_is_invalid_role(self):
        decision = evaluate("SUPERUSER", "project:read")
        assert decision.reason is DenyReason.INVALID_ROLE
        assert decision.message == "User role is not defined"

    def test_missing_role_is_invalid_role(self):
        assert evaluate(None, "project:read").reason is DenyReason.INVALID_ROLE

    def test_malformed_permission(self):
        assert evaluate("ADMIN", "not-a-permission").reason is DenyReason.INVALID_PERMISSION

    def test_decision_is_truthy_when_allowed(self):
        assert evaluate("VIEWER", "project:read")
        assert not evaluate("VIEWER", "project:update")


@pytest.mark.security
class TestConditions:

    def test_member_denied_on_foreign_owner(self):
        decision = evaluate(
            Role.MEMBER, "task:update",
            PermissionConditions(owner_id="someone-else"),
            user_id="me", tenant_id="t1",
        )
        assert decision.reason is DenyReason.OWNER_MISMATCH

    def test_member_allowed_on_own_resource(self):
        assert evaluate(
            Role.MEMBER, "task:update",
            PermissionConditions(owner_id="me", tenant_id="t1"),
            user_id="me", tenant_id="t1",
        ).allowed

    @pytest.mark.parametrize("role", [Role.ADMIN, Role.MANAGER])
    def test_admin_and_manager_override_owner(self, role):
        assert evaluate(
            role, "task:update",
            PermissionConditions(owner_id="someone-else"),
            user_id="me", tenant_id="t1",
        ).allowed

    @pytest.mark.parametrize("role", list(Role))
    def test_cross_tenant_denied_for_every_role(self, role):
        decision = PermissionEvaluator().evaluate(
            role, "project:read",
            PermissionConditions(tenant_id="t2"),
            user_id="me", tenant_id="t1",
        )
        assert decision.reason is DenyReason.CROSS_TENANT

    def test_table_check_runs_before_conditions(self):
        decision = evaluate(
            Role.VIEWER, "project:delete",
            PermissionConditions(owner_id="me"),
            user_id="me", tenant_id="t1",
        )
        assert decision.reason is DenyReason.INSUFFICIENT_PERMISSION


class TestCheckPermissionOrRaise:

    def _context(self, role):
        return SimpleNamespace(role=role, user_id="u1", tenant_id="t1")

    def test_allowed_returns_none(self):
        assert check_permission_or_raise(self._context(Role.MEMBER), Permission.TASK_UPDATE) is None

    def test_denied_raises_forbidden_with_details(self):
        with pytest.raises(RBACError) as exc_info:
            check_permission_or_raise(self._context(Role.VIEWER), Permission.PROJECT_CREATE)

        error = exc_info.value
        assert error.status_code == 403
        assert error.code == "FORBIDDEN"
        assert error.details == {"required": "project:create", "reason": "INSUFFICIENT_PERMISSION"}

    def test_owner_condition_raises(self):
        with pytest.raises(RBACError) as exc_info:
            check_permission_or_raise(
                self._context(Role.MEMBER),
                "requirement:update",
                PermissionConditions(owner_id="u2"),
            )
        assert exc_info.value.reason is DenyReason.OWNER_MISMATCH
