"""
角色权限判定测试

运行方式：
    pytest backend/tests/test_permission_evaluator.py -v
"""
import itertools

import pytest

from dashhub.core.enums import Action, ResourceKind, Role
from dashhub.services.permission_evaluator import (
    ROLE_RULES,
    check_permission,
    check_user_permission,
)

ALL_RESOURCES = [r.value for r in ResourceKind] + ["billing", "", None]
ALL_ACTIONS = [a.value for a in Action] + ["export", None]


class TestCheckPermission:

    def test_admin_allows_everything(self):
        for resource, action in itertools.product(ALL_RESOURCES, ALL_ACTIONS):
            assert check_permission("ADMIN", resource, action) is True

    def test_viewer_has_no_user_access(self):
        for action in Action:
            assert check_permission(Role.VIEWER, ResourceKind.USER, action) is False

    def test_analyst_user_read_only(self):
        for action in Action:
            assert check_permission(Role.ANALYST, "user", action) == (action == Action.READ)

    @pytest.mark.parametrize("resource", ["dashboard", "widget", "report", "schedule"])
    def test_analyst_full_access_on_content(self, resource):
        for action in Action:
            assert check_permission(Role.ANALYST, resource, action) is True

    @pytest.mark.parametrize("resource", ["dashboard", "widget", "report", "schedule"])
    def test_viewer_read_only_on_content(self, resource):
        for action in Action:
            assert check_permission(Role.VIEWER, resource, action) == (action == Action.READ)

    def test_dashboard_read_for_every_role(self):
        for role in Role:
            assert check_permission(role, "dashboard", "read") is True

    def test_unknown_resource_or_action_denied_for_non_admin(self):
        assert check_permission("ANALYST", "billing", "read") is False
        assert check_permission("VIEWER", "dashboard", "export") is False
        assert check_permission("ANALYST", None, None) is False

    def test_unknown_role_denied(self):
        assert check_permission("SUPERUSER", "dashboard", "read") is False
        assert check_permission(None, "dashboard", "read") is False
        assert check_permission(["ADMIN"], "dashboard", "read") is False

    def test_always_returns_bool(self):
        for role, resource, action in itertools.product(
            ["ADMIN", "ANALYST", "VIEWER", "nobody"], ALL_RESOURCES, ALL_ACTIONS
        ):
            assert isinstance(check_permission(role, resource, action), bool)

    def test_rule_table_covers_every_resource(self):
        for role, rules in ROLE_RULES.items():
            assert set(rules) == set(ResourceKind), role


class TestCheckUserPermission:

    def test_missing_user_denied_everywhere(self, db):
        for resource, action in itertools.product(ALL_RESOURCES, ALL_ACTIONS):
            assert check_user_permission(db, 9999, resource, action) is False

    def test_resolves_role_from_store(self, db, make_user):
        viewer = make_user(role=Role.VIEWER)
        admin = make_user(role=Role.ADMIN)

        assert check_user_permission(db, viewer.id, "dashboard", "read") is True
        assert check_user_permission(db, viewer.id, "dashboard", "delete") is False
        assert check_user_permission(db, admin.id, "anything", "whatever") is True
