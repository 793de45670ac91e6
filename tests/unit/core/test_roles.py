"""
Tests for the role vocabulary.

WHY: Legacy spellings arrive from older clients; they must collapse onto
the four canonical roles before any permission check runs.
"""

import pytest

from tasksetu.core.deps import require_roles
from tasksetu.core.exceptions import InputError
from tasksetu.models.user import UserRole
from tasksetu.services.membership_service import resolve_tenant_role


class TestRoleParsing:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("org_admin", UserRole.ORG_ADMIN),
            ("admin", UserRole.ORG_ADMIN),
            ("company_admin", UserRole.ORG_ADMIN),
            ("employee", UserRole.EMPLOYEE),
            ("member", UserRole.EMPLOYEE),
            ("user", UserRole.EMPLOYEE),
            (" Member ", UserRole.EMPLOYEE),
            ("super_admin", UserRole.SUPERADMIN),
            ("individual", UserRole.INDIVIDUAL),
        ],
    )
    def test_parse_aliases(self, raw, expected):
        assert UserRole.parse(raw) == expected

    def test_parse_unknown_role(self):
        with pytest.raises(ValueError):
            UserRole.parse("owner")

    def test_highest_picks_most_privileged(self):
        assert UserRole.highest(["employee", "admin"]) == UserRole.ORG_ADMIN
        assert UserRole.highest(["member"]) == UserRole.EMPLOYEE

    def test_highest_requires_a_role(self):
        with pytest.raises(ValueError):
            UserRole.highest([])

    def test_tenant_roles(self):
        assert UserRole.ORG_ADMIN.is_tenant_role
        assert UserRole.EMPLOYEE.is_tenant_role
        assert not UserRole.SUPERADMIN.is_tenant_role
        assert not UserRole.INDIVIDUAL.is_tenant_role


class TestResolveTenantRole:
    """Role values accepted by invitations and role changes."""

    def test_single_value_and_list(self):
        assert resolve_tenant_role("member") == UserRole.EMPLOYEE
        assert resolve_tenant_role(["employee", "org_admin"]) == UserRole.ORG_ADMIN

    @pytest.mark.parametrize("role", ["superadmin", "individual", ["employee", "super_admin"]])
    def test_non_tenant_roles_rejected(self, role):
        with pytest.raises(InputError):
            resolve_tenant_role(role)

    def test_unknown_role_rejected(self):
        with pytest.raises(InputError) as exc_info:
            resolve_tenant_role("owner")
        assert exc_info.value.context["field"] == "role"


def test_require_roles_rejects_unknown_role_at_definition():
    with pytest.raises(ValueError):
        require_roles("owner")
