"""
test_access.py - Unit tests for role-based access control
"""

import pytest

from staking import (
    Role, RoleRegistry, AccessDenied, ValidationError,
    check_role, only_role,
)


class TestRoleRegistry:

    def test_admin_has_default_admin_only(self):
        roles = RoleRegistry(admin="Deployer")
        assert roles.has_role("Deployer", Role.DEFAULT_ADMIN)
        assert not roles.has_role("Deployer", Role.MANAGER)

    def test_empty_admin_rejected(self):
        with pytest.raises(ValidationError):
            RoleRegistry(admin="")

    def test_grant_and_revoke(self):
        roles = RoleRegistry(admin="deployer")
        assert roles.grant_role("deployer", Role.MANAGER, "manager") is True
        assert roles.grant_role("deployer", Role.MANAGER, "manager") is False
        assert roles.has_role("manager", Role.MANAGER)
        assert roles.members(Role.MANAGER) == {"manager"}

        assert roles.revoke_role("deployer", Role.MANAGER, "manager") is True
        assert roles.revoke_role("deployer", Role.MANAGER, "manager") is False
        assert not roles.has_role("manager", Role.MANAGER)

    def test_only_admin_grants(self):
        roles = RoleRegistry(admin="deployer")
        roles.grant_role("deployer", Role.MANAGER, "manager")
        with pytest.raises(AccessDenied):
            roles.grant_role("manager", Role.MANAGER, "eve")
        assert not roles.has_role("eve", Role.MANAGER)

    def test_renounce(self):
        roles = RoleRegistry(admin="deployer")
        assert roles.renounce_role("deployer", Role.DEFAULT_ADMIN) is True
        assert roles.renounce_role("deployer", Role.DEFAULT_ADMIN) is False
        assert not roles.has_role("deployer", Role.DEFAULT_ADMIN)

    def test_members_is_a_copy(self):
        roles = RoleRegistry(admin="deployer")
        roles.members(Role.DEFAULT_ADMIN).add("eve")
        assert not roles.has_role("eve", Role.DEFAULT_ADMIN)


class TestAccessDenied:

    def test_message_format(self):
        roles = RoleRegistry(admin="deployer")
        with pytest.raises(AccessDenied) as exc_info:
            check_role(roles, "Alice", Role.MANAGER)
        assert str(exc_info.value) == "AccessControl: account alice is missing role MANAGER_ROLE"
        assert exc_info.value.account == "Alice"
        assert exc_info.value.role is Role.MANAGER


class TestOnlyRole:

    class Guarded:
        def __init__(self, access):
            self.access = access
            self.calls = []

        @only_role(Role.MANAGER)
        def tune(self, caller, value):
            """Change something."""
            self.calls.append((caller, value))
            return value

    def test_allows_holder(self):
        roles = RoleRegistry(admin="deployer")
        roles.grant_role("deployer", Role.MANAGER, "manager")
        guarded = self.Guarded(roles)
        assert guarded.tune("manager", 5) == 5
        assert guarded.calls == [("manager", 5)]

    def test_blocks_before_body_runs(self):
        guarded = self.Guarded(RoleRegistry(admin="deployer"))
        with pytest.raises(AccessDenied):
            guarded.tune("deployer", 5)
        assert guarded.calls == []

    def test_metadata_preserved(self):
        assert self.Guarded.tune.__name__ == "tune"
        assert self.Guarded.tune.__doc__ == "Change something."
        assert self.Guarded.tune.required_role is Role.MANAGER
