"""
access.py - Role-based access control

RoleRegistry is an in-memory AccessGate: accounts hold roles, and
DEFAULT_ADMIN administers every role (grants and revokes them).

The pool never checks roles inside ledger logic. Administrative entry points
are wrapped with only_role(), which consults whatever AccessGate the pool was
built with before the entry point runs.
"""

from __future__ import annotations
from functools import wraps
from typing import Callable, Dict, Set, TypeVar

from .core import AccessGate, AccessDenied, Role, ValidationError

F = TypeVar("F", bound=Callable)


def check_role(gate: AccessGate, account: str, role: Role) -> None:
    """
    Raise AccessDenied unless account holds role.

    Raises:
        AccessDenied: account lacks role
    """
    if not gate.has_role(account, role):
        raise AccessDenied(account, role)


def only_role(role: Role) -> Callable[[F], F]:
    """
    Guard a pool entry point so only holders of role may call it.

    The wrapped method must take the caller as its first argument after self,
    and the instance must expose its gate as `access`.
    """
    def decorator(method: F) -> F:
        @wraps(method)
        def wrapper(self, caller: str, *args, **kwargs):
            check_role(self.access, caller, role)
            return method(self, caller, *args, **kwargs)
        wrapper.required_role = role
        return wrapper
    return decorator


class RoleRegistry:
    """
    Role membership with DEFAULT_ADMIN as the admin of every role.

    Example:
        roles = RoleRegistry(admin="deployer")
        roles.grant_role("deployer", Role.MANAGER, "manager")
        roles.has_role("manager", Role.MANAGER)   # True
    """

    def __init__(self, admin: str):
        if not admin or not str(admin).strip():
            raise ValidationError("admin cannot be empty")
        self._members: Dict[Role, Set[str]] = {role: set() for role in Role}
        self._members[Role.DEFAULT_ADMIN].add(admin)

    def has_role(self, account: str, role: Role) -> bool:
        return account in self._members[role]

    def members(self, role: Role) -> Set[str]:
        return set(self._members[role])

    def grant_role(self, caller: str, role: Role, account: str) -> bool:
        """
        Give role to account. Returns False if account already had it.

        Raises:
            AccessDenied: caller is not DEFAULT_ADMIN
        """
        check_role(self, caller, Role.DEFAULT_ADMIN)
        if account in self._members[role]:
            return False
        self._members[role].add(account)
        return True

    def revoke_role(self, caller: str, role: Role, account: str) -> bool:
        """
        Take role from account. Returns False if account did not have it.

        Raises:
            AccessDenied: caller is not DEFAULT_ADMIN
        """
        check_role(self, caller, Role.DEFAULT_ADMIN)
        if account not in self._members[role]:
            return False
        self._members[role].discard(account)
        return True

    def renounce_role(self, caller: str, role: Role) -> bool:
        """Drop one of the caller's own roles."""
        if caller not in self._members[role]:
            return False
        self._members[role].discard(caller)
        return True

    def __repr__(self) -> str:
        parts = [f"{role.value}={sorted(m)}" for role, m in self._members.items()]
        return f"RoleRegistry({', '.join(parts)})"
