# Overview: Closed role enumeration and the single authorization decision function.

"""
Role model.

Roles are a closed set. Any string that is not one of the values below is
rejected when a token is decoded, so a typo can never silently grant or deny
access. ``authorize`` is the only place role sets are evaluated.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class RoleName(str, Enum):
    OWNER = "Store Owner"
    ADMIN = "Admin"
    BAKER = "Baker"
    CASHIER = "Cashier"
    SUPER_ADMIN = "Super Admin"

    @classmethod
    def parse(cls, value: str) -> "RoleName":
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown role: {value!r}")


# Global-scope roles are not bound to any tenant namespace.
GLOBAL_ROLES = frozenset({RoleName.SUPER_ADMIN})

# Tenant roles an owner or admin may hand out to staff.
STAFF_ROLES = frozenset({RoleName.ADMIN, RoleName.BAKER, RoleName.CASHIER})

MANAGERS = (RoleName.OWNER, RoleName.ADMIN)
KITCHEN = (RoleName.OWNER, RoleName.ADMIN, RoleName.BAKER)
TILL = (RoleName.OWNER, RoleName.ADMIN, RoleName.CASHIER)

DENY_NO_ROLES = "no roles assigned"
DENY_INSUFFICIENT = "insufficient privilege"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.allowed


def authorize(roles: Iterable[RoleName], required: Iterable[RoleName]) -> Decision:
    """
    Evaluate a role set against the roles an operation accepts.

    Super Admin always passes. An empty role set is denied with a reason
    distinct from a non-empty set that simply misses every required role.
    """
    held = frozenset(roles)
    if not held:
        return Decision(False, DENY_NO_ROLES)
    if held & GLOBAL_ROLES:
        return Decision(True)
    if held & frozenset(required):
        return Decision(True)
    return Decision(False, DENY_INSUFFICIENT)
