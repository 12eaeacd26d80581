"""
Administrative authorization policy.

Roles are flat in storage (a plain many-to-many between users and roles). The
SuperAdmin > Admin > User ordering exists only here, as code, so the rules can
be unit-tested without a database and a new tier does not need a migration.

Every check takes the *current* role sets. Nothing here is cached: role
assignments can change between two requests.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum


class RoleName(str, Enum):
    SUPER_ADMIN = "SuperAdmin"
    ADMIN = "Admin"
    USER = "User"

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(r.value for r in cls)

    @classmethod
    def parse(cls, raw: str) -> RoleName | None:
        try:
            return cls(raw)
        except ValueError:
            return None


ROLE_DESCRIPTIONS: dict[RoleName, str] = {
    RoleName.SUPER_ADMIN: "Full administrative access, including role management",
    RoleName.ADMIN: "Manages regular users and departments",
    RoleName.USER: "Regular onboarding user",
}

# Roles an Admin may not touch. Anything holding one of these is out of reach
# for everyone except a SuperAdmin.
PRIVILEGED_ROLES: frozenset[str] = frozenset({RoleName.SUPER_ADMIN.value, RoleName.ADMIN.value})


def _names(roles: Iterable[str | RoleName]) -> frozenset[str]:
    return frozenset(r.value if isinstance(r, RoleName) else str(r) for r in roles)


def is_super_admin(roles: Iterable[str | RoleName]) -> bool:
    return RoleName.SUPER_ADMIN.value in _names(roles)


def is_admin(roles: Iterable[str | RoleName]) -> bool:
    return RoleName.ADMIN.value in _names(roles)


def can_act_on(acting_roles: Iterable[str | RoleName], target_roles: Iterable[str | RoleName]) -> bool:
    """
    Decide whether an actor may perform an administrative action on a target.

    - SuperAdmin: always (self included; self-protection rules live with the
      operations that need them).
    - Admin: only when the target holds neither SuperAdmin nor Admin.
    - Anyone else: never. Self-service goes through the profile endpoints instead.
    """

    acting = _names(acting_roles)
    if RoleName.SUPER_ADMIN.value in acting:
        return True
    if RoleName.ADMIN.value in acting:
        return not (_names(target_roles) & PRIVILEGED_ROLES)
    return False


def can_create_with_role(acting_roles: Iterable[str | RoleName], requested_role: str | RoleName) -> bool:
    """
    Role gate for identity creation.

    A SuperAdmin may create any role. An Admin (without SuperAdmin) may only
    create plain users.
    """

    acting = _names(acting_roles)
    requested = requested_role.value if isinstance(requested_role, RoleName) else str(requested_role)
    if RoleName.SUPER_ADMIN.value in acting:
        return True
    if RoleName.ADMIN.value in acting:
        return requested == RoleName.USER.value
    return False
