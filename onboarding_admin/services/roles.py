"""Role registry queries and role assignment (SuperAdmin only)."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from onboarding_admin.models.security import Role, User
from onboarding_admin.security.auth import load_user
from onboarding_admin.security.context import SessionClaims
from onboarding_admin.security.policy import RoleName, can_act_on, is_super_admin
from onboarding_admin.services.errors import (
    AlreadyAssignedError,
    ForbiddenError,
    InvalidArgumentError,
    NotAssignedError,
    NotFoundError,
    SelfLockoutError,
)

logger = logging.getLogger(__name__)


def get_role(db: Session, name: str) -> Role | None:
    return db.execute(select(Role).where(Role.name == name)).scalar_one_or_none()


def list_roles(db: Session) -> list[str]:
    return list(db.scalars(select(Role.name).order_by(Role.id)).all())


def roles_for_user(db: Session, user_id: int) -> list[str]:
    user = load_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return sorted(user.role_names)


def users_in_role(db: Session, role_name: str) -> list[User]:
    role = get_role(db, role_name)
    if role is None:
        raise NotFoundError(f"Role '{role_name}' does not exist")

    stmt = (
        select(User)
        .join(User.roles)
        .where(Role.id == role.id)
        .options(selectinload(User.department), selectinload(User.roles))
        .order_by(User.id)
    )
    return list(db.scalars(stmt).unique().all())


def assign_role(db: Session, actor: SessionClaims, user_id: int, role_name: str) -> User:
    user = load_user(db, user_id, lock=True)
    if user is None:
        raise NotFoundError("User not found")
    _require_role_manager(actor, user)

    role = get_role(db, role_name)
    if role is None:
        raise InvalidArgumentError(f"Role '{role_name}' does not exist")

    if role.name in user.role_names:
        raise AlreadyAssignedError(f"User already has the '{role.name}' role")

    user.roles.append(role)
    db.commit()

    logger.info("Role %r assigned to user_id=%s by user_id=%s", role.name, user.id, actor.user_id)
    return user


def remove_role(db: Session, actor: SessionClaims, user_id: int, role_name: str) -> User:
    """
    Remove `role_name` from a user.

    Sessions already issued to the target keep their old claims until the next
    login; only new sessions see the change.
    """

    user = load_user(db, user_id, lock=True)
    if user is None:
        raise NotFoundError("User not found")
    _require_role_manager(actor, user)

    held = next((r for r in user.roles if r.name == role_name), None)
    if held is None:
        raise NotAssignedError(f"User does not have the '{role_name}' role")

    # Identity comparison, not role comparison: a SuperAdmin may demote another
    # SuperAdmin, never themselves.
    if role_name == RoleName.SUPER_ADMIN.value and user.id == actor.user_id:
        raise SelfLockoutError("You cannot remove the SuperAdmin role from your own account")

    user.roles.remove(held)
    db.commit()

    logger.info("Role %r removed from user_id=%s by user_id=%s", role_name, user.id, actor.user_id)
    return user


def _require_role_manager(actor: SessionClaims, target: User) -> None:
    if not is_super_admin(actor.roles) or not can_act_on(actor.roles, target.role_names):
        logger.info("Role change denied actor_id=%s target_id=%s", actor.user_id, target.id)
        raise ForbiddenError("Forbidden")
