"""
Identity administration and self-service profile operations.

Administrative operations follow the same order:

1. load the target (NotFound if absent),
2. consult `can_act_on` with the actor's roles and the target's *current* roles,
3. run the remaining checks, then mutate and commit within the same transaction.

NotFound is always decided before Forbidden so the two stay distinguishable.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from onboarding_admin.models.security import Department, User
from onboarding_admin.schemas.security import CreateUserRequest, UpdateProfileRequest, UpdateUserRequest
from onboarding_admin.security.auth import load_user
from onboarding_admin.security.context import SessionClaims
from onboarding_admin.security.passwords import hash_password, password_problems
from onboarding_admin.security.policy import RoleName, can_act_on, can_create_with_role
from onboarding_admin.services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
    SelfDeactivationError,
)
from onboarding_admin.services.roles import get_role

logger = logging.getLogger(__name__)


def list_users(db: Session, actor: SessionClaims) -> list[User]:
    """All users the actor may administer (Admins only see plain users)."""
    stmt = select(User).options(selectinload(User.department), selectinload(User.roles)).order_by(User.id)
    users = db.scalars(stmt).all()
    return [u for u in users if can_act_on(actor.roles, u.role_names)]


def get_user(db: Session, actor: SessionClaims, user_id: int) -> User:
    return _load_manageable(db, actor, user_id)


def dashboard_statistics(db: Session) -> dict[str, int]:
    return {
        "total_employees": db.scalar(select(func.count(User.id))) or 0,
        "total_departments": db.scalar(select(func.count(Department.id))) or 0,
    }


def create_user(db: Session, actor: SessionClaims, request: CreateUserRequest) -> User:
    role_name = request.role or RoleName.USER.value
    if not can_create_with_role(actor.roles, role_name):
        logger.info("Create user denied actor_id=%s requested_role=%r", actor.user_id, role_name)
        raise ForbiddenError("Forbidden")

    if _exists(db, User.email == request.email):
        raise ConflictError("User with this email already exists")
    # Usernames are unique regardless of case; the stored spelling is kept for display.
    if _exists(db, func.lower(User.username) == request.username.lower()):
        raise ConflictError("User with this username already exists")

    _require_assignable_department(db, request.department_id)

    role = get_role(db, role_name)
    if role is None:
        raise InvalidArgumentError(f"Role '{role_name}' does not exist")

    _require_valid_password(request.password)

    user = User(
        username=request.username,
        email=request.email,
        email_confirmed=True,
        password_hash=hash_password(request.password),
        first_name=request.first_name,
        last_name=request.last_name,
        phone=request.phone,
        address=request.address,
        start_date=request.start_date,
        employee_id=request.employee_id,
        department_id=request.department_id,
        is_active=True,
        created_at=_now(),
    )
    user.roles.append(role)
    db.add(user)
    db.commit()

    logger.info("User %s created with role %r by user_id=%s", user.id, role.name, actor.user_id)
    return load_user(db, user.id)


def update_user(db: Session, actor: SessionClaims, user_id: int, request: UpdateUserRequest) -> User:
    user = _load_manageable(db, actor, user_id, lock=True)

    if request.is_active is False and user.id == actor.user_id:
        raise SelfDeactivationError("You cannot deactivate your own account")

    # All checks run before the row is touched.
    moving = request.department_id is not None and request.department_id != user.department_id
    if moving:
        _require_assignable_department(db, request.department_id)

    _apply_profile(user, request)
    if request.start_date is not None:
        user.start_date = request.start_date
    if request.employee_id:
        user.employee_id = request.employee_id

    if moving:
        _release_managed_department(db, user, request.department_id)
        user.department_id = request.department_id

    if request.is_active is not None:
        user.is_active = request.is_active

    user.updated_at = _now()
    db.commit()

    logger.info("User %s updated by user_id=%s", user.id, actor.user_id)
    db.expire(user)
    return load_user(db, user.id)


def deactivate_user(db: Session, actor: SessionClaims, user_id: int) -> None:
    """
    Deactivate (never delete) a user.

    Existing sessions of the target stop being honoured on their next request,
    because the security dependency re-reads the active flag.
    """

    user = load_user(db, user_id, lock=True)
    if user is None:
        raise NotFoundError("User not found")
    if user.id == actor.user_id:
        raise SelfDeactivationError("You cannot deactivate your own account")
    _require_can_act_on(actor, user)

    user.is_active = False
    user.updated_at = _now()
    db.commit()

    logger.info("User %s deactivated by user_id=%s", user.id, actor.user_id)


def reset_password(db: Session, actor: SessionClaims, user_id: int, new_password: str) -> None:
    user = _load_manageable(db, actor, user_id, lock=True)
    _require_valid_password(new_password)

    # One column, one commit: there is no window in which the user has no password.
    user.password_hash = hash_password(new_password)
    user.updated_at = _now()
    db.commit()

    logger.info("Password reset for user %s by user_id=%s", user.id, actor.user_id)


def get_own_profile(db: Session, actor: SessionClaims) -> User:
    user = load_user(db, actor.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def update_own_profile(db: Session, actor: SessionClaims, request: UpdateProfileRequest) -> User:
    """Self-service update. Only profile fields; department, roles and the active flag are admin-only."""
    user = load_user(db, actor.user_id, lock=True)
    if user is None:
        raise NotFoundError("User not found")

    _apply_profile(user, request)
    user.updated_at = _now()
    db.commit()

    logger.info("User %s updated their profile", user.id)
    db.expire(user)
    return load_user(db, user.id)


# ---- helpers ---------------------------------------------------------------------------


def _load_manageable(db: Session, actor: SessionClaims, user_id: int, *, lock: bool = False) -> User:
    user = load_user(db, user_id, lock=lock)
    if user is None:
        raise NotFoundError("User not found")
    _require_can_act_on(actor, user)
    return user


def _require_can_act_on(actor: SessionClaims, user: User) -> None:
    if not can_act_on(actor.roles, user.role_names):
        logger.info("Administrative action denied actor_id=%s target_id=%s", actor.user_id, user.id)
        raise ForbiddenError("Forbidden")


def _apply_profile(user: User, request: UpdateProfileRequest | UpdateUserRequest) -> None:
    if request.first_name:
        user.first_name = request.first_name
    if request.last_name:
        user.last_name = request.last_name
    if request.phone:
        user.phone = request.phone
    if request.address:
        user.address = request.address


def _require_assignable_department(db: Session, department_id: int) -> Department:
    department = db.get(Department, department_id)
    if department is None:
        raise InvalidArgumentError("Department not found")
    if not department.is_active:
        raise InvalidArgumentError("Department is inactive")
    return department


def _release_managed_department(db: Session, user: User, new_department_id: int) -> None:
    """A manager who moves out of their department stops managing it."""
    managed = db.execute(
        select(Department).where(Department.manager_id == user.id).with_for_update()
    ).scalar_one_or_none()
    if managed is None or managed.id == new_department_id:
        return

    managed.manager_id = None
    managed.updated_at = _now()
    logger.info("Cleared manager of department %s: user %s moved to department %s", managed.id, user.id, new_department_id)


def _require_valid_password(password: str) -> None:
    problems = password_problems(password)
    if problems:
        raise InvalidArgumentError("; ".join(problems))


def _exists(db: Session, criterion) -> bool:
    return db.execute(select(User.id).where(criterion).limit(1)).first() is not None


def _now() -> datetime:
    return datetime.now(timezone.utc)
