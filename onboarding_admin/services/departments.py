"""
Department administration.

Ownership invariant: when `Department.manager_id` is set, that user's
`department_id` equals the department's id. It is checked on every write path
that sets a manager (create, update, assign). Moving a manager to another
department clears the reference (see `services.users`).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from onboarding_admin.models.security import Department, User
from onboarding_admin.schemas.security import CreateDepartmentRequest, UpdateDepartmentRequest
from onboarding_admin.security.context import SessionClaims
from onboarding_admin.security.policy import RoleName, is_admin, is_super_admin
from onboarding_admin.services.errors import (
    ConflictError,
    ForbiddenError,
    HasMembersError,
    InvalidArgumentError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

MANAGER_NOT_MEMBER = "Manager must belong to this department"


def list_departments(db: Session) -> list[Department]:
    stmt = (
        select(Department)
        .options(selectinload(Department.users), selectinload(Department.manager))
        .order_by(Department.name)
    )
    return list(db.scalars(stmt).all())


def load_department(db: Session, department_id: int, *, lock: bool = False) -> Department | None:
    stmt = (
        select(Department)
        .where(Department.id == department_id)
        .options(selectinload(Department.users), selectinload(Department.manager))
    )
    if lock:
        stmt = stmt.with_for_update()
    return db.execute(stmt).scalar_one_or_none()


def get_department(db: Session, department_id: int) -> Department:
    department = load_department(db, department_id)
    if department is None:
        raise NotFoundError("Department not found")
    return department


def create_department(db: Session, actor: SessionClaims, request: CreateDepartmentRequest) -> Department:
    """
    Create an active department.

    Admins may create departments just like SuperAdmins (unlike user creation,
    which is role-restricted for Admins).
    """

    _require_department_editor(actor)

    if _name_taken(db, request.name):
        raise ConflictError("A department with this name already exists")

    if request.manager_id is not None:
        # A department that does not exist yet has no members, so no candidate
        # can satisfy the membership rule. Assign the manager afterwards.
        _require_manager_candidate(db, request.manager_id)
        raise InvalidArgumentError(MANAGER_NOT_MEMBER)

    department = Department(
        name=request.name,
        description=request.description,
        is_active=True,
        created_at=_now(),
    )
    db.add(department)
    db.commit()

    logger.info("Department %s (%r) created by user_id=%s", department.id, department.name, actor.user_id)
    return get_department(db, department.id)


def update_department(
    db: Session,
    actor: SessionClaims,
    department_id: int,
    request: UpdateDepartmentRequest,
) -> Department:
    """Full replace of name, description and manager (an omitted manager clears it)."""

    _require_department_editor(actor)

    department = load_department(db, department_id, lock=True)
    if department is None:
        raise NotFoundError("Department not found")

    if request.name != department.name and _name_taken(db, request.name, exclude_id=department.id):
        raise ConflictError("A department with this name already exists")

    manager_id: int | None = None
    if request.manager_id is not None:
        manager = _require_manager_candidate(db, request.manager_id)
        if manager.department_id != department.id:
            raise InvalidArgumentError(MANAGER_NOT_MEMBER)
        manager_id = manager.id

    department.name = request.name
    department.description = request.description
    department.manager_id = manager_id
    department.updated_at = _now()
    db.commit()

    logger.info("Department %s updated by user_id=%s", department.id, actor.user_id)
    db.expire(department)
    return get_department(db, department.id)


def assign_manager(db: Session, actor: SessionClaims, department_id: int, manager_id: int) -> Department:
    _require_department_editor(actor)

    # Row lock serialises concurrent manager assignments for the same department.
    department = load_department(db, department_id, lock=True)
    if department is None:
        raise NotFoundError("Department not found")

    manager = db.get(User, manager_id)
    if manager is None:
        raise NotFoundError("Manager user not found")

    if manager.department_id != department.id:
        raise InvalidArgumentError(MANAGER_NOT_MEMBER)

    department.manager_id = manager.id
    department.updated_at = _now()
    db.commit()

    logger.info("User %s assigned as manager of department %s by user_id=%s", manager.id, department.id, actor.user_id)
    db.expire(department)
    return get_department(db, department.id)


def deactivate_department(db: Session, actor: SessionClaims, department_id: int) -> None:
    """
    Soft-delete a department.

    Refused while any user still belongs to it; members have to be reassigned first.
    """

    if not is_super_admin(actor.roles):
        raise ForbiddenError("Forbidden")

    department = load_department(db, department_id, lock=True)
    if department is None:
        raise NotFoundError("Department not found")

    members = db.scalar(select(func.count(User.id)).where(User.department_id == department.id)) or 0
    if members:
        raise HasMembersError("Cannot delete a department with assigned users. Please reassign users first.")

    department.is_active = False
    department.updated_at = _now()
    db.commit()

    logger.info("Department %s deactivated by user_id=%s", department.id, actor.user_id)


# ---- helpers ---------------------------------------------------------------------------


def _require_department_editor(actor: SessionClaims) -> None:
    if not (is_super_admin(actor.roles) or is_admin(actor.roles)):
        logger.info("Department change denied actor_id=%s roles=%s", actor.user_id, sorted(actor.roles))
        raise ForbiddenError(f"Requires {RoleName.SUPER_ADMIN.value} or {RoleName.ADMIN.value}")


def _require_manager_candidate(db: Session, manager_id: int) -> User:
    manager = db.get(User, manager_id)
    if manager is None:
        raise InvalidArgumentError("Manager user not found")
    return manager


def _name_taken(db: Session, name: str, *, exclude_id: int | None = None) -> bool:
    stmt = select(Department.id).where(Department.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Department.id != exclude_id)
    return db.execute(stmt.limit(1)).first() is not None


def _now() -> datetime:
    return datetime.now(timezone.utc)
