from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Engine, func, select
from sqlalchemy.orm import Session, sessionmaker

from onboarding_admin.db.base import Base
from onboarding_admin.models.security import Department, Role, User
from onboarding_admin.security.passwords import hash_password, password_problems
from onboarding_admin.security.policy import ROLE_DESCRIPTIONS, RoleName
from onboarding_admin.settings import Settings

logger = logging.getLogger(__name__)

SYSTEM_ADMINISTRATION = "System Administration"

DEFAULT_DEPARTMENTS: tuple[tuple[str, str], ...] = (
    ("Unassigned", "Default department for users without a specific assignment"),
    ("Engineering", "Software development and engineering team"),
    ("Human Resources", "HR and personnel management"),
    ("Sales", "Sales and business development"),
    ("Support", "Customer support and success"),
)


class SeedingError(RuntimeError):
    """Raised when startup seeding cannot leave the store with a usable administrator."""


def init_db(engine: Engine, session_factory: sessionmaker[Session], settings: Settings) -> None:
    """
    Create tables + seed.

    Order matters: departments first, then roles, then the bootstrap
    administrator (which needs both). Every step is idempotent, so running this
    on each startup is safe. Any failure propagates and aborts startup.
    """

    Base.metadata.create_all(bind=engine)

    with session_factory() as db:
        seed_departments(db)
        ensure_roles_exist(db)
        ensure_bootstrap_administrator(db, settings)


def seed_departments(db: Session) -> int:
    """Create the default departments on a store that has none. Returns how many were created."""
    if db.execute(select(Department.id).limit(1)).first() is not None:
        logger.debug("Departments already exist; skipping department seeding")
        return 0

    now = _now()
    db.add_all(
        Department(name=name, description=description, is_active=True, created_at=now)
        for name, description in DEFAULT_DEPARTMENTS
    )
    db.commit()

    logger.info("Created %d default departments", len(DEFAULT_DEPARTMENTS))
    return len(DEFAULT_DEPARTMENTS)


def ensure_roles_exist(db: Session) -> list[str]:
    """Create any missing role from the fixed role set. Returns the names that were created."""
    existing = set(db.scalars(select(Role.name)).all())
    missing = [r for r in RoleName if r.value not in existing]

    try:
        for role in missing:
            db.add(Role(name=role.value, description=ROLE_DESCRIPTIONS[role]))
        db.commit()
    except Exception as exc:
        db.rollback()
        raise SeedingError(f"Failed to create roles {[r.value for r in missing]}: {exc}") from exc

    for role in missing:
        logger.info("Created role %r", role.value)
    return [r.value for r in missing]


def ensure_bootstrap_administrator(db: Session, settings: Settings) -> User | None:
    """
    Create the first SuperAdmin when the store has no users at all.

    The account lives in the "System Administration" department (created if
    absent) and becomes its manager. Credentials come from settings only.
    Returns the created user, or None when users already exist.
    """

    if (db.scalar(select(func.count(User.id))) or 0) > 0:
        return None

    email = (settings.bootstrap_admin_email or "").strip().lower()
    password = settings.bootstrap_admin_password or ""
    if not email or not password:
        raise SeedingError(
            "The user store is empty: APP_BOOTSTRAP_ADMIN_EMAIL and APP_BOOTSTRAP_ADMIN_PASSWORD must be set"
        )
    problems = password_problems(password)
    if problems:
        raise SeedingError(f"Bootstrap administrator password rejected: {'; '.join(problems)}")

    role = db.execute(select(Role).where(Role.name == RoleName.SUPER_ADMIN.value)).scalar_one_or_none()
    if role is None:
        raise SeedingError(f"Role '{RoleName.SUPER_ADMIN.value}' is missing; seed roles first")

    try:
        department = db.execute(
            select(Department).where(Department.name == SYSTEM_ADMINISTRATION)
        ).scalar_one_or_none()
        if department is None:
            department = Department(
                name=SYSTEM_ADMINISTRATION,
                description="System administrators and technical staff",
                is_active=True,
                created_at=_now(),
            )
            db.add(department)
            db.flush()

        admin = User(
            username=email,
            email=email,
            email_confirmed=True,
            password_hash=hash_password(password),
            first_name=settings.bootstrap_admin_first_name,
            last_name=settings.bootstrap_admin_last_name,
            department_id=department.id,
            is_active=True,
            created_at=_now(),
        )
        admin.roles.append(role)
        db.add(admin)
        db.flush()

        department.manager_id = admin.id
        db.commit()
    except Exception as exc:
        db.rollback()
        raise SeedingError(f"Failed to create bootstrap administrator: {exc}") from exc

    logger.info("Created bootstrap administrator user_id=%s in department %s", admin.id, department.id)
    return admin


def _now() -> datetime:
    return datetime.now(timezone.utc)
