"""Tests for startup seeding: default departments, roles and the bootstrap administrator."""
from __future__ import annotations

import pytest
from sqlalchemy import func, select

from onboarding_admin.db.init_db import (
    DEFAULT_DEPARTMENTS,
    SYSTEM_ADMINISTRATION,
    SeedingError,
    ensure_bootstrap_administrator,
    ensure_roles_exist,
    init_db,
    seed_departments,
)
from onboarding_admin.db.session import build_session_factory
from onboarding_admin.models.security import Department, Role, User


def _count(db, model) -> int:
    return db.scalar(select(func.count()).select_from(model))


def test_ensure_roles_exist_is_idempotent(db_session):
    assert ensure_roles_exist(db_session) == ["SuperAdmin", "Admin", "User"]
    assert ensure_roles_exist(db_session) == []

    names = sorted(db_session.scalars(select(Role.name)).all())
    assert names == ["Admin", "SuperAdmin", "User"]


def test_ensure_roles_exist_fills_gaps(db_session):
    db_session.add(Role(name="Admin"))
    db_session.commit()

    assert ensure_roles_exist(db_session) == ["SuperAdmin", "User"]
    assert _count(db_session, Role) == 3


def test_seed_departments_is_idempotent(db_session):
    assert seed_departments(db_session) == len(DEFAULT_DEPARTMENTS)
    assert seed_departments(db_session) == 0

    names = set(db_session.scalars(select(Department.name)).all())
    assert names == {name for name, _ in DEFAULT_DEPARTMENTS}


def test_bootstrap_on_empty_store_creates_one_admin_managing_system_administration(db_session, settings):
    ensure_roles_exist(db_session)

    admin = ensure_bootstrap_administrator(db_session, settings)

    assert admin is not None
    assert _count(db_session, User) == 1
    assert _count(db_session, Department) == 1

    department = db_session.execute(select(Department)).scalar_one()
    assert department.name == SYSTEM_ADMINISTRATION
    assert department.manager_id == admin.id
    assert admin.department_id == department.id
    assert admin.role_names == frozenset({"SuperAdmin"})
    assert admin.email == settings.bootstrap_admin_email
    assert admin.is_active is True
    assert admin.email_confirmed is True


def test_bootstrap_twice_changes_nothing(db_session, settings):
    ensure_roles_exist(db_session)
    first = ensure_bootstrap_administrator(db_session, settings)

    assert ensure_bootstrap_administrator(db_session, settings) is None
    assert _count(db_session, User) == 1
    assert _count(db_session, Department) == 1
    assert db_session.execute(select(Department)).scalar_one().manager_id == first.id


def test_bootstrap_reuses_existing_system_administration_department(db_session, settings):
    db_session.add(Department(name=SYSTEM_ADMINISTRATION))
    db_session.commit()
    ensure_roles_exist(db_session)

    ensure_bootstrap_administrator(db_session, settings)

    assert _count(db_session, Department) == 1


def test_bootstrap_requires_configured_credentials(db_session, settings):
    ensure_roles_exist(db_session)
    settings.bootstrap_admin_password = None

    with pytest.raises(SeedingError, match="APP_BOOTSTRAP_ADMIN"):
        ensure_bootstrap_administrator(db_session, settings)
    assert _count(db_session, User) == 0


def test_bootstrap_rejects_weak_password(db_session, settings):
    ensure_roles_exist(db_session)
    settings.bootstrap_admin_password = "weak"

    with pytest.raises(SeedingError, match="password"):
        ensure_bootstrap_administrator(db_session, settings)


def test_bootstrap_requires_roles(db_session, settings):
    with pytest.raises(SeedingError, match="SuperAdmin"):
        ensure_bootstrap_administrator(db_session, settings)
    assert _count(db_session, User) == 0


def test_bootstrap_not_needed_on_populated_store_even_without_credentials(db_session, settings, make_user):
    ensure_roles_exist(db_session)
    make_user("existing", "User")
    settings.bootstrap_admin_email = None

    assert ensure_bootstrap_administrator(db_session, settings) is None


def test_init_db_twice_gives_identical_state(engine, settings):
    factory = build_session_factory(engine)

    init_db(engine, factory, settings)
    with factory() as db:
        before = (_count(db, Department), _count(db, Role), _count(db, User))

    init_db(engine, factory, settings)
    with factory() as db:
        after = (_count(db, Department), _count(db, Role), _count(db, User))

    # 5 defaults + System Administration, 3 roles, 1 bootstrap administrator
    assert before == after == (len(DEFAULT_DEPARTMENTS) + 1, 3, 1)
