"""
Pytest fixtures for the test suite.

Every test gets a fresh in-memory SQLite database (StaticPool keeps the single
connection alive so the app, its lifespan and the test share it). Services
commit, so there is no outer rollback: the database simply disappears with
the engine.
"""
from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from onboarding_admin.db.session import build_engine, build_session_factory
from onboarding_admin.models.security import Department, Role, User
from onboarding_admin.security.context import SessionClaims
from onboarding_admin.security.passwords import hash_password
from onboarding_admin.security.session import claims_for_user
from onboarding_admin.settings import Settings


TEST_DB_URL = "sqlite://"
SECURITY_CONFIG_PATH = Path(__file__).resolve().parents[1] / "config" / "security_config.yaml"

BOOTSTRAP_EMAIL = "root@example.com"
BOOTSTRAP_PASSWORD = "Bootstrap@2024!"
DEFAULT_PASSWORD = "Welcome@123"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        db_url=TEST_DB_URL,
        security_config_path=str(SECURITY_CONFIG_PATH),
        session_secret="test-session-secret-with-enough-length",
        session_cookie_secure=False,
        session_ttl_minutes=60,
        bootstrap_admin_email=BOOTSTRAP_EMAIL,
        bootstrap_admin_password=BOOTSTRAP_PASSWORD,
    )


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite engine for each test."""
    return build_engine(TEST_DB_URL, poolclass=StaticPool)


@pytest.fixture
def tables(engine):
    """Create all ORM tables on the test engine."""
    from onboarding_admin.db.base import Base

    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(tables) -> Iterator[Session]:
    session = build_session_factory(tables)()
    yield session
    session.close()


@pytest.fixture
def seeded(db_session, settings) -> User:
    """Run the startup seeding and return the bootstrap administrator."""
    from onboarding_admin.db.init_db import ensure_bootstrap_administrator, ensure_roles_exist, seed_departments

    seed_departments(db_session)
    ensure_roles_exist(db_session)
    return ensure_bootstrap_administrator(db_session, settings)


@pytest.fixture
def department(db_session) -> Callable[[str], Department]:
    def _department(name: str) -> Department:
        existing = db_session.execute(select(Department).where(Department.name == name)).scalar_one_or_none()
        if existing is not None:
            return existing
        dept = Department(name=name, description=f"{name} dept", is_active=True)
        db_session.add(dept)
        db_session.commit()
        return dept

    return _department


@pytest.fixture
def make_user(db_session, department) -> Callable[..., User]:
    """Insert a user directly (bypassing the service layer) with the given roles."""

    def _make_user(
        username: str,
        *roles: str,
        dept: str = "Engineering",
        password: str = DEFAULT_PASSWORD,
        is_active: bool = True,
    ) -> User:
        user = User(
            username=username,
            email=f"{username}@example.com",
            email_confirmed=True,
            password_hash=hash_password(password),
            first_name=username.capitalize(),
            last_name="Tester",
            department_id=department(dept).id,
            is_active=is_active,
        )
        for name in roles:
            user.roles.append(db_session.execute(select(Role).where(Role.name == name)).scalar_one())
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def claims(settings) -> Callable[[User], SessionClaims]:
    """Session claims an actor would carry after logging in."""

    def _claims(user: User) -> SessionClaims:
        return claims_for_user(user, settings)

    return _claims


@pytest.fixture
def client(engine, settings) -> Iterator[TestClient]:
    """App client; the lifespan seeds departments, roles and the bootstrap administrator."""
    from onboarding_admin.main import create_app
    from onboarding_admin.security.config import load_security_config

    app = create_app(settings=settings, engine=engine, security_config=load_security_config(SECURITY_CONFIG_PATH))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def default_password() -> str:
    return DEFAULT_PASSWORD


@pytest.fixture
def login_as(client):
    """Log `client` in; the session cookie is kept by the client for later requests."""

    def _login_as(email: str, password: str = DEFAULT_PASSWORD):
        return client.post("/api/authentication/login", json={"email": email, "password": password})

    return _login_as


@pytest.fixture
def login_as_bootstrap(login_as):
    def _login():
        response = login_as(BOOTSTRAP_EMAIL, BOOTSTRAP_PASSWORD)
        assert response.status_code == 200, response.text
        return response.json()

    return _login
