from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from onboarding_admin.models.security import User
from onboarding_admin.security.passwords import verify_password
from onboarding_admin.services.errors import UnauthorizedError

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


def load_user(db: Session, user_id: int, *, lock: bool = False) -> User | None:
    stmt = (
        select(User)
        .where(User.id == user_id)
        .options(
            selectinload(User.department),
            selectinload(User.roles),
        )
    )
    if lock:
        stmt = stmt.with_for_update()
    return db.execute(stmt).scalar_one_or_none()


def load_user_by_email(db: Session, email: str) -> User | None:
    return db.execute(
        select(User)
        .where(User.email == email.strip().lower())
        .options(
            selectinload(User.department),
            selectinload(User.roles),
        )
    ).scalar_one_or_none()


def authenticate(db: Session, email: str, password: str) -> User:
    """
    Verify credentials.

    Unknown email, wrong password and inactive account all produce the same
    error so the response does not reveal which accounts exist.
    """

    user = load_user_by_email(db, email)
    if user is None:
        logger.info("Login failed: unknown email")
        raise UnauthorizedError(INVALID_CREDENTIALS)

    if not verify_password(password, user.password_hash):
        logger.info("Login failed: bad password user_id=%s", user.id)
        raise UnauthorizedError(INVALID_CREDENTIALS)

    if not user.is_active:
        logger.warning("Login failed: inactive user_id=%s", user.id)
        raise UnauthorizedError(INVALID_CREDENTIALS)

    return user


def is_user_active(db: Session, user_id: int) -> bool:
    """Single-column lookup used on every authenticated request. Missing users count as inactive."""
    active = db.execute(select(User.is_active).where(User.id == user_id)).scalar_one_or_none()
    return bool(active)
