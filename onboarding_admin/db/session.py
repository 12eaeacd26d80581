from __future__ import annotations

from collections.abc import Generator
from functools import lru_cache

from fastapi import Request
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from onboarding_admin.settings import get_settings


def build_engine(db_url: str, **kwargs) -> Engine:
    """
    Create an engine for `db_url`.

    SQLite needs two adjustments: connections are shared across threads by the
    ASGI server, and foreign keys are off unless enabled per connection.
    """

    is_sqlite = db_url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}
    engine = create_engine(db_url, connect_args=connect_args, **kwargs)

    if is_sqlite:

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False, class_=Session)


@lru_cache
def get_engine() -> Engine:
    return build_engine(get_settings().resolved_db_url())


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Main DB dependency.

    The session factory lives on `app.state` so the application factory decides
    which engine is used (the configured one, or an in-memory engine in tests).
    """

    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
