from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import Engine

from onboarding_admin.db.init_db import init_db
from onboarding_admin.db.session import build_session_factory, get_engine
from onboarding_admin.logging_config import configure_app_logging
from onboarding_admin.routers import auth, departments, health, roles, users
from onboarding_admin.security.config import SecurityConfig, load_security_config
from onboarding_admin.security.dependencies import enforce_security
from onboarding_admin.services.errors import OperationError
from onboarding_admin.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    engine: Engine | None = None,
    security_config: SecurityConfig | None = None,
) -> FastAPI:
    """
    Build the application.

    Arguments default to the configured environment; tests pass an in-memory
    engine and explicit settings.
    """

    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        configure_app_logging(settings.log_level)
        logger.info("App startup beginning")

        settings.require_session_secret()

        if app.state.security_config is None:
            app.state.security_config = load_security_config(settings.resolved_security_config_path())
            logger.info("Loaded security config: %s", settings.resolved_security_config_path())

        # Seeding failures abort startup: the service must not run without an administrator.
        init_db(app.state.engine, app.state.session_factory, settings)
        logger.info("Database initialized (tables ensured + seed if needed)")

        yield
        # Shutdown
        app.state.engine.dispose()

    # Global dependency: every route goes through the security gate.
    app = FastAPI(title="Onboarding Admin", dependencies=[Depends(enforce_security)], lifespan=lifespan)

    app.state.settings = settings
    app.state.engine = engine or get_engine()
    app.state.session_factory = build_session_factory(app.state.engine)
    app.state.security_config = security_config

    _install_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(roles.router)
    app.include_router(departments.router)

    return app


def _install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(OperationError)
    async def _operation_error(request: Request, exc: OperationError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error path=%s method=%s", request.url.path, request.method)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"kind": "internal", "message": "An unexpected error occurred"},
        )


app = create_app()
