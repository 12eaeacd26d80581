from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from onboarding_admin.db.session import get_db
from onboarding_admin.security.auth import is_user_active
from onboarding_admin.security.config import SecurityConfig
from onboarding_admin.security.context import SessionClaims
from onboarding_admin.security.session import (
    SessionError,
    decode_session,
    needs_renewal,
    renew,
    set_session_cookie,
)
from onboarding_admin.settings import Settings

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        raise RuntimeError("Settings not attached to the app. Was it built with create_app()?")
    return settings


def get_security_config(request: Request) -> SecurityConfig:
    config = getattr(request.app.state, "security_config", None)
    if config is None:
        raise RuntimeError("Security config not loaded. Did app startup run?")
    return config


def get_current_claims(request: Request) -> SessionClaims:
    claims = getattr(request.state, "claims", None)
    if claims is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return claims


def enforce_security(
    request: Request,
    response: Response,
    config: SecurityConfig = Depends(get_security_config),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db, use_cache=False),
) -> None:
    """
    Global security dependency (configuration-driven).

    Runs before every handler:
    - public routes pass through untouched;
    - otherwise the session cookie must verify, the identity must still be
      active, and the session's roles must satisfy the route's role gate.

    Roles come from the session snapshot; only the active flag is re-read.
    """

    path = request.url.path
    method = request.method.upper()

    rule = config.match(path, method)
    if not rule.auth_required:
        return

    raw = request.cookies.get(settings.session_cookie_name)
    if not raw:
        logger.info("Missing session cookie (auth required) path=%s method=%s", path, method)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    try:
        claims = decode_session(raw, settings)
    except SessionError as exc:
        logger.info("Rejected session (%s) path=%s method=%s", exc, path, method)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required") from exc

    if not is_user_active(db, claims.user_id):
        logger.warning("Session for inactive or missing user_id=%s path=%s", claims.user_id, path)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or inactive user")

    if rule.required_roles and not (claims.roles & rule.required_roles):
        logger.info("Insufficient role user_id=%s path=%s method=%s", claims.user_id, path, method)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Insufficient role. Required one of: {sorted(rule.required_roles)}",
        )

    if needs_renewal(claims, settings):
        claims = renew(claims, settings)
        set_session_cookie(response, claims, settings)

    request.state.claims = claims
