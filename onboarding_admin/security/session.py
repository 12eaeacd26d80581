"""
Session cookie codec.

The cookie value is a signed (HS256) claims bundle. Verifying it needs no store
round-trip; see `SessionClaims` for what is and is not re-checked per request.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from fastapi import Response

from onboarding_admin.models.security import User
from onboarding_admin.security.context import SessionClaims
from onboarding_admin.settings import Settings


SESSION_ALGORITHM = "HS256"


class SessionError(Exception):
    """Raised when a session cookie is missing, tampered with, or expired. Do not log the cookie."""

    pass


def claims_for_user(user: User, settings: Settings, now: datetime | None = None) -> SessionClaims:
    issued_at = _truncate(now or datetime.now(timezone.utc))
    return SessionClaims(
        user_id=user.id,
        roles=user.role_names,
        full_name=user.full_name,
        department_id=user.department_id,
        department_name=user.department.name if user.department is not None else "",
        is_active=user.is_active,
        issued_at=issued_at,
        expires_at=issued_at + timedelta(minutes=settings.session_ttl_minutes),
    )


def encode_session(claims: SessionClaims, settings: Settings) -> str:
    payload: dict[str, Any] = {
        "sub": str(claims.user_id),
        "roles": sorted(claims.roles),
        "name": claims.full_name,
        "department_id": claims.department_id,
        "department_name": claims.department_name,
        "active": claims.is_active,
        "iat": int(claims.issued_at.timestamp()),
        "exp": int(claims.expires_at.timestamp()),
    }
    return jwt.encode(payload, settings.require_session_secret(), algorithm=SESSION_ALGORITHM)


def decode_session(value: str, settings: Settings) -> SessionClaims:
    try:
        payload = jwt.decode(
            value,
            settings.require_session_secret(),
            algorithms=[SESSION_ALGORITHM],
            options={"require": ["sub", "iat", "exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise SessionError("Session expired") from exc
    except jwt.InvalidTokenError as exc:
        raise SessionError("Invalid session") from exc

    try:
        roles = payload.get("roles") or []
        if not isinstance(roles, list):
            raise TypeError("roles must be a list")
        return SessionClaims(
            user_id=int(payload["sub"]),
            roles=frozenset(str(r) for r in roles),
            full_name=str(payload.get("name") or ""),
            department_id=int(payload["department_id"]),
            department_name=str(payload.get("department_name") or ""),
            is_active=bool(payload.get("active")),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise SessionError("Invalid session") from exc


def needs_renewal(claims: SessionClaims, settings: Settings, now: datetime | None = None) -> bool:
    """Sliding expiration: renew once less than half of the lifetime is left."""
    now = now or datetime.now(timezone.utc)
    remaining = claims.expires_at - now
    return remaining < timedelta(minutes=settings.session_ttl_minutes) / 2


def renew(claims: SessionClaims, settings: Settings, now: datetime | None = None) -> SessionClaims:
    """Same snapshot, fresh lifetime. Roles are deliberately not re-read here."""
    issued_at = _truncate(now or datetime.now(timezone.utc))
    return SessionClaims(
        user_id=claims.user_id,
        roles=claims.roles,
        full_name=claims.full_name,
        department_id=claims.department_id,
        department_name=claims.department_name,
        is_active=claims.is_active,
        issued_at=issued_at,
        expires_at=issued_at + timedelta(minutes=settings.session_ttl_minutes),
    )


def set_session_cookie(response: Response, claims: SessionClaims, settings: Settings) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=encode_session(claims, settings),
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        max_age=settings.session_ttl_minutes * 60,
        path="/",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        samesite="lax",
        secure=settings.session_cookie_secure,
        httponly=True,
    )


def _truncate(moment: datetime) -> datetime:
    # JWT timestamps are whole seconds; keep the in-memory claims identical to the decoded ones.
    return moment.replace(microsecond=0)
