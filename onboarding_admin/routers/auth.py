from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from onboarding_admin.db.session import get_db
from onboarding_admin.models.security import User
from onboarding_admin.schemas.security import ClaimsOut, LoginRequest, MessageOut, UpdateProfileRequest, UserOut
from onboarding_admin.security.auth import authenticate
from onboarding_admin.security.context import SessionClaims
from onboarding_admin.security.dependencies import get_app_settings, get_current_claims
from onboarding_admin.security.session import claims_for_user, clear_session_cookie, set_session_cookie
from onboarding_admin.services import users as user_service
from onboarding_admin.settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/authentication", tags=["authentication"])


@router.post("/login", response_model=UserOut)
def login(
    body: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> User:
    user = authenticate(db, body.email, body.password)
    set_session_cookie(response, claims_for_user(user, settings), settings)
    logger.info("User %s logged in", user.id)
    return user


@router.post("/logout", response_model=MessageOut)
def logout(
    response: Response,
    claims: SessionClaims = Depends(get_current_claims),
    settings: Settings = Depends(get_app_settings),
) -> MessageOut:
    clear_session_cookie(response, settings)
    logger.info("User %s logged out", claims.user_id)
    return MessageOut(message="Logged out successfully")


@router.get("/access-denied", response_model=MessageOut, status_code=status.HTTP_403_FORBIDDEN)
def access_denied() -> MessageOut:
    return MessageOut(message="Access denied")


@router.get("/claims", response_model=ClaimsOut)
def get_claims(claims: SessionClaims = Depends(get_current_claims)) -> dict[str, object]:
    return claims.to_dict()


@router.get("/me", response_model=UserOut)
def me(db: Session = Depends(get_db), claims: SessionClaims = Depends(get_current_claims)) -> User:
    return user_service.get_own_profile(db, claims)


@router.put("/me", response_model=UserOut)
def update_me(
    body: UpdateProfileRequest,
    db: Session = Depends(get_db),
    claims: SessionClaims = Depends(get_current_claims),
) -> User:
    return user_service.update_own_profile(db, claims, body)
