from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from onboarding_admin.db.session import get_db
from onboarding_admin.models.security import User
from onboarding_admin.schemas.security import (
    CreateUserRequest,
    DashboardStatisticsOut,
    MessageOut,
    ResetPasswordRequest,
    UpdateUserRequest,
    UserOut,
)
from onboarding_admin.security.context import SessionClaims
from onboarding_admin.security.dependencies import get_current_claims
from onboarding_admin.services import users as user_service

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=list[UserOut])
def list_users(db: Session = Depends(get_db), claims: SessionClaims = Depends(get_current_claims)) -> list[User]:
    # Admins only see the accounts they are allowed to manage.
    return user_service.list_users(db, claims)


@router.get("/dashboard/statistics", response_model=DashboardStatisticsOut)
def dashboard_statistics(db: Session = Depends(get_db)) -> dict[str, int]:
    return user_service.dashboard_statistics(db)


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int, db: Session = Depends(get_db), claims: SessionClaims = Depends(get_current_claims)) -> User:
    return user_service.get_user(db, claims, user_id)


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    body: CreateUserRequest,
    db: Session = Depends(get_db),
    claims: SessionClaims = Depends(get_current_claims),
) -> User:
    return user_service.create_user(db, claims, body)


@router.put("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    body: UpdateUserRequest,
    db: Session = Depends(get_db),
    claims: SessionClaims = Depends(get_current_claims),
) -> User:
    return user_service.update_user(db, claims, user_id, body)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_user(
    user_id: int,
    db: Session = Depends(get_db),
    claims: SessionClaims = Depends(get_current_claims),
) -> None:
    user_service.deactivate_user(db, claims, user_id)


@router.post("/{user_id}/reset-password", response_model=MessageOut)
def reset_password(
    user_id: int,
    body: ResetPasswordRequest,
    db: Session = Depends(get_db),
    claims: SessionClaims = Depends(get_current_claims),
) -> MessageOut:
    user_service.reset_password(db, claims, user_id, body.new_password)
    return MessageOut(message="Password has been reset successfully")
