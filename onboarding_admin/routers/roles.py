from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from onboarding_admin.db.session import get_db
from onboarding_admin.models.security import User
from onboarding_admin.schemas.security import AssignRoleRequest, MessageOut, UserOut
from onboarding_admin.security.context import SessionClaims
from onboarding_admin.security.dependencies import get_current_claims
from onboarding_admin.services import roles as role_service

router = APIRouter(prefix="/api/roles", tags=["roles"])


@router.get("", response_model=list[str])
def list_roles(db: Session = Depends(get_db)) -> list[str]:
    return role_service.list_roles(db)


@router.get("/user/{user_id}", response_model=list[str])
def user_roles(user_id: int, db: Session = Depends(get_db)) -> list[str]:
    return role_service.roles_for_user(db, user_id)


@router.post("/user/{user_id}/assign", response_model=MessageOut)
def assign_role(
    user_id: int,
    body: AssignRoleRequest,
    db: Session = Depends(get_db),
    claims: SessionClaims = Depends(get_current_claims),
) -> MessageOut:
    role_service.assign_role(db, claims, user_id, body.role_name)
    return MessageOut(message=f"Role '{body.role_name}' assigned successfully")


@router.delete("/user/{user_id}/remove/{role_name}", response_model=MessageOut)
def remove_role(
    user_id: int,
    role_name: str,
    db: Session = Depends(get_db),
    claims: SessionClaims = Depends(get_current_claims),
) -> MessageOut:
    role_service.remove_role(db, claims, user_id, role_name)
    return MessageOut(message=f"Role '{role_name}' removed successfully")


@router.get("/{role_name}/users", response_model=list[UserOut])
def users_in_role(role_name: str, db: Session = Depends(get_db)) -> list[User]:
    return role_service.users_in_role(db, role_name)
