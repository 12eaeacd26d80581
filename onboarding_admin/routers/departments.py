from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from onboarding_admin.db.session import get_db
from onboarding_admin.models.security import Department
from onboarding_admin.schemas.security import (
    AssignManagerRequest,
    CreateDepartmentRequest,
    DepartmentOut,
    UpdateDepartmentRequest,
)
from onboarding_admin.security.context import SessionClaims
from onboarding_admin.security.dependencies import get_current_claims
from onboarding_admin.services import departments as department_service

router = APIRouter(prefix="/api/departments", tags=["departments"])


@router.get("", response_model=list[DepartmentOut])
def list_departments(db: Session = Depends(get_db)) -> list[Department]:
    return department_service.list_departments(db)


@router.get("/{department_id}", response_model=DepartmentOut)
def get_department(department_id: int, db: Session = Depends(get_db)) -> Department:
    return department_service.get_department(db, department_id)


@router.post("", response_model=DepartmentOut, status_code=status.HTTP_201_CREATED)
def create_department(
    body: CreateDepartmentRequest,
    db: Session = Depends(get_db),
    claims: SessionClaims = Depends(get_current_claims),
) -> Department:
    return department_service.create_department(db, claims, body)


@router.put("/{department_id}", response_model=DepartmentOut)
def update_department(
    department_id: int,
    body: UpdateDepartmentRequest,
    db: Session = Depends(get_db),
    claims: SessionClaims = Depends(get_current_claims),
) -> Department:
    return department_service.update_department(db, claims, department_id, body)


@router.put("/{department_id}/manager", response_model=DepartmentOut)
def assign_manager(
    department_id: int,
    body: AssignManagerRequest,
    db: Session = Depends(get_db),
    claims: SessionClaims = Depends(get_current_claims),
) -> Department:
    return department_service.assign_manager(db, claims, department_id, body.manager_id)


@router.delete("/{department_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_department(
    department_id: int,
    db: Session = Depends(get_db),
    claims: SessionClaims = Depends(get_current_claims),
) -> None:
    department_service.deactivate_department(db, claims, department_id)
