from __future__ import annotations

import pytest
from sqlalchemy import select

from onboarding_admin.models.security import User
from onboarding_admin.schemas.security import CreateDepartmentRequest, UpdateDepartmentRequest, UpdateUserRequest
from onboarding_admin.services import departments as department_service
from onboarding_admin.services import users as user_service
from onboarding_admin.services.departments import MANAGER_NOT_MEMBER
from onboarding_admin.services.errors import (
    ConflictError,
    ForbiddenError,
    HasMembersError,
    InvalidArgumentError,
    NotFoundError,
)


def test_list_departments_is_ordered_by_name(db_session, seeded):
    names = [d.name for d in department_service.list_departments(db_session)]
    assert names == sorted(names)
    assert "System Administration" in names


def test_get_department_counts_members(db_session, seeded, make_user, department):
    make_user("carol", "User", dept="Sales")
    make_user("dave", "User", dept="Sales")

    sales = department_service.get_department(db_session, department("Sales").id)

    assert sales.user_count == 2
    with pytest.raises(NotFoundError):
        department_service.get_department(db_session, 9999)


def test_admin_may_create_department(db_session, seeded, make_user, claims):
    admin = make_user("alice", "Admin")

    created = department_service.create_department(
        db_session, claims(admin), CreateDepartmentRequest(name="Legal", description="Contracts")
    )

    assert created.id is not None
    assert created.is_active is True
    assert created.manager is None
    assert created.user_count == 0


def test_plain_user_cannot_create_department(db_session, seeded, make_user, claims):
    carol = make_user("carol", "User")

    with pytest.raises(ForbiddenError):
        department_service.create_department(db_session, claims(carol), CreateDepartmentRequest(name="Legal"))


def test_create_department_rejects_duplicate_name(db_session, seeded, claims):
    with pytest.raises(ConflictError):
        department_service.create_department(db_session, claims(seeded), CreateDepartmentRequest(name="Sales"))


def test_create_department_with_manager_is_rejected(db_session, seeded, make_user, claims):
    carol = make_user("carol", "User")

    with pytest.raises(InvalidArgumentError, match=MANAGER_NOT_MEMBER):
        department_service.create_department(
            db_session, claims(seeded), CreateDepartmentRequest(name="Legal", manager_id=carol.id)
        )
    with pytest.raises(InvalidArgumentError, match="not found"):
        department_service.create_department(
            db_session, claims(seeded), CreateDepartmentRequest(name="Legal", manager_id=9999)
        )


def test_assign_manager_requires_membership(db_session, seeded, make_user, claims, department):
    sales = department("Sales")
    outsider = make_user("carol", "User", dept="Support")
    member = make_user("dave", "User", dept="Sales")

    with pytest.raises(InvalidArgumentError, match=MANAGER_NOT_MEMBER):
        department_service.assign_manager(db_session, claims(seeded), sales.id, outsider.id)

    updated = department_service.assign_manager(db_session, claims(seeded), sales.id, member.id)
    assert updated.manager.id == member.id
    assert updated.manager.full_name == "Dave Tester"


def test_assign_manager_not_found(db_session, seeded, make_user, claims, department):
    member = make_user("dave", "User", dept="Sales")

    with pytest.raises(NotFoundError, match="Department"):
        department_service.assign_manager(db_session, claims(seeded), 9999, member.id)
    with pytest.raises(NotFoundError, match="Manager"):
        department_service.assign_manager(db_session, claims(seeded), department("Sales").id, 9999)


def test_update_department_replaces_fields(db_session, seeded, make_user, claims, department):
    sales = department("Sales")
    member = make_user("dave", "User", dept="Sales")

    updated = department_service.update_department(
        db_session,
        claims(seeded),
        sales.id,
        UpdateDepartmentRequest(name="Sales & Marketing", description=None, manager_id=member.id),
    )
    assert updated.name == "Sales & Marketing"
    assert updated.description is None
    assert updated.manager.id == member.id

    cleared = department_service.update_department(
        db_session, claims(seeded), sales.id, UpdateDepartmentRequest(name="Sales & Marketing")
    )
    assert cleared.manager is None


def test_update_department_validates_name_and_manager(db_session, seeded, make_user, claims, department):
    sales = department("Sales")
    outsider = make_user("carol", "User", dept="Support")

    with pytest.raises(ConflictError):
        department_service.update_department(db_session, claims(seeded), sales.id, UpdateDepartmentRequest(name="Support"))
    with pytest.raises(InvalidArgumentError, match=MANAGER_NOT_MEMBER):
        department_service.update_department(
            db_session, claims(seeded), sales.id, UpdateDepartmentRequest(name="Sales", manager_id=outsider.id)
        )
    with pytest.raises(NotFoundError):
        department_service.update_department(db_session, claims(seeded), 9999, UpdateDepartmentRequest(name="Nope"))


def test_only_super_admin_may_deactivate(db_session, seeded, make_user, claims):
    admin = make_user("alice", "Admin")
    empty = department_service.create_department(db_session, claims(seeded), CreateDepartmentRequest(name="Legal"))

    with pytest.raises(ForbiddenError):
        department_service.deactivate_department(db_session, claims(admin), empty.id)


def test_deactivate_requires_empty_department(db_session, seeded, make_user, claims, department):
    legal = department_service.create_department(db_session, claims(seeded), CreateDepartmentRequest(name="Legal"))
    lawyer = make_user("larry", "User", dept="Legal")

    with pytest.raises(HasMembersError):
        department_service.deactivate_department(db_session, claims(seeded), legal.id)

    user_service.update_user(
        db_session, claims(seeded), lawyer.id, UpdateUserRequest(department_id=department("Sales").id)
    )
    department_service.deactivate_department(db_session, claims(seeded), legal.id)

    db_session.expire_all()
    assert department_service.get_department(db_session, legal.id).is_active is False


def test_deactivate_missing_department(db_session, seeded, claims):
    with pytest.raises(NotFoundError):
        department_service.deactivate_department(db_session, claims(seeded), 9999)


def test_manager_reference_follows_membership(db_session, seeded, make_user, claims, department):
    sales = department("Sales")
    member = make_user("dave", "User", dept="Sales")
    department_service.assign_manager(db_session, claims(seeded), sales.id, member.id)

    user_service.update_user(
        db_session, claims(seeded), member.id, UpdateUserRequest(department_id=department("Support").id)
    )

    db_session.expire_all()
    assert department_service.get_department(db_session, sales.id).manager is None
    moved = db_session.execute(select(User).where(User.id == member.id)).scalar_one()
    assert moved.department_name == "Support"
