from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class ManagerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: str


class DepartmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None
    manager: ManagerOut | None
    is_active: bool
    created_at: datetime
    updated_at: datetime | None
    user_count: int = 0


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    first_name: str | None
    last_name: str | None
    phone: str | None
    address: str | None
    start_date: date | None
    employee_id: str | None
    department_id: int
    department_name: str | None
    is_active: bool
    email_confirmed: bool
    created_at: datetime
    updated_at: datetime | None
    roles: list[str]

    @field_validator("roles", mode="before")
    @classmethod
    def _role_names(cls, value: object) -> object:
        # ORM rows carry Role objects; the API exposes names only.
        if isinstance(value, (list, tuple, set, frozenset)):
            return sorted(getattr(r, "name", r) for r in value)
        return value


class ClaimsOut(BaseModel):
    id: int
    roles: list[str]
    full_name: str
    department_id: int
    department_name: str
    active: bool


class DashboardStatisticsOut(BaseModel):
    total_employees: int
    total_departments: int


class MessageOut(BaseModel):
    message: str


# ---- Requests --------------------------------------------------------------------------


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=512)


class UpdateProfileRequest(BaseModel):
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = Field(default=None, max_length=255)


class CreateUserRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=256)
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=512)
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = Field(default=None, max_length=255)
    start_date: date | None = None
    employee_id: str | None = Field(default=None, max_length=50)
    department_id: int
    role: str | None = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class UpdateUserRequest(BaseModel):
    """Partial update: `None` and empty strings leave the stored value untouched."""

    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = Field(default=None, max_length=255)
    start_date: date | None = None
    employee_id: str | None = Field(default=None, max_length=50)
    department_id: int | None = None
    is_active: bool | None = None


class ResetPasswordRequest(BaseModel):
    new_password: str = Field(..., min_length=1, max_length=512)


class AssignRoleRequest(BaseModel):
    role_name: str = Field(..., min_length=1, max_length=50)


class CreateDepartmentRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    manager_id: int | None = None


class UpdateDepartmentRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    manager_id: int | None = None


class AssignManagerRequest(BaseModel):
    manager_id: int
