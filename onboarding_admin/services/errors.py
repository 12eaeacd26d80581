"""Typed outcomes for administrative operations.

Every rejection an operation can produce is one of these. The application
factory maps them to `{"kind": ..., "message": ...}` responses; anything else
is an unexpected failure and surfaces as an opaque 500.
"""

from __future__ import annotations


class OperationError(Exception):
    """Base class for expected, typed operation failures."""

    kind = "error"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "message": self.message}


class UnauthorizedError(OperationError):
    """Raised when credentials or a session cannot be accepted."""

    kind = "unauthorized"
    status_code = 401


class NotFoundError(OperationError):
    """Raised when the addressed entity does not exist."""

    kind = "not_found"
    status_code = 404


class ForbiddenError(OperationError):
    """Raised when the authorization policy denies the action."""

    kind = "forbidden"
    status_code = 403


class ConflictError(OperationError):
    """Raised when a write would violate a uniqueness rule."""

    kind = "conflict"
    status_code = 409


class AlreadyAssignedError(ConflictError):
    """Raised when assigning a role the identity already holds."""

    kind = "already_assigned"


class InvalidArgumentError(OperationError):
    """Raised for malformed or referentially invalid input (unknown role, department, ...)."""

    kind = "invalid_argument"
    status_code = 400


class NotAssignedError(OperationError):
    """Raised when removing a role the identity does not hold."""

    kind = "not_assigned"
    status_code = 400


class SelfLockoutError(OperationError):
    """Raised when an actor tries to remove the SuperAdmin role from themselves."""

    kind = "self_lockout"
    status_code = 400


class SelfDeactivationError(OperationError):
    """Raised when an actor tries to deactivate their own account."""

    kind = "self_deactivation"
    status_code = 400


class HasMembersError(OperationError):
    """Raised when deactivating a department that still has members."""

    kind = "has_members"
    status_code = 409
