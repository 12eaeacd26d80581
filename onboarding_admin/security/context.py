from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class SessionClaims:
    """
    Claims bundle carried by the session cookie.

    A point-in-time snapshot taken at login: roles and department are NOT
    refreshed until the next login. Only `is_active` is re-checked per request
    (by the security dependency), so deactivation takes effect immediately while
    a role change waits for the next session.
    """

    user_id: int
    roles: frozenset[str]
    full_name: str
    department_id: int
    department_name: str
    is_active: bool

    issued_at: datetime
    expires_at: datetime

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable dict."""
        return {
            "id": self.user_id,
            "roles": sorted(self.roles),
            "full_name": self.full_name,
            "department_id": self.department_id,
            "department_name": self.department_name,
            "active": self.is_active,
        }
