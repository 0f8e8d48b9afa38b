"""Identity value passed into domain services, plus role/ownership guards."""

from dataclasses import dataclass
from typing import Any

from SchoolManagementApp.core.choices import UserRole
from SchoolManagementApp.core.exceptions import PermissionDeniedError


@dataclass(frozen=True)
class Actor:
    """The authenticated caller as supplied by the session layer."""
    user_id: int
    role: str

    @classmethod
    def from_user(cls, user: Any) -> "Actor":
        if not user or not getattr(user, "is_authenticated", False):
            raise PermissionDeniedError("Authentication required")
        return cls(user_id=user.pk, role=user.role)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_teacher(self) -> bool:
        return self.role == UserRole.TEACHER

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT


def ensure_role(actor: Actor, *roles: str) -> None:
    """Raise PermissionDeniedError unless the actor holds one of ``roles``."""
    if actor.role not in roles:
        raise PermissionDeniedError(f"{' or '.join(r.capitalize() for r in roles)} role required")


def ensure_owner(actor: Actor, owner_id: int | None, message: str = "Not the owner") -> None:
    if owner_id is None or owner_id != actor.user_id:
        raise PermissionDeniedError(message)
