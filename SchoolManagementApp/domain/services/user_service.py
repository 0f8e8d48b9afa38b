"""Admin-side account management: list, create, change role/active flag/profile, delete."""

import logging
from typing import Any

from django.contrib.auth.hashers import make_password

from SchoolManagementApp.core.access import Actor, ensure_role
from SchoolManagementApp.core.choices import UserRole
from SchoolManagementApp.core.exceptions import ConflictError, ValidationError
from SchoolManagementApp.domain.ports import Repositories
from SchoolManagementApp.domain.repositories import DjangoRepositories

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({"name", "email", "role", "is_active", "password"})


def _normalize_email(email: Any) -> str:
    email = str(email or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")
    return email


def _check_role(role: Any) -> str:
    if role not in UserRole.values:
        raise ValidationError(f"Unknown role: {role}")
    return role


class UserService:
    """Every operation here is admin only; passwords are stored hashed."""

    def __init__(self, repos: Repositories | None = None) -> None:
        self.repos = repos or DjangoRepositories()

    def list_users(self, actor: Actor, role: str | None = None) -> list:
        ensure_role(actor, UserRole.ADMIN)
        filters = {} if role is None else {"role": _check_role(role)}
        return self.repos.users.find(order_by=("-date_joined",), **filters)

    def create(self, actor: Actor, email: str, password: str, name: str, role: str):
        """Create an account.

        Raises:
            ValidationError: a field is missing or the role is unknown.
            ConflictError: the email is already in use.
        """
        ensure_role(actor, UserRole.ADMIN)
        if not password or not name:
            raise ValidationError("All fields required")
        email = _normalize_email(email)
        role = _check_role(role)
        with self.repos.atomic():
            if self.repos.users.find_one(email__iexact=email):
                raise ConflictError("Email already in use")
            user = self.repos.users.create(
                email=email,
                username=email,
                name=str(name).strip(),
                role=role,
                password=make_password(password),
            )
        logger.info("User %s created with role %s by admin %s", user.pk, role, actor.user_id)
        return user

    def update(self, actor: Actor, user_id: int, fields: dict[str, Any]):
        """Change profile, role, active flag or password of an account."""
        ensure_role(actor, UserRole.ADMIN)
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")
        changes = dict(fields)
        if "role" in changes:
            _check_role(changes["role"])
        if "password" in changes:
            if not changes["password"]:
                raise ValidationError("Password cannot be empty")
            changes["password"] = make_password(changes["password"])
        if "is_active" in changes:
            if user_id == actor.user_id and not changes["is_active"]:
                raise ValidationError("Admins cannot deactivate their own account")
            changes["is_active"] = bool(changes["is_active"])
        with self.repos.atomic():
            self.repos.users.get(user_id)
            if "email" in changes:
                changes["email"] = _normalize_email(changes["email"])
                clash = self.repos.users.find_one(email__iexact=changes["email"])
                if clash is not None and clash.pk != user_id:
                    raise ConflictError("Email already in use")
                changes["username"] = changes["email"]
            user = self.repos.users.update(user_id, **changes)
        logger.info("User %s updated (%s) by admin %s", user_id, ", ".join(sorted(fields)), actor.user_id)
        return user

    def delete(self, actor: Actor, user_id: int) -> None:
        ensure_role(actor, UserRole.ADMIN)
        if user_id == actor.user_id:
            raise ValidationError("Admins cannot delete their own account")
        with self.repos.atomic():
            self.repos.users.get(user_id)
            self.repos.users.delete(user_id)
        logger.info("User %s deleted by admin %s", user_id, actor.user_id)
