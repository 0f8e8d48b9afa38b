"""Admin-side subject management: create, assign teacher, delete, list."""

import logging

from SchoolManagementApp.core.access import Actor, ensure_role
from SchoolManagementApp.core.choices import UserRole
from SchoolManagementApp.core.exceptions import ConflictError, ValidationError
from SchoolManagementApp.domain.ports import Repositories
from SchoolManagementApp.domain.repositories import DjangoRepositories

logger = logging.getLogger(__name__)


class SubjectService:

    def __init__(self, repos: Repositories | None = None) -> None:
        self.repos = repos or DjangoRepositories()

    def _ensure_teacher_user(self, teacher_id: int | None) -> None:
        if teacher_id is None:
            return
        if self.repos.users.get(teacher_id).role != UserRole.TEACHER:
            raise ValidationError("Assigned user must be a teacher")

    def create(self, actor: Actor, name: str, code: str, description: str = "", teacher_id: int | None = None):
        """Create a subject with a unique (upper-cased) code.

        Raises:
            ValidationError: name/code missing or teacher is not a teacher.
            ConflictError: code already used.
        """
        ensure_role(actor, UserRole.ADMIN)
        if not name or not code:
            raise ValidationError("Name and code required")
        code = code.strip().upper()
        self._ensure_teacher_user(teacher_id)
        with self.repos.atomic():
            if self.repos.subjects.find_one(code=code):
                raise ConflictError("Subject code already exists")
            subject = self.repos.subjects.create(
                name=name.strip(), code=code, description=description or "", teacher_id=teacher_id
            )
        logger.info("Subject %s (%s) created", subject.pk, code)
        return subject

    def assign_teacher(self, actor: Actor, subject_id: int, teacher_id: int | None):
        """Set or clear (``None``) the subject's teacher."""
        ensure_role(actor, UserRole.ADMIN)
        self._ensure_teacher_user(teacher_id)
        with self.repos.atomic():
            subject = self.repos.subjects.update(subject_id, teacher_id=teacher_id)
        logger.info("Subject %s teacher -> %s", subject_id, teacher_id)
        return subject

    def delete(self, actor: Actor, subject_id: int) -> None:
        ensure_role(actor, UserRole.ADMIN)
        with self.repos.atomic():
            self.repos.subjects.get(subject_id)
            self.repos.subjects.delete(subject_id)
        logger.info("Subject %s deleted", subject_id)

    def list_for(self, actor: Actor) -> list:
        if actor.is_admin:
            return self.repos.subjects.find(order_by=("code",))
        if actor.is_teacher:
            return self.repos.subjects.find(order_by=("code",), teacher_id=actor.user_id)
        ids = self.repos.subjects.subject_ids_for_student(actor.user_id)
        return self.repos.subjects.find(order_by=("code",), pk__in=sorted(ids))
