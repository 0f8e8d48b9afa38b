"""Course materials shared by teachers with the subjects they teach."""

import logging

from SchoolManagementApp.core.access import Actor, ensure_role
from SchoolManagementApp.core.choices import MaterialKind, UserRole
from SchoolManagementApp.core.exceptions import PermissionDeniedError, ValidationError
from SchoolManagementApp.domain.ports import Repositories
from SchoolManagementApp.domain.repositories import DjangoRepositories

logger = logging.getLogger(__name__)


class MaterialService:

    def __init__(self, repos: Repositories | None = None) -> None:
        self.repos = repos or DjangoRepositories()

    def create(
        self,
        actor: Actor,
        subject_id: int,
        title: str,
        url: str,
        kind: str = MaterialKind.LINK,
        topic: str = "",
    ):
        """Attach a material to a subject the teacher is assigned to.

        Raises:
            ValidationError: title, url or subject missing; unknown kind.
            PermissionDeniedError: caller is not the subject's teacher.
        """
        ensure_role(actor, UserRole.TEACHER)
        if not title or not str(title).strip() or not url or not subject_id:
            raise ValidationError("Title, a URL or file, and subject are required")
        if kind not in MaterialKind.values:
            raise ValidationError(f"Unknown material type: {kind}")
        with self.repos.atomic():
            subject = self.repos.subjects.get(subject_id)
            if subject.teacher_id != actor.user_id:
                raise PermissionDeniedError("Not the teacher of this subject")
            material = self.repos.materials.create(
                subject_id=subject_id,
                title=str(title).strip(),
                kind=kind,
                url=url,
                topic=topic or "General",
                uploaded_by_id=actor.user_id,
            )
        logger.info("Material %s added to subject %s by %s", material.pk, subject_id, actor.user_id)
        return material

    def delete(self, actor: Actor, material_id: int) -> None:
        """Only the uploader removes a material."""
        with self.repos.atomic():
            material = self.repos.materials.get(material_id)
            if material.uploaded_by_id != actor.user_id:
                raise PermissionDeniedError("Not the uploader of this material")
            self.repos.materials.delete(material_id)
        logger.info("Material %s deleted by %s", material_id, actor.user_id)

    def list_for(self, actor: Actor, subject_id: int | None = None) -> list:
        """Teachers see their own uploads, students the materials of their subjects."""
        order = ("-created_at", "-id")
        filters = {} if subject_id is None else {"subject_id": subject_id}
        if actor.is_admin:
            return self.repos.materials.find(order_by=order, **filters)
        if actor.is_teacher:
            return self.repos.materials.find(order_by=order, uploaded_by_id=actor.user_id, **filters)
        enrolled = self.repos.subjects.subject_ids_for_student(actor.user_id)
        if subject_id is not None and subject_id not in enrolled:
            return []
        filters.setdefault("subject_id__in", sorted(enrolled))
        return self.repos.materials.find(order_by=order, **filters)
