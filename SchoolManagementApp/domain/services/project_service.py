"""Project (assignment) lifecycle: create, edit, admin decision, delete, listing.

State machine (no terminal state):
    pending -> approved | rejected   (admin decision)
    pending | rejected -> pending    (creator edit; note cleared)
Students only ever see approved projects of subjects they are enrolled in.
"""

import logging
from datetime import datetime
from typing import Any

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from SchoolManagementApp.core.access import Actor, ensure_role
from SchoolManagementApp.core.choices import NotificationKind, ProjectStatus, UserRole
from SchoolManagementApp.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from SchoolManagementApp.domain.ports import Repositories
from SchoolManagementApp.domain.repositories import DjangoRepositories
from SchoolManagementApp.domain.services.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({"title", "description", "subject_id", "deadline", "max_score", "attachments"})
EDITABLE_STATUSES = frozenset({ProjectStatus.PENDING, ProjectStatus.REJECTED})
DECISIONS = frozenset({ProjectStatus.APPROVED, ProjectStatus.REJECTED})

TEACHER_PROJECTS_LINK = "/teacher/projects"
STUDENT_PROJECTS_LINK = "/student/projects"


def _coerce_deadline(value: Any) -> datetime:
    if isinstance(value, str):
        parsed = parse_datetime(value)
        if parsed is None:
            raise ValidationError("Deadline must be an ISO 8601 datetime")
        value = parsed
    if not isinstance(value, datetime):
        raise ValidationError("Deadline must be a datetime")
    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


def _coerce_max_score(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError("max_score must be a positive integer")
    return value


class ProjectService:
    """Business rules for projects; persistence goes through the repository ports."""

    def __init__(
        self,
        repos: Repositories | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self.repos = repos or DjangoRepositories()
        self.dispatcher = dispatcher or NotificationDispatcher(self.repos.notifications)

    def create(
        self,
        actor: Actor,
        title: str,
        subject_id: int | None,
        deadline: Any,
        max_score: int | None = None,
        description: str = "",
        attachments: list[str] | None = None,
    ):
        """Create a project awaiting admin review (teacher only).

        Raises:
            PermissionDeniedError: caller is not a teacher.
            ValidationError: title, subject or deadline missing; bad max_score.
            NotFoundError: unknown subject.
        """
        ensure_role(actor, UserRole.TEACHER)
        if not title or not str(title).strip() or not subject_id or not deadline:
            raise ValidationError("Title, subject, and deadline are required")
        deadline = _coerce_deadline(deadline)
        max_score = 100 if max_score is None else _coerce_max_score(max_score)
        with self.repos.atomic():
            self.repos.subjects.get(subject_id)
            project = self.repos.projects.create(
                title=str(title).strip(),
                description=description or "",
                subject_id=subject_id,
                deadline=deadline,
                max_score=max_score,
                attachments=list(attachments or []),
                created_by_id=actor.user_id,
                status=ProjectStatus.PENDING,
                admin_note="",
            )
        logger.info("Project %s created by %s (pending review)", project.pk, actor.user_id)
        return project

    def edit(self, actor: Actor, project_id: int, fields: dict[str, Any]):
        """Apply creator edits and send the project back to admin review.

        Every successful edit forces ``status=pending`` and clears the admin
        note, whatever the prior (pending or rejected) status was.
        """
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")
        changes = dict(fields)
        if "title" in changes:
            if not changes["title"] or not str(changes["title"]).strip():
                raise ValidationError("Title cannot be empty")
            changes["title"] = str(changes["title"]).strip()
        if "deadline" in changes:
            changes["deadline"] = _coerce_deadline(changes["deadline"])
        if "max_score" in changes:
            changes["max_score"] = _coerce_max_score(changes["max_score"])
        with self.repos.atomic():
            project = self.repos.projects.get(project_id)
            if project.created_by_id != actor.user_id:
                raise PermissionDeniedError("Only the creator can edit this project")
            if project.status not in EDITABLE_STATUSES:
                raise PermissionDeniedError("Approved projects cannot be edited")
            if "subject_id" in changes:
                self.repos.subjects.get(changes["subject_id"])
            project = self.repos.projects.update(
                project_id, **changes, status=ProjectStatus.PENDING, admin_note=""
            )
        logger.info("Project %s edited by %s, back to pending", project_id, actor.user_id)
        return project

    def decide(self, actor: Actor, project_id: int, outcome: str, note: str = ""):
        """Approve or reject a project (admin only) and notify after commit."""
        ensure_role(actor, UserRole.ADMIN)
        if outcome not in DECISIONS:
            raise ValidationError("Invalid status")
        with self.repos.atomic():
            project = self.repos.projects.update(project_id, status=outcome, admin_note=note or "")
            audience = self.repos.subjects.member_ids(project.subject_id) if outcome == ProjectStatus.APPROVED else frozenset()
            self.repos.on_commit(lambda: self._announce_decision(project, audience))
        logger.info("Project %s %s by admin %s", project_id, outcome, actor.user_id)
        return project

    def _announce_decision(self, project, audience: frozenset[int]) -> None:
        if project.status == ProjectStatus.APPROVED:
            self.dispatcher.notify_one(
                project.created_by_id,
                NotificationKind.PROJECT_APPROVED,
                "Project Approved!",
                f'Your project "{project.title}" has been approved.',
                TEACHER_PROJECTS_LINK,
            )
            self.dispatcher.notify_many(
                sorted(audience),
                NotificationKind.PROJECT_PUBLISHED,
                "New Project Available",
                f'A new project "{project.title}" has been published for your subject.',
                STUDENT_PROJECTS_LINK,
            )
        else:
            note = f" Note: {project.admin_note}" if project.admin_note else ""
            self.dispatcher.notify_one(
                project.created_by_id,
                NotificationKind.PROJECT_REJECTED,
                "Project Rejected",
                f'Your project "{project.title}" was rejected.{note}',
                TEACHER_PROJECTS_LINK,
            )

    def delete(self, actor: Actor, project_id: int) -> None:
        """Hard delete regardless of status (creator or admin)."""
        with self.repos.atomic():
            project = self.repos.projects.get(project_id)
            if not actor.is_admin and project.created_by_id != actor.user_id:
                raise PermissionDeniedError("Only the creator or an admin can delete this project")
            self.repos.projects.delete(project_id)
        logger.info("Project %s deleted by %s", project_id, actor.user_id)

    def visible_projects(self, actor: Actor, subject_id: int | None = None) -> list:
        """Projects the actor may list.

        Admin: everything. Teacher: own projects. Student: approved projects of
        enrolled subjects only.
        """
        filters: dict[str, Any] = {}
        if subject_id is not None:
            filters["subject_id"] = subject_id
        if actor.is_admin:
            return self.repos.projects.find(order_by=("-created_at",), **filters)
        if actor.is_teacher:
            return self.repos.projects.find(order_by=("-created_at",), created_by_id=actor.user_id, **filters)
        if actor.is_student:
            enrolled = self.repos.subjects.subject_ids_for_student(actor.user_id)
            if subject_id is not None and subject_id not in enrolled:
                return []
            filters.setdefault("subject_id__in", sorted(enrolled))
            return self.repos.projects.find(
                order_by=("deadline",), status=ProjectStatus.APPROVED, **filters
            )
        raise PermissionDeniedError("Unknown role")

    def get_visible(self, actor: Actor, project_id: int):
        """Fetch one project, hiding it (NotFound) when the actor may not see it."""
        project = self.repos.projects.get(project_id)
        if actor.is_admin:
            return project
        if actor.is_teacher and project.created_by_id == actor.user_id:
            return project
        if actor.is_teacher:
            subject = self.repos.subjects.get(project.subject_id)
            if subject.teacher_id == actor.user_id:
                return project
        if actor.is_student and project.status == ProjectStatus.APPROVED:
            if project.subject_id in self.repos.subjects.subject_ids_for_student(actor.user_id):
                return project
        raise NotFoundError(f"Project {project_id} not found")
