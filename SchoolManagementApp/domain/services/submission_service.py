"""Domain service for submissions: create, update, delete, grade, listing.

State transitions:
    (absent) -> draft | submitted          create
    draft | submitted -> draft | submitted update (owner only, until graded)
    any -> graded                          grade
Lateness is decided once, at the moment a submission turns into
``submitted``; draft saves and grading never touch ``is_late``.
"""

import logging
from typing import Any

from django.conf import settings
from django.utils import timezone

from SchoolManagementApp.core.access import Actor, ensure_owner, ensure_role
from SchoolManagementApp.core.choices import NotificationKind, ProjectStatus, SubmissionStatus, UserRole
from SchoolManagementApp.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from SchoolManagementApp.domain.deadlines import is_late
from SchoolManagementApp.domain.ports import Repositories
from SchoolManagementApp.domain.repositories import DjangoRepositories
from SchoolManagementApp.domain.services.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)

STUDENT_PROJECTS_LINK = "/student/projects"
TEACHER_STUDENTS_LINK = "/teacher/students"


class SubmissionService:

    def __init__(
        self,
        repos: Repositories | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self.repos = repos or DjangoRepositories()
        self.dispatcher = dispatcher or NotificationDispatcher(self.repos.notifications)

    def _visible_project(self, actor: Actor, project_id: int):
        project = self.repos.projects.get(project_id)
        if project.status != ProjectStatus.APPROVED:
            raise NotFoundError(f"Project {project_id} not found")
        if actor.user_id not in self.repos.subjects.member_ids(project.subject_id):
            raise PermissionDeniedError("Not enrolled in this subject")
        return project

    def _load(self, submission_id: int, project_id: int | None):
        """Fetch a submission, hiding it when it does not belong to ``project_id``."""
        submission = self.repos.submissions.get(submission_id)
        if project_id is not None and submission.project_id != project_id:
            raise NotFoundError(f"Submission {submission_id} not found")
        return submission

    def _owned(self, actor: Actor, submission_id: int, project_id: int | None = None):
        submission = self._load(submission_id, project_id)
        ensure_owner(actor, submission.student_id, "Not your submission")
        return submission

    def create(
        self,
        actor: Actor,
        project_id: int,
        file_ref: str | None = None,
        text: str | None = None,
        is_draft: bool = False,
    ):
        """Create the (single) submission of this student for a project.

        Raises:
            ConflictError: the student already has a submission for the project.
            NotFoundError: the project does not exist or is not approved.
            PermissionDeniedError: caller is not an enrolled student.
        """
        ensure_role(actor, UserRole.STUDENT)
        if not project_id:
            raise ValidationError("Project ID is required")
        with self.repos.atomic():
            project = self._visible_project(actor, project_id)
            if self.repos.submissions.find_one(project_id=project_id, student_id=actor.user_id):
                raise ConflictError("You already have a submission for this project")
            now = timezone.now()
            fields: dict[str, Any] = {
                "project_id": project_id,
                "student_id": actor.user_id,
                "file_ref": file_ref or "",
                "text": text or "",
            }
            if is_draft:
                fields.update(status=SubmissionStatus.DRAFT, submitted_at=None, is_late=False)
            else:
                fields.update(
                    status=SubmissionStatus.SUBMITTED,
                    submitted_at=now,
                    is_late=is_late(now, project.deadline),
                )
            submission = self.repos.submissions.create(**fields)
            if not is_draft:
                self.repos.on_commit(lambda: self._announce_received(project, submission))
        logger.info(
            "Submission %s created for project %s (%s, late=%s)",
            submission.pk, project_id, submission.status, submission.is_late,
        )
        return submission

    def update(
        self,
        actor: Actor,
        submission_id: int,
        file_ref: str | None = None,
        text: str | None = None,
        is_draft: bool = False,
        project_id: int | None = None,
    ):
        """Edit, submit a draft, or resubmit. Omitted file_ref/text keep stored values.

        ``is_late``/``submitted_at`` are recomputed only when the result is
        ``submitted``. Graded submissions are frozen unless
        ``ALLOW_GRADED_RESUBMISSION`` is on, in which case grade and feedback
        are dropped.
        """
        with self.repos.atomic():
            submission = self._owned(actor, submission_id, project_id)
            changes: dict[str, Any] = {}
            if submission.status == SubmissionStatus.GRADED:
                if not settings.ALLOW_GRADED_RESUBMISSION:
                    raise ConflictError("Cannot modify a graded submission")
                changes.update(grade=None, feedback="")
            if submission.project_id is None:
                raise NotFoundError("Project no longer exists")
            project = self.repos.projects.get(submission.project_id)
            if file_ref is not None:
                changes["file_ref"] = file_ref
            if text is not None:
                changes["text"] = text
            if is_draft:
                changes["status"] = SubmissionStatus.DRAFT
            else:
                now = timezone.now()
                changes.update(
                    status=SubmissionStatus.SUBMITTED,
                    submitted_at=now,
                    is_late=is_late(now, project.deadline),
                )
            submission = self.repos.submissions.update(submission_id, **changes)
            if not is_draft:
                self.repos.on_commit(lambda: self._announce_received(project, submission))
        logger.info("Submission %s updated (%s)", submission_id, submission.status)
        return submission

    def delete(self, actor: Actor, submission_id: int, project_id: int | None = None) -> None:
        with self.repos.atomic():
            submission = self._owned(actor, submission_id, project_id)
            if submission.status == SubmissionStatus.GRADED:
                raise ConflictError("Cannot delete a graded submission")
            self.repos.submissions.delete(submission_id)
        logger.info("Submission %s deleted by %s", submission_id, actor.user_id)

    def grade(
        self, actor: Actor, submission_id: int, grade: int, feedback: str = "", project_id: int | None = None
    ):
        """Grade a submission from any prior status and notify the student.

        Allowed for the project's creator or the subject's teacher.
        """
        ensure_role(actor, UserRole.TEACHER)
        with self.repos.atomic():
            submission = self._load(submission_id, project_id)
            if submission.project_id is None:
                raise NotFoundError("Project no longer exists")
            project = self.repos.projects.get(submission.project_id)
            self._ensure_grader(actor, project)
            if isinstance(grade, bool) or not isinstance(grade, int) or not 0 <= grade <= project.max_score:
                raise ValidationError(f"Grade must be an integer between 0 and {project.max_score}")
            submission = self.repos.submissions.update(
                submission_id, grade=grade, feedback=feedback or "", status=SubmissionStatus.GRADED
            )
            self.repos.on_commit(lambda: self._announce_graded(project, submission))
        logger.info("Submission %s graded %s by %s", submission_id, grade, actor.user_id)
        return submission

    def _ensure_grader(self, actor: Actor, project) -> None:
        if project.created_by_id == actor.user_id:
            return
        subject = self.repos.subjects.get(project.subject_id)
        if subject.teacher_id != actor.user_id:
            raise PermissionDeniedError("Not a teacher of this project")

    def _announce_received(self, project, submission) -> None:
        self.dispatcher.notify_one(
            project.created_by_id,
            NotificationKind.SUBMISSION_RECEIVED,
            "New Submission",
            f'A student submitted work for "{project.title}"' + (" (late)." if submission.is_late else "."),
            TEACHER_STUDENTS_LINK,
        )

    def _announce_graded(self, project, submission) -> None:
        self.dispatcher.notify_one(
            submission.student_id,
            NotificationKind.SUBMISSION_GRADED,
            "Submission Graded",
            f'Your submission for "{project.title}" was graded: {submission.grade}/{project.max_score}.',
            STUDENT_PROJECTS_LINK,
        )

    def list_for_student(self, actor: Actor) -> list:
        ensure_role(actor, UserRole.STUDENT)
        return self.repos.submissions.find(order_by=("-updated_at",), student_id=actor.user_id)

    def list_for_project(self, actor: Actor, project_id: int) -> list:
        """All submissions of a project (graders only); students get their own."""
        project = self.repos.projects.get(project_id)
        if actor.is_student:
            return self.repos.submissions.find(project_id=project_id, student_id=actor.user_id)
        if not actor.is_admin:
            self._ensure_grader(actor, project)
        return self.repos.submissions.find(order_by=("student_id",), project_id=project_id)
