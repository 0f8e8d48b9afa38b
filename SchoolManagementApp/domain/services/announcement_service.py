"""Announcements posted by teachers/admins, fanned out to their audience."""

import logging

from SchoolManagementApp.core.access import Actor, ensure_role
from SchoolManagementApp.core.choices import AnnouncementScope, NotificationKind, UserRole
from SchoolManagementApp.core.exceptions import PermissionDeniedError, ValidationError
from SchoolManagementApp.domain.ports import Repositories
from SchoolManagementApp.domain.repositories import DjangoRepositories
from SchoolManagementApp.domain.services.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)

STUDENT_ANNOUNCEMENTS_LINK = "/student/announcements"


class AnnouncementService:

    def __init__(
        self,
        repos: Repositories | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self.repos = repos or DjangoRepositories()
        self.dispatcher = dispatcher or NotificationDispatcher(self.repos.notifications)

    def post(
        self,
        actor: Actor,
        title: str,
        content: str,
        subject_id: int | None = None,
        is_pinned: bool = False,
    ):
        """Post to one subject (its teacher or an admin) or globally (no subject).

        Subject posts notify that subject's students; global posts notify every
        active student.
        """
        ensure_role(actor, UserRole.TEACHER, UserRole.ADMIN)
        if not title or not content:
            raise ValidationError("Title and content are required")
        with self.repos.atomic():
            if subject_id is not None:
                subject = self.repos.subjects.get(subject_id)
                if not actor.is_admin and subject.teacher_id != actor.user_id:
                    raise PermissionDeniedError("Not the teacher of this subject")
                audience = self.repos.subjects.member_ids(subject_id)
            else:
                audience = frozenset(
                    u.pk for u in self.repos.users.find(role=UserRole.STUDENT, is_active=True)
                )
            announcement = self.repos.announcements.create(
                title=title,
                content=content,
                author_id=actor.user_id,
                subject_id=subject_id,
                scope=AnnouncementScope.SUBJECT if subject_id is not None else AnnouncementScope.GLOBAL,
                is_pinned=bool(is_pinned),
            )
            self.repos.on_commit(
                lambda: self.dispatcher.notify_many(
                    sorted(audience),
                    NotificationKind.ANNOUNCEMENT_POSTED,
                    "New Announcement",
                    title,
                    STUDENT_ANNOUNCEMENTS_LINK,
                )
            )
        logger.info("Announcement %s posted to %d students", announcement.pk, len(audience))
        return announcement

    def delete(self, actor: Actor, announcement_id: int) -> None:
        """Authors delete their own announcements; admins delete any."""
        with self.repos.atomic():
            announcement = self.repos.announcements.get(announcement_id)
            if not actor.is_admin and announcement.author_id != actor.user_id:
                raise PermissionDeniedError("Not the author of this announcement")
            self.repos.announcements.delete(announcement_id)

    def list_for(self, actor: Actor) -> list:
        order = ("-is_pinned", "-created_at")
        if actor.is_admin:
            return self.repos.announcements.find(order_by=order)
        if actor.is_teacher:
            return self.repos.announcements.find(order_by=order, author_id=actor.user_id)
        return self.repos.announcements.visible_to_student(actor.user_id)
