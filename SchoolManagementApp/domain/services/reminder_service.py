"""Deadline warning sweep, run on demand (management command / cron)."""

import logging
from datetime import datetime, timedelta

from django.conf import settings
from django.utils import timezone

from SchoolManagementApp.core.choices import NotificationKind, ProjectStatus, SubmissionStatus
from SchoolManagementApp.domain.deadlines import ONE_DAY, days_left, needs_deadline_warning
from SchoolManagementApp.domain.ports import Repositories
from SchoolManagementApp.domain.repositories import DjangoRepositories
from SchoolManagementApp.domain.services.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)


def project_link(project_id: int) -> str:
    return f"/student/projects?project={project_id}"


class DeadlineReminder:
    """Warn enrolled students who have not turned in work for a project due soon.

    A student is warned at most once per project: the sweep skips anyone who
    already holds a ``deadline_warning`` with that project's link.
    """

    def __init__(
        self,
        repos: Repositories | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self.repos = repos or DjangoRepositories()
        self.dispatcher = dispatcher or NotificationDispatcher(self.repos.notifications)

    def sweep(self, now: datetime | None = None, window_days: int | None = None) -> int:
        """Send pending warnings; returns how many notifications were written.

        Projects whose deadline passed less than a day ago still count as due
        today (``days_left == 0``).
        """
        now = now or timezone.now()
        window_days = settings.DEADLINE_WARNING_DAYS if window_days is None else window_days
        due = self.repos.projects.find(
            status=ProjectStatus.APPROVED,
            deadline__gt=now - ONE_DAY,
            deadline__lte=now + timedelta(days=window_days),
        )
        sent = 0
        for project in due:
            sent += self._warn_project(project, now, window_days)
        logger.info("Deadline sweep sent %d warnings across %d projects", sent, len(due))
        return sent

    def _warn_project(self, project, now: datetime, window_days: int) -> int:
        link = project_link(project.pk)
        turned_in = {
            s.student_id
            for s in self.repos.submissions.find(
                project_id=project.pk,
                status__in=[SubmissionStatus.SUBMITTED, SubmissionStatus.GRADED],
            )
        }
        already_warned = {
            n.recipient_id
            for n in self.repos.notifications.find(kind=NotificationKind.DEADLINE_WARNING, link=link)
        }
        remaining = days_left(now, project.deadline)
        sent = 0
        for student_id in sorted(self.repos.subjects.member_ids(project.subject_id)):
            if student_id in already_warned:
                continue
            if not needs_deadline_warning(now, project.deadline, student_id in turned_in, window_days):
                continue
            if self.dispatcher.notify_one(
                student_id,
                NotificationKind.DEADLINE_WARNING,
                "Deadline Approaching",
                f'"{project.title}" is due in {remaining} day(s) and you have not submitted yet.',
                link,
            ):
                sent += 1
        return sent
