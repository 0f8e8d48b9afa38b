"""Custom querysets for subject rosters and announcement audiences."""

from typing import Self

from django.db.models import QuerySet, Q

from SchoolManagementApp.core.choices import AnnouncementScope


class SubjectQuerySet(QuerySet):

    def with_student(self, user_id: int) -> Self:
        """Subjects where the user is enrolled as a student."""
        return self.filter(enrollments__student_id=user_id).distinct()


class AnnouncementQuerySet(QuerySet):

    def visible_to_student(self, user_id: int) -> Self:
        """Global announcements plus those of subjects the student is enrolled in."""
        return self.filter(
            Q(scope=AnnouncementScope.GLOBAL) |
            Q(subject__enrollments__student_id=user_id)
        ).distinct()
