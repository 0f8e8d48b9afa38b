"""Academic structure models: Subject, SubjectEnrollment, Announcement, Material."""

from django.conf import settings
from django.db import models

from simple_history.models import HistoricalRecords

from SchoolManagementApp.core.choices import AnnouncementScope, MaterialKind
from SchoolManagementApp.academics.querysets import SubjectQuerySet, AnnouncementQuerySet


User = settings.AUTH_USER_MODEL


class Subject(models.Model):
    """A course/class with an optional teacher and a roster of enrolled students.

    Fields:
        name: Human readable subject name.
        code: Unique code, stored upper-case.
        teacher: Assigned teacher, ``None`` while unassigned.
        students: Enrolled students (through SubjectEnrollment).
        history: Audit history (django-simple-history).
    """
    name = models.CharField(max_length=200)
    code = models.CharField(max_length=32, unique=True)
    description = models.TextField(blank=True)
    teacher = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="taught_subjects"
    )
    students = models.ManyToManyField(
        User, through="SubjectEnrollment", related_name="enrolled_subjects", blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    objects = SubjectQuerySet.as_manager()

    def save(self, *args, **kwargs) -> None:
        self.code = (self.code or "").strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.code} {self.name}"


class SubjectEnrollment(models.Model):
    """One row per enrolled (subject, student) pair.

    Constraints:
        uq_subject_student: a student appears at most once per subject.
    """
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name="enrollments")
    student = models.ForeignKey(User, on_delete=models.CASCADE, related_name="enrollments")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["subject", "student"], name="uq_subject_student"),
        ]

    def __str__(self) -> str:
        return f"{self.student_id} -> {self.subject_id}"


class Announcement(models.Model):
    """A notice posted globally or to one subject's students."""
    title = models.CharField(max_length=255)
    content = models.TextField()
    author = models.ForeignKey(User, on_delete=models.CASCADE, related_name="announcements")
    scope = models.CharField(max_length=16, choices=AnnouncementScope.choices, default=AnnouncementScope.SUBJECT)
    subject = models.ForeignKey(
        Subject, on_delete=models.CASCADE, null=True, blank=True, related_name="announcements"
    )
    is_pinned = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = AnnouncementQuerySet.as_manager()

    class Meta:
        ordering = ["-is_pinned", "-created_at"]


class Material(models.Model):
    """Course material a teacher shares with a subject; ``url`` is an opaque reference."""
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name="materials")
    title = models.CharField(max_length=255)
    kind = models.CharField(max_length=16, choices=MaterialKind.choices, default=MaterialKind.LINK)
    url = models.CharField(max_length=1024)
    topic = models.CharField(max_length=200, blank=True, default="General")
    uploaded_by = models.ForeignKey(User, on_delete=models.CASCADE, related_name="materials")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return f"{self.title} ({self.kind})"
