"""Learning domain models: Project (assignment) and Submission."""

from django.conf import settings
from django.db import models

from simple_history.models import HistoricalRecords

from SchoolManagementApp.academics.models import Subject
from SchoolManagementApp.core.choices import ProjectStatus, SubmissionStatus

User = settings.AUTH_USER_MODEL


class Project(models.Model):
    """A teacher-authored assignment; students see it only once approved."""
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name="projects")
    deadline = models.DateTimeField()
    max_score = models.PositiveIntegerField(default=100)
    attachments = models.JSONField(default=list, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.CASCADE, related_name="created_projects")
    status = models.CharField(max_length=16, choices=ProjectStatus.choices, default=ProjectStatus.PENDING)
    admin_note = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    def __str__(self) -> str:
        return f"{self.title} [{self.status}]"


class Submission(models.Model):
    """A student's attempt at a project (unique per project+student).

    ``project`` is nulled rather than cascaded when the project is deleted,
    so graded work survives as an orphan.
    """
    project = models.ForeignKey(
        Project, on_delete=models.SET_NULL, null=True, blank=True, related_name="submissions"
    )
    student = models.ForeignKey(User, on_delete=models.CASCADE, related_name="submissions")
    file_ref = models.CharField(max_length=1024, blank=True, default="")
    text = models.TextField(blank=True, default="")
    submitted_at = models.DateTimeField(null=True, blank=True)
    is_late = models.BooleanField(default=False)
    grade = models.PositiveIntegerField(null=True, blank=True)
    feedback = models.TextField(blank=True, default="")
    status = models.CharField(max_length=16, choices=SubmissionStatus.choices, default=SubmissionStatus.DRAFT)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["project", "student"], name="uq_project_student"),
        ]

    def __str__(self) -> str:
        return f"Submission({self.student_id} -> {self.project_id}, {self.status})"
