"""Typed enumerations (TextChoices) for user roles, project/submission states and notification kinds."""
from django.db import models


class UserRole(models.TextChoices):
    """System-level role assigned to a user account."""
    ADMIN = "admin", "Admin"
    TEACHER = "teacher", "Teacher"
    STUDENT = "student", "Student"


class ProjectStatus(models.TextChoices):
    """Review states of a teacher-authored project."""
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class SubmissionStatus(models.TextChoices):
    """Lifecycle states for a project submission."""
    DRAFT = "draft", "Draft"
    SUBMITTED = "submitted", "Submitted"
    GRADED = "graded", "Graded"


class AnnouncementScope(models.TextChoices):
    GLOBAL = "global", "Global"
    SUBJECT = "subject", "Subject"


class NotificationKind(models.TextChoices):
    """Notification types; each one is emitted by exactly one lifecycle transition."""
    PROJECT_APPROVED = "project_approved", "Project approved"
    PROJECT_REJECTED = "project_rejected", "Project rejected"
    PROJECT_PUBLISHED = "project_published", "Project published"
    SUBMISSION_RECEIVED = "submission_received", "Submission received"
    SUBMISSION_GRADED = "submission_graded", "Submission graded"
    DEADLINE_WARNING = "deadline_warning", "Deadline warning"
    ANNOUNCEMENT_POSTED = "announcement_posted", "Announcement posted"


class MaterialKind(models.TextChoices):
    PDF = "pdf", "PDF"
    VIDEO = "video", "Video"
    LINK = "link", "Link"
    DOC = "doc", "Document"
    UPLOAD = "upload", "Upload"
