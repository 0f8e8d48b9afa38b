"""Serializers for subjects, projects, submissions, notifications, announcements and progress rollups.

Write serializers only shape the payload; lifecycle rules are enforced by the
domain services.
"""

from django.contrib.auth import get_user_model
from rest_framework import serializers

from SchoolManagementApp.academics.models import Announcement, Material, Subject
from SchoolManagementApp.core.choices import MaterialKind, UserRole
from SchoolManagementApp.learning.models import Project, Submission
from SchoolManagementApp.notifications.models import Notification

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    """Public, safe representation of a user."""

    class Meta:
        model = User
        fields = ["id", "email", "name", "role", "is_active"]


class UserAdminSerializer(serializers.ModelSerializer):
    """User row as seen by administrators."""

    class Meta:
        model = User
        fields = ["id", "email", "name", "role", "is_active", "date_joined"]


class UserCreateSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=6)
    name = serializers.CharField(max_length=150)
    role = serializers.ChoiceField(choices=UserRole.choices)


class UserUpdateSerializer(serializers.Serializer):
    email = serializers.EmailField(required=False)
    password = serializers.CharField(write_only=True, required=False, min_length=6)
    name = serializers.CharField(max_length=150, required=False)
    role = serializers.ChoiceField(choices=UserRole.choices, required=False)
    is_active = serializers.BooleanField(required=False)


class SubjectWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    code = serializers.CharField(max_length=32)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    teacher_id = serializers.IntegerField(required=False, allow_null=True, default=None)


class SubjectReadSerializer(serializers.ModelSerializer):
    """Subject with its (optional) teacher and enrolled student ids."""
    teacher = UserSerializer(read_only=True, allow_null=True)
    student_ids = serializers.SerializerMethodField()

    class Meta:
        model = Subject
        fields = ["id", "name", "code", "description", "teacher", "student_ids", "created_at", "updated_at"]

    def get_student_ids(self, obj: Subject) -> list[int]:
        return sorted(obj.enrollments.values_list("student_id", flat=True))


class ToggleMembershipSerializer(serializers.Serializer):
    student_id = serializers.IntegerField(help_text="Student to enroll (if absent) or remove (if present).")


class AssignTeacherSerializer(serializers.Serializer):
    teacher_id = serializers.IntegerField(allow_null=True, help_text="Teacher id, or null to unassign.")


class ProjectWriteSerializer(serializers.Serializer):
    """Payload for creating or editing a project."""
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    subject_id = serializers.IntegerField()
    deadline = serializers.DateTimeField()
    max_score = serializers.IntegerField(required=False, min_value=1)
    attachments = serializers.ListField(child=serializers.CharField(max_length=1024), required=False)


class ProjectReadSerializer(serializers.ModelSerializer):

    class Meta:
        model = Project
        fields = [
            "id", "title", "description", "subject", "deadline", "max_score", "attachments",
            "created_by", "status", "admin_note", "created_at", "updated_at",
        ]


class DecisionSerializer(serializers.Serializer):
    status = serializers.CharField(help_text="`approved` or `rejected`.")
    admin_note = serializers.CharField(required=False, allow_blank=True, default="")


class SubmissionWriteSerializer(serializers.Serializer):
    """Create/update payload; ``file_ref`` is an opaque reference from the upload service."""
    file_ref = serializers.CharField(required=False, allow_blank=True, max_length=1024)
    text = serializers.CharField(required=False, allow_blank=True)
    is_draft = serializers.BooleanField(required=False, default=False)


class SubmissionReadSerializer(serializers.ModelSerializer):

    class Meta:
        model = Submission
        fields = [
            "id", "project", "student", "file_ref", "text", "submitted_at", "is_late",
            "grade", "feedback", "status", "created_at", "updated_at",
        ]
        read_only_fields = fields


class GradeWriteSerializer(serializers.Serializer):
    grade = serializers.IntegerField()
    feedback = serializers.CharField(required=False, allow_blank=True, default="")


class NotificationReadSerializer(serializers.ModelSerializer):

    class Meta:
        model = Notification
        fields = ["id", "kind", "title", "message", "link", "is_read", "created_at"]


class NotificationPageSerializer(serializers.Serializer):
    results = NotificationReadSerializer(many=True, source="items")
    unread_count = serializers.IntegerField()


class AnnouncementWriteSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    content = serializers.CharField()
    subject_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    is_pinned = serializers.BooleanField(required=False, default=False)


class AnnouncementReadSerializer(serializers.ModelSerializer):

    class Meta:
        model = Announcement
        fields = ["id", "title", "content", "author", "scope", "subject", "is_pinned", "created_at"]


class StudentProgressSerializer(serializers.Serializer):
    student_id = serializers.IntegerField()
    submitted = serializers.IntegerField()
    graded = serializers.IntegerField()
    total_projects = serializers.IntegerField()
    progress_pct = serializers.IntegerField()
    avg_grade = serializers.IntegerField(allow_null=True, help_text="null means no graded work yet.")


class SubjectProgressSerializer(serializers.Serializer):
    subject_id = serializers.IntegerField()
    name = serializers.CharField()
    code = serializers.CharField()
    teacher_id = serializers.IntegerField(allow_null=True)
    total_projects = serializers.IntegerField()
    students = StudentProgressSerializer(many=True)


class ProjectOverviewSerializer(serializers.Serializer):
    project_id = serializers.IntegerField()
    total_students = serializers.IntegerField()
    submitted = serializers.IntegerField()
    graded = serializers.IntegerField()
    unsubmitted = serializers.IntegerField()
    days_left = serializers.IntegerField()
    warn_unsubmitted = serializers.BooleanField()


class ClassmateProgressSerializer(serializers.Serializer):
    student_id = serializers.IntegerField()
    name = serializers.CharField()
    is_me = serializers.BooleanField()
    submitted = serializers.IntegerField()
    total_projects = serializers.IntegerField()
    progress_pct = serializers.IntegerField()


class SubjectClassmatesSerializer(serializers.Serializer):
    """Classmates' submission progress for one subject; grades are not exposed."""
    subject_id = serializers.IntegerField()
    name = serializers.CharField()
    code = serializers.CharField()
    teacher_id = serializers.IntegerField(allow_null=True)
    total_projects = serializers.IntegerField()
    classmates = ClassmateProgressSerializer(many=True)


class MaterialWriteSerializer(serializers.Serializer):
    subject_id = serializers.IntegerField()
    title = serializers.CharField(max_length=255)
    url = serializers.CharField(max_length=1024, help_text="Opaque file or link reference.")
    kind = serializers.ChoiceField(choices=MaterialKind.choices, required=False, default=MaterialKind.LINK)
    topic = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")


class MaterialReadSerializer(serializers.ModelSerializer):

    class Meta:
        model = Material
        fields = ["id", "subject", "title", "kind", "url", "topic", "uploaded_by", "created_at"]
