from datetime import timedelta
from unittest.mock import patch

import pytest
from django.db import DatabaseError
from django.utils import timezone
from model_bakery import baker

from SchoolManagementApp.core.choices import NotificationKind, ProjectStatus, SubmissionStatus, UserRole
from SchoolManagementApp.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    ValidationError,
)
from SchoolManagementApp.domain.services.project_service import ProjectService
from SchoolManagementApp.domain.services.submission_service import SubmissionService
from SchoolManagementApp.learning.models import Project, Submission
from SchoolManagementApp.notifications.models import Notification
from SchoolManagementApp.tests.helpers import actor_for, enroll

pytestmark = pytest.mark.django_db

CLOCK = "SchoolManagementApp.domain.services.submission_service.timezone.now"


@pytest.fixture
def service() -> SubmissionService:
    return SubmissionService()


@pytest.fixture
def project(make_project, subject, student):
    enroll(subject, student)
    return make_project()


def test_submit_before_deadline(service, student, project, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        submission = service.create(actor_for(student), project.pk, file_ref="uploads/a.pdf")
    assert submission.status == SubmissionStatus.SUBMITTED
    assert submission.submitted_at is not None
    assert submission.is_late is False
    received = Notification.objects.get()
    assert received.recipient_id == project.created_by_id
    assert received.kind == NotificationKind.SUBMISSION_RECEIVED


def test_draft_is_never_late_and_sends_nothing(service, student, make_project, subject, django_capture_on_commit_callbacks):
    enroll(subject, student)
    overdue = make_project(deadline=timezone.now() - timedelta(days=1))
    with django_capture_on_commit_callbacks(execute=True):
        draft = service.create(actor_for(student), overdue.pk, text="notes", is_draft=True)
    assert draft.status == SubmissionStatus.DRAFT
    assert draft.submitted_at is None
    assert draft.is_late is False
    assert not Notification.objects.exists()


def test_second_submission_conflicts(service, student, project):
    service.create(actor_for(student), project.pk, text="first")
    with pytest.raises(ConflictError):
        service.create(actor_for(student), project.pk, text="second")
    assert Submission.objects.filter(project=project, student=student).count() == 1


def test_unenrolled_student_cannot_submit(service, make_project):
    outsider = baker.make("users.User", role=UserRole.STUDENT)
    with pytest.raises(PermissionDeniedError):
        service.create(actor_for(outsider), make_project().pk, text="hi")


def test_pending_project_is_not_found(service, student, subject, make_project):
    enroll(subject, student)
    pending = make_project(status=ProjectStatus.PENDING)
    with pytest.raises(NotFoundError):
        service.create(actor_for(student), pending.pk, text="hi")


def test_late_submission(service, student, project):
    with patch(CLOCK, return_value=project.deadline + timedelta(minutes=1)):
        submission = service.create(actor_for(student), project.pk, text="late")
    assert submission.is_late is True


def test_submitting_draft_after_deadline_marks_late(service, student, project):
    draft = service.create(actor_for(student), project.pk, is_draft=True)
    with patch(CLOCK, return_value=project.deadline + timedelta(hours=2)):
        submitted = service.update(actor_for(student), draft.pk)
    assert submitted.status == SubmissionStatus.SUBMITTED
    assert submitted.is_late is True


def test_draft_save_keeps_late_flag(service, student, project):
    with patch(CLOCK, return_value=project.deadline + timedelta(minutes=5)):
        late = service.create(actor_for(student), project.pk, text="late")
    kept = service.update(actor_for(student), late.pk, text="edited", is_draft=True)
    assert kept.status == SubmissionStatus.DRAFT
    assert kept.is_late is True
    assert kept.text == "edited"


def test_late_flag_survives_grading(service, teacher, student, project):
    with patch(CLOCK, return_value=project.deadline + timedelta(minutes=5)):
        late = service.create(actor_for(student), project.pk, text="late")
    graded = service.grade(actor_for(teacher), late.pk, 70, "ok")
    assert graded.is_late is True


def test_update_keeps_omitted_fields(service, student, project):
    submission = service.create(actor_for(student), project.pk, file_ref="uploads/a.pdf", text="v1")
    updated = service.update(actor_for(student), submission.pk, text="v2")
    assert updated.file_ref == "uploads/a.pdf"
    assert updated.text == "v2"


def test_only_owner_updates(service, student, subject, project):
    other = baker.make("users.User", role=UserRole.STUDENT)
    enroll(subject, other)
    submission = service.create(actor_for(student), project.pk, text="mine")
    with pytest.raises(PermissionDeniedError):
        service.update(actor_for(other), submission.pk, text="stolen")


def test_graded_submission_is_frozen(service, teacher, student, project):
    submission = service.create(actor_for(student), project.pk, text="v1")
    service.grade(actor_for(teacher), submission.pk, 90, "good")
    with pytest.raises(ConflictError):
        service.update(actor_for(student), submission.pk, text="v2")
    with pytest.raises(ConflictError):
        service.delete(actor_for(student), submission.pk)
    submission.refresh_from_db()
    assert (submission.grade, submission.text) == (90, "v1")


def test_resubmission_after_grading_when_enabled(service, teacher, student, project, settings):
    settings.ALLOW_GRADED_RESUBMISSION = True
    submission = service.create(actor_for(student), project.pk, text="v1")
    service.grade(actor_for(teacher), submission.pk, 40, "redo")
    resubmitted = service.update(actor_for(student), submission.pk, text="v2")
    assert resubmitted.status == SubmissionStatus.SUBMITTED
    assert resubmitted.grade is None
    assert resubmitted.feedback == ""


def test_grading_a_draft(service, teacher, student, project, django_capture_on_commit_callbacks):
    draft = service.create(actor_for(student), project.pk, is_draft=True)
    with django_capture_on_commit_callbacks(execute=True):
        graded = service.grade(actor_for(teacher), draft.pk, 55, "")
    assert graded.status == SubmissionStatus.GRADED
    assert graded.submitted_at is None
    notification = Notification.objects.get(kind=NotificationKind.SUBMISSION_GRADED)
    assert notification.recipient_id == student.pk
    assert "55/100" in notification.message


@pytest.mark.parametrize("grade", [-1, 101, "90", True])
def test_grade_out_of_range(service, teacher, student, project, grade):
    submission = service.create(actor_for(student), project.pk, text="x")
    with pytest.raises(ValidationError):
        service.grade(actor_for(teacher), submission.pk, grade, "")


def test_subject_teacher_may_grade_foreign_project(service, teacher, student, subject, make_project):
    enroll(subject, student)
    author = baker.make("users.User", role=UserRole.TEACHER)
    project = make_project(created_by=author)
    submission = service.create(actor_for(student), project.pk, text="x")
    assert service.grade(actor_for(teacher), submission.pk, 10, "").grade == 10


def test_unrelated_teacher_cannot_grade(service, student, project):
    submission = service.create(actor_for(student), project.pk, text="x")
    stranger = baker.make("users.User", role=UserRole.TEACHER)
    with pytest.raises(PermissionDeniedError):
        service.grade(actor_for(stranger), submission.pk, 10, "")


def test_owner_deletes_ungraded(service, student, project):
    submission = service.create(actor_for(student), project.pk, text="x")
    service.delete(actor_for(student), submission.pk)
    assert not Submission.objects.exists()


def test_listing(service, teacher, student, project):
    submission = service.create(actor_for(student), project.pk, text="x")
    assert [s.pk for s in service.list_for_student(actor_for(student))] == [submission.pk]
    assert [s.pk for s in service.list_for_project(actor_for(teacher), project.pk)] == [submission.pk]


def test_wrong_project_route_is_not_found(service, teacher, student, project, make_project):
    submission = service.create(actor_for(student), project.pk, text="x")
    other = make_project(title="Geometry")
    with pytest.raises(NotFoundError):
        service.grade(actor_for(teacher), submission.pk, 10, "", project_id=other.pk)
    with pytest.raises(NotFoundError):
        service.update(actor_for(student), submission.pk, text="y", project_id=other.pk)
    with pytest.raises(NotFoundError):
        service.delete(actor_for(student), submission.pk, project_id=other.pk)
    submission.refresh_from_db()
    assert submission.grade is None
    assert submission.text == "x"


def test_race_on_unique_pair_becomes_conflict(service, student, project):
    service.create(actor_for(student), project.pk, text="first")
    # the existence check misses the row a concurrent request just wrote
    with patch.object(service.repos.submissions, "find_one", return_value=None):
        with pytest.raises(ConflictError):
            service.create(actor_for(student), project.pk, text="second")
    assert Submission.objects.filter(project=project, student=student).count() == 1


class TestStorageFailures:
    """Database errors surface as StorageError instead of being swallowed."""

    def test_grade(self, service, teacher, student, project, django_capture_on_commit_callbacks):
        submission = service.create(actor_for(student), project.pk, text="x")
        with patch.object(Submission, "save", side_effect=DatabaseError("disk full")):
            with django_capture_on_commit_callbacks(execute=True):
                with pytest.raises(StorageError):
                    service.grade(actor_for(teacher), submission.pk, 90, "good")
        submission.refresh_from_db()
        assert submission.grade is None
        assert not Notification.objects.filter(kind=NotificationKind.SUBMISSION_GRADED).exists()

    def test_decide(self, admin, make_project, django_capture_on_commit_callbacks):
        pending = make_project(status=ProjectStatus.PENDING)
        with patch.object(Project, "save", side_effect=DatabaseError("connection lost")):
            with django_capture_on_commit_callbacks(execute=True):
                with pytest.raises(StorageError):
                    ProjectService().decide(actor_for(admin), pending.pk, ProjectStatus.APPROVED)
        pending.refresh_from_db()
        assert pending.status == ProjectStatus.PENDING
        assert not Notification.objects.exists()
