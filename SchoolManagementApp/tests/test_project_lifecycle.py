from datetime import timedelta

import pytest
from django.utils import timezone
from model_bakery import baker

from SchoolManagementApp.core.choices import NotificationKind, ProjectStatus, UserRole
from SchoolManagementApp.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from SchoolManagementApp.domain.services.project_service import ProjectService
from SchoolManagementApp.learning.models import Project
from SchoolManagementApp.notifications.models import Notification
from SchoolManagementApp.tests.helpers import actor_for, enroll

pytestmark = pytest.mark.django_db


@pytest.fixture
def service() -> ProjectService:
    return ProjectService()


def test_create_starts_pending(service, teacher, subject):
    project = service.create(
        actor_for(teacher), "Essay", subject.pk, timezone.now() + timedelta(days=7)
    )
    assert project.status == ProjectStatus.PENDING
    assert project.max_score == 100
    assert project.admin_note == ""


def test_create_accepts_iso_deadline(service, teacher, subject):
    project = service.create(actor_for(teacher), "Essay", subject.pk, "2030-01-01T10:00:00Z", max_score=20)
    assert project.deadline.year == 2030
    assert project.max_score == 20


@pytest.mark.parametrize("title,deadline", [("", "2030-01-01T10:00:00Z"), ("Essay", None)])
def test_create_requires_fields(service, teacher, subject, title, deadline):
    with pytest.raises(ValidationError):
        service.create(actor_for(teacher), title, subject.pk, deadline)


def test_create_is_teacher_only(service, student, subject):
    with pytest.raises(PermissionDeniedError):
        service.create(actor_for(student), "Essay", subject.pk, timezone.now())


def test_unknown_subject(service, teacher):
    with pytest.raises(NotFoundError):
        service.create(actor_for(teacher), "Essay", 99999, timezone.now())


def test_rejected_edit_goes_back_to_pending(service, teacher, make_project):
    project = make_project(status=ProjectStatus.REJECTED, admin_note="Too vague")
    edited = service.edit(actor_for(teacher), project.pk, {"description": "Now with a rubric"})
    assert edited.status == ProjectStatus.PENDING
    assert edited.admin_note == ""
    assert edited.description == "Now with a rubric"


def test_approved_project_cannot_be_edited(service, teacher, make_project):
    project = make_project()
    with pytest.raises(PermissionDeniedError):
        service.edit(actor_for(teacher), project.pk, {"title": "Changed"})
    project.refresh_from_db()
    assert project.title == "Algebra homework"


def test_only_creator_edits(service, make_project):
    other = baker.make("users.User", role=UserRole.TEACHER)
    project = make_project(status=ProjectStatus.PENDING)
    with pytest.raises(PermissionDeniedError):
        service.edit(actor_for(other), project.pk, {"title": "Mine now"})


def test_edit_rejects_unknown_fields(service, teacher, make_project):
    project = make_project(status=ProjectStatus.PENDING)
    with pytest.raises(ValidationError):
        service.edit(actor_for(teacher), project.pk, {"status": ProjectStatus.APPROVED})


def test_approval_notifies_creator_and_every_student(
    service, admin, teacher, subject, make_project, django_capture_on_commit_callbacks
):
    students = baker.make("users.User", role=UserRole.STUDENT, _quantity=3)
    enroll(subject, *students)
    project = make_project(status=ProjectStatus.PENDING)

    with django_capture_on_commit_callbacks(execute=True):
        decided = service.decide(actor_for(admin), project.pk, ProjectStatus.APPROVED, "")

    assert decided.status == ProjectStatus.APPROVED
    assert Notification.objects.count() == len(students) + 1
    assert Notification.objects.get(recipient=teacher).kind == NotificationKind.PROJECT_APPROVED
    published = Notification.objects.filter(kind=NotificationKind.PROJECT_PUBLISHED)
    assert sorted(published.values_list("recipient_id", flat=True)) == sorted(s.pk for s in students)


def test_rejection_notifies_only_creator(
    service, admin, teacher, subject, student, make_project, django_capture_on_commit_callbacks
):
    enroll(subject, student)
    project = make_project(status=ProjectStatus.PENDING)

    with django_capture_on_commit_callbacks(execute=True):
        service.decide(actor_for(admin), project.pk, ProjectStatus.REJECTED, "Needs rubric")

    notification = Notification.objects.get()
    assert notification.recipient_id == teacher.pk
    assert notification.kind == NotificationKind.PROJECT_REJECTED
    assert "Needs rubric" in notification.message


def test_invalid_decision_changes_nothing(service, admin, make_project, django_capture_on_commit_callbacks):
    project = make_project(status=ProjectStatus.PENDING)
    with django_capture_on_commit_callbacks(execute=True):
        with pytest.raises(ValidationError):
            service.decide(actor_for(admin), project.pk, "published", "")
    project.refresh_from_db()
    assert project.status == ProjectStatus.PENDING
    assert not Notification.objects.exists()


def test_decide_is_admin_only(service, teacher, make_project):
    project = make_project(status=ProjectStatus.PENDING)
    with pytest.raises(PermissionDeniedError):
        service.decide(actor_for(teacher), project.pk, ProjectStatus.APPROVED, "")


def test_students_see_only_approved_projects_of_their_subjects(service, student, subject, make_project):
    enroll(subject, student)
    approved = make_project(title="Visible")
    make_project(title="Pending", status=ProjectStatus.PENDING)
    make_project(title="Rejected", status=ProjectStatus.REJECTED)
    make_project(title="Elsewhere", subject=baker.make("academics.Subject"))

    visible = service.visible_projects(actor_for(student))
    assert [p.pk for p in visible] == [approved.pk]
    with pytest.raises(NotFoundError):
        service.get_visible(actor_for(student), Project.objects.get(title="Pending").pk)


def test_student_filtering_other_subject_gets_nothing(service, student, make_project):
    other = baker.make("academics.Subject")
    make_project(subject=other)
    assert service.visible_projects(actor_for(student), subject_id=other.pk) == []


def test_delete_by_creator_or_admin(service, admin, teacher, make_project):
    first, second = make_project(), make_project()
    service.delete(actor_for(teacher), first.pk)
    service.delete(actor_for(admin), second.pk)
    assert not Project.objects.exists()


def test_delete_orphans_submissions(service, teacher, student, make_project):
    project = make_project()
    submission = baker.make("learning.Submission", project=project, student=student)
    service.delete(actor_for(teacher), project.pk)
    submission.refresh_from_db()
    assert submission.project_id is None
